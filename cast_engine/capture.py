"""Asciicast capture parser.

Converts cast-format recordings into a Timeline, decoding agent
marker events into thoughts along the way.

Cast format:
  Line 1: JSON header {"version": 2, "width": W, "height": H, ...}
  Lines 2+: [timestamp, "o" | "i" | "m", data]

Malformed lines are skipped: a single corrupted row never aborts
playback of the rest of the recording.
"""

from __future__ import annotations

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Optional

from cast_engine.thoughts import (
    AgentThought,
    EpisodeMarker,
    PlannedCommand,
    ThinkingMarker,
    UnparseableMarker,
)
from cast_engine.timeline import CastEvent, EventKind, Timeline

logger = logging.getLogger(__name__)

EPISODE_RE = re.compile(r"^\s*Episode\s+([0-9]+):\s+([0-9]+)\s+commands?\s*$", re.ASCII)

# Keys tried, in order, when a planned command is an object
COMMAND_TEXT_KEYS = ("command", "cmd", "text", "action")
COMMAND_TIMEOUT_KEYS = ("timeout", "timeout_sec", "max_timeout_sec")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    if not _is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


# ── Marker decoding ───────────────────────────────────────────────────────

def _episode_numbers(m: re.Match) -> Optional[tuple[int, int]]:
    """(episode, command count), or None when the digits are too long to convert."""
    try:
        return int(m.group(1)), int(m.group(2))
    except ValueError:
        return None


def decode_command(entry: Any) -> PlannedCommand:
    """Decode one entry of a thinking marker's ``commands`` list."""
    if isinstance(entry, str):
        return PlannedCommand(command_text=entry)

    if isinstance(entry, dict):
        text = ""
        for key in COMMAND_TEXT_KEYS:
            value = entry.get(key)
            if isinstance(value, str) and value:
                text = value
                break
        if not text:
            strings = [v for v in entry.values() if isinstance(v, str)]
            if strings:
                text = strings[0]
            else:
                text = f"Unknown command format: {', '.join(map(str, entry))}"

        timeout = None
        for key in COMMAND_TIMEOUT_KEYS:
            value = entry.get(key)
            if _is_finite_number(value) and value:
                timeout = float(value)
                break
        return PlannedCommand(command_text=text, timeout_seconds=timeout)

    return PlannedCommand(command_text=json.dumps(entry))


def _thinking_from_dict(data: dict, offset: float) -> ThinkingMarker:
    """Split a decoded marker object into known fields and extras.

    Known fields with an unexpected type are kept under ``extra``
    rather than dropped.
    """
    extra: dict[str, Any] = {}
    known: dict[str, Any] = {}

    for key, value in data.items():
        if key in ("state_analysis", "explanation"):
            if isinstance(value, str):
                known[key] = value
            elif value is not None:
                extra[key] = value
        elif key == "commands":
            if isinstance(value, list):
                known[key] = tuple(decode_command(c) for c in value)
            elif value is not None:
                extra[key] = value
        elif key == "is_task_complete":
            if isinstance(value, bool):
                known[key] = value
            elif value is not None:
                extra[key] = value
        elif key in ("timestamp", "raw_content"):
            # Reserved by the viewer; never displayed as extras
            continue
        else:
            extra[key] = value

    return ThinkingMarker(timestamp_offset=offset, extra=extra, **known)


def decode_marker(content: Any, offset: float = 0.0) -> AgentThought:
    """Decode marker content into an agent thought.

    Tries, in order: an ``Episode <N>: <M> commands`` line, a JSON
    object, and finally falls back to keeping the raw text.
    """
    if isinstance(content, dict):
        return _thinking_from_dict(content, offset)

    if not isinstance(content, str):
        return UnparseableMarker(timestamp_offset=offset, raw_content=json.dumps(content))

    m = EPISODE_RE.match(content)
    episode = _episode_numbers(m) if m else None
    if episode is not None:
        number, count = episode
        if number >= 1:
            return EpisodeMarker(
                timestamp_offset=offset,
                episode_number=number,
                command_count=count,
                raw_text=content,
            )

    try:
        data = json.loads(content)
    except (ValueError, RecursionError):
        data = None

    if isinstance(data, dict):
        return _thinking_from_dict(data, offset)

    return UnparseableMarker(timestamp_offset=offset, raw_content=content)


# ── Stream parsing ────────────────────────────────────────────────────────

def _payload_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content, separators=(",", ":"))


def parse_cast(text: Optional[str]) -> Timeline:
    """Parse cast text into a Timeline.

    Returns an empty Timeline for empty or missing input. Never raises
    on malformed content.
    """
    events: list[CastEvent] = []
    thoughts: list[AgentThought] = []
    header: Optional[dict] = None
    t0: Optional[float] = None

    if not text:
        return Timeline()

    # Only \n ends a record; U+2028, NEL and friends may appear raw in payloads
    for line_no, line in enumerate(text.split("\n"), 1):
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except (ValueError, RecursionError):
            logger.debug("skipping malformed cast line %d", line_no)
            continue

        if isinstance(entry, dict):
            if "version" in entry and header is None:
                header = entry
            continue

        if not isinstance(entry, list) or len(entry) < 3:
            logger.debug("skipping non-event cast line %d", line_no)
            continue

        ts, code, content = entry[0], entry[1], entry[2]
        kind = EventKind.from_code(code)
        if not _is_finite_number(ts) or kind is None:
            logger.debug("skipping cast line %d: bad timestamp or type %r", line_no, code)
            continue

        if t0 is None:
            t0 = float(ts)
        offset = max(0.0, float(ts) - t0)

        events.append(
            CastEvent(timestamp_offset=offset, kind=kind, payload=_payload_text(content))
        )
        if kind is EventKind.MARKER:
            thoughts.append(decode_marker(content, offset))

    return Timeline(events=events, thoughts=thoughts, header=header)


def load_cast(path: str | Path) -> Timeline:
    """Read and parse a .cast file.

    Raises:
        FileNotFoundError: If the path does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Cast file not found: {path}")
    return parse_cast(path.read_text(encoding="utf-8", errors="replace"))
