"""Event model for parsed cast recordings.

The timeline is the immutable result of parsing one recording: the
chronological event list, the agent thoughts decoded from marker
events, and the index used to look thoughts up by playback position.

All timing is in seconds, relative to the first accepted event.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from cast_engine.markers import MarkerIndex
from cast_engine.thoughts import AgentThought


class EventKind(Enum):
    """Cast event type codes."""

    OUTPUT = "o"
    INPUT = "i"
    MARKER = "m"

    @classmethod
    def from_code(cls, code: Any) -> Optional["EventKind"]:
        """Return the kind for a wire type code, or None if unknown."""
        for kind in cls:
            if kind.value == code:
                return kind
        return None


@dataclass(frozen=True)
class CastEvent:
    """A single event of the recording.

    Attributes:
        timestamp_offset: Seconds since the first accepted event.
        kind: Output, input or marker.
        payload: Raw terminal bytes, or the encoded marker metadata.
    """

    timestamp_offset: float
    kind: EventKind
    payload: str = ""

    def to_dict(self) -> dict:
        """Serialize to dict for debugging/export."""
        return {
            "t": self.timestamp_offset,
            "type": self.kind.value,
            "payload": self.payload,
        }


# ── Timeline ──────────────────────────────────────────────────────────────

class Timeline:
    """Ordered, immutable sequence of cast events for one recording.

    Provides the derived views the player needs: duration, output
    prefixes and the marker index.
    """

    def __init__(
        self,
        events: Optional[list[CastEvent]] = None,
        thoughts: Optional[list[AgentThought]] = None,
        header: Optional[dict[str, Any]] = None,
    ) -> None:
        self._events: tuple[CastEvent, ...] = tuple(events or ())
        self._thoughts: tuple[AgentThought, ...] = tuple(thoughts or ())
        self.header: dict[str, Any] = dict(header or {})
        self._offsets = [e.timestamp_offset for e in self._events]
        self.markers = MarkerIndex(self._thoughts, self.max_time)

    @property
    def events(self) -> tuple[CastEvent, ...]:
        """All events, in file order."""
        return self._events

    @property
    def thoughts(self) -> tuple[AgentThought, ...]:
        """Decoded marker events, in file order."""
        return self._thoughts

    @property
    def max_time(self) -> float:
        """Offset of the latest event, 0 for an empty recording."""
        if not self._events:
            return 0.0
        return max(self._offsets)

    @property
    def is_empty(self) -> bool:
        return not self._events

    @property
    def width(self) -> Optional[int]:
        value = self.header.get("width")
        return value if isinstance(value, int) and value > 0 else None

    @property
    def height(self) -> Optional[int]:
        value = self.header.get("height")
        return value if isinstance(value, int) and value > 0 else None

    def next_event_after(self, t: float) -> Optional[CastEvent]:
        """First event, in file order, with an offset strictly greater than t."""
        for event in self._events:
            if event.timestamp_offset > t:
                return event
        return None

    def events_until(
        self, t: float, kind: Optional[EventKind] = None
    ) -> list[CastEvent]:
        """Events with an offset at or before t, optionally of one kind."""
        return [
            e
            for e in self._events
            if e.timestamp_offset <= t and (kind is None or e.kind is kind)
        ]

    def output_until(self, t: float) -> str:
        """Concatenated raw output visible at t."""
        return "".join(e.payload for e in self.events_until(t, EventKind.OUTPUT))

    def count(self, kind: EventKind) -> int:
        return sum(1 for e in self._events if e.kind is kind)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)
