"""Agent-thinking panel: the sections shown next to the terminal."""

from __future__ import annotations

import json
from typing import Any, Optional

from cast_engine.markers import format_time
from cast_engine.thoughts import (
    AgentThought,
    EpisodeMarker,
    PlannedCommand,
    ThinkingMarker,
    UnparseableMarker,
)

NO_THOUGHT_TEXT = "No agent thinking data yet"


def humanize_key(key: str) -> str:
    """``files_touched`` -> ``Files touched``."""
    text = key.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, sort_keys=False, default=str)


def format_command(command: PlannedCommand) -> str:
    text = command.command_text or "Empty command"
    if command.timeout_seconds:
        return f"{text}  ({command.timeout_seconds:g}s timeout)"
    return text


def format_thought(thought: Optional[AgentThought]) -> list[tuple[str, str]]:
    """Ordered (title, body) sections for a thought; empty for None."""
    if thought is None:
        return []

    sections: list[tuple[str, str]] = []

    if isinstance(thought, EpisodeMarker):
        sections.append(
            ("Episode", f"Episode {thought.episode_number}: {thought.command_count} commands")
        )

    elif isinstance(thought, ThinkingMarker):
        if thought.is_task_complete is not None:
            sections.append(
                ("Status", "Task Complete" if thought.is_task_complete else "In Progress")
            )
        if thought.state_analysis:
            sections.append(("State Analysis", thought.state_analysis))
        if thought.explanation:
            sections.append(("Next Actions", thought.explanation))
        if thought.commands:
            sections.append(
                ("Planned Commands", "\n".join(format_command(c) for c in thought.commands))
            )
        for key, value in thought.extra.items():
            sections.append((humanize_key(key), format_value(value)))

    elif isinstance(thought, UnparseableMarker):
        sections.append(("Raw Marker Data", thought.raw_content))

    sections.append(("Thinking at", format_time(thought.timestamp_offset)))
    return sections


def render_panel(thought: Optional[AgentThought], indent: str = "  ") -> str:
    """Plain-text rendering of the panel for terminals and logs."""
    sections = format_thought(thought)
    if not sections:
        return NO_THOUGHT_TEXT

    lines = []
    for title, body in sections:
        lines.append(f"{title}:")
        for body_line in body.split("\n"):
            lines.append(f"{indent}{body_line}")
    return "\n".join(lines)
