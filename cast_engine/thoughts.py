"""Agent thoughts decoded from marker events, and scrubber tick marks.

Shared by the timeline (which holds the thoughts of a recording) and the
marker index (which searches them and derives ticks).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True)
class PlannedCommand:
    """A command the agent announced it is about to run."""

    command_text: str
    timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class EpisodeMarker:
    """`Episode <N>: <M> commands` marker."""

    timestamp_offset: float
    episode_number: int
    command_count: int
    raw_text: str = ""

    @property
    def kind(self) -> str:
        return "episode"


@dataclass(frozen=True)
class ThinkingMarker:
    """Structured agent reasoning decoded from a JSON marker.

    Attributes:
        timestamp_offset: Offset of the marker event.
        state_analysis: The agent's reading of the terminal state.
        explanation: What the agent intends to do next.
        commands: Planned commands, in order.
        is_task_complete: Whether the agent believes it is done.
        extra: Any other fields, kept verbatim for display.
    """

    timestamp_offset: float
    state_analysis: Optional[str] = None
    explanation: Optional[str] = None
    commands: Optional[tuple[PlannedCommand, ...]] = None
    is_task_complete: Optional[bool] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return "thinking"


@dataclass(frozen=True)
class UnparseableMarker:
    """Marker whose payload is neither an episode line nor a JSON object."""

    timestamp_offset: float
    raw_content: str = ""

    @property
    def kind(self) -> str:
        return "unparseable"


AgentThought = Union[EpisodeMarker, ThinkingMarker, UnparseableMarker]


@dataclass(frozen=True)
class MarkerTick:
    """A scrubber tick mark.

    Synthetic ticks (``is_real_marker=False``) only exist for navigation
    in recordings without markers and carry no thought.
    """

    timestamp_offset: float
    is_real_marker: bool
    label: str = ""
