"""Marker index: nearest-thought lookup and scrubber ticks."""

from __future__ import annotations

import bisect
import math
from typing import Optional, Sequence

from cast_engine.thoughts import AgentThought, MarkerTick

# Synthetic navigation ticks, used when a recording has no markers
MIN_SYNTHETIC_TICKS = 3
MAX_SYNTHETIC_TICKS = 8
SECONDS_PER_SYNTHETIC_TICK = 30.0


def format_time(seconds: float) -> str:
    """Format seconds as m:ss (floored)."""
    total = max(0, int(math.floor(seconds)))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def synthetic_tick_count(max_time: float) -> int:
    """Number of navigation ticks for a recording of the given length."""
    by_duration = int(max_time // SECONDS_PER_SYNTHETIC_TICK)
    return min(MAX_SYNTHETIC_TICKS, max(MIN_SYNTHETIC_TICKS, by_duration))


class MarkerIndex:
    """Thoughts ordered by offset, searchable by playback position.

    Usage:
        index = MarkerIndex(thoughts, max_time=42.0)
        index.thought_at(10.0)   # latest thought at or before 10s
        index.ticks()            # scrubber tick marks
    """

    def __init__(self, thoughts: Sequence[AgentThought], max_time: float = 0.0) -> None:
        self._thoughts = list(thoughts)
        self._offsets = [t.timestamp_offset for t in self._thoughts]
        # Offsets are non-decreasing for a well-formed recording. Keep a
        # stable sort so ties stay in file order if a producer misbehaves.
        if any(b < a for a, b in zip(self._offsets, self._offsets[1:])):
            order = sorted(range(len(self._thoughts)), key=lambda i: self._offsets[i])
            self._thoughts = [self._thoughts[i] for i in order]
            self._offsets = [self._offsets[i] for i in order]
        self.max_time = max_time
        self._ticks = self._build_ticks()

    @property
    def has_real_markers(self) -> bool:
        return bool(self._thoughts)

    def __len__(self) -> int:
        return len(self._thoughts)

    def thought_at(self, t: float) -> Optional[AgentThought]:
        """Latest thought with offset <= t; the last in file order on ties."""
        i = bisect.bisect_right(self._offsets, t)
        if i == 0:
            return None
        return self._thoughts[i - 1]

    def ticks(self) -> list[MarkerTick]:
        return list(self._ticks)

    def _build_ticks(self) -> list[MarkerTick]:
        if self._thoughts:
            return [
                MarkerTick(
                    timestamp_offset=offset,
                    is_real_marker=True,
                    label=f"Agent Thinking {i} • {format_time(offset)}",
                )
                for i, offset in enumerate(self._offsets, 1)
            ]

        if self.max_time <= 0:
            return []

        count = synthetic_tick_count(self.max_time)
        step = self.max_time / (count + 1)
        ticks = []
        for i in range(1, count + 1):
            offset = i * step
            ticks.append(
                MarkerTick(
                    timestamp_offset=offset,
                    is_real_marker=False,
                    label=f"Navigate to {format_time(offset)}",
                )
            )
        return ticks

    def position(self, t: float) -> tuple[int, int]:
        """(index, total) of the tick reached at t, index at least 1."""
        total = len(self._ticks)
        if not total:
            return 0, 0
        reached = bisect.bisect_right([k.timestamp_offset for k in self._ticks], t)
        return max(1, reached), total

    def position_label(self, t: float) -> str:
        """Navigation counter text, e.g. ``Action 2 of 5``."""
        index, total = self.position(t)
        if not total:
            return ""
        noun = "Action" if self.has_real_markers else "Position"
        return f"{noun} {index} of {total}"
