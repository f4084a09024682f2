"""Playback clock for a loaded recording.

The player owns one Timeline and a cursor into it. While playing it
schedules a single deferred tick at a time: each tick jumps the cursor
to the next event and schedules the following one, paced by the event
gaps divided by the speed multiplier.

States:
  STOPPED  -- cursor still; play() starts the clock if not at the end
  PLAYING  -- one tick pending at all times
  SEEKING  -- user is dragging the scrubber; no tick pending

Any state change that invalidates the pending tick (pause, seek, speed
change, load, close) cancels it before anything else is scheduled.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from cast_engine import ansi
from cast_engine.capture import parse_cast
from cast_engine.config import PlayerConfig
from cast_engine.palettes import DEFAULT_PALETTE, Palette
from cast_engine.scheduler import ScheduledCall, Scheduler
from cast_engine.thoughts import AgentThought, MarkerTick
from cast_engine.timeline import Timeline

logger = logging.getLogger(__name__)

Listener = Callable[["Player"], None]


class PlaybackState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    SEEKING = "seeking"


class Player:
    """Replays one cast recording against an injected scheduler.

    Usage:
        player = Player(ManualScheduler())
        player.load(cast_text)
        player.play()
        player.visible_output_markup()
        player.active_thought()
    """

    def __init__(
        self,
        scheduler: Scheduler,
        config: Optional[PlayerConfig] = None,
        palette: Palette = DEFAULT_PALETTE,
    ) -> None:
        self.scheduler = scheduler
        self.config = config or PlayerConfig()
        self.palette = palette

        self.timeline = Timeline()
        self.current_time = 0.0
        self.state = PlaybackState.STOPPED
        self._speed = self.config.speed
        self._was_playing = False
        self._pending: Optional[ScheduledCall] = None
        self._listeners: list[Listener] = []

    # ── Loading ───────────────────────────────────────────────────────────

    def load(self, cast_text: Optional[str]) -> Timeline:
        """Replace the recording. Cancels the clock, rewinds and stops."""
        self._cancel()
        self.timeline = parse_cast(cast_text)
        self.current_time = 0.0
        self.state = PlaybackState.STOPPED
        self._was_playing = False
        logger.debug(
            "loaded recording: %d events, %.3fs", len(self.timeline), self.max_time
        )
        self._notify()
        return self.timeline

    def close(self) -> None:
        """Cancel the clock. The player can still be inspected afterwards."""
        self._cancel()
        if self.state is PlaybackState.PLAYING:
            self.state = PlaybackState.STOPPED

    # ── Properties ────────────────────────────────────────────────────────

    @property
    def max_time(self) -> float:
        return self.timeline.max_time

    @property
    def has_session(self) -> bool:
        return not self.timeline.is_empty

    @property
    def is_playing(self) -> bool:
        return self.state is PlaybackState.PLAYING

    @property
    def is_seeking(self) -> bool:
        return self.state is PlaybackState.SEEKING

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def progress(self) -> float:
        """Cursor position as a fraction of the duration, 0 when empty."""
        if self.max_time <= 0:
            return 0.0
        return min(1.0, self.current_time / self.max_time)

    # ── Controls ──────────────────────────────────────────────────────────

    def play(self) -> bool:
        """Start playback. Returns False if there is nothing left to play."""
        if self.state is PlaybackState.SEEKING:
            self._was_playing = True
            return True
        if self.state is PlaybackState.PLAYING:
            return True
        if not self.has_session or self.current_time >= self.max_time:
            return False
        self.state = PlaybackState.PLAYING
        self._notify()
        self._schedule_next()
        return True

    def pause(self) -> None:
        if self.state is PlaybackState.SEEKING:
            self._was_playing = False
            return
        if self.state is not PlaybackState.PLAYING:
            return
        self._cancel()
        self.state = PlaybackState.STOPPED
        self._notify()

    def toggle(self) -> bool:
        """Play/pause button. Returns whether the player is now playing."""
        if self.is_playing:
            self.pause()
            return False
        return self.play()

    def reset(self) -> None:
        """Rewind to the start. Playback always ends up stopped."""
        self._cancel()
        self.current_time = 0.0
        self.state = PlaybackState.STOPPED
        self._was_playing = False
        self._notify()

    def seek(self, seconds: float) -> None:
        """Move the cursor, clamped to [0, max_time]. Keeps playing if playing."""
        self.current_time = self._clamp(seconds)
        self._notify()
        if self.is_playing:
            self._schedule_next()

    def begin_seek(self) -> None:
        """Scrubber grabbed: remember whether we were playing and hold the clock."""
        if self.state is PlaybackState.SEEKING:
            return
        self._was_playing = self.is_playing
        self._cancel()
        self.state = PlaybackState.SEEKING
        self._notify()

    def end_seek(self, seconds: Optional[float] = None) -> None:
        """Scrubber released: optionally move, then resume the prior state."""
        if self.state is not PlaybackState.SEEKING:
            if seconds is not None:
                self.seek(seconds)
            return
        if seconds is not None:
            self.current_time = self._clamp(seconds)
        resume = self._was_playing
        self._was_playing = False
        self.state = PlaybackState.PLAYING if resume else PlaybackState.STOPPED
        self._notify()
        if resume:
            self._schedule_next()

    def set_speed(self, multiplier: float) -> None:
        """Change the speed multiplier without moving the cursor."""
        if isinstance(multiplier, bool) or not multiplier > 0:
            raise ValueError(f"Speed must be positive (got {multiplier!r})")
        self._speed = float(multiplier)
        self._notify()
        if self.is_playing:
            self._schedule_next()

    # ── Observers ─────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener(player) after every cursor or state change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ── Clock ─────────────────────────────────────────────────────────────

    def _clamp(self, seconds: float) -> float:
        return max(0.0, min(self.max_time, float(seconds)))

    def _cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _schedule_next(self) -> None:
        self._cancel()
        event = self.timeline.next_event_after(self.current_time)
        if event is None:
            self.current_time = self.max_time
            self.state = PlaybackState.STOPPED
            self._notify()
            return

        target = event.timestamp_offset
        delay = max(
            self.config.min_tick_s,
            (target - self.current_time) / self._speed,
        )
        self._pending = self.scheduler.call_later(delay, lambda: self._tick(target))

    def _tick(self, target: float) -> None:
        self._pending = None
        if not self.is_playing:
            return
        self.current_time = target
        self._notify()
        if self.is_playing:
            self._schedule_next()

    # ── Derived views ─────────────────────────────────────────────────────

    def _at(self, t: Optional[float]) -> float:
        return self.current_time if t is None else t

    def visible_output_markup(self, t: Optional[float] = None) -> str:
        """HTML for all output at or before t (default: the cursor)."""
        raw = self.timeline.output_until(self._at(t))
        return ansi.render_markup(raw, self.palette, compact=self.config.compact)

    def visible_output_text(self, t: Optional[float] = None) -> str:
        """Plain text for all output at or before t (default: the cursor)."""
        raw = self.timeline.output_until(self._at(t))
        return ansi.render_text(raw, compact=self.config.compact)

    def visible_output_spans(self, t: Optional[float] = None) -> list[ansi.StyledSpan]:
        raw = self.timeline.output_until(self._at(t))
        return ansi.to_spans(raw, self.palette, compact=self.config.compact)

    def active_thought(self, t: Optional[float] = None) -> Optional[AgentThought]:
        """Most recent thought at or before t, or None."""
        return self.timeline.markers.thought_at(self._at(t))

    def marker_ticks(self) -> list[MarkerTick]:
        return self.timeline.markers.ticks()

    def position_label(self, t: Optional[float] = None) -> str:
        return self.timeline.markers.position_label(self._at(t))
