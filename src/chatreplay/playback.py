"""Playback clock adapter.

The video element reports its position many times per second as a float.
Chat only cares about whole seconds, so ticks are truncated and de-duplicated
before they reach the rest of the session. Seeks are reported separately
because they force the chat view back into auto-follow.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

log = logging.getLogger(__name__)

_STEP_BACK_KEYS = {"ArrowLeft", "Left"}
_STEP_FORWARD_KEYS = {"ArrowRight", "Right"}


@dataclass(frozen=True)
class TimeChanged:
    second: int


@dataclass(frozen=True)
class SeekOccurred:
    position: float


class PlaybackClock:
    def __init__(self, seek_step_seconds: float = 5.0) -> None:
        self.seek_step_seconds = float(seek_step_seconds)
        self.position: float = 0.0
        self.duration: Optional[float] = None
        self._last_second: Optional[int] = None

    @property
    def current_sec(self) -> Optional[int]:
        """Last emitted whole second, or None before the first tick."""
        return self._last_second

    def set_duration(self, duration: Optional[float]) -> None:
        if duration is None or not math.isfinite(duration) or duration < 0:
            self.duration = None
        else:
            self.duration = float(duration)

    def on_time_update(self, position: float) -> Optional[TimeChanged]:
        """Record a native position update; emit only when the whole second changes."""
        self.position = float(position)
        second = int(self.position)
        if second == self._last_second:
            return None
        self._last_second = second
        return TimeChanged(second)

    def on_seek(self, position: float) -> SeekOccurred:
        self.position = float(position)
        return SeekOccurred(self.position)

    def clamp(self, position: float) -> float:
        position = max(0.0, position)
        if self.duration is not None:
            position = min(position, self.duration)
        return position

    def step_for_key(self, key: str) -> Optional[float]:
        """Target position for a seek shortcut, or None if the key is not one."""
        if key in _STEP_BACK_KEYS:
            delta = -self.seek_step_seconds
        elif key in _STEP_FORWARD_KEYS:
            delta = self.seek_step_seconds
        else:
            return None
        target = self.clamp(self.position + delta)
        log.debug("key %s: seek %.2f -> %.2f", key, self.position, target)
        return target
