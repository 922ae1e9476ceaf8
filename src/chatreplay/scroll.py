"""Auto-follow / manual scroll state machine for the chat viewport.

Each handler returns a Transition. ``scroll_to_bottom`` on the transition is
the side effect the viewport must perform.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

log = logging.getLogger(__name__)

DEFAULT_THRESHOLD_PX = 50


class ScrollMode(str, Enum):
    AUTO_FOLLOW = "auto_follow"
    MANUAL = "manual"


@dataclass(frozen=True)
class Transition:
    previous: ScrollMode
    mode: ScrollMode
    scroll_to_bottom: bool = False

    @property
    def changed(self) -> bool:
        return self.previous != self.mode


class ScrollStateMachine:
    def __init__(self, threshold_px: float = DEFAULT_THRESHOLD_PX) -> None:
        self.threshold_px = float(threshold_px)
        self.mode = ScrollMode.AUTO_FOLLOW

    @property
    def show_jump_to_latest(self) -> bool:
        return self.mode is ScrollMode.MANUAL

    def _go(self, mode: ScrollMode, scroll_to_bottom: bool) -> Transition:
        previous = self.mode
        self.mode = mode
        if previous is not mode:
            log.debug("scroll mode %s -> %s", previous.value, mode.value)
        return Transition(previous=previous, mode=mode, scroll_to_bottom=scroll_to_bottom)

    def is_near_bottom(self, scroll_top: float, scroll_height: float, client_height: float) -> bool:
        return (scroll_height - scroll_top - client_height) <= self.threshold_px

    def on_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> Transition:
        if self.is_near_bottom(scroll_top, scroll_height, client_height):
            return self._go(ScrollMode.AUTO_FOLLOW, False)
        return self._go(ScrollMode.MANUAL, False)

    def on_visible_changed(self, previous_count: int, count: int) -> Transition:
        grew = count > previous_count
        return self._go(self.mode, grew and self.mode is ScrollMode.AUTO_FOLLOW)

    def on_messages_replaced(self) -> Transition:
        return self._go(ScrollMode.AUTO_FOLLOW, True)

    def on_seek(self) -> Transition:
        # The visible window jumps on a seek; re-anchor to the newest message.
        return self._go(ScrollMode.AUTO_FOLLOW, True)

    def jump_to_latest(self) -> Transition:
        return self._go(ScrollMode.AUTO_FOLLOW, True)
