"""Visible-window filter: which messages has playback reached?"""

from __future__ import annotations

from bisect import bisect_right
from typing import List, Optional, Sequence

from .models import ChatMessage


def visible_count(messages: Sequence[ChatMessage], current_sec: Optional[int]) -> int:
    """Length of the maximal prefix with ``timestamp_sec <= current_sec``.

    ``messages`` must be ascending by timestamp_sec. With no known playback
    position every message is visible.
    """
    if current_sec is None:
        return len(messages)
    return bisect_right(messages, current_sec, key=lambda m: m.timestamp_sec)


def visible_messages(messages: Sequence[ChatMessage], current_sec: Optional[int]) -> List[ChatMessage]:
    return list(messages[: visible_count(messages, current_sec)])
