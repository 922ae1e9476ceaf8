"""Replay session: one chat log, one video clock, one chat viewport.

External happenings (playback ticks, seeks, viewport scrolls, key presses,
finished log loads) arrive as named events through a single FIFO inbox.
``drain()`` applies them in order on the caller's thread and returns the side
effects the presentation has to carry out (scroll the viewport, move the
video).

Log files are parsed elsewhere (see ``studio.jobs``); the finished result is
posted here as one ``LogLoaded`` event so a half-parsed file is never visible.
Two loads in flight race, and whichever completes last wins.
"""

from __future__ import annotations

import logging
import math
import queue
import threading
from bisect import insort_right
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from .chat.models import ChatMessage
from .chat.parser import ChatLogResult
from .chat.styling import tiers_from_config
from .chat.timestamp import format_timestamp
from .chat.window import visible_count
from .playback import PlaybackClock
from .profile import default_profile
from .scroll import ScrollStateMachine, Transition

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeUpdate:
    position: float


@dataclass(frozen=True)
class Seeked:
    position: float


@dataclass(frozen=True)
class DurationChanged:
    duration: Optional[float]


@dataclass(frozen=True)
class Scrolled:
    scroll_top: float
    scroll_height: float
    client_height: float


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class JumpToLatest:
    pass


@dataclass(frozen=True)
class LogLoaded:
    result: ChatLogResult


@dataclass(frozen=True)
class LogFailed:
    error: str
    source: str = ""


@dataclass(frozen=True)
class Compose:
    text: str


Event = Union[TimeUpdate, Seeked, DurationChanged, Scrolled, KeyPressed, JumpToLatest, LogLoaded, LogFailed, Compose]


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScrollToBottom:
    def to_dict(self) -> Dict[str, Any]:
        return {"type": "scroll_to_bottom"}


@dataclass(frozen=True)
class SeekTo:
    position: float

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "seek_to", "position": self.position}


Effect = Union[ScrollToBottom, SeekTo]


def _finite(value: Any) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    return number


def event_from_dict(body: Dict[str, Any]) -> Event:
    """Build an event from a client payload such as ``{"type": "seeked", "position": 12.5}``.

    Raises:
        ValueError: unknown type or missing/invalid fields
    """
    kind = str(body.get("type") or "")
    try:
        if kind == "time_update":
            return TimeUpdate(_finite(body["position"]))
        if kind == "seeked":
            return Seeked(_finite(body["position"]))
        if kind == "duration":
            duration = body.get("duration")
            return DurationChanged(None if duration is None else float(duration))
        if kind == "scroll":
            return Scrolled(
                scroll_top=_finite(body["scroll_top"]),
                scroll_height=_finite(body["scroll_height"]),
                client_height=_finite(body["client_height"]),
            )
        if kind == "key":
            return KeyPressed(str(body["key"]))
        if kind == "jump_to_latest":
            return JumpToLatest()
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"invalid {kind} event: {exc}") from exc
    raise ValueError(f"unknown event type: {kind!r}")


class ReplaySession:
    def __init__(self, profile: Optional[Dict[str, Any]] = None) -> None:
        profile = profile or default_profile()
        chat_cfg = profile.get("chat", {})
        playback_cfg = profile.get("playback", {})

        self.clock = PlaybackClock(seek_step_seconds=float(playback_cfg.get("seek_step_seconds", 5)))
        self.scroll = ScrollStateMachine(threshold_px=float(chat_cfg.get("scroll_threshold_px", 50)))
        self.composer_name = str(chat_cfg.get("composer_name") or "You")
        self.tiers = tiers_from_config(profile.get("superchat", {}).get("tiers", []))

        self.messages: List[ChatMessage] = []
        self.source = ""
        self.last_error: Optional[str] = None
        self.visible = 0

        self._inbox: "queue.Queue[Event]" = queue.Queue()
        self._lock = threading.RLock()
        self._handlers: Dict[type, Callable[[Any], List[Effect]]] = {
            TimeUpdate: self._on_time_update,
            Seeked: self._on_seeked,
            DurationChanged: self._on_duration,
            Scrolled: self._on_scrolled,
            KeyPressed: self._on_key,
            JumpToLatest: self._on_jump_to_latest,
            LogLoaded: self._on_log_loaded,
            LogFailed: self._on_log_failed,
            Compose: self._on_compose,
        }

    # -- inbox -------------------------------------------------------------

    def post(self, event: Event) -> None:
        """Queue an event. Safe to call from any thread."""
        self._inbox.put(event)

    def drain(self) -> List[Effect]:
        """Apply every queued event in arrival order."""
        effects: List[Effect] = []
        with self._lock:
            while True:
                try:
                    event = self._inbox.get_nowait()
                except queue.Empty:
                    break
                effects.extend(self.handle(event))
        return effects

    def dispatch(self, event: Event) -> List[Effect]:
        self.post(event)
        return self.drain()

    def handle(self, event: Event) -> List[Effect]:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"unsupported event: {event!r}")
        with self._lock:
            return handler(event)

    # -- handlers ----------------------------------------------------------

    @staticmethod
    def _scroll_effects(t: Transition) -> List[Effect]:
        return [ScrollToBottom()] if t.scroll_to_bottom else []

    def _recount(self) -> int:
        previous = self.visible
        self.visible = visible_count(self.messages, self.clock.current_sec)
        return previous

    def _on_time_update(self, event: TimeUpdate) -> List[Effect]:
        if self.clock.on_time_update(event.position) is None:
            return []
        previous = self._recount()
        return self._scroll_effects(self.scroll.on_visible_changed(previous, self.visible))

    def _on_seeked(self, event: Seeked) -> List[Effect]:
        self.clock.on_seek(event.position)
        self.clock.on_time_update(event.position)
        self._recount()
        return self._scroll_effects(self.scroll.on_seek())

    def _on_duration(self, event: DurationChanged) -> List[Effect]:
        self.clock.set_duration(event.duration)
        return []

    def _on_scrolled(self, event: Scrolled) -> List[Effect]:
        return self._scroll_effects(self.scroll.on_scroll(event.scroll_top, event.scroll_height, event.client_height))

    def _on_key(self, event: KeyPressed) -> List[Effect]:
        target = self.clock.step_for_key(event.key)
        if target is None:
            return []
        # Moving the video fires a seek on the client anyway; apply it now so
        # the returned state already reflects the new position.
        return [SeekTo(target)] + self._on_seeked(Seeked(target))

    def _on_jump_to_latest(self, event: JumpToLatest) -> List[Effect]:
        return self._scroll_effects(self.scroll.jump_to_latest())

    def _on_log_loaded(self, event: LogLoaded) -> List[Effect]:
        result = event.result
        self.messages = list(result.messages)
        self.source = result.source
        self.last_error = None
        self._recount()
        log.info("session: loaded %d messages from %s", len(self.messages), result.source or "<text>")
        return self._scroll_effects(self.scroll.on_messages_replaced())

    def _on_log_failed(self, event: LogFailed) -> List[Effect]:
        self.last_error = event.error
        log.warning("session: chat load failed (%s): %s", event.source or "<text>", event.error)
        return []

    def _on_compose(self, event: Compose) -> List[Effect]:
        text = event.text.strip()
        if not text:
            return []
        second = self.clock.current_sec or 0
        msg = ChatMessage(
            timestamp_sec=second,
            timestamp_text=format_timestamp(max(0, second)),
            message=text,
            username=self.composer_name,
        )
        # Insert after any message with the same second so the list stays sorted.
        insort_right(self.messages, msg, key=lambda m: m.timestamp_sec)
        previous = self._recount()
        return self._scroll_effects(self.scroll.on_visible_changed(previous, self.visible))

    # -- queries -----------------------------------------------------------

    def compose(self, text: str) -> List[Effect]:
        if not text or not text.strip():
            raise ValueError("empty_message")
        return self.dispatch(Compose(text))

    def visible_messages(self) -> List[ChatMessage]:
        with self._lock:
            return self.messages[: self.visible]

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "position_sec": self.clock.current_sec,
                "duration": self.clock.duration,
                "mode": self.scroll.mode.value,
                "show_jump_to_latest": self.scroll.show_jump_to_latest,
                "visible_count": self.visible,
                "total_count": len(self.messages),
                "source": self.source,
                "last_error": self.last_error,
            }
