"""Normalize live chat replay records into ChatMessage objects.

Each line of a chat replay export is one ``replayChatItemAction`` record:

    {"replayChatItemAction": {"actions": [{"addChatItemAction": {"item": {
        "liveChatTextMessageRenderer": {...}}}}]}}

Only two item variants carry chat we can show: plain text messages and paid
(superchat) messages. Everything else (tickers, membership banners, polls,
deleted-message markers) is rejected with ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ChatRecordError
from .models import ChatMessage, Superchat
from .timestamp import parse_timestamp


class RecordKind:
    """Item variants understood by the normalizer."""

    TEXT = "liveChatTextMessageRenderer"
    PAID = "liveChatPaidMessageRenderer"


_KNOWN_KINDS = (RecordKind.TEXT, RecordKind.PAID)


@dataclass(frozen=True)
class ChatRecord:
    """A decoded record: which variant matched, and its renderer payload."""

    kind: str
    renderer: Dict[str, Any]

    @property
    def is_paid(self) -> bool:
        return self.kind == RecordKind.PAID


def _extract_replay_item(data: Any) -> Optional[Dict[str, Any]]:
    """Return the ``item`` of the first addChatItemAction, or None."""
    if not isinstance(data, dict):
        return None
    rci = data.get("replayChatItemAction")
    if not isinstance(rci, dict):
        return None
    actions = rci.get("actions")
    if not isinstance(actions, list) or not actions:
        return None
    first = actions[0]
    if not isinstance(first, dict):
        return None
    act = first.get("addChatItemAction")
    if not isinstance(act, dict):
        return None
    item = act.get("item")
    if not isinstance(item, dict):
        return None
    return item


def decode_record(data: Any) -> Optional[ChatRecord]:
    """Find the message variant of one replay record, or None if it carries no chat."""
    item = _extract_replay_item(data)
    if item is None:
        return None
    for kind in _KNOWN_KINDS:
        renderer = item.get(kind)
        if isinstance(renderer, dict):
            return ChatRecord(kind=kind, renderer=renderer)
    return None


def _simple_text(renderer: Dict[str, Any], key: str) -> Optional[str]:
    obj = renderer.get(key)
    if isinstance(obj, dict) and isinstance(obj.get("simpleText"), str):
        return obj["simpleText"]
    return None


def _first_run_text(renderer: Dict[str, Any]) -> Optional[str]:
    # Rich messages (emoji, links) are split into runs; only the first is kept.
    msg = renderer.get("message")
    if not isinstance(msg, dict):
        return None
    runs = msg.get("runs")
    if not isinstance(runs, list) or not runs:
        return None
    first = runs[0]
    if isinstance(first, dict) and isinstance(first.get("text"), str):
        return first["text"]
    return None


def _author_icon(renderer: Dict[str, Any]) -> Optional[str]:
    photo = renderer.get("authorPhoto")
    if not isinstance(photo, dict):
        return None
    thumbs = photo.get("thumbnails")
    if not isinstance(thumbs, list) or not thumbs:
        return None
    first = thumbs[0]
    if isinstance(first, dict) and isinstance(first.get("url"), str):
        return first["url"]
    return None


def _badge_tooltip(renderer: Dict[str, Any]) -> Optional[str]:
    badges = renderer.get("authorBadges")
    if not isinstance(badges, list) or not badges:
        return None
    first = badges[0]
    if not isinstance(first, dict):
        return None
    badge = first.get("liveChatAuthorBadgeRenderer")
    if isinstance(badge, dict) and isinstance(badge.get("tooltip"), str):
        return badge["tooltip"]
    return None


def record_to_message(record: ChatRecord) -> ChatMessage:
    """Build a ChatMessage from a decoded record.

    Raises:
        ChatRecordError: a required field (message text, author name,
            timestamp text) is missing.
        TimestampFormatError: the timestamp text is malformed.
    """
    r = record.renderer

    text = _first_run_text(r)
    if text is None:
        raise ChatRecordError(f"{record.kind}: missing message.runs[0].text")

    username = _simple_text(r, "authorName")
    if not username:
        raise ChatRecordError(f"{record.kind}: missing authorName.simpleText")

    timestamp_text = _simple_text(r, "timestampText")
    if timestamp_text is None:
        raise ChatRecordError(f"{record.kind}: missing timestampText.simpleText")

    amount = _simple_text(r, "purchaseAmountText")
    superchat = Superchat(amount=amount, message=text) if amount is not None else None

    return ChatMessage(
        timestamp_sec=parse_timestamp(timestamp_text),
        timestamp_text=timestamp_text,
        message=text,
        username=username,
        user_icon=_author_icon(r),
        superchat=superchat,
        badge=_badge_tooltip(r),
    )


def normalize_record(data: Any) -> Optional[ChatMessage]:
    """Map one decoded JSON record to a ChatMessage.

    Returns None for records that are not chat messages. Raises
    ChatRecordError / TimestampFormatError for chat records with missing or
    malformed required fields.
    """
    record = decode_record(data)
    if record is None:
        return None
    return record_to_message(record)
