from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import pytest


def _record(
    text: Optional[str] = "hello",
    author: Optional[str] = "Alice",
    ts: Optional[str] = "01:05",
    *,
    icon: Optional[str] = "http://x/a.png",
    amount: Optional[str] = None,
    badges: Optional[List[str]] = None,
    kind: Optional[str] = None,
) -> Dict[str, Any]:
    renderer: Dict[str, Any] = {}
    if text is not None:
        renderer["message"] = {"runs": [{"text": text}]}
    if author is not None:
        renderer["authorName"] = {"simpleText": author}
    if ts is not None:
        renderer["timestampText"] = {"simpleText": ts}
    if icon is not None:
        renderer["authorPhoto"] = {"thumbnails": [{"url": icon}]}
    if amount is not None:
        renderer["purchaseAmountText"] = {"simpleText": amount}
    if badges is not None:
        renderer["authorBadges"] = [{"liveChatAuthorBadgeRenderer": {"tooltip": b}} for b in badges]
    if kind is None:
        kind = "liveChatPaidMessageRenderer" if amount is not None else "liveChatTextMessageRenderer"
    return {"replayChatItemAction": {"actions": [{"addChatItemAction": {"item": {kind: renderer}}}]}}


@pytest.fixture
def make_record():
    """Factory for live chat replay records."""
    return _record


@pytest.fixture
def make_log():
    """Join records (dicts or raw strings) into JSONL text."""

    def build(*lines: Any) -> str:
        return "\n".join(line if isinstance(line, str) else json.dumps(line, ensure_ascii=False) for line in lines) + "\n"

    return build


@pytest.fixture(autouse=True)
def _reset_logging():
    # setup_logging() stops propagation, which would hide records from caplog
    # in later tests.
    yield
    from chatreplay import logging_config

    logging_config._CONFIGURED = False
    logger = logging.getLogger(logging_config.ROOT_LOGGER)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
