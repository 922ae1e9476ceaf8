"""Parse a newline-delimited chat replay log into an ordered message list.

Bad lines never abort a load: they are logged and skipped. Only a log that
yields no messages at all is an error (``ChatLogEmptyError``), since that
usually means the user picked a file in some other format.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import ChatLogEmptyError, ChatRecordError, TimestampFormatError
from .models import ChatMessage
from .normalize import normalize_record

log = logging.getLogger(__name__)

CHAT_LOG_EXTENSIONS = (".jsonl", ".txt")


@dataclass(frozen=True)
class LineWarning:
    line_no: int  # 1-based line number in the source text
    reason: str

    def to_dict(self) -> dict:
        return {"line_no": self.line_no, "reason": self.reason}


@dataclass
class ChatLogResult:
    messages: List[ChatMessage]
    warnings: List[LineWarning] = field(default_factory=list)
    line_count: int = 0  # non-blank lines considered
    source: str = ""

    def summary(self) -> dict:
        return {
            "source": self.source,
            "message_count": len(self.messages),
            "line_count": self.line_count,
            "skipped_count": len(self.warnings),
        }


def parse_chat_log(text: str, *, source: str = "") -> ChatLogResult:
    """Parse the full text of a chat replay log.

    Args:
        text: File content, one JSON record per line
        source: Label used in log output (usually the file name)

    Returns:
        ChatLogResult with messages sorted by timestamp_sec (stable)

    Raises:
        ChatLogEmptyError: no line produced a message
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    messages: List[ChatMessage] = []
    warnings: List[LineWarning] = []
    line_count = 0

    # Only "\n" ends a record; U+2028 and friends may appear inside JSON strings.
    for line_no, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line:
            continue
        line_count += 1

        try:
            data = json.loads(line)
        except json.JSONDecodeError as exc:
            warnings.append(LineWarning(line_no, f"invalid_json: {exc.msg}"))
            continue

        try:
            msg = normalize_record(data)
        except (ChatRecordError, TimestampFormatError) as exc:
            warnings.append(LineWarning(line_no, str(exc)))
            continue

        if msg is None:
            warnings.append(LineWarning(line_no, "not_a_chat_message"))
            continue
        messages.append(msg)

    label = source or "<text>"
    for w in warnings:
        log.warning("%s line %d skipped: %s", label, w.line_no, w.reason)

    if not messages:
        log.error("%s: no valid chat messages in %d lines", label, line_count)
        raise ChatLogEmptyError("no_valid_messages", warnings)

    # list.sort is stable, so equal timestamps keep file order.
    messages.sort(key=lambda m: m.timestamp_sec)
    log.info("%s: parsed %d messages (%d lines skipped)", label, len(messages), len(warnings))
    return ChatLogResult(messages=messages, warnings=warnings, line_count=line_count, source=source)


def load_chat_log(path: Path, *, extensions: Optional[tuple] = None) -> ChatLogResult:
    """Read and parse a chat replay log file (UTF-8)."""
    path = Path(path)
    allowed = tuple(extensions or CHAT_LOG_EXTENSIONS)
    if path.suffix.lower() not in allowed:
        log.info("%s: unexpected extension %r (expected one of %s), parsing anyway", path.name, path.suffix, ", ".join(allowed))
    text = path.read_text(encoding="utf-8")
    return parse_chat_log(text, source=path.name)
