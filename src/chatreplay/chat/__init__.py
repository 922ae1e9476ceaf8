"""Chat replay log parsing and the message model.

Turns a live chat replay export (one JSON record per line) into an ordered
list of ChatMessage objects, and answers which of them are visible at a given
playback second.
"""

from .errors import ChatLogEmptyError, ChatLogError, ChatRecordError, TimestampFormatError
from .models import ChatMessage, Superchat
from .normalize import ChatRecord, RecordKind, decode_record, normalize_record
from .parser import ChatLogResult, LineWarning, load_chat_log, parse_chat_log
from .styling import SuperchatTier, author_role, parse_amount, superchat_tier
from .timestamp import format_timestamp, parse_timestamp
from .window import visible_count, visible_messages

__all__ = [
    "ChatLogEmptyError",
    "ChatLogError",
    "ChatRecordError",
    "TimestampFormatError",
    "ChatMessage",
    "Superchat",
    "ChatRecord",
    "RecordKind",
    "decode_record",
    "normalize_record",
    "ChatLogResult",
    "LineWarning",
    "load_chat_log",
    "parse_chat_log",
    "SuperchatTier",
    "author_role",
    "parse_amount",
    "superchat_tier",
    "format_timestamp",
    "parse_timestamp",
    "visible_count",
    "visible_messages",
]
