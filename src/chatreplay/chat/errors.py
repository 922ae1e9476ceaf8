"""Exceptions raised while reading chat replay logs."""

from __future__ import annotations

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .parser import LineWarning


class ChatLogError(Exception):
    """Base class for chat log load failures."""


class ChatLogEmptyError(ChatLogError):
    """The log decoded, but not a single line produced a chat message."""

    def __init__(self, message: str = "no_valid_messages", warnings: "List[LineWarning] | None" = None):
        super().__init__(message)
        self.warnings = list(warnings or [])


class ChatRecordError(ValueError):
    """A record matched a known item variant but lacks a required field."""


class TimestampFormatError(ValueError):
    """Timestamp text is not in [h:]mm:ss form."""
