"""Convert between chat timestamp text ("1:02:03", "05:09", "-0:12") and seconds."""

from __future__ import annotations

import re

from .errors import TimestampFormatError

_TIMESTAMP_RE = re.compile(r"-?(\d+:)?\d+:\d+", re.ASCII)


def parse_timestamp(text: str) -> int:
    """Parse ``[-][h:]mm:ss`` into whole seconds.

    A leading ``-`` marks chat sent before the broadcast started.
    """
    if not isinstance(text, str):
        raise TimestampFormatError(f"timestamp must be text, got {type(text).__name__}")
    value = text.strip()
    if not _TIMESTAMP_RE.fullmatch(value):
        raise TimestampFormatError(f"malformed timestamp: {text!r}")

    negative = value.startswith("-")
    if negative:
        value = value[1:]

    parts = [int(p, 10) for p in value.split(":")]
    if len(parts) == 3:
        h, m, s = parts
        seconds = h * 3600 + m * 60 + s
    elif len(parts) == 2:
        m, s = parts
        seconds = m * 60 + s
    else:  # pragma: no cover - the regex only admits 2 or 3 parts
        raise TimestampFormatError(f"malformed timestamp: {text!r}")

    return -seconds if negative else seconds


def format_timestamp(seconds: int) -> str:
    """Format non-negative seconds as ``mm:ss``, or ``hh:mm:ss`` past one hour."""
    seconds = int(seconds)
    if seconds < 0:
        raise ValueError("format_timestamp() only accepts non-negative seconds")
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if seconds >= 3600:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"
