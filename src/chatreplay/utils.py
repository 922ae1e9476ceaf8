"""Shared utility functions for chatreplay."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_iso() -> str:
    """Return current UTC time in ISO 8601 format.

    Returns:
        ISO formatted timestamp string like '2024-01-15T10:30:00+00:00'
    """
    return datetime.now(timezone.utc).isoformat()
