"""Replay a recorded stream next to its live-chat log, kept in sync with playback."""

__all__ = ["__version__"]
__version__ = "0.1.0"
