"""Logging for the chatreplay CLI and studio.

``main()`` calls :func:`setup_logging` once; modules just use
``logging.getLogger(__name__)`` and inherit from the ``chatreplay`` logger.

Skipped chat lines are logged at WARNING, so a long log with bad records can
be noisy on the console. ``--log-file`` keeps a full DEBUG copy on disk while
the console stays at the requested level, and ``CR_LOG_MODULE_LEVELS`` opens
up single modules (``CR_LOG_MODULE_LEVELS="chat.parser=DEBUG,studio=INFO"``).
"""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Dict, Optional

ROOT_LOGGER = "chatreplay"
MODULE_LEVELS_ENV = "CR_LOG_MODULE_LEVELS"

CONSOLE_FORMAT = "[%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"

_CONFIGURED = False


class _ConsoleFilter(logging.Filter):
    """Pass records at the console level, plus anything from an overridden module."""

    def __init__(self, level: int, modules: Dict[str, int]) -> None:
        super().__init__()
        self.level = level
        self.modules = modules

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= self.level:
            return True
        return any(record.name == m or record.name.startswith(m + ".") for m in self.modules)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``chatreplay`` tree (``"scroll"`` -> ``chatreplay.scroll``)."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def _parse_module_levels(value: str) -> Dict[str, int]:
    # "name=LEVEL" or "name:LEVEL" pairs split by "," or ";". Junk is ignored.
    levels: Dict[str, int] = {}
    for part in re.split(r"[;,]", value or ""):
        name, sep, level_name = part.partition("=")
        if not sep:
            name, sep, level_name = part.partition(":")
        name, level_name = name.strip(), level_name.strip().upper()
        level = logging.getLevelName(level_name) if sep and name and level_name else None
        if isinstance(level, int):
            levels[get_logger(name).name] = level
    return levels


def setup_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> None:
    """Attach console (and optionally file) handlers to the ``chatreplay`` logger.

    Only the first call has any effect.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    root = get_logger(ROOT_LOGGER)
    root.handlers.clear()
    root.propagate = False

    modules = _parse_module_levels(os.getenv(MODULE_LEVELS_ENV, ""))

    console = logging.StreamHandler(sys.stderr)
    console.addFilter(_ConsoleFilter(level, modules))
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(level)

    for name, module_level in modules.items():
        logging.getLogger(name).setLevel(module_level)

    _CONFIGURED = True
