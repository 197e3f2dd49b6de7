# qmodpack/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path

from qmodpack.app.settings import settings
from .formatters import DevFormatter, JsonFormatter

__all__ = ["configureLogging"]



def configureLogging(level: str | int | None = None, logFile: str | Path | None = None) -> None:
    """
    Initiate the global logging configuration.

      - Console pretty logs at `level` (settings "logging.level", INFO by default)
      - Optional JSON file log with rotation (settings "logging.file")
    """
    if level is None:
        level = settings("logging.level", "INFO")
    if isinstance(level, str):
        resolved = getattr(logging, level.upper(), None)
        # Only the level constants are ints; BASIC_FORMAT and friends are not
        if isinstance(resolved, bool) or not isinstance(resolved, int):
            raise ValueError(f"Unknown log level {level!r}")
        level = resolved
    if logFile is None:
        logFile = settings("logging.file", None)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(level)
    consoleHandler.setFormatter(DevFormatter())
    root.addHandler(consoleHandler)

    if logFile:
        fileHandler = logging.handlers.RotatingFileHandler(
            str(logFile),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        fileHandler.setLevel(level)
        fileHandler.setFormatter(JsonFormatter())
        root.addHandler(fileHandler)
