"""Logging setup for a terminal session that cannot write to stdout."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final

DEFAULT_LOG_FORMAT: Final[str] = (
    "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
)


def configure_logging(
    level: str = "WARNING",
    fmt: str | None = None,
    filename: Path | None = None,
) -> None:
    """Route stashnav logging to ``filename``, or discard it.

    curses owns the terminal while a session runs, so there is no console
    handler. Calling this again replaces the previous configuration.

    Args:
        level: Logging level name (e.g., "INFO", "DEBUG").
        fmt: Optional format string; defaults to :data:`DEFAULT_LOG_FORMAT`.
        filename: Log file to append to. Parent directories are created.
    """

    handler = _build_handler(filename)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_LOG_FORMAT))
    logging.basicConfig(level=normalize_level(level), handlers=[handler], force=True)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def normalize_level(level: str) -> int:
    """Map a level name to its numeric value; unknown names mean INFO."""

    return logging.getLevelNamesMapping().get(level.strip().upper(), logging.INFO)


def _build_handler(filename: Path | None) -> logging.Handler:
    if filename is None:
        return logging.NullHandler()
    filename.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(filename, encoding="utf-8")
