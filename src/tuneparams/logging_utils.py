"""Logging helpers shared by the tuning package."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

ROOT_LOGGER_NAME = "tuneparams"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger nested under the package namespace.

    Args:
        name: Logger name, typically ``__name__``.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(level: str = "INFO", log_format: str | None = None) -> logging.Logger:
    """Attach a console handler to the package logger and return it."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    logger.addHandler(handler)
    return logger


@contextmanager
def run_log(path: str | Path | None) -> Iterator[Path | None]:
    """
    Mirror package log records into ``path`` for the duration of a run.

    Yields the resolved path, or None when no file was requested.
    """
    if path is None:
        yield None
        return

    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    previous_level = logger.level
    if logger.getEffectiveLevel() > logging.INFO:
        logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    try:
        yield log_path
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)
        handler.close()
