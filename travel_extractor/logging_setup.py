"""Logging helpers."""
from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILENAME = "travel_extractor.log"


def configure_logging(level: str, log_dir: Path, logger_name: str = "travel_extractor") -> logging.Logger:
    """
    Attach console and file handlers to the package logger.

    Safe to call repeatedly (CLI invocations, API restarts): handlers from an
    earlier call are closed and replaced, so the latest level and directory win.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(logger_name)

    for handler in list(logger.handlers):
        if getattr(handler, "_travel_extractor", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in (logging.StreamHandler(), logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8")):
        handler.setFormatter(formatter)
        handler._travel_extractor = True
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
