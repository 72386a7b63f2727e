"""Logging setup shared by the UI loop, capture thread, and detector callbacks."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from live_detect.core.config import LoggingSettings

ROOT_LOGGER = "live_detect"

# Frames arrive on the capture thread and results on MediaPipe's, so the
# thread name is part of every record
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)-15s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("mediapipe", "absl")


def setup_logging(settings: LoggingSettings | None = None) -> None:
    """Configure the ``live_detect`` logger hierarchy.

    Safe to call more than once; previous handlers are replaced.

    Args:
        settings: Level and optional log file (uses defaults if None)
    """
    settings = settings or LoggingSettings()
    log_level = getattr(logging, settings.level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.file:
        log_path = Path(settings.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``live_detect`` namespace.

    Args:
        name: Module name (typically __name__)
    """
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
