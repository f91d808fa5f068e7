"""Centralized logging utilities for minime."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import CONFIG

_LOGGER: Optional[logging.Logger] = None

# Attributes passed through ``extra=`` that are rendered after the message.
_EXTRA_FIELDS = (
    "operation",
    "backend",
    "collection",
    "record_id",
    "k",
    "results",
    "status_code",
    "elapsed_ms",
)


class ExtraFormatter(logging.Formatter):
    """Formatter that appends known ``extra`` fields as ``[key=value, ...]``."""

    def format(self, record: logging.LogRecord) -> str:
        extras = [
            f"{name}={getattr(record, name)}"
            for name in _EXTRA_FIELDS
            if getattr(record, name, None) is not None
        ]
        message = super().format(record)
        if extras:
            first, sep, rest = message.partition("\n")
            message = f"{first} [{', '.join(extras)}]{sep}{rest}"
        return message


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Configure the ``minime`` logger hierarchy once and return its root."""

    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    logger = logging.getLogger("minime")
    logger.setLevel(level if isinstance(level, int) else getattr(logging, str(level).upper(), logging.INFO))

    formatter = ExtraFormatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    log_dir = CONFIG.server.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "minime.log"
    file_handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=5)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if os.environ.get("MINIME_LOG_TO_STDOUT", "0") == "1":
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    logger.debug("Logging initialized at %s", log_path)
    _LOGGER = logger
    return logger
