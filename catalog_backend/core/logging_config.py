from __future__ import annotations

import logging

LOGGER_NAME = "catalog_backend"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package logger."""

    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(getattr(handler, "_catalog_backend", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._catalog_backend = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
