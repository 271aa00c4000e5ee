"""
app/logging_config.py — One-shot logging setup for the API and CLI scripts.

Every module logs through logging.getLogger(__name__); this only wires the
handlers and levels, reading LOG_LEVEL from settings.
"""

import logging
import logging.config

from app.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure console logging via dictConfig. Safe to call more than once."""
    level = (level or settings.log_level).upper()

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "level": level,
                "formatter": "default",
            },
        },
        "loggers": {
            "uvicorn.error": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["console"], "level": level, "propagate": False},
            # SQL echo stays off; Database.query does its own timing logs
            "sqlalchemy.engine": {"level": "WARNING"},
        },
        "root": {"handlers": ["console"], "level": level},
    }
    logging.config.dictConfig(config)
