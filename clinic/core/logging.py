# clinic/core/logging.py
from __future__ import annotations

from typing import Any, Dict

from clinic.core.config import Settings


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """
    dictConfig payload: one console handler, app loggers at LOG_LEVEL.
    SQLAlchemy engine echo is controlled by DB_ECHO, not here.
    """
    level = settings.LOG_LEVEL.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "clinic": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.error": {"level": level},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }
