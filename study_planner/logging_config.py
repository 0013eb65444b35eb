"""Logging setup for the API process and the migration runner."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Optional

from .config import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
TELEMETRY_FORMAT = "%(asctime)s %(message)s"


def _level(name: str) -> str:
    level = name.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level '{name}'.")
    return level


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Return the ``dictConfig`` payload for ``settings``.

    Planner modules log under ``study_planner`` through the root handler.
    Telemetry lines get their own handler and level so they can be silenced
    or kept apart from request logs. Other loggers stay at WARNING unless SQL
    logging is switched on.
    """
    level = _level(settings.log_level)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
            "telemetry": {"format": TELEMETRY_FORMAT},
        },
        "handlers": {
            "default": {"class": "logging.StreamHandler", "formatter": "default"},
            "telemetry": {"class": "logging.StreamHandler", "formatter": "telemetry"},
        },
        "loggers": {
            "study_planner": {"level": level},
            "study_planner.telemetry": {
                "handlers": ["telemetry"],
                "level": _level(settings.telemetry_log_level),
                "propagate": False,
            },
            "sqlalchemy.engine": {"level": "INFO" if settings.log_sql else "WARNING"},
            "alembic": {"level": level},
        },
        "root": {"handlers": ["default"], "level": "WARNING"},
    }


def configure_logging(settings: Optional[Settings] = None) -> None:
    dictConfig(build_logging_config(settings or get_settings()))


__all__ = ["build_logging_config", "configure_logging"]
