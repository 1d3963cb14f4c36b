"""Logging configuration helpers."""

from __future__ import annotations

import logging.config
from typing import Any

from helpdesk_copilot.core.settings import Settings


def _structured_formatter() -> dict[str, Any]:
    return {
        "format": "{asctime} {levelname} {name} {message}",
        "style": "{",
    }


def _plain_formatter() -> dict[str, Any]:
    return {
        "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
    }


def configure_logging(settings: Settings) -> None:
    """Configure application logging according to provided settings."""
    formatter = _structured_formatter() if settings.log_structured else _plain_formatter()
    level = settings.log_level.upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": level,
                },
            },
            "root": {"handlers": ["console"], "level": level},
        }
    )


__all__ = ["configure_logging"]
