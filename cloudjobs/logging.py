"""
Logging utilities for structlog integration.
"""
from __future__ import annotations

import logging
import logging.config
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from cloudjobs.config import Settings


# Shared by structlog loggers and foreign (stdlib) log records
SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]

# Client-library loggers that log every RPC and token refresh at DEBUG
PROVIDER_LOGGERS = ("google.api_core", "google.auth", "google.cloud", "urllib3", "grpc")


def configure_structlog():
    """Configure structlog with standard library integration."""
    structlog.configure(
        processors=SHARED_PROCESSORS + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class StructlogJSONFormatter(structlog.stdlib.ProcessorFormatter):
    """JSON formatter for structlog (stg/prd)."""

    def __init__(self, *args, **kwargs):
        super().__init__(
            *args,
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=SHARED_PROCESSORS,
            **kwargs
        )


class StructlogConsoleFormatter(structlog.stdlib.ProcessorFormatter):
    """Console-friendly formatter for structlog (dev)."""

    def __init__(self, *args, **kwargs):
        super().__init__(
            *args,
            processor=structlog.dev.ConsoleRenderer(colors=True),
            foreign_pre_chain=SHARED_PROCESSORS,
            **kwargs
        )


def _provider_level(app_level: str) -> str:
    """Provider libraries stay at WARNING unless the app itself logs less."""
    if logging.getLevelName(app_level) > logging.WARNING:
        return app_level
    return "WARNING"


def build_logging_config(settings: Settings) -> dict:
    """Build the dictConfig mapping for the given settings."""
    level = settings.LOG_LEVEL.upper()
    if settings.LOG_FORMAT == "json":
        formatter_name = "json_formatter"
    else:
        formatter_name = "console_formatter"

    loggers = {
        "": {  # Root logger
            "handlers": ["console"],
            "level": level,
        },
        "cloudjobs": {
            "handlers": ["console"],
            "level": level,
            "propagate": False,
        },
    }
    for name in PROVIDER_LOGGERS:
        loggers[name] = {"level": _provider_level(level)}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json_formatter": {
                "()": "cloudjobs.logging.StructlogJSONFormatter",
            },
            "console_formatter": {
                "()": "cloudjobs.logging.StructlogConsoleFormatter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter_name,
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": loggers,
    }


def setup_logging(settings: Settings) -> None:
    """Setup logging using LOG_LEVEL and LOG_FORMAT from settings."""
    logging.config.dictConfig(build_logging_config(settings))
