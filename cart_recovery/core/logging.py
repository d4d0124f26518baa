from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from cart_recovery.core.config import settings

_STANDARD_ATTRS = set(logging.makeLogRecord({}).__dict__.keys())
_CONTEXT_FIELDS = ("service", "component")

# Logger name -> component reported with every record it emits.
COMPONENTS: dict[str, str] = {
    "cart_recovery.services.abandoned_cart_service": "tracker",
    "cart_recovery.services.reminder_service": "dispatcher",
    "cart_recovery.services.email_delivery": "email",
    "cart_recovery.requests": "http",
}


def component_for(logger_name: str) -> str | None:
    """Longest registered prefix of ``logger_name`` wins."""
    for prefix in sorted(COMPONENTS, key=len, reverse=True):
        if logger_name == prefix or logger_name.startswith(prefix + "."):
            return COMPONENTS[prefix]
    return None


class RecoveryContextFilter(logging.Filter):
    """Stamps ``service`` and ``component`` on records unless the call set them."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service or settings.LOG_SERVICE_NAME

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "service", None):
            record.service = self.service
        if not getattr(record, "component", None):
            record.component = component_for(record.name)
        return True


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logs; context fields sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        message = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", settings.LOG_SERVICE_NAME),
            "logger": record.name,
            "message": record.getMessage(),
        }
        component = getattr(record, "component", None)
        if component:
            message["component"] = component
        if record.exc_info:
            message["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            message["stack_info"] = record.stack_info

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and key not in _CONTEXT_FIELDS
        }
        if extra:
            message["extra"] = extra

        return json.dumps(message, default=str)


def setup_logging() -> None:
    """Apply centralized logging configuration."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "recovery_context": {
                "()": RecoveryContextFilter,
            }
        },
        "formatters": {
            "json": {
                "()": JsonFormatter,
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "filters": ["recovery_context"],
            }
        },
        "root": {
            "handlers": ["default"],
            "level": level,
        },
        "loggers": {
            "cart_recovery": {"level": level},
            "uvicorn.error": {"level": level},
            "uvicorn.access": {"handlers": ["default"], "level": level, "propagate": False},
            "celery": {"level": level},
        },
    }

    logging.config.dictConfig(logging_config)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
