"""
Structured logging using structlog with:
- JSON/console switchable format (python-json-logger for JSON)
- Request context via contextvars
- Email redaction outside of local/dev
- Safe defaults for Uvicorn/SQLAlchemy

Each process entry point calls ``setup_logging(settings)`` once at startup;
repeated calls are no-ops.
"""

from __future__ import annotations

import logging
import logging.config
import re
import sys
from typing import Any, Dict, List, Optional

import structlog
from pythonjsonlogger import jsonlogger

from newsletter_service.shared.config import Settings

_configured = False


# ---------------------------------------------------------------------
# PII redaction
# ---------------------------------------------------------------------


class PIIRedactionProcessor:
    """
    Structlog processor to redact subscriber emails from event_dict (recursively).
    Keeps the domain, masks the local-part.
    """
    P_EMAIL = re.compile(r"\b([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")

    def __call__(self, logger, method_name, event_dict):
        return self._redact(event_dict)

    def _redact(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._redact(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._redact(v) for v in value]
        if isinstance(value, str):
            return self.P_EMAIL.sub(lambda m: f"***@{m.group(2)}", value)
        return value


# ---------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------


def bind_request_context(
    *,
    request_id: Optional[str] = None,
    path: Optional[str] = None,
    method: Optional[str] = None,
    user_id: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Bind standard request context fields (call in middleware/route handlers)."""
    payload = {
        k: v
        for k, v in dict(
            request_id=request_id,
            path=path,
            method=method,
            user_id=user_id,
        ).items()
        if v is not None
    }
    if extras:
        payload.update(extras)
    if payload:
        structlog.contextvars.bind_contextvars(**payload)


def clear_request_context() -> None:
    """Clear all bound contextvars (call at end of request/worker job)."""
    structlog.contextvars.clear_contextvars()


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------

def _ensure_log_format(settings: Settings) -> str:
    if settings.LOG_FORMAT in ("json", "console"):
        return settings.LOG_FORMAT
    return "console" if settings.is_dev else "json"


def _level_name_to_int(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(settings: Settings) -> None:
    """Idempotent structured logging configuration."""
    global _configured
    if _configured:
        return

    log_format = _ensure_log_format(settings)
    is_prod_like = settings.is_prod or settings.is_staging

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": jsonlogger.JsonFormatter,
                    "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
                "console": {"format": "%(message)s"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": log_format,
                    "stream": sys.stdout,
                },
            },
            "root": {
                "level": _level_name_to_int(settings.LOG_LEVEL),
                "handlers": ["console"],
            },
            "loggers": {
                # Quiet noisy libs, but keep errors
                "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
                "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
                "sqlalchemy.engine": {"level": "WARNING", "handlers": ["console"], "propagate": False},
                "httpx": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            },
        }
    )

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    # Redact only outside of local/dev to help debugging locally
    if is_prod_like:
        processors.append(PIIRedactionProcessor())
    if log_format == "json":
        processors.append(structlog.stdlib.render_to_log_kwargs)
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        # structlog.testing.capture_logs cannot see cached loggers
        cache_logger_on_first_use=not settings.TESTING,
    )
    structlog.contextvars.clear_contextvars()
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
