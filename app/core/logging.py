"""
app/core/logging.py

Purpose: Logging configuration

- JSON lines in production, colored one-liners in development
- Noisy third-party loggers held at WARNING
- Conversation context (user_id, wizard, step, action) attached to records,
  isolated per asyncio task
"""

import logging
import sys
import json
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict
from app.core.config import settings

CONTEXT_FIELDS = ("user_id", "wizard", "step", "action")

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET_COLOR = "\033[0m"

QUIET_LOGGERS = ("httpx", "httpcore", "motor", "pymongo", "uvicorn.access")

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def _context_of(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line, for log shippers.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(_context_of(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development environment.
    """

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, RESET_COLOR)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}[{clock}] {record.levelname:<8}{RESET_COLOR} {record.name}: {record.getMessage()}"

        context = _context_of(record)
        if context:
            line += " [" + ", ".join(f"{k}={v}" for k, v in context.items()) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextFilter(logging.Filter):
    """
    Copies the active LogContext fields onto each record.
    Fields passed explicitly via `extra` win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def setup_logging():
    """
    Installs a single stdout handler on the root logger.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())
    handler.addFilter(ContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("defenders")
    logger.info(f"Logging configured ({settings.ENVIRONMENT}, level={settings.LOG_LEVEL})")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Namespaced logger: get_logger(__name__) -> "defenders.<module>".
    """
    return logging.getLogger(f"defenders.{name}")


class LogContext:
    """
    Context manager for adding structured context to logs.

    The context is stored in a ContextVar, so concurrent conversations
    handled by different asyncio tasks never see each other's fields.

    Usage:
        with LogContext(user_id=123, wizard="JOIN_WIZARD", step=2):
            logger.info("Processing answer")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._token = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.context})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)
