"""Structured JSON logging for the scanner, its session and sync workers."""

import logging
import sys
import time
from typing import Any, Dict, Optional

import structlog

from .config import settings

# Third-party loggers that would otherwise flood DEBUG runs of the scan loop
QUIET_LOGGERS = ("aiohttp", "asyncio", "PIL")


def configure_logging(level: Optional[str] = None):
    """Configure structlog to render one JSON object per line on stdout.

    ``level`` overrides LOG_LEVEL; unknown names fall back to INFO. Values
    bound with bind_log_context are merged into every event logged from the
    same thread or task.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a configured logger instance."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name)


def bind_log_context(**values: Any) -> None:
    """Attach values (e.g. session_id) to every following event in this context."""
    structlog.contextvars.bind_contextvars(**values)


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


class LoggerMixin:
    """Gives a component a cached logger plus start/success/error helpers.

    log_start returns a context dict; pass it to log_success or log_error to
    emit the operation's fields again along with its duration.
    """

    @property
    def logger(self) -> structlog.BoundLogger:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger

    def log_start(self, event: str, **kwargs: Any) -> Dict[str, Any]:
        context = {"event": event, "start_time": time.monotonic(), **kwargs}
        self.logger.debug(f"{event} started", **self._fields(context))
        return context

    def log_success(self, context: Dict[str, Any], **kwargs: Any):
        self.logger.info(
            f"{context.get('event', 'operation')} completed",
            **self._fields(context),
            **self._timing(context),
            **kwargs,
        )

    def log_error(self, context: Dict[str, Any], error: Exception, **kwargs: Any):
        self.logger.error(
            f"{context.get('event', 'operation')} failed",
            **self._fields(context),
            **self._timing(context),
            error=str(error),
            error_type=type(error).__name__,
            **kwargs,
        )

    @staticmethod
    def _fields(context: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in context.items() if k not in ("event", "start_time")}

    @staticmethod
    def _timing(context: Dict[str, Any]) -> Dict[str, Any]:
        if "start_time" not in context:
            return {}
        return {"duration_ms": int((time.monotonic() - context["start_time"]) * 1000)}
