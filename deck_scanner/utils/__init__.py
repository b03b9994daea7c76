"""Utilities package."""

from .config import ensure_store_dir, resolve_tesseract_path, settings
from .log import LoggerMixin, bind_log_context, clear_log_context, configure_logging, get_logger

__all__ = [
    "settings",
    "ensure_store_dir",
    "resolve_tesseract_path",
    "get_logger",
    "LoggerMixin",
    "configure_logging",
    "bind_log_context",
    "clear_log_context",
]
