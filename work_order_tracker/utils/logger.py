"""
Logging utilities for Work Order Tracker

Provides structured logging configuration and utilities for the tracker.
"""

import logging
import sys
import json
from datetime import datetime, timezone
from typing import Optional
from pathlib import Path


_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'message', 'exc_info', 'exc_text',
    'stack_info', 'taskName'
}


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter for structured JSON logging.

    Formats log records as JSON with additional context fields for better
    observability and log aggregation.
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        if self.include_extra:
            extra_fields = {
                key: value for key, value in record.__dict__.items()
                if key not in _RESERVED_ATTRS
            }
            if extra_fields:
                log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class WorkOrderContextFilter(logging.Filter):
    """
    Filter to add work order context to log records.

    Adds component, work_order_id, principal_id and similar fields to
    every record passing through the logger.
    """

    def __init__(self):
        super().__init__()
        self.context = {}

    def set_context(self, **kwargs):
        """Set context variables for logging."""
        self.context.update(kwargs)

    def clear_context(self):
        """Clear all context variables."""
        self.context.clear()

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context to log record."""
        for key, value in self.context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _context_filter(logger: logging.Logger) -> WorkOrderContextFilter:
    for existing in logger.filters:
        if isinstance(existing, WorkOrderContextFilter):
            return existing
    context_filter = WorkOrderContextFilter()
    logger.addFilter(context_filter)
    return context_filter


def setup_logger(
    name: str,
    level: str = "INFO",
    structured: bool = True,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with appropriate configuration.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: Whether to use structured JSON logging
        log_file: Optional log file path

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers and any(not isinstance(h, logging.NullHandler) for h in logger.handlers):
        return logger

    log_level = getattr(logging, level.upper())
    logger.setLevel(log_level)

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    _context_filter(logger)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def set_log_context(logger: logging.Logger, **kwargs):
    """
    Set context variables for a logger.

    Args:
        logger: Logger instance
        **kwargs: Context variables to set
    """
    _context_filter(logger).set_context(**kwargs)


def clear_log_context(logger: logging.Logger):
    """Clear context variables for a logger."""
    _context_filter(logger).clear_context()


class LoggerContext:
    """
    Context manager for temporary log context.

    Automatically sets and restores log context variables.
    """

    def __init__(self, logger: logging.Logger, **kwargs):
        self.logger = logger
        self.context = kwargs
        self.old_context = {}

    def __enter__(self):
        context_filter = _context_filter(self.logger)
        self.old_context = context_filter.context.copy()
        context_filter.set_context(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _context_filter(self.logger).context = self.old_context
