"""
Utilities package for Work Order Tracker

Contains utility modules for document storage, time sources, and logging.
"""

from .database import DocumentStore, InMemoryDocumentStore, PostgresDocumentStore
from .clock import Clock, SystemClock, ManualClock
from .logger import setup_logger, get_logger, set_log_context, clear_log_context, LoggerContext

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "PostgresDocumentStore",
    "Clock",
    "SystemClock",
    "ManualClock",
    "setup_logger",
    "get_logger",
    "set_log_context",
    "clear_log_context",
    "LoggerContext"
]
