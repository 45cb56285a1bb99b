"""
CLI package for Work Order Tracker

Provides command-line access to time statistics and the timer lifecycle.
"""

from .main import main, cli

__all__ = ["main", "cli"]
