"""
Services package for Work Order Tracker

Contains the time statistics, lifecycle, sequencing, part usage and
persistence services.
"""

from .time_stats import compute_stats, format_duration
from .lifecycle import (
    LifecycleStateMachine,
    TRANSITIONS,
    can_transition_to,
    get_valid_transitions,
    ticket_checkpoint,
    production_checkpoint
)
from .fault_tolerance import FaultToleranceService, RetryPolicy, retry_async, is_transient_error
from .sequence_allocator import SequenceAllocator
from .part_usage import PartUsageService
from .persistence import PersistenceCoordinator

__all__ = [
    "compute_stats",
    "format_duration",
    "LifecycleStateMachine",
    "TRANSITIONS",
    "can_transition_to",
    "get_valid_transitions",
    "ticket_checkpoint",
    "production_checkpoint",
    "FaultToleranceService",
    "RetryPolicy",
    "retry_async",
    "is_transient_error",
    "SequenceAllocator",
    "PartUsageService",
    "PersistenceCoordinator"
]
