"""
Work Order Tracker

Tracks maintenance tickets and production tasks through a
start/pause/resume/stop timer, derives time statistics from the raw event
history, and persists the resulting records with ownership enforcement and
retries over transient storage failures.

Usage:
    from work_order_tracker import WorkOrderTracker, WorkOrder, Principal
    from work_order_tracker.utils import PostgresDocumentStore

    store = PostgresDocumentStore("postgresql://localhost/work_orders")
    await store.initialize()

    tracker = WorkOrderTracker(store)
    technician = Principal(id="u1")

    order = await tracker.start_work_order(technician, WorkOrder(description="Hydraulic leak on press 4"))
    order = await tracker.pause_work_order(technician, order.id, "waiting for seal kit")
    order = await tracker.resume_work_order(technician, order.id)
    order = await tracker.stop_work_order(technician, order.id)

    print(order.sequence_number, order.time_stats.effective_time)
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Core tracker
from .core.tracker import WorkOrderTracker

# Configuration
from .config import TrackerConfig, load_config

# Data models
from .models.work_order import (
    WorkOrder,
    WorkOrderStatus,
    WorkOrderPriority,
    WorkOrderVariant,
    TimeAction,
    TimeEvent,
    TimeStats,
    PartUsageEntry,
    InterventionType,
    ProductionEntry,
    WorkOrderChange
)
from .models.part import PartRecord
from .models.principal import Principal

# Services (for advanced usage)
from .services.time_stats import compute_stats, format_duration
from .services.lifecycle import LifecycleStateMachine
from .services.sequence_allocator import SequenceAllocator
from .services.persistence import PersistenceCoordinator
from .services.fault_tolerance import RetryPolicy, retry_async

# Utilities
from .utils.database import DocumentStore, InMemoryDocumentStore, PostgresDocumentStore
from .utils.clock import Clock, SystemClock, ManualClock
from .utils.logger import setup_logger, get_logger

# Exceptions
from .core.exceptions import (
    WorkOrderError,
    AuthenticationRequired,
    AuthorizationDenied,
    NotFound,
    ValidationFailed,
    IllegalTransition,
    TransientStoreError,
    PermanentStoreError,
    ConfigurationError
)

__all__ = [
    # Core
    "WorkOrderTracker",
    "TrackerConfig",
    "load_config",

    # Models
    "WorkOrder",
    "WorkOrderStatus",
    "WorkOrderPriority",
    "WorkOrderVariant",
    "TimeAction",
    "TimeEvent",
    "TimeStats",
    "PartUsageEntry",
    "InterventionType",
    "ProductionEntry", "WorkOrderChange",
    "PartRecord",
    "Principal",

    # Services (for advanced usage)
    "compute_stats",
    "format_duration",
    "LifecycleStateMachine",
    "SequenceAllocator",
    "PersistenceCoordinator",
    "RetryPolicy",
    "retry_async",

    # Utilities
    "DocumentStore",
    "InMemoryDocumentStore",
    "PostgresDocumentStore",
    "Clock",
    "SystemClock",
    "ManualClock",
    "setup_logger",
    "get_logger",

    # Exceptions
    "WorkOrderError",
    "AuthenticationRequired",
    "AuthorizationDenied",
    "NotFound",
    "ValidationFailed",
    "IllegalTransition",
    "TransientStoreError",
    "PermanentStoreError",
    "ConfigurationError",

    # Package metadata
    "__version__",
    "__license__"
]

# Package-level configuration
import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
