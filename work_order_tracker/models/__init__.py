"""
Data models for Work Order Tracker

This module contains all the data models used throughout the tracker,
including work orders, their time event logs, part records, and principals.
"""

# Work order models
from .work_order import (
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

# Part models
from .part import PartRecord, PriceHistoryEntry

# Identity
from .principal import Principal

__all__ = [
    # Work order models
    "WorkOrder",
    "WorkOrderStatus",
    "WorkOrderPriority",
    "WorkOrderVariant",
    "TimeAction",
    "TimeEvent",
    "TimeStats",
    "PartUsageEntry",
    "InterventionType",
    "ProductionEntry",
    "WorkOrderChange",

    # Part models
    "PartRecord",
    "PriceHistoryEntry",

    # Identity
    "Principal"
]
