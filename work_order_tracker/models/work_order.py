"""
Work order data models for Work Order Tracker

Defines the work order record, its append-only time event log, the derived
time statistics, and the part-usage and production checkpoint entries.
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps without an offset are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(value)
    return as_utc(value)


class WorkOrderStatus(Enum):
    """Work order lifecycle status enumeration."""
    NOT_STARTED = "not_started"
    RUNNING = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    SUBMITTED = "submitted"


class WorkOrderPriority(Enum):
    """Severity of the reported issue."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class WorkOrderVariant(Enum):
    """Which flavour of work a record tracks."""
    TICKET = "ticket"
    PRODUCTION = "production"


class TimeAction(Enum):
    """Timer actions recorded in a work order's event log."""
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"


class InterventionType(Enum):
    """What was done to a part during a work order."""
    REPLACEMENT = "replacement"
    REPAIR = "repair"


@dataclass(frozen=True)
class TimeEvent:
    """One timestamped lifecycle action."""

    action: TimeAction
    timestamp: datetime
    note: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.timestamp, datetime):
            object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    def to_dict(self) -> Dict[str, Any]:
        data = {"action": self.action.value, "timestamp": self.timestamp.isoformat()}
        if self.note is not None:
            data["note"] = self.note
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeEvent":
        return cls(
            action=TimeAction(data["action"]),
            timestamp=_parse(data["timestamp"]),
            note=data.get("note")
        )


@dataclass
class TimeStats:
    """
    Statistics derived from a time event log.

    All durations are integer milliseconds. Never edited by hand; always
    produced by ``compute_stats``.
    """

    effective_time: int = 0
    total_time: int = 0
    pause_count: int = 0
    pause_durations: List[int] = field(default_factory=list)
    average_pause_duration: float = 0.0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "effective_time": self.effective_time,
            "total_time": self.total_time,
            "pause_count": self.pause_count,
            "pause_durations": list(self.pause_durations),
            "average_pause_duration": self.average_pause_duration,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeStats":
        return cls(
            effective_time=data.get("effective_time", 0),
            total_time=data.get("total_time", 0),
            pause_count=data.get("pause_count", 0),
            pause_durations=list(data.get("pause_durations", [])),
            average_pause_duration=data.get("average_pause_duration", 0.0),
            start_time=_parse(data.get("start_time")),
            end_time=_parse(data.get("end_time"))
        )


@dataclass
class PartUsageEntry:
    """A part replaced or repaired during a work order."""

    designation: str
    quantity: int = 0
    unit_price: float = 0.0
    supplier: str = ""
    intervention_type: InterventionType = InterventionType.REPLACEMENT

    def is_empty(self) -> bool:
        """Rows left blank on the form carry no designation."""
        return not self.designation or not self.designation.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "designation": self.designation,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "supplier": self.supplier,
            "intervention_type": self.intervention_type.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartUsageEntry":
        return cls(
            designation=data.get("designation", ""),
            quantity=data.get("quantity", 0),
            unit_price=data.get("unit_price", 0.0),
            supplier=data.get("supplier", ""),
            intervention_type=InterventionType(data.get("intervention_type", InterventionType.REPLACEMENT.value))
        )


@dataclass(frozen=True)
class ProductionEntry:
    """Quantity reading captured when a production task is paused or stopped."""

    quantity: float
    unit: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"quantity": self.quantity, "unit": self.unit, "timestamp": self.timestamp.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductionEntry":
        return cls(quantity=data["quantity"], unit=data["unit"], timestamp=_parse(data["timestamp"]))


@dataclass
class WorkOrderChange:
    """One entry of a work order's change history."""

    work_order_id: str
    principal_id: str
    timestamp: datetime
    action: str = "update"
    changes: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "work_order_id": self.work_order_id,
            "principal_id": self.principal_id,
            "timestamp": self.timestamp.isoformat(),
            "action": self.action,
            "changes": dict(self.changes)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkOrderChange":
        return cls(
            id=data.get("id"),
            work_order_id=data["work_order_id"],
            principal_id=data["principal_id"],
            timestamp=_parse(data["timestamp"]),
            action=data.get("action", "update"),
            changes=dict(data.get("changes") or {})
        )


@dataclass
class WorkOrder:
    """Core work order data model."""

    # Identification
    id: Optional[str] = None
    sequence_number: Optional[int] = None
    owner_id: Optional[str] = None

    # Content
    description: str = ""
    variant: WorkOrderVariant = WorkOrderVariant.TICKET
    priority: WorkOrderPriority = WorkOrderPriority.LOW
    status: WorkOrderStatus = WorkOrderStatus.NOT_STARTED
    technician_ids: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    # Timer
    time_entries: List[TimeEvent] = field(default_factory=list)
    time_stats: TimeStats = field(default_factory=TimeStats)

    # Parts and production output
    part_usage: List[PartUsageEntry] = field(default_factory=list)
    production_entries: List[ProductionEntry] = field(default_factory=list)
    total_quantity: float = 0.0
    unit: str = ""

    # Metadata
    modified_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert work order to dictionary for serialization."""
        return {
            "id": self.id,
            "sequence_number": self.sequence_number,
            "owner_id": self.owner_id,
            "description": self.description,
            "variant": self.variant.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "technician_ids": list(self.technician_ids),
            "details": dict(self.details),
            "time_entries": [event.to_dict() for event in self.time_entries],
            "time_stats": self.time_stats.to_dict(),
            "part_usage": [entry.to_dict() for entry in self.part_usage],
            "production_entries": [entry.to_dict() for entry in self.production_entries],
            "total_quantity": self.total_quantity,
            "unit": self.unit,
            "modified_by": self.modified_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
            "submitted_at": _iso(self.submitted_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkOrder":
        """Create work order from dictionary."""
        data = dict(data)

        for field_name in ["created_at", "updated_at", "completed_at", "submitted_at"]:
            data[field_name] = _parse(data.get(field_name))

        data["variant"] = WorkOrderVariant(data.get("variant", WorkOrderVariant.TICKET.value))
        data["priority"] = WorkOrderPriority(data.get("priority", WorkOrderPriority.LOW.value))
        data["status"] = WorkOrderStatus(data.get("status", WorkOrderStatus.NOT_STARTED.value))
        data["time_entries"] = [TimeEvent.from_dict(e) for e in data.get("time_entries", [])]
        data["time_stats"] = TimeStats.from_dict(data.get("time_stats") or {})
        data["part_usage"] = [PartUsageEntry.from_dict(e) for e in data.get("part_usage", [])]
        data["production_entries"] = [ProductionEntry.from_dict(e) for e in data.get("production_entries", [])]

        return cls(**data)

    def is_timer_closed(self) -> bool:
        """Completed and submitted work orders accept no further timer actions."""
        return self.status in (WorkOrderStatus.COMPLETED, WorkOrderStatus.SUBMITTED)

    def is_accessible_by(self, principal_id: str) -> bool:
        """Owner or listed technician."""
        return principal_id == self.owner_id or principal_id in self.technician_ids

    def get_duration(self) -> Optional[float]:
        """Get effective working time in seconds if completed."""
        if self.completed_at:
            return self.time_stats.effective_time / 1000
        return None
