"""
Timer lifecycle for work orders.

One state machine serves both the maintenance ticket and the production task
variants. They differ only in the checkpoint captured when the timer is
paused or stopped, which is supplied as a callback per variant.
"""

import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..models.principal import Principal
from ..models.work_order import (
    ProductionEntry,
    TimeAction,
    TimeEvent,
    WorkOrder,
    WorkOrderStatus,
    WorkOrderVariant,
)
from ..core.exceptions import (
    AuthenticationRequired,
    AuthorizationDenied,
    IllegalTransition,
    ValidationFailed,
)
from ..utils.clock import Clock, SystemClock
from ..utils.logger import get_logger
from .time_stats import compute_stats

# Called on Pause and Stop before the event is appended. Validates and records
# the caller's payload on the work order, and may return a note for the event.
CheckpointCapture = Callable[[WorkOrder, TimeAction, Any, datetime], Optional[str]]


# Timer transition rules
TRANSITIONS: Dict[WorkOrderStatus, Dict[TimeAction, WorkOrderStatus]] = {
    WorkOrderStatus.NOT_STARTED: {TimeAction.START: WorkOrderStatus.RUNNING},
    WorkOrderStatus.RUNNING: {
        TimeAction.PAUSE: WorkOrderStatus.PAUSED,
        TimeAction.STOP: WorkOrderStatus.COMPLETED,
    },
    WorkOrderStatus.PAUSED: {
        TimeAction.RESUME: WorkOrderStatus.RUNNING,
        TimeAction.STOP: WorkOrderStatus.COMPLETED,
    },
    WorkOrderStatus.COMPLETED: {},  # Terminal for the timer
    WorkOrderStatus.SUBMITTED: {},  # Terminal state
}

CHECKPOINT_ACTIONS = (TimeAction.PAUSE, TimeAction.STOP)


def can_transition_to(current_status: WorkOrderStatus, action: TimeAction) -> bool:
    """Check if a timer action is legal in the given status."""
    return action in TRANSITIONS.get(current_status, {})


def get_valid_transitions(current_status: WorkOrderStatus) -> List[TimeAction]:
    """Get list of timer actions legal in the given status."""
    return list(TRANSITIONS.get(current_status, {}))


def _note(payload: Any) -> Optional[str]:
    if payload is None:
        return None
    if not isinstance(payload, str):
        raise ValidationFailed("checkpoint.note", "notes must be text", payload)
    return payload.strip() or None


def ticket_checkpoint(work_order: WorkOrder, action: TimeAction, payload: Any, now: datetime) -> Optional[str]:
    """Maintenance tickets take an optional free-text note."""
    if payload is not None and not isinstance(payload, str):
        raise ValidationFailed("checkpoint", "ticket checkpoints must be text", payload)
    return _note(payload)


def read_production_reading(payload: Any, action_name: str) -> Tuple[float, str]:
    """Validated ``(quantity, unit)`` from a production checkpoint payload."""
    if not isinstance(payload, Mapping):
        raise ValidationFailed("checkpoint", f"a quantity reading is required to {action_name} a production task")

    try:
        quantity = float(payload.get("quantity"))
    except (TypeError, ValueError):
        raise ValidationFailed("checkpoint.quantity", "must be a number", payload.get("quantity"))
    unit = str(payload.get("unit") or "").strip()

    if not math.isfinite(quantity):
        raise ValidationFailed("checkpoint.quantity", "must be a finite number", payload.get("quantity"))
    if quantity <= 0:
        raise ValidationFailed("checkpoint.quantity", "must be greater than zero", quantity)
    if not unit:
        raise ValidationFailed("checkpoint.unit", "is required")
    return quantity, unit


def _refresh_totals(work_order: WorkOrder, unit: str):
    work_order.total_quantity = sum(entry.quantity for entry in work_order.production_entries)
    work_order.unit = unit


def production_checkpoint(work_order: WorkOrder, action: TimeAction, payload: Any, now: datetime) -> Optional[str]:
    """
    Production tasks require a quantity reading on every pause and stop.

    The payload is a mapping with ``quantity``, ``unit`` and an optional
    ``note``; the reading is appended to ``production_entries`` and
    ``total_quantity`` recomputed.
    """
    quantity, unit = read_production_reading(payload, action.value)
    note = _note(payload.get("note"))

    work_order.production_entries.append(ProductionEntry(quantity=quantity, unit=unit, timestamp=now))
    _refresh_totals(work_order, unit)
    return note


def amend_last_production_entry(work_order: WorkOrder, payload: Any) -> ProductionEntry:
    """
    Correct the most recent quantity reading of a production task.

    The reading keeps its original timestamp; ``total_quantity`` and ``unit``
    follow the corrected values.
    """
    if work_order.variant != WorkOrderVariant.PRODUCTION:
        raise ValidationFailed("variant", "only production tasks record quantities", work_order.variant.value)
    if work_order.status == WorkOrderStatus.SUBMITTED:
        raise IllegalTransition("amend", "submitted", work_order.id)
    if not work_order.production_entries:
        raise ValidationFailed("production_entries", "there is no reading to amend")

    quantity, unit = read_production_reading(payload, "amend")
    amended = ProductionEntry(
        quantity=quantity, unit=unit, timestamp=work_order.production_entries[-1].timestamp
    )
    work_order.production_entries[-1] = amended
    _refresh_totals(work_order, unit)
    return amended


DEFAULT_CHECKPOINTS: Dict[WorkOrderVariant, CheckpointCapture] = {
    WorkOrderVariant.TICKET: ticket_checkpoint,
    WorkOrderVariant.PRODUCTION: production_checkpoint,
}


class LifecycleStateMachine:
    """
    Validates timer actions and appends the matching TimeEvent.

    ``apply`` either mutates the work order completely (event appended,
    status moved, statistics recomputed) or raises before touching it.
    Persisting the result is the caller's job.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        checkpoints: Optional[Dict[WorkOrderVariant, CheckpointCapture]] = None,
        enforce_terminal_stop: bool = True
    ):
        self.clock = clock or SystemClock()
        self.checkpoints = dict(DEFAULT_CHECKPOINTS)
        self.checkpoints.update(checkpoints or {})
        self.enforce_terminal_stop = enforce_terminal_stop
        self.logger = get_logger(__name__)

    def check(self, principal: Optional[Principal], work_order: Optional[WorkOrder], action: TimeAction):
        """Raise if ``action`` may not be applied; never mutates."""
        if principal is None:
            raise AuthenticationRequired(action.value)
        if work_order is None:
            raise ValidationFailed("work_order", f"no active work order to {action.value}")
        if work_order.owner_id is not None and not principal.can_modify(work_order.owner_id):
            raise AuthorizationDenied(principal.id, work_order.id)

        if self.enforce_terminal_stop and any(e.action == TimeAction.STOP for e in work_order.time_entries):
            raise IllegalTransition(action.value, "already stopped", work_order.id)
        if not can_transition_to(work_order.status, action):
            raise IllegalTransition(action.value, work_order.status.value.replace("_", " "), work_order.id)

        if action == TimeAction.START and not work_order.description.strip():
            raise ValidationFailed("description", "a description is required before starting")

    def apply(
        self,
        principal: Optional[Principal],
        work_order: Optional[WorkOrder],
        action: TimeAction,
        checkpoint: Any = None
    ) -> TimeEvent:
        """
        Apply a timer action to a work order.

        Args:
            principal: Acting identity; None means nobody is signed in
            work_order: The active work order
            action: Start, Pause, Resume or Stop
            checkpoint: Variant-specific payload for Pause and Stop

        Returns:
            The appended TimeEvent
        """
        self.check(principal, work_order, action)

        now = self.clock.now()
        if work_order.time_entries and now < work_order.time_entries[-1].timestamp:
            now = work_order.time_entries[-1].timestamp

        note = None
        if action in CHECKPOINT_ACTIONS:
            capture = self.checkpoints[work_order.variant]
            note = capture(work_order, action, checkpoint, now)

        event = TimeEvent(action=action, timestamp=now, note=note)
        previous_status = work_order.status
        work_order.time_entries.append(event)
        work_order.status = TRANSITIONS[previous_status][action]
        if work_order.status == WorkOrderStatus.COMPLETED and work_order.completed_at is None:
            work_order.completed_at = now
        work_order.time_stats = compute_stats(work_order.time_entries)

        self.logger.info(f"Work order {action.value}", extra={
            "work_order_id": work_order.id,
            "principal_id": principal.id,
            "from_status": previous_status.value,
            "to_status": work_order.status.value
        })
        return event
