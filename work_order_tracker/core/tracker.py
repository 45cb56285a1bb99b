"""
Main WorkOrderTracker class that coordinates all services

Provides the interface used by screens and other callers: timer actions,
generic saves, access-checked reads, listings, and statistics.
"""

import asyncio
import copy
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config import TrackerConfig
from ..models.principal import Principal
from ..models.work_order import TimeAction, TimeEvent, TimeStats, WorkOrder, WorkOrderChange, WorkOrderStatus
from ..services.fault_tolerance import FaultToleranceService
from ..services.lifecycle import CheckpointCapture, LifecycleStateMachine, amend_last_production_entry
from ..services.part_usage import PartUsageService
from ..services.persistence import PersistenceCoordinator
from ..services.sequence_allocator import SequenceAllocator
from ..services.time_stats import compute_stats
from ..utils.clock import Clock, SystemClock
from ..utils.database import DocumentStore
from ..utils.logger import get_logger, set_log_context
from .exceptions import AuthenticationRequired, AuthorizationDenied, IllegalTransition


class WorkOrderTracker:
    """
    Main tracker class that coordinates all services.

    Collaborators (store, clock, sleep) are injected so that the whole
    lifecycle can run deterministically in tests:

        tracker = WorkOrderTracker(InMemoryDocumentStore(), clock=ManualClock())
        order = await tracker.start_work_order(principal, WorkOrder(description="Conveyor jam"))
        order = await tracker.pause_work_order(principal, order.id, "waiting for parts")
    """

    def __init__(
        self,
        store: DocumentStore,
        config: Optional[TrackerConfig] = None,
        clock: Optional[Clock] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        checkpoints: Optional[Dict[Any, CheckpointCapture]] = None
    ):
        """
        Initialize the WorkOrderTracker.

        Args:
            store: Document store for work orders and parts
            config: Tracker configuration; defaults apply when omitted
            clock: Time source; the system clock when omitted
            sleep: Coroutine used for retry backoff
            checkpoints: Per-variant checkpoint capture overrides
        """
        self.store = store
        self.config = config or TrackerConfig()
        self.clock = clock or SystemClock()

        self.fault_tolerance = FaultToleranceService(self.config.retry_config(), sleep=sleep)
        self.sequence_allocator = SequenceAllocator(
            store,
            collection=self.config.work_orders_collection,
            strategy=self.config.sequence_strategy,
            fault_tolerance=self.fault_tolerance
        )
        self.part_usage = PartUsageService(
            store,
            clock=self.clock,
            collection=self.config.parts_collection,
            fault_tolerance=self.fault_tolerance
        )
        self.persistence = PersistenceCoordinator(
            store,
            clock=self.clock,
            sequence_allocator=self.sequence_allocator,
            part_usage_service=self.part_usage,
            fault_tolerance_service=self.fault_tolerance,
            collection=self.config.work_orders_collection,
            history_collection=self.config.history_collection
        )
        self.lifecycle = LifecycleStateMachine(
            clock=self.clock,
            checkpoints=checkpoints,
            enforce_terminal_stop=self.config.enforce_terminal_stop
        )

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="tracker")

    # Timer actions

    async def start_work_order(self, principal: Optional[Principal], draft: WorkOrder) -> WorkOrder:
        """
        Start the timer on a draft, saving it first if it is new.

        Form fields come from ``draft``; for an already saved draft the timer
        state (status and time entries) comes from the store.
        """
        self._require_principal(principal, TimeAction.START)
        work_order = copy.deepcopy(draft)
        if draft.id is None:
            # Ownership of a new record goes to whoever saves it
            work_order.owner_id = None
        else:
            stored = await self.persistence.load(draft.id)
            work_order.owner_id = stored.owner_id
            work_order.status = stored.status
            work_order.time_entries = list(stored.time_entries)
            work_order.completed_at = stored.completed_at

        self.lifecycle.apply(principal, work_order, TimeAction.START)
        return await self.persistence.persist(principal, work_order)

    async def pause_work_order(self, principal: Optional[Principal], work_order_id: str,
                               checkpoint: Any = None) -> WorkOrder:
        """Pause a running work order, recording the variant's checkpoint."""
        return await self._act(principal, work_order_id, TimeAction.PAUSE, checkpoint)

    async def resume_work_order(self, principal: Optional[Principal], work_order_id: str) -> WorkOrder:
        """Resume a paused work order."""
        return await self._act(principal, work_order_id, TimeAction.RESUME)

    async def stop_work_order(self, principal: Optional[Principal], work_order_id: str,
                              checkpoint: Any = None) -> WorkOrder:
        """Stop a running or paused work order; it becomes Completed."""
        return await self._act(principal, work_order_id, TimeAction.STOP, checkpoint)

    async def submit_work_order(self, principal: Optional[Principal], work_order_id: str) -> WorkOrder:
        """Hand a completed work order over for review."""
        if principal is None:
            raise AuthenticationRequired("submit")
        work_order = await self.persistence.load(work_order_id)
        if not principal.can_modify(work_order.owner_id):
            raise AuthorizationDenied(principal.id, work_order_id)
        if work_order.status != WorkOrderStatus.COMPLETED:
            raise IllegalTransition("submit", work_order.status.value.replace("_", " "), work_order_id)

        work_order.status = WorkOrderStatus.SUBMITTED
        self.logger.info("Submitting work order", extra={
            "work_order_id": work_order_id,
            "principal_id": principal.id
        })
        return await self.persistence.persist(principal, work_order)

    async def amend_last_production_entry(self, principal: Optional[Principal], work_order_id: str,
                                          checkpoint: Any) -> WorkOrder:
        """Correct the last quantity reading of a production task."""
        if principal is None:
            raise AuthenticationRequired("amend")
        work_order = await self.persistence.load(work_order_id)
        if not principal.can_modify(work_order.owner_id):
            raise AuthorizationDenied(principal.id, work_order_id)

        amended = amend_last_production_entry(work_order, checkpoint)
        self.logger.info("Amending production reading", extra={
            "work_order_id": work_order_id,
            "principal_id": principal.id,
            "quantity": amended.quantity,
            "unit": amended.unit
        })
        return await self.persistence.persist(principal, work_order)

    async def _act(self, principal: Optional[Principal], work_order_id: str,
                   action: TimeAction, checkpoint: Any = None) -> WorkOrder:
        self._require_principal(principal, action)
        if not work_order_id:
            self.lifecycle.apply(principal, None, action)
        work_order = await self.persistence.load(work_order_id)
        self.lifecycle.apply(principal, work_order, action, checkpoint)
        return await self.persistence.persist(principal, work_order)

    @staticmethod
    def _require_principal(principal: Optional[Principal], action: TimeAction):
        if principal is None:
            raise AuthenticationRequired(action.value)

    # Records

    async def save(self, principal: Optional[Principal], record: WorkOrder) -> str:
        """Generic create-or-update used by edit screens."""
        return await self.persistence.save(principal, record)

    async def get_work_order(self, principal: Optional[Principal], work_order_id: str) -> WorkOrder:
        return await self.persistence.get(principal, work_order_id)

    async def list_user_work_orders(self, principal: Optional[Principal]) -> List[WorkOrder]:
        return await self.persistence.list_for_principal(principal)

    async def list_submitted_work_orders(self, principal: Optional[Principal]) -> List[WorkOrder]:
        return await self.persistence.list_submitted(principal)

    async def get_work_order_history(self, principal: Optional[Principal],
                                     work_order_id: str) -> List[WorkOrderChange]:
        return await self.persistence.history(principal, work_order_id)

    # Reporting

    @staticmethod
    def compute_stats(time_entries: List[TimeEvent]) -> TimeStats:
        """Statistics for an arbitrary event log."""
        return compute_stats(time_entries)
