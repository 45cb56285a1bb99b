"""
PersistenceCoordinator for Work Order Tracker

Creates and updates work order records: authorizes the acting principal,
assigns identifiers and sequence numbers, recomputes time statistics,
propagates part usage to the catalogue, and retries transient store
failures.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models.principal import Principal
from ..models.work_order import WorkOrder, WorkOrderChange, WorkOrderStatus
from ..core.exceptions import (
    AuthenticationRequired,
    AuthorizationDenied,
    WorkOrderNotFoundError,
)
from ..utils.clock import Clock, SystemClock
from ..utils.database import DocumentStore
from ..utils.logger import get_logger, set_log_context
from .fault_tolerance import FaultToleranceService
from .part_usage import PartUsageService, validate_part_usage
from .sequence_allocator import SequenceAllocator
from .time_stats import compute_stats

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Bookkeeping fields left out of change history entries
_UNTRACKED_FIELDS = ("updated_at", "modified_by")


def _newest_first(work_orders: List[WorkOrder]) -> List[WorkOrder]:
    return sorted(work_orders, key=lambda w: w.updated_at or w.created_at or _EPOCH, reverse=True)


def _changed_fields(before: WorkOrder, after: WorkOrder) -> Dict[str, Any]:
    old = before.to_dict()
    return {
        key: value for key, value in after.to_dict().items()
        if key not in _UNTRACKED_FIELDS and old.get(key) != value
    }


class PersistenceCoordinator:
    """
    Writes work orders through the document store.

    Provides:
    - Create path: owner, sequence number, timestamps, statistics
    - Update path: ownership check, submitted records locked to administrators,
      merge preserving owner/creation/sequence, change history entry
    - Part usage propagation ahead of the record write
    - Retry with exponential backoff on transient store failures

    There is no version check between the read and the write of the update
    path; concurrent updates to the same work order resolve as last write wins.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Optional[Clock] = None,
        sequence_allocator: Optional[SequenceAllocator] = None,
        part_usage_service: Optional[PartUsageService] = None,
        fault_tolerance_service: Optional[FaultToleranceService] = None,
        collection: str = "work_orders",
        history_collection: str = "work_order_history"
    ):
        """
        Initialize PersistenceCoordinator.

        Args:
            store: Document store holding work orders and parts
            clock: Time source for created/updated/completed timestamps
            sequence_allocator: Allocator for new work order numbers
            part_usage_service: Catalogue side-effect service
            fault_tolerance_service: Retry policies applied to store calls
            collection: Work order collection name
            history_collection: Collection receiving one change entry per update
        """
        self.store = store
        self.clock = clock or SystemClock()
        self.collection = collection
        self.history_collection = history_collection
        self.fault_tolerance = fault_tolerance_service or FaultToleranceService()
        self.sequence_allocator = sequence_allocator or SequenceAllocator(
            store, collection=collection, fault_tolerance=self.fault_tolerance
        )
        self.part_usage = part_usage_service or PartUsageService(
            store, clock=self.clock, fault_tolerance=self.fault_tolerance
        )

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="persistence")

    async def save(self, principal: Optional[Principal], record: WorkOrder) -> str:
        """
        Create or update a work order.

        Args:
            principal: Acting identity
            record: Work order as edited by the caller; not mutated

        Returns:
            Work order ID
        """
        stored = await self.persist(principal, record)
        return stored.id

    async def persist(self, principal: Optional[Principal], record: WorkOrder) -> WorkOrder:
        """Like ``save`` but returns the work order exactly as written."""
        if principal is None:
            raise AuthenticationRequired("save")
        validate_part_usage(record.part_usage)

        if record.id is None:
            return await self._create(principal, record)
        return await self._update(principal, record)

    async def _create(self, principal: Principal, record: WorkOrder) -> WorkOrder:
        now = self.clock.now()
        work_order = copy.deepcopy(record)
        work_order.owner_id = principal.id
        work_order.modified_by = principal.id
        if work_order.sequence_number is None:
            work_order.sequence_number = await self.sequence_allocator.allocate()
        work_order.time_stats = compute_stats(work_order.time_entries)
        work_order.created_at = now
        work_order.updated_at = now
        if work_order.status == WorkOrderStatus.COMPLETED and work_order.completed_at is None:
            work_order.completed_at = now
        if work_order.status == WorkOrderStatus.SUBMITTED and work_order.submitted_at is None:
            work_order.submitted_at = now

        await self.part_usage.apply(work_order.part_usage)

        document = work_order.to_dict()
        document.pop("id")
        work_order.id = await self.fault_tolerance.execute_with_retry(
            self.store.create, self.collection, document,
            operation="create_work_order", retry_policy_name="write"
        )

        self.logger.info("Created work order", extra={
            "work_order_id": work_order.id,
            "sequence_number": work_order.sequence_number,
            "principal_id": principal.id
        })
        return work_order

    async def _update(self, principal: Principal, record: WorkOrder) -> WorkOrder:
        stored = await self.load(record.id)

        if not principal.can_modify(stored.owner_id):
            self.logger.warning("Rejected work order update", extra={
                "work_order_id": record.id,
                "principal_id": principal.id,
                "owner_id": stored.owner_id
            })
            raise AuthorizationDenied(principal.id, record.id)
        if stored.status == WorkOrderStatus.SUBMITTED and not principal.is_admin:
            self.logger.warning("Rejected update of submitted work order", extra={
                "work_order_id": record.id,
                "principal_id": principal.id
            })
            raise AuthorizationDenied(
                principal.id, record.id,
                message=f"Work order {record.id} has been submitted; only administrators can change it"
            )

        now = self.clock.now()
        work_order = copy.deepcopy(record)
        work_order.owner_id = stored.owner_id
        work_order.created_at = stored.created_at
        if stored.sequence_number is not None:
            work_order.sequence_number = stored.sequence_number
        elif work_order.sequence_number is None:
            work_order.sequence_number = await self.sequence_allocator.allocate()
        work_order.time_stats = compute_stats(work_order.time_entries)
        work_order.updated_at = now
        work_order.modified_by = principal.id

        if stored.completed_at is not None:
            work_order.completed_at = stored.completed_at
        elif work_order.status == WorkOrderStatus.COMPLETED and stored.status != WorkOrderStatus.COMPLETED:
            work_order.completed_at = work_order.completed_at or now
        if stored.submitted_at is not None:
            work_order.submitted_at = stored.submitted_at
        elif work_order.status == WorkOrderStatus.SUBMITTED and stored.status != WorkOrderStatus.SUBMITTED:
            work_order.submitted_at = now
        else:
            work_order.submitted_at = None

        await self.part_usage.apply(work_order.part_usage, previous=stored.part_usage)

        await self.fault_tolerance.execute_with_retry(
            self.store.update, self.collection, work_order.id, work_order.to_dict(),
            operation="update_work_order", retry_policy_name="write"
        )
        await self._record_change(principal, stored, work_order)

        self.logger.info("Updated work order", extra={
            "work_order_id": work_order.id,
            "status": work_order.status.value,
            "principal_id": principal.id
        })
        return work_order

    async def _record_change(self, principal: Principal, before: WorkOrder, after: WorkOrder):
        change = WorkOrderChange(
            work_order_id=after.id,
            principal_id=principal.id,
            timestamp=after.updated_at,
            changes=_changed_fields(before, after)
        )
        document = change.to_dict()
        document.pop("id")
        await self.fault_tolerance.execute_with_retry(
            self.store.create, self.history_collection, document,
            operation="record_work_order_change", retry_policy_name="write"
        )

    async def load(self, work_order_id: str) -> WorkOrder:
        """Read a work order without any access check."""
        document = await self.fault_tolerance.execute_with_retry(
            self.store.get, self.collection, work_order_id,
            operation="get_work_order", retry_policy_name="read"
        )
        if document is None:
            raise WorkOrderNotFoundError(work_order_id)
        return WorkOrder.from_dict(document)

    async def get(self, principal: Optional[Principal], work_order_id: str) -> WorkOrder:
        """
        Read a work order on behalf of a principal.

        Owners, listed technicians and administrators may read it.
        """
        if principal is None:
            raise AuthenticationRequired("view")
        work_order = await self.load(work_order_id)
        if not (principal.is_admin or work_order.is_accessible_by(principal.id)):
            raise AuthorizationDenied(
                principal.id, work_order_id,
                message=f"Principal {principal.id} is not allowed to view work order {work_order_id}"
            )
        return work_order

    async def list_for_principal(self, principal: Optional[Principal]) -> List[WorkOrder]:
        """Work orders owned by, or assigned to, the principal; newest first."""
        if principal is None:
            raise AuthenticationRequired("list")
        documents = await self.fault_tolerance.execute_with_retry(
            self.store.list_all, self.collection,
            operation="list_work_orders", retry_policy_name="read"
        )
        work_orders = [WorkOrder.from_dict(document) for document in documents]
        return _newest_first([w for w in work_orders if w.is_accessible_by(principal.id)])

    async def list_submitted(self, principal: Optional[Principal]) -> List[WorkOrder]:
        """Submitted work orders awaiting review; administrators only."""
        if principal is None:
            raise AuthenticationRequired("list")
        if not principal.is_admin:
            raise AuthorizationDenied(
                principal.id, message="Only administrators can review submitted work orders"
            )
        documents = await self.fault_tolerance.execute_with_retry(
            self.store.query, self.collection, "status", WorkOrderStatus.SUBMITTED.value,
            operation="query_submitted", retry_policy_name="read"
        )
        return _newest_first([WorkOrder.from_dict(document) for document in documents])

    async def history(self, principal: Optional[Principal], work_order_id: str) -> List[WorkOrderChange]:
        """Change history of a work order, oldest first; same access rule as ``get``."""
        await self.get(principal, work_order_id)
        documents = await self.fault_tolerance.execute_with_retry(
            self.store.query, self.history_collection, "work_order_id", work_order_id,
            operation="query_work_order_history", retry_policy_name="read"
        )
        changes = [WorkOrderChange.from_dict(document) for document in documents]
        return sorted(changes, key=lambda change: change.timestamp)
