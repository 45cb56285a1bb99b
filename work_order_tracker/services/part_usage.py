"""
PartUsageService for Work Order Tracker

Propagates parts consumed by a work order to the part catalogue: current
price and supplier, price history, and replacement/repair counters.
"""

from typing import List, Optional, Sequence

from ..models.part import PartRecord, PriceHistoryEntry
from ..models.work_order import InterventionType, PartUsageEntry
from ..core.exceptions import PartNotFoundError, ValidationFailed
from ..utils.clock import Clock, SystemClock
from ..utils.database import DocumentStore
from ..utils.logger import get_logger, set_log_context
from .fault_tolerance import FaultToleranceService


def new_entries(entries: Sequence[PartUsageEntry],
                previous: Optional[Sequence[PartUsageEntry]] = None) -> List[PartUsageEntry]:
    """
    Non-empty entries of ``entries`` that are not already in ``previous``.

    Compared as a multiset, so recording the same part twice counts twice.
    """
    remaining = [entry.to_dict() for entry in previous or []]
    fresh = []
    for entry in entries:
        if entry.is_empty():
            continue
        snapshot = entry.to_dict()
        if snapshot in remaining:
            remaining.remove(snapshot)
        else:
            fresh.append(entry)
    return fresh


def validate_part_usage(entries: Sequence[PartUsageEntry]):
    """Reject negative quantities or prices before anything is written."""
    for entry in entries:
        if entry.is_empty():
            continue
        if entry.quantity < 0:
            raise ValidationFailed("part_usage.quantity", "quantity cannot be negative", entry.quantity)
        if entry.unit_price < 0:
            raise ValidationFailed("part_usage.unit_price", "unit price cannot be negative", entry.unit_price)


class PartUsageService:
    """
    Keeps part records in step with the parts used on work orders.

    Updates are not transactional with the work order write that triggers
    them: if that write later fails, the counters applied here stay applied.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Optional[Clock] = None,
        collection: str = "parts",
        fault_tolerance: Optional[FaultToleranceService] = None
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.collection = collection
        self.fault_tolerance = fault_tolerance or FaultToleranceService()

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="part_usage")

    async def find_part(self, designation: str) -> Optional[PartRecord]:
        """Look up a part by designation."""
        documents = await self.fault_tolerance.execute_with_retry(
            self.store.query, self.collection, "designation", designation,
            operation="query_part", retry_policy_name="read"
        )
        return PartRecord.from_dict(documents[0]) if documents else None

    async def get_part(self, designation: str) -> PartRecord:
        """Like find_part, but a missing part is an error."""
        part = await self.find_part(designation)
        if part is None:
            raise PartNotFoundError(designation)
        return part

    async def apply(self, entries: Sequence[PartUsageEntry],
                    previous: Optional[Sequence[PartUsageEntry]] = None) -> List[PartRecord]:
        """
        Record usage for every entry not already recorded in ``previous``.

        Args:
            entries: Part usage on the incoming work order
            previous: Part usage already persisted for that work order

        Returns:
            The created or updated part records
        """
        validate_part_usage(entries)
        updated = []
        for entry in new_entries(entries, previous):
            updated.append(await self._record_usage(entry))
        return updated

    async def _record_usage(self, entry: PartUsageEntry) -> PartRecord:
        now = self.clock.now()
        designation = entry.designation.strip()
        history_entry = PriceHistoryEntry(purchase_price=entry.unit_price, supplier=entry.supplier, date=now)
        part = await self.find_part(designation)

        if part is None:
            part = PartRecord(
                designation=designation,
                supplier=entry.supplier,
                purchase_price=entry.unit_price,
                history=[history_entry],
                created_at=now,
                updated_at=now
            )
            self._count(part, entry.intervention_type)
            part.id = await self.fault_tolerance.execute_with_retry(
                self.store.create, self.collection, part.to_dict(),
                operation="create_part", retry_policy_name="write"
            )
            self.logger.info("Created part record", extra={
                "designation": designation,
                "intervention_type": entry.intervention_type.value
            })
            return part

        part.purchase_price = entry.unit_price
        part.supplier = entry.supplier
        part.history.append(history_entry)
        part.updated_at = now
        self._count(part, entry.intervention_type)
        await self.fault_tolerance.execute_with_retry(
            self.store.update, self.collection, part.id, part.to_dict(),
            operation="update_part", retry_policy_name="write"
        )
        self.logger.info("Updated part record", extra={
            "designation": designation,
            "intervention_type": entry.intervention_type.value,
            "replacement_frequency": part.replacement_frequency,
            "repair_frequency": part.repair_frequency
        })
        return part

    @staticmethod
    def _count(part: PartRecord, intervention_type: InterventionType):
        if intervention_type == InterventionType.REPAIR:
            part.repair_frequency += 1
        else:
            part.replacement_frequency += 1
