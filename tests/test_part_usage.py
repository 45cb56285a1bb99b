"""
Tests for part usage propagation.

Covers:
- New part records with an initial history entry
- Existing parts: price/supplier update, history, counters
- Entries already recorded are not counted again
- Empty rows are skipped
"""

import pytest

from work_order_tracker.core.exceptions import PartNotFoundError, PermanentStoreError
from work_order_tracker.models.part import PartRecord, PriceHistoryEntry
from work_order_tracker.models.work_order import InterventionType, PartUsageEntry, WorkOrder
from work_order_tracker.services.part_usage import PartUsageService, new_entries
from work_order_tracker.services.persistence import PersistenceCoordinator


@pytest.fixture
def service(store, clock, fault_tolerance):
    return PartUsageService(store, clock=clock, fault_tolerance=fault_tolerance)


def usage(designation="Bearing 6204", intervention_type=InterventionType.REPLACEMENT, price=12.5, supplier="SKF"):
    return PartUsageEntry(
        designation=designation, quantity=2, unit_price=price, supplier=supplier,
        intervention_type=intervention_type
    )


class TestNewEntries:
    """Tests for the entry diffing helper."""

    def test_skips_empty_rows(self):
        assert new_entries([PartUsageEntry(designation=""), PartUsageEntry(designation="  ")]) == []

    def test_only_unrecorded_entries(self):
        recorded = usage()
        fresh = usage(designation="V-belt")

        assert new_entries([recorded, fresh], previous=[recorded]) == [fresh]

    def test_duplicates_compared_as_multiset(self):
        entry = usage()

        assert new_entries([entry, entry], previous=[entry]) == [entry]


class TestPartUsageService:
    """Tests for catalogue updates."""

    async def test_creates_missing_part(self, service, clock):
        await service.apply([usage()])

        part = await service.get_part("Bearing 6204")
        assert part.purchase_price == 12.5
        assert part.supplier == "SKF"
        assert part.history == [PriceHistoryEntry(purchase_price=12.5, supplier="SKF", date=clock.now())]
        assert part.replacement_frequency == 1
        assert part.repair_frequency == 0

    async def test_updates_existing_part(self, service, store, clock):
        existing = PartRecord(designation="Bearing 6204", supplier="SKF", purchase_price=10.0)
        await store.create("parts", existing.to_dict())
        clock.advance(seconds=60)

        await service.apply([usage(intervention_type=InterventionType.REPAIR, price=14.0, supplier="FAG")])

        part = await service.get_part("Bearing 6204")
        assert part.purchase_price == 14.0
        assert part.supplier == "FAG"
        assert part.history[-1] == PriceHistoryEntry(purchase_price=14.0, supplier="FAG", date=clock.now())
        assert part.repair_frequency == 1
        assert part.replacement_frequency == 0
        assert await store.count("parts") == 1

    async def test_counts_each_usage(self, service):
        await service.apply([usage()])
        await service.apply([usage()])
        await service.apply([usage(intervention_type=InterventionType.REPAIR)])

        part = await service.get_part("Bearing 6204")
        assert part.replacement_frequency == 2
        assert part.repair_frequency == 1
        assert len(part.history) == 3

    async def test_missing_part_lookup(self, service):
        assert await service.find_part("Gearbox") is None
        with pytest.raises(PartNotFoundError):
            await service.get_part("Gearbox")


class TestSideEffectThroughSave:
    """Tests for part usage applied by the persistence coordinator."""

    async def test_resaving_does_not_recount(self, store, clock, fault_tolerance, owner):
        coordinator = PersistenceCoordinator(store, clock=clock, fault_tolerance_service=fault_tolerance)
        created = await coordinator.persist(owner, WorkOrder(description="x", part_usage=[usage()]))

        edited = await coordinator.load(created.id)
        edited.description = "edited"
        await coordinator.save(owner, edited)

        edited.part_usage.append(usage(designation="V-belt", intervention_type=InterventionType.REPAIR))
        await coordinator.save(owner, edited)

        bearing = await coordinator.part_usage.get_part("Bearing 6204")
        belt = await coordinator.part_usage.get_part("V-belt")
        assert bearing.replacement_frequency == 1
        assert belt.repair_frequency == 1

    async def test_part_update_survives_failed_record_write(self, store, clock, fault_tolerance, owner):
        """The part side effect is not rolled back when the work order write fails."""
        await store.create("parts", PartRecord(designation="Bearing 6204", purchase_price=10.0).to_dict())
        coordinator = PersistenceCoordinator(store, clock=clock, fault_tolerance_service=fault_tolerance)
        store.inject_failure("create", PermanentStoreError("create", "disk full"))

        with pytest.raises(PermanentStoreError):
            await coordinator.save(owner, WorkOrder(description="x", part_usage=[usage()]))

        assert await store.count("work_orders") == 0
        part = await coordinator.part_usage.get_part("Bearing 6204")
        assert part.replacement_frequency == 1
