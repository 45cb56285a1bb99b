"""
Human-facing sequence numbers for new work orders.
"""

from typing import Optional

from ..core.exceptions import ConfigurationError
from ..utils.database import DocumentStore
from ..utils.logger import get_logger
from .fault_tolerance import FaultToleranceService

SEQUENCE_STRATEGIES = ("count", "counter")


class SequenceAllocator:
    """
    Allocates the next work order number.

    The ``count`` strategy returns ``count(work orders) + 1`` at call time. It
    is not atomic with the caller's subsequent write, so concurrent creations
    can receive the same number. The ``counter`` strategy uses the store's
    atomic increment on a counter document, seeded from the current count the
    first time it is used.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str = "work_orders",
        strategy: str = "count",
        fault_tolerance: Optional[FaultToleranceService] = None,
        counter_collection: str = "counters"
    ):
        if strategy not in SEQUENCE_STRATEGIES:
            raise ConfigurationError("sequence_strategy", f"unknown strategy {strategy!r}")
        self.store = store
        self.collection = collection
        self.strategy = strategy
        self.fault_tolerance = fault_tolerance or FaultToleranceService()
        self.counter_collection = counter_collection
        self.logger = get_logger(__name__)

    async def allocate(self) -> int:
        """Return the number to embed in a new work order."""
        if self.strategy == "counter":
            number = await self._allocate_from_counter()
        else:
            existing = await self.fault_tolerance.execute_with_retry(
                self.store.count, self.collection, operation="count", retry_policy_name="read"
            )
            number = existing + 1

        self.logger.debug("Allocated sequence number", extra={
            "sequence_number": number,
            "strategy": self.strategy
        })
        return number

    async def _allocate_from_counter(self) -> int:
        counter = await self.fault_tolerance.execute_with_retry(
            self.store.get, self.counter_collection, self.collection,
            operation="get_counter", retry_policy_name="read"
        )
        seed = 0
        if counter is None:
            seed = await self.fault_tolerance.execute_with_retry(
                self.store.count, self.collection, operation="count", retry_policy_name="read"
            )
        return await self.fault_tolerance.execute_with_retry(
            self.store.increment, self.counter_collection, self.collection, "value", 1, seed,
            operation="increment_counter", retry_policy_name="write"
        )
