"""Shared fixtures for the work order tracker tests."""

from datetime import datetime, timedelta, timezone

import pytest

from work_order_tracker.core.tracker import WorkOrderTracker
from work_order_tracker.models.principal import Principal
from work_order_tracker.models.work_order import TimeAction, TimeEvent
from work_order_tracker.services.fault_tolerance import FaultToleranceService
from work_order_tracker.utils.clock import ManualClock
from work_order_tracker.utils.database import InMemoryDocumentStore

T0 = datetime(2024, 3, 4, 8, 0, 0, tzinfo=timezone.utc)


def event(action: str, offset_ms: int) -> TimeEvent:
    """A TimeEvent ``offset_ms`` milliseconds after T0."""
    return TimeEvent(action=TimeAction(action), timestamp=T0 + timedelta(milliseconds=offset_ms))


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def fault_tolerance(sleep):
    return FaultToleranceService(sleep=sleep)


@pytest.fixture
def owner():
    return Principal(id="U1", display_name="Technician One")


@pytest.fixture
def other_user():
    return Principal(id="U2", display_name="Technician Two")


@pytest.fixture
def admin():
    return Principal(id="A1", is_admin=True, display_name="Supervisor")


@pytest.fixture
def tracker(store, clock, sleep):
    return WorkOrderTracker(store, clock=clock, sleep=sleep)
