"""
Tests for the retry combinator.

Covers:
- Backoff schedule (1s, 2s) and the three-attempt ceiling
- Permanent errors propagate immediately
- Exhausted transient errors surface as PermanentStoreError
"""

import pytest

from work_order_tracker.core.exceptions import (
    PermanentStoreError,
    TransientStoreError,
    ValidationFailed,
)
from work_order_tracker.services.fault_tolerance import (
    FaultToleranceService,
    RetryPolicy,
    retry_async,
)

from .conftest import RecordingSleep


class FlakyCall:
    """Coroutine function failing with the given errors before succeeding."""

    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.attempts = 0

    async def __call__(self, *args, **kwargs):
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def transient():
    return TransientStoreError("update", "connection reset", "work_orders")


class TestRetryPolicy:
    """Tests for backoff computation."""

    def test_default_schedule(self):
        policy = RetryPolicy()

        assert policy.max_attempts == 3
        assert [policy.compute_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_delay_capped(self):
        policy = RetryPolicy(initial_delay=10, max_delay=15)

        assert policy.compute_delay(3) == 15

    def test_jitter_stays_within_half_to_full(self):
        policy = RetryPolicy(jitter=True)

        for _ in range(20):
            assert 1.0 <= policy.compute_delay(2) <= 2.0


class TestRetryAsync:
    """Tests for retry_async."""

    async def test_succeeds_on_third_attempt(self):
        """Two transient failures, then success after waiting 1s + 2s."""
        sleep = RecordingSleep()
        call = FlakyCall(transient(), transient())

        result = await retry_async(call, policy=RetryPolicy(), sleep=sleep)

        assert result == "ok"
        assert call.attempts == 3
        assert sleep.delays == [1.0, 2.0]
        assert sum(sleep.delays) >= 3.0

    async def test_gives_up_after_three_attempts(self):
        """Exhausted transient failures are reported as permanent."""
        sleep = RecordingSleep()
        call = FlakyCall(transient(), transient(), transient(), transient())

        with pytest.raises(PermanentStoreError) as exc_info:
            await retry_async(call, policy=RetryPolicy(), operation="update_work_order", sleep=sleep)

        assert call.attempts == 3
        assert sleep.delays == [1.0, 2.0]
        assert isinstance(exc_info.value.__cause__, TransientStoreError)
        assert exc_info.value.details["attempts"] == 3
        assert exc_info.value.error_code == "PERMANENT_STORE_ERROR"

    async def test_permanent_error_not_retried(self):
        sleep = RecordingSleep()
        error = PermanentStoreError("update", "constraint violated")
        call = FlakyCall(error)

        with pytest.raises(PermanentStoreError) as exc_info:
            await retry_async(call, sleep=sleep)

        assert exc_info.value is error
        assert call.attempts == 1
        assert sleep.delays == []

    async def test_other_errors_propagate_unchanged(self):
        call = FlakyCall(ValidationFailed("description", "required"))

        with pytest.raises(ValidationFailed):
            await retry_async(call, sleep=RecordingSleep())

        assert call.attempts == 1

    async def test_custom_transient_predicate(self):
        """Any exception can be declared transient."""
        sleep = RecordingSleep()
        call = FlakyCall(ConnectionResetError("peer reset"))
        policy = RetryPolicy(is_transient=lambda e: isinstance(e, ConnectionError))

        assert await retry_async(call, policy=policy, sleep=sleep) == "ok"
        assert sleep.delays == [1.0]

    async def test_passes_arguments_through(self):
        seen = []

        async def call(collection, doc_id, flag=False):
            seen.append((collection, doc_id, flag))
            return doc_id

        assert await retry_async(call, "work_orders", "abc", flag=True, sleep=RecordingSleep()) == "abc"
        assert seen == [("work_orders", "abc", True)]


class TestFaultToleranceService:
    """Tests for the named-policy service."""

    async def test_uses_configured_policy(self):
        sleep = RecordingSleep()
        service = FaultToleranceService({"max_attempts": 2, "initial_delay": 0.5}, sleep=sleep)
        call = FlakyCall(transient(), transient())

        with pytest.raises(PermanentStoreError):
            await service.execute_with_retry(call, operation="get_work_order")

        assert call.attempts == 2
        assert sleep.delays == [0.5]

    async def test_unknown_policy_falls_back_to_default(self):
        sleep = RecordingSleep()
        service = FaultToleranceService(sleep=sleep)
        call = FlakyCall(transient())

        assert await service.execute_with_retry(call, retry_policy_name="missing") == "ok"
        assert sleep.delays == [1.0]
