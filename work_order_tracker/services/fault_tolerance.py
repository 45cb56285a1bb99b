"""
Retry with exponential backoff for document store calls.

Provides:
- RetryPolicy: attempts, backoff shape and the transient-error predicate
- retry_async: run any coroutine function under a policy
- FaultToleranceService: named policies and an injectable sleep, shared by
  the services that talk to the store
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from ..core.exceptions import PermanentStoreError, StoreError, TransientStoreError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


def is_transient_error(error: BaseException) -> bool:
    """Default classification: only TransientStoreError is worth retrying."""
    return isinstance(error, TransientStoreError)


@dataclass
class RetryPolicy:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = False
    is_transient: Callable[[BaseException], bool] = field(default=is_transient_error)

    def compute_delay(self, attempt: int) -> float:
        """
        Seconds to wait after the given failed attempt (1-based).

        With the defaults the waits are 1s then 2s.
        """
        delay = min(
            self.initial_delay * (self.exponential_base ** (attempt - 1)),
            self.max_delay
        )
        if self.jitter:
            delay *= (0.5 + random.random() * 0.5)
        return delay


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args,
    policy: Optional[RetryPolicy] = None,
    operation: Optional[str] = None,
    sleep: SleepFunc = asyncio.sleep,
    **kwargs
) -> Any:
    """
    Await ``func(*args, **kwargs)``, retrying transient failures.

    Errors the policy does not classify as transient propagate unchanged on
    first occurrence. A transient error that survives every attempt is
    re-raised as PermanentStoreError with the last failure chained.
    """
    policy = policy or RetryPolicy()
    operation = operation or getattr(func, "__name__", "store_call")
    attempt = 0

    while True:
        attempt += 1
        try:
            result = await func(*args, **kwargs)
            if attempt > 1:
                logger.info(f"{operation} succeeded on attempt {attempt}", extra={
                    "operation": operation,
                    "attempt": attempt
                })
            return result

        except Exception as e:
            if not policy.is_transient(e):
                raise

            if attempt >= policy.max_attempts:
                logger.error(f"{operation} failed after {attempt} attempts", extra={
                    "operation": operation,
                    "attempts": attempt,
                    "error": str(e)
                })
                collection = e.details.get("collection") if isinstance(e, StoreError) else None
                raise PermanentStoreError(
                    operation,
                    f"gave up after {attempt} attempts: {e}",
                    collection,
                    attempts=attempt
                ) from e

            delay = policy.compute_delay(attempt)
            logger.warning(f"{operation} failed on attempt {attempt}, retrying in {delay:.2f}s", extra={
                "operation": operation,
                "attempt": attempt,
                "delay_seconds": delay,
                "error": str(e)
            })
            await sleep(delay)


class FaultToleranceService:
    """
    Named retry policies shared across services.

    The sleep function is injectable so backoff can be observed without
    actually waiting.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, sleep: SleepFunc = asyncio.sleep):
        """
        Initialize fault tolerance service.

        Args:
            config: Retry configuration (max_attempts, initial_delay, max_delay,
                exponential_base, jitter)
            sleep: Coroutine used to wait between attempts
        """
        self.config = config or {}
        self.sleep = sleep
        self.retry_policies: Dict[str, RetryPolicy] = {}
        self._initialize_retry_policies()

    def _initialize_retry_policies(self):
        default_policy = RetryPolicy(
            max_attempts=self.config.get("max_attempts", 3),
            initial_delay=self.config.get("initial_delay", 1.0),
            max_delay=self.config.get("max_delay", 60.0),
            exponential_base=self.config.get("exponential_base", 2.0),
            jitter=self.config.get("jitter", False)
        )
        self.retry_policies = {
            "default": default_policy,
            "read": default_policy,
            "write": default_policy,
        }

    def register_policy(self, name: str, policy: RetryPolicy):
        self.retry_policies[name] = policy

    async def execute_with_retry(
        self,
        func: Callable[..., Awaitable[Any]],
        *args,
        operation: Optional[str] = None,
        retry_policy_name: str = "default",
        **kwargs
    ) -> Any:
        """
        Execute function with retry logic.

        Args:
            func: Coroutine function to execute
            operation: Name used in logs and errors
            retry_policy_name: Name of retry policy to use

        Returns:
            Function result
        """
        policy = self.retry_policies.get(retry_policy_name, self.retry_policies["default"])
        return await retry_async(
            func, *args,
            policy=policy,
            operation=operation,
            sleep=self.sleep,
            **kwargs
        )
