"""
Explicit retry policy for lookups that come back empty.
Transient empty results get a bounded number of self-healing attempts.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from priceglass.config import config
from priceglass.logger import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    max_retries: extra attempts after the first one
    backoff_seconds: delay before retry n is backoff_seconds * n
    retry_on_empty: whether an empty (but successful) result is retryable
    first_attempt_only: only the first search of a session may be retried
    """
    max_retries: int = 1
    backoff_seconds: float = 0.0
    retry_on_empty: bool = True
    first_attempt_only: bool = True

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(max_retries=config.MAX_RETRIES, backoff_seconds=config.RETRY_BACKOFF)

    def delay_for(self, attempt: int) -> float:
        return max(0.0, self.backoff_seconds * attempt)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    should_retry: Callable[[T], bool],
    policy: RetryPolicy,
    name: str = "operation",
) -> T:
    """
    Run operation, re-running it with unchanged arguments while should_retry
    says so and attempts remain. Returns the last result either way.
    """
    result = await operation()

    for attempt in range(1, policy.max_retries + 1):
        if not should_retry(result):
            break

        delay = policy.delay_for(attempt)
        logger.warning(
            f"Attempt {attempt}/{policy.max_retries + 1} for {name} returned no data. "
            f"Retrying in {delay:.2f}s"
        )
        if delay:
            await asyncio.sleep(delay)
        result = await operation()

    return result
