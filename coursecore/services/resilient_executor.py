"""
coursecore/services/resilient_executor.py
Resilient Operation Executor

Every store operation in the core runs through one ResilientExecutor:
- domain errors (not found, invalid state, bad input) propagate at once
- local lock contention between client sessions fails at once, never retried
- anything else is retried with exponential backoff, then re-raised unchanged

Backoff: min(base_delay * 2 ** (attempt - 1), max_delay), no jitter.
Destructive operations (soft-deletes, cleanup batches) get a smaller budget.

Operations are zero-argument coroutine factories. Each attempt calls the
factory again, so an operation must open its own session per call; a retry
never reuses a rolled-back transaction.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError

from coursecore.config.settings import Settings
from coursecore.errors import DOMAIN_ERRORS, StoreContentionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Messages the store uses when another client session holds the local lock
CONTENTION_MARKERS = (
    "database is locked",
    "database table is locked",
    "database schema is locked",
)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budgets and backoff bounds, in seconds."""
    max_attempts: int = 5
    destructive_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0

    def __post_init__(self):
        if self.max_attempts < 1 or self.destructive_attempts < 1:
            raise ValueError("Attempt budgets must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Delays cannot be negative")

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def attempts_for(self, destructive: bool) -> int:
        return self.destructive_attempts if destructive else self.max_attempts

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.store_max_attempts,
            destructive_attempts=settings.store_destructive_attempts,
            base_delay=settings.store_base_delay_ms / 1000.0,
            max_delay=settings.store_max_delay_ms / 1000.0,
        )


def is_contention_error(error: BaseException) -> bool:
    """True when the store refused the operation because of local lock contention."""
    if isinstance(error, StoreContentionError):
        return True
    if isinstance(error, OperationalError):
        message = str(error.orig if error.orig is not None else error).lower()
        return any(marker in message for marker in CONTENTION_MARKERS)
    return False


class ResilientExecutor:
    """
    Bounded retry wrapper for store operations.

    Usage:
        executor = ResilientExecutor(RetryPolicy())
        course = await executor.run(lambda: load_course(course_id), label="get course")
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        label: str = "store operation",
        destructive: bool = False,
    ) -> T:
        max_attempts = self.policy.attempts_for(destructive)
        attempt = 1
        while True:
            try:
                return await operation()
            except DOMAIN_ERRORS:
                raise
            except Exception as e:
                if is_contention_error(e):
                    logger.warning(
                        f"{label} hit store contention (attempt {attempt}/{max_attempts}); not retrying"
                    )
                    if isinstance(e, StoreContentionError):
                        raise
                    raise StoreContentionError(str(e.orig if getattr(e, "orig", None) else e), operation=label) from e

                if attempt >= max_attempts:
                    logger.error(f"Max retries ({max_attempts}) reached. {label} failed: {e}")
                    raise

                delay = self.policy.delay_for(attempt)
                logger.warning(
                    f"{label} failed (attempt {attempt}/{max_attempts}): {e}. Retrying in {delay:.2f}s..."
                )
                await self._sleep(delay)
                attempt += 1
