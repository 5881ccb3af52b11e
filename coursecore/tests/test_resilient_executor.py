"""
Unit Tests for the Resilient Operation Executor

Classification (domain / contention / retryable), attempt budgets and backoff.
"""
import asyncio

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from coursecore.config.settings import Settings
from coursecore.errors import InvalidStateError, NotFoundError, StoreContentionError
from coursecore.services.resilient_executor import ResilientExecutor, RetryPolicy, is_contention_error


class FlakyOperation:
    """Fails with the given errors in order, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def locked_error() -> OperationalError:
    return OperationalError("UPDATE courses", {}, Exception("database is locked"))


class TestRetryPolicy:

    def test_backoff_doubles_from_base(self):
        policy = RetryPolicy(base_delay=0.5, max_delay=10.0)
        assert [policy.delay_for(n) for n in range(1, 5)] == [0.5, 1.0, 2.0, 4.0]

    def test_backoff_is_capped(self):
        policy = RetryPolicy(base_delay=0.5, max_delay=10.0)
        assert policy.delay_for(6) == 10.0
        assert policy.delay_for(20) == 10.0

    def test_budgets(self):
        policy = RetryPolicy()
        assert policy.attempts_for(destructive=False) == 5
        assert policy.attempts_for(destructive=True) == 3

    def test_invalid_budget_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("STORE_RETRY_MAX_ATTEMPTS", "7")
        monkeypatch.setenv("STORE_RETRY_BASE_DELAY_MS", "250")
        policy = RetryPolicy.from_settings(Settings())
        assert policy.max_attempts == 7
        assert policy.base_delay == 0.25
        assert policy.destructive_attempts == 3


class TestClassification:

    def test_sqlite_lock_is_contention(self):
        assert is_contention_error(locked_error())

    def test_other_operational_error_is_not_contention(self):
        error = OperationalError("SELECT 1", {}, Exception("disk I/O error"))
        assert not is_contention_error(error)

    async def test_success_first_try(self, executor, sleeper):
        operation = FlakyOperation()
        assert await executor.run(operation) == "ok"
        assert operation.calls == 1
        assert sleeper.delays == []

    async def test_transient_errors_are_retried(self, executor, sleeper):
        operation = FlakyOperation(ConnectionError("reset"), StaleDataError("version mismatch"))
        assert await executor.run(operation, label="flaky") == "ok"
        assert operation.calls == 3
        assert sleeper.delays == [0.5, 1.0]

    async def test_exhaustion_reraises_last_error_unchanged(self, executor, sleeper):
        last = ConnectionError("still down")
        operation = FlakyOperation(*[ConnectionError("down")] * 4, last)
        with pytest.raises(ConnectionError) as exc_info:
            await executor.run(operation)
        assert exc_info.value is last
        assert operation.calls == 5
        assert sleeper.delays == [0.5, 1.0, 2.0, 4.0]

    async def test_destructive_budget_is_smaller(self, executor):
        operation = FlakyOperation(*[ConnectionError("down")] * 5)
        with pytest.raises(ConnectionError):
            await executor.run(operation, destructive=True)
        assert operation.calls == 3

    async def test_contention_fails_immediately(self, executor, sleeper):
        operation = FlakyOperation(locked_error())
        with pytest.raises(StoreContentionError) as exc_info:
            await executor.run(operation, label="write course")
        assert operation.calls == 1
        assert sleeper.delays == []
        assert exc_info.value.details == {"operation": "write course"}
        assert "close other sessions" in exc_info.value.message

    async def test_domain_errors_are_not_retried(self, executor):
        for error in (NotFoundError("Course", "x"), InvalidStateError("bad index")):
            operation = FlakyOperation(error)
            with pytest.raises(type(error)):
                await executor.run(operation)
            assert operation.calls == 1

    async def test_cancellation_is_not_caught(self, executor):
        operation = FlakyOperation(asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await executor.run(operation)
        assert operation.calls == 1

    async def test_real_sleep_default(self):
        executor = ResilientExecutor(RetryPolicy(base_delay=0, max_delay=0))
        operation = FlakyOperation(ConnectionError("blip"))
        assert await executor.run(operation) == "ok"
