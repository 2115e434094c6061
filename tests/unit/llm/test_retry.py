# tests/unit/llm/test_retry.py — v1
"""Tests for llm/retry.py — backoff formulas and RetryExecutor."""

from __future__ import annotations

import random

import pytest

from specweaver.core.errors import CANCELLED, CancellationError, RateLimitError
from specweaver.llm.retry import (
    RATE_LIMIT_BASE_DELAY_S,
    RetryExecutor,
    RetryPolicy,
    classify_error,
    compute_backoff_delay,
    compute_rate_limit_delay,
)


def _failing(counter: list[int], error: Exception):
    async def fn():
        counter.append(1)
        raise error
    return fn


class TestClassifyError:
    @pytest.mark.parametrize("message", [
        "Rate limit reached", "429 Too Many Requests", "quota exhausted", "RPM exceeded",
    ])
    def test_rate_limit_messages(self, message):
        assert classify_error(RuntimeError(message)) == "rate_limit"

    def test_rate_limit_type(self):
        assert classify_error(RateLimitError()) == "rate_limit"

    def test_general(self):
        assert classify_error(ValueError("connection reset")) == "general"


class TestBackoffDelay:
    def test_exponential_without_jitter(self):
        policy = RetryPolicy(initial_delay_s=1.0, max_delay_s=30.0, backoff_multiplier=2.0, jitter=False)
        assert [compute_backoff_delay(a, policy) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        policy = RetryPolicy(initial_delay_s=1.0, max_delay_s=5.0, jitter=False)
        assert compute_backoff_delay(10, policy) == 5.0

    def test_non_decreasing_and_bounded(self):
        policy = RetryPolicy(initial_delay_s=0.5, max_delay_s=7.0, backoff_multiplier=1.7, jitter=False)
        delays = [compute_backoff_delay(a, policy) for a in range(12)]
        assert delays == sorted(delays)
        assert max(delays) <= policy.max_delay_s

    def test_jitter_band(self):
        policy = RetryPolicy(initial_delay_s=10.0, max_delay_s=100.0, jitter=True)
        rng = random.Random(42)
        for _ in range(50):
            delay = compute_backoff_delay(0, policy, rng)
            assert 8.0 <= delay <= 12.0


class TestRateLimitDelay:
    def test_floor_and_growth(self):
        policy = RetryPolicy(max_delay_s=30.0, jitter=False)
        assert compute_rate_limit_delay(0, policy) == RATE_LIMIT_BASE_DELAY_S
        assert compute_rate_limit_delay(1, policy) == 40.0

    def test_cap_at_least_120s(self):
        policy = RetryPolicy(max_delay_s=30.0, jitter=False)
        assert compute_rate_limit_delay(10, policy) == 120.0

    def test_cap_follows_larger_max_delay(self):
        policy = RetryPolicy(max_delay_s=300.0, jitter=False)
        assert compute_rate_limit_delay(10, policy) == 300.0

    def test_narrow_jitter_band(self):
        policy = RetryPolicy(jitter=True)
        rng = random.Random(7)
        for _ in range(50):
            assert 18.0 <= compute_rate_limit_delay(0, policy, rng) <= 22.0


class TestRetryExecutor:
    @pytest.mark.asyncio
    async def test_success_first_try(self, retry_executor, sleeps):
        async def ok():
            return "done"

        result = await retry_executor.execute_with_retry(ok, RetryPolicy())
        assert result.success
        assert result.result == "done"
        assert result.attempts == 1
        assert sleeps == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_retries", [0, 1, 3])
    async def test_permanent_failure_attempts(self, retry_executor, sleeps, max_retries):
        calls: list[int] = []
        policy = RetryPolicy(max_retries=max_retries, jitter=False)
        result = await retry_executor.execute_with_retry(
            _failing(calls, RuntimeError("boom")), policy
        )
        assert not result.success
        assert result.attempts == max_retries + 1
        assert len(calls) == max_retries + 1
        assert len(sleeps) == max_retries
        assert str(result.error) == "boom"

    @pytest.mark.asyncio
    async def test_zero_retries_computes_no_delay(self, retry_executor, sleeps):
        calls: list[int] = []
        await retry_executor.execute_with_retry(
            _failing(calls, RuntimeError("x")), RetryPolicy(max_retries=0)
        )
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self, retry_executor, sleeps):
        state = {"n": 0}

        async def flaky():
            state["n"] += 1
            if state["n"] < 3:
                raise RuntimeError("transient")
            return 42

        policy = RetryPolicy(max_retries=3, initial_delay_s=1.0, jitter=False)
        result = await retry_executor.execute_with_retry(flaky, policy)
        assert result.success
        assert result.result == 42
        assert result.attempts == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [CancellationError(), RuntimeError(CANCELLED)])
    async def test_cancellation_never_retried(self, retry_executor, sleeps, error):
        calls: list[int] = []
        result = await retry_executor.execute_with_retry(
            _failing(calls, error), RetryPolicy(max_retries=5)
        )
        assert not result.success
        assert result.attempts == 1
        assert len(calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_rate_limit_uses_long_delay(self, retry_executor, sleeps):
        calls: list[int] = []
        policy = RetryPolicy(max_retries=1, initial_delay_s=1.0, jitter=False)
        await retry_executor.execute_with_retry(_failing(calls, RateLimitError()), policy)
        assert sleeps == [RATE_LIMIT_BASE_DELAY_S]

    @pytest.mark.asyncio
    async def test_retry_logs_warning(self, retry_executor, caplog):
        calls: list[int] = []
        with caplog.at_level("WARNING", logger="specweaver.llm.retry"):
            await retry_executor.execute_with_retry(
                _failing(calls, RuntimeError("flaky")),
                RetryPolicy(max_retries=1, jitter=False),
                context={"step_id": "pm_spec"},
            )
        warnings = [r for r in caplog.records if r.levelname == "WARNING"]
        errors = [r for r in caplog.records if r.levelname == "ERROR"]
        assert len(warnings) == 1
        assert warnings[0].data["retry_type"] == "general"
        assert warnings[0].data["step_id"] == "pm_spec"
        assert len(errors) == 1

    @pytest.mark.asyncio
    async def test_duration_reported(self, retry_executor):
        calls: list[int] = []
        result = await retry_executor.execute_with_retry(
            _failing(calls, RuntimeError("x")), RetryPolicy(max_retries=0)
        )
        assert result.total_duration_ms >= 0


class TestPolicyPresets:
    def test_presets(self):
        assert RetryPolicy.default().max_retries == 2
        assert RetryPolicy.aggressive().max_retries == 5
        assert RetryPolicy.fast().jitter is False
        assert RetryPolicy.rate_limited().initial_delay_s >= 20.0

    def test_frozen(self):
        with pytest.raises(AttributeError):
            RetryPolicy().max_retries = 9  # type: ignore[misc]


def test_default_executor_uses_asyncio_sleep():
    import asyncio

    assert RetryExecutor()._sleep is asyncio.sleep
