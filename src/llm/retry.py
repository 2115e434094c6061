# src/llm/retry.py — v1
"""Retry with exponential backoff around any fallible async operation.

Errors are classified as rate-limit or general. Rate-limit errors use a
much larger delay floor and cap than general failures. The cancellation
sentinel is never retried.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Literal, TypeVar

from specweaver.core.errors import RateLimitError, is_cancellation

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorKind = Literal["rate_limit", "general"]

RATE_LIMIT_BASE_DELAY_S = 20.0
RATE_LIMIT_MIN_CAP_S = 120.0

_RATE_LIMIT_KEYWORDS: tuple[str, ...] = (
    "rate limit",
    "too many requests",
    "requests per min",
    "rpm",
    "quota",
    "exhausted",
    "429",
)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for one step.

    Values are validated by the caller (see config.settings); the
    executor applies them as given.
    """

    max_retries: int = 2
    initial_delay_s: float = 1.0
    max_delay_s: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True

    @classmethod
    def default(cls) -> RetryPolicy:
        return cls()

    @classmethod
    def aggressive(cls) -> RetryPolicy:
        """More retries, longer delays."""
        return cls(max_retries=5, initial_delay_s=2.0, max_delay_s=60.0)

    @classmethod
    def rate_limited(cls) -> RetryPolicy:
        """Many slow-growing retries for heavily throttled providers."""
        return cls(
            max_retries=8, initial_delay_s=25.0, max_delay_s=180.0, backoff_multiplier=1.5
        )

    @classmethod
    def fast(cls) -> RetryPolicy:
        """One quick retry, no jitter."""
        return cls(
            max_retries=1,
            initial_delay_s=0.5,
            max_delay_s=5.0,
            backoff_multiplier=1.5,
            jitter=False,
        )


@dataclass
class RetryResult(Generic[T]):
    """Outcome of a retried operation. Attempts and duration are always set."""

    success: bool
    attempts: int
    total_duration_ms: int
    result: T | None = None
    error: Exception | None = None


def classify_error(error: Exception) -> ErrorKind:
    """Classify an exception into a retry error kind."""
    if isinstance(error, RateLimitError):
        return "rate_limit"
    msg = str(error).lower()
    if any(keyword in msg for keyword in _RATE_LIMIT_KEYWORDS):
        return "rate_limit"
    return "general"


def compute_backoff_delay(
    attempt: int, policy: RetryPolicy, rng: random.Random | None = None
) -> float:
    """General delay for a 0-based attempt: min(initial * mult^attempt, max), jittered ±20%."""
    delay = min(
        policy.initial_delay_s * (policy.backoff_multiplier ** attempt),
        policy.max_delay_s,
    )
    if policy.jitter:
        delay *= 0.8 + (rng or random).random() * 0.4  # noqa: S311
    return delay


def compute_rate_limit_delay(
    attempt: int, policy: RetryPolicy, rng: random.Random | None = None
) -> float:
    """Rate-limit delay: 20s floor, cap of at least 120s, jittered ±10%."""
    cap = max(policy.max_delay_s, RATE_LIMIT_MIN_CAP_S)
    delay = min(RATE_LIMIT_BASE_DELAY_S * (policy.backoff_multiplier ** attempt), cap)
    if policy.jitter:
        delay *= 0.9 + (rng or random).random() * 0.2  # noqa: S311
    return delay


class RetryExecutor:
    """Run an async operation under a RetryPolicy.

    Args:
        sleep: Awaitable sleep used between attempts (injected in tests).
        rng: Random source for jitter.
    """

    def __init__(
        self,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._sleep = sleep or asyncio.sleep
        self._rng = rng

    async def execute_with_retry(
        self,
        fn: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        context: dict[str, Any] | None = None,
    ) -> RetryResult[T]:
        """Invoke ``fn`` up to ``policy.max_retries + 1`` times.

        Never raises for failures of ``fn``; the terminal error is returned
        in the result. The cancellation sentinel short-circuits after the
        attempt that raised it.
        """
        start = time.monotonic()
        ctx = context or {}
        last_error: Exception | None = None
        attempts = 0

        for attempt in range(policy.max_retries + 1):
            attempts = attempt + 1
            try:
                result = await fn()
            except Exception as exc:
                last_error = exc

                if is_cancellation(exc):
                    logger.info("Operation cancelled by caller %s", ctx)
                    return RetryResult(
                        success=False,
                        attempts=attempts,
                        total_duration_ms=_elapsed_ms(start),
                        error=exc,
                    )

                if attempt < policy.max_retries:
                    kind = classify_error(exc)
                    if kind == "rate_limit":
                        delay = compute_rate_limit_delay(attempt, policy, self._rng)
                    else:
                        delay = compute_backoff_delay(attempt, policy, self._rng)
                    logger.warning(
                        "Attempt %d/%d failed (%s error), retrying in %.1fs: %s",
                        attempts,
                        policy.max_retries + 1,
                        kind,
                        delay,
                        exc,
                        extra={"data": {**ctx, "retry_type": kind, "next_retry_in_s": delay}},
                    )
                    await self._sleep(delay)
                else:
                    logger.error(
                        "All %d attempts failed: %s",
                        attempts,
                        exc,
                        extra={"data": {**ctx, "error": str(exc)}},
                    )
                continue

            duration_ms = _elapsed_ms(start)
            if attempt > 0:
                logger.info(
                    "Retry succeeded after %d retries (%dms)", attempt, duration_ms,
                    extra={"data": ctx},
                )
            return RetryResult(
                success=True,
                attempts=attempts,
                total_duration_ms=duration_ms,
                result=result,
            )

        return RetryResult(
            success=False,
            attempts=attempts,
            total_duration_ms=_elapsed_ms(start),
            error=last_error,
        )


async def execute_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    context: dict[str, Any] | None = None,
) -> RetryResult[T]:
    """Module-level shortcut using a default RetryExecutor."""
    return await RetryExecutor().execute_with_retry(fn, policy, context)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
