# src/tools/retry.py — v1
"""Bounded retry with capped exponential backoff for network operations.

Only exceptions listed in ``retry_on`` are retried; anything else (integrity
or permission failures, for instance) propagates on the first occurrence.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhausted(Exception):
    """Every attempt failed with a retryable error."""

    def __init__(self, operation: str, errors: list[BaseException]):
        self.operation = operation
        self.errors = errors
        self.attempts = len(errors)
        self.last_error = errors[-1] if errors else None
        super().__init__(
            f"'{operation}' failed after {self.attempts} attempts: {self.last_error}"
        )


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt bound and backoff schedule."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    max_delay_s: float = 10.0
    jitter: bool = False

    def compute_delay(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        delay = self.base_delay_s * (self.backoff_factor ** (attempt - 1))
        if self.jitter:
            delay *= 0.5 + random.random()  # noqa: S311
        return min(delay, self.max_delay_s)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    operation: str = "unknown",
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    on_failure: Callable[[int, BaseException], None] | None = None,
) -> T:
    """Run ``fn`` until it succeeds or ``policy.max_attempts`` is reached.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt.
        policy: Attempt bound and backoff.
        operation: Label used in logs and in the exhaustion error.
        retry_on: Exception types that trigger another attempt.
        on_failure: Called with (attempt, error) after each failed attempt,
            before sleeping. Used to discard partial output.

    Raises:
        RetryExhausted: If all attempts fail with retryable errors.
    """
    errors: list[BaseException] = []
    attempts = max(policy.max_attempts, 1)

    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except retry_on as e:
            errors.append(e)
            logger.warning(
                "%s failed (attempt %d/%d): %s", operation, attempt, attempts, e,
            )
            if on_failure is not None:
                on_failure(attempt, e)
            if attempt >= attempts:
                break
            delay = policy.compute_delay(attempt)
            logger.info("Retrying %s in %.1fs", operation, delay)
            await asyncio.sleep(delay)

    raise RetryExhausted(operation, errors) from errors[-1]
