# tests/unit/tools/test_unit_retry.py — v1
"""Tests for tools/retry.py — bounded retry with capped backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from weaverkit.tools.retry import RetryExhausted, RetryPolicy, with_retry


class TestRetryPolicy:
    def test_exponential_schedule(self):
        policy = RetryPolicy(base_delay_s=1.0, max_delay_s=10.0)
        assert [policy.compute_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self):
        policy = RetryPolicy(base_delay_s=1.0, max_delay_s=10.0)
        assert policy.compute_delay(5) == 10.0
        assert policy.compute_delay(20) == 10.0

    def test_jitter_stays_under_cap(self):
        policy = RetryPolicy(base_delay_s=1.0, max_delay_s=3.0, jitter=True)
        for attempt in range(1, 10):
            assert 0 < policy.compute_delay(attempt) <= 3.0


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        fn = AsyncMock(return_value="ok")
        assert await with_retry(fn, RetryPolicy(max_attempts=3)) == "ok"
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        fn = AsyncMock(side_effect=[OSError("a"), OSError("b"), "ok"])
        with patch("weaverkit.tools.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await with_retry(fn, RetryPolicy(max_attempts=3), retry_on=(OSError,))
        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_collects_errors(self):
        errors = [OSError("a"), OSError("b"), OSError("c")]
        fn = AsyncMock(side_effect=errors)
        with patch("weaverkit.tools.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(RetryExhausted) as exc_info:
                await with_retry(fn, RetryPolicy(max_attempts=3), operation="dl", retry_on=(OSError,))
        exc = exc_info.value
        assert exc.attempts == 3
        assert exc.errors == errors
        assert exc.__cause__ is errors[-1]
        assert fn.await_count == 3
        # no sleep after the final attempt
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_propagates(self):
        fn = AsyncMock(side_effect=PermissionError("denied"))
        with pytest.raises(PermissionError):
            await with_retry(fn, RetryPolicy(max_attempts=5), retry_on=(ConnectionError,))
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_on_failure_called_per_attempt(self):
        seen: list[int] = []
        fn = AsyncMock(side_effect=[OSError("a"), OSError("b")])
        with pytest.raises(RetryExhausted):
            await with_retry(
                fn, RetryPolicy(max_attempts=2, base_delay_s=0.0),
                retry_on=(OSError,), on_failure=lambda n, _e: seen.append(n),
            )
        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_zero_attempts_treated_as_one(self):
        fn = AsyncMock(side_effect=OSError("a"))
        with pytest.raises(RetryExhausted) as exc_info:
            await with_retry(fn, RetryPolicy(max_attempts=0), retry_on=(OSError,))
        assert exc_info.value.attempts == 1
