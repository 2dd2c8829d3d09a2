"""Tests for retry backoff and the loop scheduler."""

import asyncio

import pytest

from sonosync.core.scheduler import MAX_BACKOFF_SECONDS, LoopScheduler, backoff_delay


class TestBackoffDelay:
    """Test the quadratic, capped retry delay."""

    @pytest.mark.parametrize(
        ("attempts", "expected"),
        [(1, 1), (2, 4), (3, 9), (4, 16), (5, 25), (6, 30), (7, 30), (100, 30)],
    )
    def test_delay(self, attempts: int, expected: int) -> None:
        """Test delay is min(attempts**2, 30)."""
        assert backoff_delay(attempts) == expected

    def test_never_exceeds_cap(self) -> None:
        """Test the cap holds for every attempt count."""
        assert all(backoff_delay(n) <= MAX_BACKOFF_SECONDS for n in range(1, 50))


class TestLoopScheduler:
    """Test LoopScheduler on a real event loop."""

    @pytest.mark.asyncio
    async def test_callback_runs(self) -> None:
        """Test the callback runs after the delay."""
        fired = asyncio.Event()
        LoopScheduler().call_later(0.01, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_cancel_prevents_callback(self) -> None:
        """Test cancelling the returned subscription cancels the timer."""
        calls: list[int] = []
        subscription = LoopScheduler().call_later(0.01, lambda: calls.append(1))
        subscription.cancel()
        await asyncio.sleep(0.05)
        assert calls == []
        assert subscription.cancelled
