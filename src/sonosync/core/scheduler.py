"""Delayed-call scheduling and retry backoff.

The Discovery Manager schedules retries through a :class:`Scheduler` so
tests can replace real timers with a recording fake.
"""

import asyncio
from collections.abc import Callable
from typing import Protocol

from sonosync.api.capability import Subscription

MAX_BACKOFF_SECONDS = 30


def backoff_delay(attempts: int) -> int:
    """Return the retry delay in seconds after a number of failed attempts.

    Grows quadratically (1, 4, 9, 16, 25) and is capped at 30 seconds.
    """
    return min(attempts**2, MAX_BACKOFF_SECONDS)


class Scheduler(Protocol):
    """Runs callbacks after a delay."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Subscription:
        """Run callback after delay seconds; the result cancels the timer."""
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Subscription:
        """Schedule callback on the running loop."""
        handle = asyncio.get_running_loop().call_later(delay, callback)
        return Subscription(handle.cancel, f"timer {delay}s")
