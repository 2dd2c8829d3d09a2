"""Discovery lifecycle with retry and exponential backoff.

States::

    IDLE -> DISCOVERING -> SUBSCRIBED
                 |   ^
                 v   |
            BACKOFF_WAIT

A topology change re-enters DISCOVERING from SUBSCRIBED.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from enum import Enum

from sonosync.api.capability import DeviceHandle, DeviceProvider, Subscription
from sonosync.api.errors import SyncError
from sonosync.core.scheduler import LoopScheduler, Scheduler, backoff_delay

logger = logging.getLogger(__name__)

DeviceCallback = Callable[[DeviceHandle], Awaitable[None]]


class DiscoveryState(str, Enum):
    """State of the discovery lifecycle."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    SUBSCRIBED = "subscribed"
    BACKOFF_WAIT = "backoff_wait"


class DiscoveryManager:
    """Finds a device, keeps one topology subscription and retries forever.

    Each pipeline run obtains the (shared) device handle and passes it to
    ``on_device``, which enumerates groups and attaches listeners. Any
    failure releases the topology listener and schedules a new run after
    ``backoff_delay(attempts)`` seconds.

    Example:
        manager = DiscoveryManager(provider, on_device=engine.handle_device)
        manager.discover_groups()
    """

    def __init__(
        self,
        provider: DeviceProvider,
        on_device: DeviceCallback,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            provider: Device capability provider.
            on_device: Coroutine run with the device after each discovery.
            scheduler: Delayed-call scheduler (defaults to the asyncio loop).
        """
        self._provider = provider
        self._on_device = on_device
        self._scheduler = scheduler or LoopScheduler()
        self._state = DiscoveryState.IDLE
        self._attempts = 0
        self._device_task: asyncio.Task[DeviceHandle] | None = None
        self._pipeline: asyncio.Task[None] | None = None
        self._retry: Subscription | None = None
        self._zones_subscription: Subscription | None = None

    @property
    def state(self) -> DiscoveryState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def attempts(self) -> int:
        """Return the number of consecutive failed attempts."""
        return self._attempts

    @property
    def pipeline(self) -> asyncio.Task[None] | None:
        """Return the running (or last) pipeline task."""
        return self._pipeline

    async def start_discovery(self) -> DeviceHandle:
        """Return the device handle, discovering it if needed.

        Concurrent callers share the same in-flight discovery; a successful
        result is reused until a failure clears it.
        """
        if self._device_task is None:
            self._device_task = asyncio.ensure_future(self._discover_and_subscribe())
        return await asyncio.shield(self._device_task)

    async def _discover_and_subscribe(self) -> DeviceHandle:
        self._state = DiscoveryState.DISCOVERING
        device = await self._provider.discover()

        listener = self._provider.listener
        if self._zones_subscription is not None:
            self._zones_subscription.cancel()
        self._zones_subscription = listener.on_zones_changed(self._on_zones_changed)
        await listener.subscribe_to(device)

        self._state = DiscoveryState.SUBSCRIBED
        logger.debug("Subscribed to topology changes via %s", device.host)
        return device

    def discover_groups(self, attempts: int = 0) -> asyncio.Task[None]:
        """Start a pipeline run, replacing any run still in progress.

        Args:
            attempts: Failed attempts so far in the current failure chain.

        Returns:
            The pipeline task.
        """
        if self._retry is not None:
            self._retry.cancel()
            self._retry = None
        if self._pipeline is not None and not self._pipeline.done():
            self._pipeline.cancel()
        self._pipeline = asyncio.ensure_future(self._run_pipeline(attempts))
        return self._pipeline

    async def _run_pipeline(self, attempts: int) -> None:
        try:
            device = await self.start_discovery()
            await self._on_device(device)
        except asyncio.CancelledError:
            raise
        except SyncError as e:
            await self._handle_failure(attempts + 1, e)
        except Exception as e:  # noqa: BLE001
            logger.exception("Unexpected error while discovering groups")
            await self._handle_failure(attempts + 1, e)
        else:
            self._attempts = 0

    async def _handle_failure(self, attempts: int, error: Exception) -> None:
        """Release the listener and schedule the next attempt."""
        self._attempts = attempts
        delay = backoff_delay(attempts)
        logger.error("Failed to get groups: %s. Retrying in %d seconds...", error, delay)
        self._state = DiscoveryState.BACKOFF_WAIT

        if self._zones_subscription is not None:
            self._zones_subscription.cancel()
            self._zones_subscription = None
        await self._release_listener()
        self._device_task = None

        self._retry = self._scheduler.call_later(delay, lambda: self._retry_now(attempts))

    def _retry_now(self, attempts: int) -> None:
        self._retry = None
        self.discover_groups(attempts)

    def _on_zones_changed(self) -> None:
        logger.debug("Zones have changed. Rediscovering all groups...")
        self.discover_groups()

    async def _release_listener(self) -> None:
        """Stop the topology listener; failures are logged, never raised."""
        listener = self._provider.listener
        if not listener.is_listening:
            return
        try:
            await listener.stop_listener()
            logger.debug("Stopped all listeners to Sonos devices")
        except Exception as e:  # noqa: BLE001
            logger.error(
                "Failed to stop listeners to Sonos devices, connections might be dangling: %s",
                e,
            )

    async def stop(self) -> None:
        """Cancel pending work and release the topology listener."""
        if self._retry is not None:
            self._retry.cancel()
            self._retry = None
        if self._pipeline is not None and not self._pipeline.done():
            self._pipeline.cancel()
            with suppress(asyncio.CancelledError):
                await self._pipeline
        if self._device_task is not None and not self._device_task.done():
            self._device_task.cancel()
        self._device_task = None
        if self._zones_subscription is not None:
            self._zones_subscription.cancel()
            self._zones_subscription = None
        await self._release_listener()
        self._state = DiscoveryState.IDLE
