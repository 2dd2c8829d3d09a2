"""Synchronization engine tying discovery, snapshot and change dispatch together."""

import logging

from sonosync.api.capability import DeviceHandle, DeviceProvider
from sonosync.core.bridge import NotificationBridge
from sonosync.core.discovery_manager import DiscoveryManager, DiscoveryState
from sonosync.core.dispatcher import ChangeDispatcher
from sonosync.core.scheduler import Scheduler
from sonosync.core.synchronizer import GroupStateSynchronizer
from sonosync.models.settings import SyncSettings

logger = logging.getLogger(__name__)


class SyncEngine:
    """One synchronization session over a device provider.

    Pipeline: discover a device, enumerate its groups, snapshot every
    group, publish the snapshot, then attach change detection. A topology
    change runs the whole pipeline again; any failure is retried with
    backoff by the DiscoveryManager.

    Must be started and stopped on the asyncio loop it runs on.

    Example:
        engine = SyncEngine(SonosProvider(), bridge, SyncSettings())
        engine.start()
        ...
        await engine.stop()
    """

    def __init__(
        self,
        provider: DeviceProvider,
        bridge: NotificationBridge,
        settings: SyncSettings | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            provider: Device capability provider.
            bridge: Notification bridge receiving snapshots and updates.
            settings: Synchronization settings (defaults if omitted).
            scheduler: Retry scheduler (defaults to the asyncio loop).
        """
        self._settings = settings or SyncSettings()
        self._bridge = bridge
        self._synchronizer = GroupStateSynchronizer()
        self._dispatcher = ChangeDispatcher(
            bridge,
            use_event_mode=self._settings.use_event_mode,
            polling_interval=self._settings.polling_interval,
        )
        self._discovery = DiscoveryManager(provider, self.handle_device, scheduler)
        self._running = False

    @property
    def settings(self) -> SyncSettings:
        """Return the engine settings."""
        return self._settings

    @property
    def is_running(self) -> bool:
        """Return True between start() and stop()."""
        return self._running

    @property
    def discovery(self) -> DiscoveryManager:
        """Return the discovery manager."""
        return self._discovery

    @property
    def dispatcher(self) -> ChangeDispatcher:
        """Return the change dispatcher."""
        return self._dispatcher

    @property
    def state(self) -> DiscoveryState:
        """Return the discovery lifecycle state."""
        return self._discovery.state

    def start(self) -> None:
        """Start discovery (no-op if already running)."""
        if self._running:
            return
        self._running = True
        mode = "events" if self._settings.use_event_mode else "polling"
        logger.info("Starting Sonos synchronization (%s)", mode)
        self._discovery.discover_groups()

    async def stop(self) -> None:
        """Stop discovery, release every listener and clear the map."""
        if not self._running:
            return
        self._running = False
        await self._discovery.stop()
        self._dispatcher.detach()
        self._bridge.clear()
        logger.info("Stopped Sonos synchronization")

    async def handle_device(self, device: DeviceHandle) -> None:
        """Enumerate, snapshot, publish and attach for a discovered device.

        Raises:
            EnumerationError: If the groups could not be listed.
            QueryError: If the initial snapshot failed.
        """
        # Listeners of the previous topology must not outlive it
        self._dispatcher.detach()
        groups = await device.get_all_groups()
        logger.info("Found %d group(s) via %s", len(groups), device.host)
        states = await self._synchronizer.synchronize(device, groups)
        self._bridge.publish_snapshot(states)
        await self._dispatcher.attach(device, groups)
