"""QThread worker running the sync engine's asyncio loop.

Qt objects live in the main thread, but the engine is asyncio-based.
This worker runs the event loop in a background thread; the bridge's
signals reach main-thread receivers through Qt's queued connections.
"""

import asyncio
import logging

from PySide6.QtCore import QThread, Signal

from sonosync.api.capability import DeviceProvider
from sonosync.core.bridge import NotificationBridge
from sonosync.core.engine import SyncEngine
from sonosync.models.settings import SyncSettings

logger = logging.getLogger(__name__)


class SyncWorker(QThread):
    """Background thread worker for the synchronization engine.

    Example:
        bridge = NotificationBridge()
        worker = SyncWorker(SonosProvider(), bridge, SyncSettings())
        bridge.groups_snapshot.connect(lambda states: print(states))
        worker.start()
        ...
        worker.stop()
        worker.wait()
    """

    # Emitted once the engine has been started inside the thread
    engine_started = Signal()

    # Emitted after the engine has released everything
    engine_stopped = Signal()

    # Error signal
    error_occurred = Signal(object)  # Exception

    def __init__(
        self,
        provider: DeviceProvider,
        bridge: NotificationBridge,
        settings: SyncSettings | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            provider: Device capability provider.
            bridge: Notification bridge for snapshots and updates.
            settings: Synchronization settings.
        """
        super().__init__()
        self._provider = provider
        self._bridge = bridge
        self._settings = settings or SyncSettings()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._should_run = True

    @property
    def settings(self) -> SyncSettings:
        """Return the worker's settings."""
        return self._settings

    @property
    def is_running(self) -> bool:
        """Return True while the event loop is running."""
        return self._loop is not None and self._loop.is_running()

    def stop(self) -> None:
        """Signal the worker to stop (called from main thread)."""
        self._should_run = False
        if self._loop and self._loop.is_running() and self._stop_event:
            self._loop.call_soon_threadsafe(self._stop_event.set)

    def run(self) -> None:
        """Run the worker thread (entry point)."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        try:
            self._loop.run_until_complete(self._run_engine())
        except Exception as e:
            logger.exception("Sync worker crashed")
            self.error_occurred.emit(e)
        finally:
            self._loop.close()
            self._loop = None

    async def _run_engine(self) -> None:
        """Run the engine until stop() is called."""
        self._stop_event = asyncio.Event()
        if not self._should_run:
            return

        engine = SyncEngine(self._provider, self._bridge, self._settings)
        engine.start()
        self.engine_started.emit()
        try:
            await self._stop_event.wait()
        finally:
            await engine.stop()
            self.engine_stopped.emit()
