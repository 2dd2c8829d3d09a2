"""Core synchronization layer.

This module contains the discovery-and-synchronization engine and the
Qt-facing pieces that carry its results to a presentation layer.

Classes:
    SyncEngine: Discovery, snapshot and change dispatch for one session.
    NotificationBridge: Group-state map with Qt signals.
    SyncWorker: QThread running the engine's asyncio loop.
    ConfigManager: QSettings wrapper for configuration.
"""

from sonosync.core.bridge import NotificationBridge
from sonosync.core.config import ConfigManager
from sonosync.core.engine import SyncEngine
from sonosync.core.worker import SyncWorker

__all__ = ["ConfigManager", "NotificationBridge", "SyncEngine", "SyncWorker"]
