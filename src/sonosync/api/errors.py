"""Error taxonomy for discovery and synchronization failures."""


class SyncError(Exception):
    """Base class for all synchronization errors."""


class DiscoveryError(SyncError):
    """No device could be discovered or subscribed to."""


class EnumerationError(SyncError):
    """Listing the groups of a discovered device failed."""


class QueryError(SyncError):
    """One of the per-group state queries failed."""

    def __init__(self, query: str, host: str, message: str) -> None:
        self.query = query
        self.host = host
        self.message = message
        super().__init__(f"{query} on {host} failed: {message}")


class SubscriptionTeardownError(SyncError):
    """Releasing a device subscription failed (logged, never escalated)."""
