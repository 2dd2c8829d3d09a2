"""Synchronization settings."""

from dataclasses import dataclass

DEFAULT_POLLING_INTERVAL_MS = 5000
DEFAULT_DISCOVERY_TIMEOUT = 5.0


@dataclass(frozen=True, slots=True)
class SyncSettings:
    """Options recognized by the synchronization engine.

    Attributes:
        use_event_mode: Follow changes through device events (True) or by
            polling every group (False).
        polling_interval_ms: Interval between polls in milliseconds.
        debug_logging: Enable verbose per-group logging.
        host: Fixed speaker address; empty to discover via mDNS.
        discovery_timeout: Seconds to wait for an mDNS answer.
    """

    use_event_mode: bool = True
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    debug_logging: bool = False
    host: str = ""
    discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT

    @property
    def polling_interval(self) -> float:
        """Return the polling interval in seconds."""
        return self.polling_interval_ms / 1000
