"""Configuration manager using QSettings for persistent storage."""

import logging

from PySide6.QtCore import QSettings

from sonosync.models.settings import (
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_POLLING_INTERVAL_MS,
    SyncSettings,
)

logger = logging.getLogger(__name__)

# Settings keys
_KEY_USE_EVENT_MODE = "sync/use_event_mode"
_KEY_POLLING_INTERVAL_MS = "sync/polling_interval_ms"
_KEY_DEBUG_LOGGING = "logging/debug"
_KEY_HOST = "device/host"
_KEY_DISCOVERY_TIMEOUT = "discovery/timeout"

# Polling faster than this would flood the speakers
MIN_POLLING_INTERVAL_MS = 100


class ConfigManager:
    """Wrapper around QSettings for type-safe config access.

    QSettings stores config in platform-specific locations:
    - Windows: HKEY_CURRENT_USER\\Software\\Sonosync\\Sonosync
    - macOS: ~/Library/Preferences/com.Sonosync.Sonosync.plist
    - Linux: ~/.config/Sonosync/Sonosync.conf

    Example:
        config = ConfigManager()
        settings = config.load_settings()
        config.set_use_event_mode(False)
    """

    def __init__(self, organization: str = "Sonosync", application: str = "Sonosync") -> None:
        """Initialize the config manager.

        Args:
            organization: Organization name for QSettings.
            application: Application name for QSettings.
        """
        self._settings = QSettings(organization, application)

    @property
    def settings(self) -> QSettings:
        """Return the underlying QSettings instance."""
        return self._settings

    def get_use_event_mode(self) -> bool:
        """Return whether changes are followed through device events.

        Returns:
            True for event mode (default), False for polling.
        """
        return bool(self._settings.value(_KEY_USE_EVENT_MODE, True, bool))

    def set_use_event_mode(self, enabled: bool) -> None:
        """Choose between event mode and polling.

        Args:
            enabled: True for event mode, False for polling.
        """
        self._settings.setValue(_KEY_USE_EVENT_MODE, enabled)

    def get_polling_interval_ms(self) -> int:
        """Return the polling interval in milliseconds.

        Returns:
            Interval in ms (default 5000). Invalid stored values fall back
            to the default.
        """
        value = self._settings.value(_KEY_POLLING_INTERVAL_MS, DEFAULT_POLLING_INTERVAL_MS)
        try:
            interval = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid polling interval %r", value)
            return DEFAULT_POLLING_INTERVAL_MS
        if interval < MIN_POLLING_INTERVAL_MS:
            logger.warning(
                "Polling interval %d ms is below %d ms, using %d ms",
                interval,
                MIN_POLLING_INTERVAL_MS,
                DEFAULT_POLLING_INTERVAL_MS,
            )
            return DEFAULT_POLLING_INTERVAL_MS
        return interval

    def set_polling_interval_ms(self, interval_ms: int) -> None:
        """Set the polling interval.

        Args:
            interval_ms: Interval in milliseconds.
        """
        self._settings.setValue(_KEY_POLLING_INTERVAL_MS, interval_ms)

    def get_debug_logging(self) -> bool:
        """Return whether verbose logging is enabled."""
        return bool(self._settings.value(_KEY_DEBUG_LOGGING, False, bool))

    def set_debug_logging(self, enabled: bool) -> None:
        """Enable or disable verbose logging."""
        self._settings.setValue(_KEY_DEBUG_LOGGING, enabled)

    def get_host(self) -> str:
        """Return the fixed speaker host.

        Returns:
            Host string, or empty string to discover via mDNS.
        """
        value = self._settings.value(_KEY_HOST, "", str)
        return str(value) if value else ""

    def set_host(self, host: str) -> None:
        """Set a fixed speaker host (empty string for mDNS discovery)."""
        self._settings.setValue(_KEY_HOST, host)

    def get_discovery_timeout(self) -> float:
        """Return the mDNS discovery timeout in seconds."""
        value = self._settings.value(_KEY_DISCOVERY_TIMEOUT, DEFAULT_DISCOVERY_TIMEOUT)
        try:
            timeout = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid discovery timeout %r", value)
            return DEFAULT_DISCOVERY_TIMEOUT
        return timeout if timeout > 0 else DEFAULT_DISCOVERY_TIMEOUT

    def set_discovery_timeout(self, timeout: float) -> None:
        """Set the mDNS discovery timeout in seconds."""
        self._settings.setValue(_KEY_DISCOVERY_TIMEOUT, timeout)

    def load_settings(self) -> SyncSettings:
        """Build SyncSettings from the stored values."""
        return SyncSettings(
            use_event_mode=self.get_use_event_mode(),
            polling_interval_ms=self.get_polling_interval_ms(),
            debug_logging=self.get_debug_logging(),
            host=self.get_host(),
            discovery_timeout=self.get_discovery_timeout(),
        )

    def save_settings(self, settings: SyncSettings) -> None:
        """Persist all values of settings.

        Args:
            settings: The settings to store.
        """
        self.set_use_event_mode(settings.use_event_mode)
        self.set_polling_interval_ms(settings.polling_interval_ms)
        self.set_debug_logging(settings.debug_logging)
        self.set_host(settings.host)
        self.set_discovery_timeout(settings.discovery_timeout)

    def clear(self) -> None:
        """Clear all settings (useful for testing)."""
        self._settings.clear()

    def sync(self) -> None:
        """Force settings to be written to disk."""
        self._settings.sync()
