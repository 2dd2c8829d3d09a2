"""Tests for SyncSettings model."""

from sonosync.models.settings import (
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_POLLING_INTERVAL_MS,
    SyncSettings,
)


class TestSyncSettings:
    """Test SyncSettings model."""

    def test_defaults(self) -> None:
        """Test default settings use events and mDNS."""
        settings = SyncSettings()
        assert settings.use_event_mode is True
        assert settings.polling_interval_ms == DEFAULT_POLLING_INTERVAL_MS == 5000
        assert settings.debug_logging is False
        assert settings.host == ""
        assert settings.discovery_timeout == DEFAULT_DISCOVERY_TIMEOUT

    def test_polling_interval_in_seconds(self) -> None:
        """Test conversion of the polling interval to seconds."""
        assert SyncSettings(polling_interval_ms=1500).polling_interval == 1.5
