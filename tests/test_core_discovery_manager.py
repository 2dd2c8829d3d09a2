"""Tests for DiscoveryManager lifecycle and backoff."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest
from fakes import FakeDevice, FakeProvider, FakeScheduler

from sonosync.api.errors import DiscoveryError, EnumerationError, SubscriptionTeardownError
from sonosync.core.discovery_manager import DiscoveryManager, DiscoveryState


@pytest.fixture
def on_device() -> AsyncMock:
    """Return the pipeline callback."""
    return AsyncMock()


@pytest.fixture
def manager(provider: FakeProvider, on_device: AsyncMock, scheduler: FakeScheduler) -> DiscoveryManager:
    """Return a DiscoveryManager with a recording scheduler."""
    return DiscoveryManager(provider, on_device, scheduler)


async def run_pipeline(manager: DiscoveryManager) -> None:
    """Wait for the current pipeline run to finish."""
    assert manager.pipeline is not None
    await manager.pipeline


class TestDiscoveryManagerSuccess:
    """Test the happy path."""

    def test_initial_state(self, manager: DiscoveryManager) -> None:
        """Test manager starts idle."""
        assert manager.state is DiscoveryState.IDLE
        assert manager.attempts == 0
        assert manager.pipeline is None

    @pytest.mark.asyncio
    async def test_discover_groups_runs_pipeline(
        self,
        manager: DiscoveryManager,
        provider: FakeProvider,
        device: FakeDevice,
        on_device: AsyncMock,
    ) -> None:
        """Test discovery subscribes once and hands the device on."""
        manager.discover_groups()
        await run_pipeline(manager)

        on_device.assert_awaited_once_with(device)
        provider.listener.subscribe_to.assert_awaited_once_with(device)
        assert len(provider.listener.callbacks) == 1
        assert manager.state is DiscoveryState.SUBSCRIBED
        assert manager.attempts == 0

    @pytest.mark.asyncio
    async def test_start_discovery_is_shared(
        self, manager: DiscoveryManager, provider: FakeProvider, device: FakeDevice
    ) -> None:
        """Test concurrent callers share one in-flight discovery."""
        first, second = await asyncio.gather(manager.start_discovery(), manager.start_discovery())
        third = await manager.start_discovery()

        assert first is second is third is device
        provider.discover.assert_awaited_once()
        provider.listener.subscribe_to.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_zones_changed_rediscovers_groups(
        self, manager: DiscoveryManager, provider: FakeProvider, on_device: AsyncMock
    ) -> None:
        """Test a topology change runs the pipeline again on the same device."""
        manager.discover_groups()
        await run_pipeline(manager)

        provider.listener.fire_zones_changed()
        await run_pipeline(manager)

        assert on_device.await_count == 2
        provider.discover.assert_awaited_once()
        assert len(provider.listener.callbacks) == 1

    @pytest.mark.asyncio
    async def test_new_run_cancels_stale_run(
        self, manager: DiscoveryManager, on_device: AsyncMock
    ) -> None:
        """Test starting a run cancels one still in progress."""
        release = asyncio.Event()

        async def slow(device: FakeDevice) -> None:  # noqa: ARG001
            await release.wait()

        on_device.side_effect = slow
        first = manager.discover_groups()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        second = manager.discover_groups()
        release.set()
        await second

        assert first.cancelled()
        assert not second.cancelled()


class TestDiscoveryManagerBackoff:
    """Test failure handling and retries."""

    @pytest.mark.asyncio
    async def test_fail_twice_then_succeed(
        self,
        manager: DiscoveryManager,
        provider: FakeProvider,
        device: FakeDevice,
        scheduler: FakeScheduler,
        on_device: AsyncMock,
    ) -> None:
        """Test delays grow 1, 4 and success resets the counter."""
        provider.discover.side_effect = [
            DiscoveryError("no speakers"),
            DiscoveryError("no speakers"),
            device,
        ]

        manager.discover_groups()
        await run_pipeline(manager)
        assert scheduler.delays == [1]
        assert manager.attempts == 1
        assert manager.state is DiscoveryState.BACKOFF_WAIT
        on_device.assert_not_awaited()

        scheduler.fire_last()
        await run_pipeline(manager)
        assert scheduler.delays == [1, 4]
        assert manager.attempts == 2

        scheduler.fire_last()
        await run_pipeline(manager)
        on_device.assert_awaited_once_with(device)
        assert manager.attempts == 0
        assert manager.state is DiscoveryState.SUBSCRIBED
        assert scheduler.delays == [1, 4]

    @pytest.mark.asyncio
    async def test_failure_is_logged(
        self,
        manager: DiscoveryManager,
        provider: FakeProvider,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test the failure message names the retry delay."""
        provider.discover.side_effect = DiscoveryError("no speakers")
        with caplog.at_level(logging.ERROR):
            manager.discover_groups()
            await run_pipeline(manager)
        assert "Failed to get groups: no speakers. Retrying in 1 seconds..." in caplog.text

    @pytest.mark.asyncio
    async def test_enumeration_failure_releases_listener(
        self,
        manager: DiscoveryManager,
        provider: FakeProvider,
        scheduler: FakeScheduler,
        on_device: AsyncMock,
    ) -> None:
        """Test a failure after subscribing stops the listener and rediscovers."""
        on_device.side_effect = [EnumerationError("topology unavailable"), None]

        manager.discover_groups()
        await run_pipeline(manager)

        provider.listener.stop_listener.assert_awaited_once()
        assert provider.listener.callbacks == []
        assert scheduler.delays == [1]

        scheduler.fire_last()
        await run_pipeline(manager)
        assert provider.discover.await_count == 2
        assert on_device.await_count == 2

    @pytest.mark.asyncio
    async def test_teardown_failure_is_logged_not_raised(
        self,
        manager: DiscoveryManager,
        provider: FakeProvider,
        scheduler: FakeScheduler,
        on_device: AsyncMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test a failing listener release still schedules the retry."""
        on_device.side_effect = EnumerationError("topology unavailable")
        provider.listener.stop_listener.side_effect = SubscriptionTeardownError("socket closed")

        with caplog.at_level(logging.ERROR):
            manager.discover_groups()
            await run_pipeline(manager)

        assert "connections might be dangling: socket closed" in caplog.text
        assert scheduler.delays == [1]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_retried(
        self,
        manager: DiscoveryManager,
        on_device: AsyncMock,
        scheduler: FakeScheduler,
    ) -> None:
        """Test errors outside the taxonomy are retried too."""
        on_device.side_effect = RuntimeError("boom")
        manager.discover_groups()
        await run_pipeline(manager)
        assert scheduler.delays == [1]

    @pytest.mark.asyncio
    async def test_discover_groups_cancels_pending_retry(
        self, manager: DiscoveryManager, provider: FakeProvider, scheduler: FakeScheduler
    ) -> None:
        """Test a manual run supersedes a scheduled retry."""
        provider.discover.side_effect = [DiscoveryError("no speakers"), provider.device]
        manager.discover_groups()
        await run_pipeline(manager)
        _, _, retry = scheduler.calls[-1]

        manager.discover_groups()
        await run_pipeline(manager)

        assert retry.cancelled
        assert manager.state is DiscoveryState.SUBSCRIBED


class TestDiscoveryManagerStop:
    """Test shutdown."""

    @pytest.mark.asyncio
    async def test_stop_releases_listener(
        self, manager: DiscoveryManager, provider: FakeProvider
    ) -> None:
        """Test stop() releases the topology listener and returns to idle."""
        manager.discover_groups()
        await run_pipeline(manager)

        await manager.stop()

        provider.listener.stop_listener.assert_awaited_once()
        assert provider.listener.callbacks == []
        assert manager.state is DiscoveryState.IDLE

    @pytest.mark.asyncio
    async def test_stop_cancels_retry(
        self, manager: DiscoveryManager, provider: FakeProvider, scheduler: FakeScheduler
    ) -> None:
        """Test stop() cancels a scheduled retry."""
        provider.discover.side_effect = DiscoveryError("no speakers")
        manager.discover_groups()
        await run_pipeline(manager)

        await manager.stop()

        _, _, retry = scheduler.calls[-1]
        assert retry.cancelled

    @pytest.mark.asyncio
    async def test_stop_when_idle(self, manager: DiscoveryManager, provider: FakeProvider) -> None:
        """Test stop() before starting does nothing."""
        await manager.stop()
        provider.listener.stop_listener.assert_not_awaited()
        assert manager.state is DiscoveryState.IDLE
