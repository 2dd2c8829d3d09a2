"""Tests for GroupStateSynchronizer."""

import pytest
from fakes import FakeDevice, FakeGroupHandle

from sonosync.api.errors import QueryError
from sonosync.core.synchronizer import GroupStateSynchronizer
from sonosync.models.group import Group
from sonosync.models.group_state import PlayState
from sonosync.models.track import Track


class TestGroupStateSynchronizer:
    """Test the initial snapshot."""

    @pytest.mark.asyncio
    async def test_fetch_state(self, device: FakeDevice, groups: list[Group]) -> None:
        """Test the four queries are combined into one GroupState."""
        device.handles[groups[0].id] = FakeGroupHandle(
            track=Track(title="Song", artist="Band"),
            play_state=PlayState.PLAYING,
            volume=42,
            muted=True,
        )

        state = await GroupStateSynchronizer().fetch_state(device, groups[0])

        assert state.group == groups[0]
        assert state.track == Track(title="Song", artist="Band")
        assert state.play_state is PlayState.PLAYING
        assert state.volume == 42
        assert state.is_muted is True

    @pytest.mark.asyncio
    async def test_synchronize_keys_by_group_id(
        self, device: FakeDevice, groups: list[Group]
    ) -> None:
        """Test every group appears keyed by its ID."""
        states = await GroupStateSynchronizer().synchronize(device, groups)
        assert set(states) == {"RINCON_A:1", "RINCON_B:7"}
        assert states["RINCON_B:7"].group.full_name == "Living Room + Office"

    @pytest.mark.asyncio
    async def test_synchronize_no_groups(self, device: FakeDevice) -> None:
        """Test an empty topology gives an empty map."""
        assert await GroupStateSynchronizer().synchronize(device, []) == {}

    @pytest.mark.asyncio
    async def test_any_failure_fails_the_pass(
        self, device: FakeDevice, groups: list[Group]
    ) -> None:
        """Test one failing query fails the whole pass."""
        device.handles[groups[1].id].volume.side_effect = QueryError(
            "getVolume", "192.168.1.11", "timed out"
        )
        with pytest.raises(QueryError):
            await GroupStateSynchronizer().synchronize(device, groups)
