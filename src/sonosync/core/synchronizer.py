"""Initial state snapshot for every discovered group."""

import asyncio
import logging

from sonosync.api.capability import DeviceHandle
from sonosync.models.group import Group
from sonosync.models.group_state import GroupState

logger = logging.getLogger(__name__)


class GroupStateSynchronizer:
    """Builds the group-state map from a fresh topology.

    For each group the four queries (track, play state, volume, mute) run
    concurrently, and all groups are queried concurrently. The pass is
    all-or-nothing: the first failing query fails the whole pass.
    """

    async def fetch_state(self, device: DeviceHandle, group: Group) -> GroupState:
        """Query the full state of one group.

        Raises:
            QueryError: If any of the four queries failed.
        """
        coordinator = device.coordinator(group)
        track, play_state, volume, is_muted = await asyncio.gather(
            coordinator.current_track(),
            coordinator.play_state(),
            coordinator.volume(),
            coordinator.muted(),
        )
        return GroupState(
            group=group,
            track=track,
            play_state=play_state,
            volume=volume,
            is_muted=is_muted,
        )

    async def synchronize(self, device: DeviceHandle, groups: list[Group]) -> dict[str, GroupState]:
        """Return the state of every group keyed by group ID.

        Args:
            device: Device handle that produced the groups.
            groups: The groups to snapshot.

        Raises:
            QueryError: If any query of any group failed.
        """
        states = await asyncio.gather(*(self.fetch_state(device, group) for group in groups))
        logger.debug("Synchronized %d group(s)", len(states))
        return {state.group_id: state for state in states}
