"""Notification bridge between the sync engine and the presentation layer.

The bridge owns the canonical group-state map. Snapshots replace it
wholesale; incremental updates are merged into the matching entry and
forwarded as Qt signals. UI code connects to the signals the same way it
would connect to any other QObject.

Threading: publish_snapshot(), publish_update() and clear() are called from
the engine's worker thread only, so writes are serialized. Readers in any
thread (states, get_state(), playing_states()) go through a lock and get
copies. Signals emitted from the worker thread reach receivers that live in
other threads through Qt's queued connections, so a slot may observe a map
that is already newer than the signal arguments.
"""

import logging
import threading

from PySide6.QtCore import QObject, Signal

from sonosync.models.group import Group
from sonosync.models.group_state import Dimension, GroupState

logger = logging.getLogger(__name__)


class NotificationBridge(QObject):
    """Group-state map with Qt signals for every change.

    Example:
        bridge = NotificationBridge()
        bridge.groups_snapshot.connect(lambda states: print(len(states)))
        bridge.volume_changed.connect(lambda group, volume: print(group.name, volume))
    """

    # Full map: dict[str, GroupState]
    groups_snapshot = Signal(object)

    # Incremental updates: (Group, value)
    # Note: Using object for complex types (PySide6 limitation)
    track_changed = Signal(object, object)
    volume_changed = Signal(object, int)
    mute_changed = Signal(object, bool)
    play_state_changed = Signal(object, object)

    # Merged GroupState after any incremental update
    group_state_changed = Signal(object)

    def __init__(self) -> None:
        """Initialize the bridge with an empty map."""
        super().__init__()
        self._states: dict[str, GroupState] = {}
        self._lock = threading.Lock()

    @property
    def states(self) -> dict[str, GroupState]:
        """Return a copy of the group-state map."""
        with self._lock:
            return dict(self._states)

    def get_state(self, group_id: str) -> GroupState | None:
        """Get the state of a group by ID.

        Args:
            group_id: The group ID to look up.

        Returns:
            The GroupState if known, else None.
        """
        with self._lock:
            return self._states.get(group_id)

    def playing_states(self) -> list[GroupState]:
        """Return the states of groups currently playing a known track."""
        return [state for state in self.states.values() if state.is_playing]

    @property
    def has_active_playback(self) -> bool:
        """Return True if any group is playing a known track."""
        return any(state.is_playing for state in self.states.values())

    def publish_snapshot(self, states: dict[str, GroupState]) -> None:
        """Replace the whole map and emit groups_snapshot.

        Args:
            states: The new group-state map keyed by group ID.
        """
        snapshot = dict(states)
        with self._lock:
            self._states = snapshot
        logger.debug("Publishing snapshot of %d group(s)", len(snapshot))
        self.groups_snapshot.emit(dict(snapshot))

    def publish_update(self, group: Group, dimension: Dimension, value: object) -> GroupState | None:
        """Merge one changed dimension into its group's state and emit it.

        Updates for groups missing from the map are dropped; the map only
        grows through publish_snapshot().

        Args:
            group: Current snapshot of the group that changed.
            dimension: The dimension that changed.
            value: Its new value.

        Returns:
            The merged GroupState, or None if the update was dropped.
        """
        with self._lock:
            current = self._states.get(group.id)
            if current is not None:
                updated = current.with_group(group).apply(dimension, value)
                self._states[group.id] = updated
        if current is None:
            logger.debug("Dropping %s update for unknown group '%s'", dimension.value, group.id)
            return None

        if dimension is Dimension.TRACK:
            self.track_changed.emit(group, updated.track)
        elif dimension is Dimension.VOLUME:
            self.volume_changed.emit(group, updated.volume)
        elif dimension is Dimension.MUTE:
            self.mute_changed.emit(group, updated.is_muted)
        else:
            self.play_state_changed.emit(group, updated.play_state)
        self.group_state_changed.emit(updated)
        return updated

    def clear(self) -> None:
        """Forget all group state (engine stopped)."""
        with self._lock:
            had_groups = bool(self._states)
            self._states = {}
        if had_groups:
            self.groups_snapshot.emit({})
