"""Change detection and dispatch for every group.

Two modes, chosen once per session:

- Event mode forwards every device event as-is.
- Polling mode queries all four dimensions on a fixed interval and
  forwards only the values that differ from the last observation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, Protocol

from sonosync.api.capability import (
    DeviceEvent,
    DeviceHandle,
    GroupHandle,
    Subscription,
    SubscriptionSet,
)
from sonosync.models.group import Group
from sonosync.models.group_state import Dimension, PlayState
from sonosync.models.track import Track

logger = logging.getLogger(__name__)

_EVENT_DIMENSIONS: dict[DeviceEvent, Dimension] = {
    DeviceEvent.MUTE: Dimension.MUTE,
    DeviceEvent.CURRENT_TRACK: Dimension.TRACK,
    DeviceEvent.VOLUME: Dimension.VOLUME,
    DeviceEvent.PLAY_STATE: Dimension.PLAY_STATE,
}


class UpdateSink(Protocol):
    """Receiver of incremental per-group updates."""

    def publish_update(self, group: Group, dimension: Dimension, value: object) -> Any: ...


def _mute_text(is_muted: bool) -> str:
    return "muted" if is_muted else "unmuted"


def describe_update(group: Group, dimension: Dimension, value: object) -> str:
    """Return the log line for an update."""
    prefix = f"[Group {group.name} - {group.host}]"
    if dimension is Dimension.TRACK and isinstance(value, Track):
        return f'{prefix} Track changed to "{value.title}" by "{value.artist}"'
    if dimension is Dimension.VOLUME:
        return f'{prefix} Volume changed to "{value}"'
    if dimension is Dimension.MUTE:
        return f"{prefix} Group is {_mute_text(bool(value))}"
    state = value.value if isinstance(value, PlayState) else value
    return f'{prefix} Play state change to "{state}"'


class ChangeTracker:
    """Last observed values of one group, for polling dedup.

    Each ``*_changed`` method stores the value and returns True when it
    differs from the previous observation. With no previous observation
    the value always counts as changed.
    """

    def __init__(self) -> None:
        self.last_track: Track | None = None
        self.last_volume: int | None = None
        self.last_mute: str | None = None
        self.last_play_state: PlayState | None = None

    def track_changed(self, track: Track) -> bool:
        """Compare by title and artist only."""
        if track.is_same_song(self.last_track):
            return False
        self.last_track = track
        return True

    def volume_changed(self, volume: int) -> bool:
        if self.last_volume is not None and self.last_volume == volume:
            return False
        self.last_volume = volume
        return True

    def mute_changed(self, is_muted: bool) -> bool:
        current = _mute_text(is_muted)
        if self.last_mute is not None and self.last_mute == current:
            return False
        self.last_mute = current
        return True

    def play_state_changed(self, play_state: PlayState) -> bool:
        if self.last_play_state is not None and self.last_play_state == play_state:
            return False
        self.last_play_state = play_state
        return True

    def changed(self, dimension: Dimension, value: Any) -> bool:
        """Dispatch to the comparison rule of dimension."""
        if dimension is Dimension.TRACK:
            return self.track_changed(value)
        if dimension is Dimension.VOLUME:
            return self.volume_changed(value)
        if dimension is Dimension.MUTE:
            return self.mute_changed(value)
        return self.play_state_changed(value)


class ChangeDispatcher:
    """Attaches change detection to every group of a session.

    Attaching again first cancels every listener and polling task of the
    previous session, so a topology change never leaks subscriptions.

    Example:
        dispatcher = ChangeDispatcher(bridge, use_event_mode=False, polling_interval=5.0)
        await dispatcher.attach(device, groups)
    """

    def __init__(
        self,
        sink: UpdateSink,
        *,
        use_event_mode: bool = True,
        polling_interval: float = 5.0,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            sink: Receiver of the updates (the notification bridge).
            use_event_mode: Listen for device events instead of polling.
            polling_interval: Seconds between polls in polling mode.
        """
        self._sink = sink
        self._use_event_mode = use_event_mode
        self._polling_interval = polling_interval
        self._session = SubscriptionSet()
        self._trackers: dict[str, ChangeTracker] = {}

    @property
    def use_event_mode(self) -> bool:
        """Return True when changes are followed through device events."""
        return self._use_event_mode

    @property
    def polling_interval(self) -> float:
        """Return the polling interval in seconds."""
        return self._polling_interval

    @property
    def subscription_count(self) -> int:
        """Return the number of active listeners and polling tasks."""
        return len(self._session)

    def tracker(self, group_id: str) -> ChangeTracker | None:
        """Return the polling tracker of a group, if polling."""
        return self._trackers.get(group_id)

    async def attach(self, device: DeviceHandle, groups: list[Group]) -> None:
        """Start following changes for groups, replacing the previous session."""
        self.detach()
        if self._use_event_mode:
            logger.debug("Listening with events")
            for group in groups:
                await self._attach_events(group, device.coordinator(group))
        else:
            logger.debug("Listening with polling")
            for group in groups:
                self._attach_polling(group, device.coordinator(group))

    def detach(self) -> None:
        """Cancel every listener and polling task of the current session."""
        if len(self._session):
            logger.debug("Releasing %d listener(s) of previous session", len(self._session))
        self._session.cancel_all()
        self._trackers.clear()

    def _forward(self, group: Group, dimension: Dimension, value: object) -> None:
        logger.debug(describe_update(group, dimension, value))
        self._sink.publish_update(group, dimension, value)

    async def _attach_events(self, group: Group, coordinator: GroupHandle) -> None:
        logger.debug('Registering listeners for group "%s" (host "%s")', group.name, group.host)
        for event, dimension in _EVENT_DIMENSIONS.items():
            subscription = await coordinator.on(event, partial(self._forward, group, dimension))
            self._session.add(subscription)

    def _attach_polling(self, group: Group, coordinator: GroupHandle) -> None:
        logger.debug('Registering listeners for group "%s" (host "%s")', group.name, group.host)
        tracker = ChangeTracker()
        self._trackers[group.id] = tracker
        task = asyncio.ensure_future(self._poll_loop(group, coordinator, tracker))
        self._session.add(Subscription(task.cancel, f"polling {group.id}"))

    async def _poll_loop(self, group: Group, coordinator: GroupHandle, tracker: ChangeTracker) -> None:
        """Poll every interval; ticks missed by a slow poll are skipped."""
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            deadline += self._polling_interval
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            await self.poll_once(group, coordinator, tracker)
            overrun = loop.time() - deadline
            if self._polling_interval > 0 and overrun > self._polling_interval:
                deadline += (overrun // self._polling_interval) * self._polling_interval

    async def poll_once(self, group: Group, coordinator: GroupHandle, tracker: ChangeTracker) -> None:
        """Run one polling tick: four independent queries, changed values forwarded."""
        queries: dict[Dimension, Callable[[], Awaitable[Any]]] = {
            Dimension.TRACK: coordinator.current_track,
            Dimension.VOLUME: coordinator.volume,
            Dimension.MUTE: coordinator.muted,
            Dimension.PLAY_STATE: coordinator.play_state,
        }
        await asyncio.gather(
            *(
                self._check(group, tracker, dimension, query)
                for dimension, query in queries.items()
            )
        )

    async def _check(
        self,
        group: Group,
        tracker: ChangeTracker,
        dimension: Dimension,
        query: Callable[[], Awaitable[Any]],
    ) -> None:
        try:
            value = await query()
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            logger.debug("Polling %s of %s failed", dimension.value, group.id, exc_info=True)
            return
        try:
            if tracker.changed(dimension, value):
                self._forward(group, dimension, value)
        except Exception:  # noqa: BLE001
            logger.error(
                "Dropping %s update of %s", dimension.value, group.id, exc_info=True
            )

