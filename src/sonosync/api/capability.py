"""Interface of the device capability provider.

The synchronization engine never talks to speakers directly. It consumes
a provider that can discover a device, list its groups, query a group's
coordinator and subscribe to events. Every subscription is returned as a
cancellable :class:`Subscription` so a whole session can be torn down at
once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from sonosync.models.group import Group
from sonosync.models.group_state import PlayState
from sonosync.models.track import Track

logger = logging.getLogger(__name__)

EventCallback = Callable[[Any], None]


class DeviceEvent(str, Enum):
    """Per-group events emitted by a group coordinator."""

    MUTE = "Mute"
    CURRENT_TRACK = "CurrentTrack"
    VOLUME = "Volume"
    PLAY_STATE = "PlayState"


class Subscription:
    """Cancellable handle for a listener, timer or polling task.

    Cancelling is idempotent; the cancel callback runs at most once.
    """

    def __init__(self, cancel: Callable[[], None], description: str = "") -> None:
        self._cancel = cancel
        self._description = description
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """Return True once cancel() has been called."""
        return self._cancelled

    @property
    def description(self) -> str:
        """Return a human-readable label for logging."""
        return self._description

    def cancel(self) -> None:
        """Release the underlying listener."""
        if self._cancelled:
            return
        self._cancelled = True
        self._cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<Subscription {self._description!r} {state}>"


class SubscriptionSet:
    """All subscriptions belonging to one session."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def add(self, subscription: Subscription) -> Subscription:
        """Track a subscription and return it."""
        self._subscriptions.append(subscription)
        return subscription

    def cancel_all(self) -> None:
        """Cancel every tracked subscription and forget them.

        A failing cancel is logged and does not prevent the others from
        being cancelled.
        """
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            try:
                subscription.cancel()
            except Exception:  # noqa: BLE001
                logger.error("Failed to cancel %r", subscription, exc_info=True)


class GroupHandle(Protocol):
    """Handle on a group coordinator."""

    async def current_track(self) -> Track: ...

    async def play_state(self) -> PlayState: ...

    async def volume(self) -> int: ...

    async def muted(self) -> bool: ...

    async def on(self, event: DeviceEvent, callback: EventCallback) -> Subscription:
        """Call callback with the new value each time event fires."""
        ...


class DeviceHandle(Protocol):
    """A discovered device, entry point to the household topology."""

    @property
    def host(self) -> str: ...

    async def get_all_groups(self) -> list[Group]:
        """Return all groups (raises EnumerationError)."""
        ...

    def coordinator(self, group: Group) -> GroupHandle:
        """Return a handle on the coordinator of group."""
        ...


class TopologyListener(Protocol):
    """Shared listener for household topology changes."""

    @property
    def is_listening(self) -> bool: ...

    def on_zones_changed(self, callback: Callable[[], None]) -> Subscription: ...

    async def subscribe_to(self, device: DeviceHandle) -> None: ...

    async def stop_listener(self) -> None:
        """Stop listening (raises SubscriptionTeardownError)."""
        ...


class DeviceProvider(Protocol):
    """Discovers devices and owns the topology listener."""

    @property
    def listener(self) -> TopologyListener: ...

    async def discover(self) -> DeviceHandle:
        """Return a device handle (raises DiscoveryError)."""
        ...
