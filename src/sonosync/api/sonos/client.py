"""SoCo-backed device capability provider.

SoCo is a blocking library: every query runs in a worker thread via
``asyncio.to_thread``. UPnP events are delivered by SoCo's event listener
thread and handed back to the asyncio loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from functools import partial
from typing import Any, TypeVar

from soco import SoCo
from soco.events import event_listener

from sonosync.api.capability import DeviceEvent, EventCallback, Subscription
from sonosync.api.errors import (
    DiscoveryError,
    EnumerationError,
    QueryError,
    SubscriptionTeardownError,
)
from sonosync.api.sonos.protocol import (
    parse_event_mute,
    parse_event_volume,
    parse_track_info,
    parse_transport_state,
    parse_zone_group,
)
from sonosync.core.discovery import discover_speaker
from sonosync.models.group import Group
from sonosync.models.group_state import PlayState
from sonosync.models.track import Track

logger = logging.getLogger(__name__)

T = TypeVar("T")

# UPnP services carrying each event
_RENDERING_CONTROL = "renderingControl"
_AV_TRANSPORT = "avTransport"

_EVENT_SERVICES: dict[DeviceEvent, str] = {
    DeviceEvent.MUTE: _RENDERING_CONTROL,
    DeviceEvent.VOLUME: _RENDERING_CONTROL,
    DeviceEvent.PLAY_STATE: _AV_TRANSPORT,
    DeviceEvent.CURRENT_TRACK: _AV_TRANSPORT,
}

# AVTransport variables announcing a new track
_TRACK_VARIABLES = ("current_track_uri", "current_track_meta_data")


def _log_teardown_failure(future: asyncio.Future[Any]) -> None:
    """Log the outcome of a fire-and-forget unsubscribe."""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("Failed to unsubscribe, connection might be dangling: %s", error)


class SonosGroupHandle:
    """Queries and events of one group coordinator.

    One UPnP subscription per service is shared by all callbacks of that
    service; it is released when the last callback is cancelled.
    """

    def __init__(self, speaker: SoCo) -> None:
        """Initialize the handle.

        Args:
            speaker: The SoCo instance of the group coordinator.
        """
        self._speaker = speaker
        self._loop: asyncio.AbstractEventLoop | None = None
        self._callbacks: dict[DeviceEvent, list[EventCallback]] = defaultdict(list)
        self._subscriptions: dict[str, Any] = {}
        self._track_fetches: set[asyncio.Task[None]] = set()

    @property
    def host(self) -> str:
        """Return the coordinator's IP address."""
        return str(self._speaker.ip_address)

    async def _query(self, name: str, func: Callable[[], T]) -> T:
        """Run a blocking SoCo call in a thread, wrapping failures."""
        try:
            return await asyncio.to_thread(func)
        except Exception as e:
            raise QueryError(name, self.host, str(e)) from e

    async def current_track(self) -> Track:
        """Return the currently playing track."""
        info = await self._query("currentTrack", self._speaker.get_current_track_info)
        return parse_track_info(info)

    async def play_state(self) -> PlayState:
        """Return the current transport state."""
        info = await self._query("getCurrentState", self._speaker.get_current_transport_info)
        return parse_transport_state(str(info.get("current_transport_state", "")))

    async def volume(self) -> int:
        """Return the coordinator volume 0-100."""
        return int(await self._query("getVolume", lambda: self._speaker.volume))

    async def muted(self) -> bool:
        """Return whether the coordinator is muted."""
        return bool(await self._query("getMuted", lambda: self._speaker.mute))

    async def on(self, event: DeviceEvent, callback: EventCallback) -> Subscription:
        """Register callback for event, subscribing to the UPnP service if needed."""
        self._loop = asyncio.get_running_loop()
        service_name = _EVENT_SERVICES[event]
        if service_name not in self._subscriptions:
            service = getattr(self._speaker, service_name)
            # The thread finishes the subscribe even if we are cancelled meanwhile
            pending = asyncio.ensure_future(asyncio.to_thread(service.subscribe, auto_renew=True))
            try:
                upnp_sub = await asyncio.shield(pending)
            except asyncio.CancelledError:
                pending.add_done_callback(self._release_orphan)
                raise
            except Exception as e:
                raise QueryError(f"subscribe {service_name}", self.host, str(e)) from e
            upnp_sub.callback = partial(self._on_upnp_event, service_name)
            self._subscriptions[service_name] = upnp_sub
            logger.debug("Subscribed to %s events of %s", service_name, self.host)

        self._callbacks[event].append(callback)
        return Subscription(
            partial(self._remove_callback, event, callback),
            f"{event.value}@{self.host}",
        )

    def _remove_callback(self, event: DeviceEvent, callback: EventCallback) -> None:
        """Drop a callback and release its service once nobody listens."""
        callbacks = self._callbacks.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

        if event is DeviceEvent.CURRENT_TRACK and not callbacks:
            for task in list(self._track_fetches):
                task.cancel()

        service_name = _EVENT_SERVICES[event]
        still_used = any(
            self._callbacks.get(other) for other, name in _EVENT_SERVICES.items()
            if name == service_name
        )
        if still_used:
            return
        upnp_sub = self._subscriptions.pop(service_name, None)
        if upnp_sub is not None:
            self._unsubscribe(upnp_sub)

    def _unsubscribe(self, upnp_sub: Any) -> None:
        """Release a UPnP subscription in the default executor."""
        if self._loop is None or self._loop.is_closed():
            return
        future = self._loop.run_in_executor(None, upnp_sub.unsubscribe)
        future.add_done_callback(_log_teardown_failure)

    def _release_orphan(self, pending: asyncio.Future[Any]) -> None:
        """Unsubscribe a subscription whose on() call was cancelled."""
        if pending.cancelled() or pending.exception() is not None:
            return
        logger.debug("Releasing subscription of cancelled listener on %s", self.host)
        self._unsubscribe(pending.result())

    def _on_upnp_event(self, service_name: str, event: Any) -> None:
        """Handle a SoCo event (called from SoCo's event thread)."""
        if self._loop is None or self._loop.is_closed():
            return
        variables = dict(event.variables)
        self._loop.call_soon_threadsafe(self._dispatch, service_name, variables)

    def _dispatch(self, service_name: str, variables: dict[str, Any]) -> None:
        """Translate UPnP event variables into device events."""
        if service_name == _RENDERING_CONTROL:
            volume = parse_event_volume(variables)
            if volume is not None:
                self._fire(DeviceEvent.VOLUME, volume)
            is_muted = parse_event_mute(variables)
            if is_muted is not None:
                self._fire(DeviceEvent.MUTE, is_muted)
            return

        state = variables.get("transport_state")
        if state:
            self._fire(DeviceEvent.PLAY_STATE, parse_transport_state(str(state)))
        if self._callbacks.get(DeviceEvent.CURRENT_TRACK) and any(
            key in variables for key in _TRACK_VARIABLES
        ):
            # Event metadata is a DIDL object; fetch the parsed track instead
            task = asyncio.ensure_future(self._fire_current_track())
            self._track_fetches.add(task)
            task.add_done_callback(self._track_fetches.discard)

    async def _fire_current_track(self) -> None:
        try:
            track = await self.current_track()
        except QueryError as e:
            logger.debug("Could not fetch track after event: %s", e)
            return
        self._fire(DeviceEvent.CURRENT_TRACK, track)

    def _fire(self, event: DeviceEvent, value: object) -> None:
        for callback in list(self._callbacks.get(event, [])):
            callback(value)


class SonosDevice:
    """A discovered speaker used to read the household topology."""

    def __init__(self, speaker: SoCo) -> None:
        """Initialize the device.

        Args:
            speaker: Any speaker of the household.
        """
        self._speaker = speaker
        self._coordinators: dict[str, SoCo] = {}
        self._handles: dict[str, SonosGroupHandle] = {}

    @property
    def speaker(self) -> SoCo:
        """Return the underlying SoCo instance."""
        return self._speaker

    @property
    def host(self) -> str:
        """Return the speaker's IP address."""
        return str(self._speaker.ip_address)

    def _read_groups(self) -> list[Group]:
        """Read and convert the zone group topology (blocking)."""
        groups: list[Group] = []
        coordinators: dict[str, SoCo] = {}
        for zone_group in sorted(self._speaker.all_groups, key=lambda zg: zg.uid):
            group = parse_zone_group(zone_group)
            if group is None:
                continue
            groups.append(group)
            coordinators[group.id] = zone_group.coordinator
        self._coordinators = coordinators
        return groups

    async def get_all_groups(self) -> list[Group]:
        """Return all groups of the household.

        Raises:
            EnumerationError: If the topology could not be read.
        """
        try:
            return await asyncio.to_thread(self._read_groups)
        except Exception as e:
            raise EnumerationError(f"Could not list groups via {self.host}: {e}") from e

    def coordinator(self, group: Group) -> SonosGroupHandle:
        """Return the handle of the group's coordinator."""
        speaker = self._coordinators.get(group.id) or SoCo(group.host)
        host = str(speaker.ip_address)
        handle = self._handles.get(host)
        if handle is None:
            handle = SonosGroupHandle(speaker)
            self._handles[host] = handle
        return handle


class SonosTopologyListener:
    """Shared ZoneGroupTopology subscription signalling zone changes.

    The first event after subscribing only records the current topology;
    callbacks run when a later event reports a different one.
    """

    def __init__(self) -> None:
        """Initialize the listener."""
        self._callbacks: list[Callable[[], None]] = []
        self._subscription: Any = None
        self._last_state: str | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_listening(self) -> bool:
        """Return True while a topology subscription is active."""
        return self._subscription is not None

    def on_zones_changed(self, callback: Callable[[], None]) -> Subscription:
        """Register a callback for topology changes."""
        self._callbacks.append(callback)
        return Subscription(partial(self._remove_callback, callback), "ZonesChanged")

    def _remove_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def subscribe_to(self, device: SonosDevice) -> None:
        """Subscribe to topology events of device.

        Raises:
            DiscoveryError: If the subscription could not be established.
        """
        self._loop = asyncio.get_running_loop()
        service = device.speaker.zoneGroupTopology
        try:
            subscription = await asyncio.to_thread(service.subscribe, auto_renew=True)
        except Exception as e:
            raise DiscoveryError(f"Could not subscribe to {device.host}: {e}") from e
        subscription.callback = self._on_upnp_event
        self._subscription = subscription
        logger.debug("Listening for topology changes via %s", device.host)

    def _on_upnp_event(self, event: Any) -> None:
        """Handle a topology event (called from SoCo's event thread)."""
        state = event.variables.get("zone_group_state")
        if state is None or self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._handle_zone_group_state, str(state))

    def _handle_zone_group_state(self, state: str) -> None:
        previous, self._last_state = self._last_state, state
        if previous is None or previous == state:
            return
        logger.debug("Zone group topology changed")
        for callback in list(self._callbacks):
            callback()

    async def stop_listener(self) -> None:
        """Release the topology subscription and stop SoCo's event listener.

        Raises:
            SubscriptionTeardownError: If releasing failed.
        """
        subscription, self._subscription = self._subscription, None
        self._last_state = None
        try:
            if subscription is not None:
                await asyncio.to_thread(subscription.unsubscribe)
            if event_listener.is_running:
                await asyncio.to_thread(event_listener.stop)
        except Exception as e:
            raise SubscriptionTeardownError(str(e)) from e


class SonosProvider:
    """Discovers a Sonos speaker and owns the topology listener.

    Example:
        provider = SonosProvider()
        device = await provider.discover()
        groups = await device.get_all_groups()
    """

    def __init__(self, host: str = "", discovery_timeout: float = 5.0) -> None:
        """Initialize the provider.

        Args:
            host: Fixed speaker address; empty to discover via mDNS.
            discovery_timeout: Seconds to wait for an mDNS answer.
        """
        self._host = host
        self._discovery_timeout = discovery_timeout
        self._listener = SonosTopologyListener()

    @property
    def listener(self) -> SonosTopologyListener:
        """Return the shared topology listener."""
        return self._listener

    async def discover(self) -> SonosDevice:
        """Find a reachable speaker.

        Raises:
            DiscoveryError: If no speaker was found or it did not answer.
        """
        host = self._host
        if not host:
            found = await asyncio.to_thread(discover_speaker, self._discovery_timeout)
            if found is None:
                raise DiscoveryError("No Sonos speakers found via mDNS")
            logger.debug("mDNS answer from %s (household %s)", found.room, found.household or "unknown")
            host = found.host

        speaker = SoCo(host)
        try:
            # Reading the UID performs a round trip, proving the speaker answers
            uid = await asyncio.to_thread(lambda: speaker.uid)
        except Exception as e:
            raise DiscoveryError(f"Speaker at {host} is not reachable: {e}") from e
        logger.info("Using Sonos speaker %s at %s", uid, host)
        return SonosDevice(speaker)
