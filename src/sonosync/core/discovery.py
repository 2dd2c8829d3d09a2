"""mDNS/Zeroconf lookup of a Sonos speaker to seed household discovery."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from zeroconf import IPVersion, ServiceBrowser, ServiceInfo, ServiceListener, Zeroconf

logger = logging.getLogger(__name__)

# Sonos mDNS service type (advertised by every speaker)
SONOS_SERVICE_TYPE = "_sonos._tcp.local."

# Players announce themselves as "RINCON_<uid>@<room>"; other Sonos gear does not
PLAYER_UID_PREFIX = "RINCON_"


@dataclass(frozen=True, slots=True)
class DiscoveredSpeaker:
    """A Sonos player announced over mDNS."""

    uid: str
    room: str
    host: str
    household: str = ""


def parse_instance_name(name: str) -> tuple[str, str] | None:
    """Split a service instance name into (uid, room).

    Args:
        name: Full instance name, e.g. "RINCON_000E58@Kitchen._sonos._tcp.local.".

    Returns:
        The player UID and room name, or None if this is not a player.
    """
    instance = name.removesuffix(f".{SONOS_SERVICE_TYPE}")
    uid, _, room = instance.partition("@")
    if not uid.startswith(PLAYER_UID_PREFIX):
        return None
    return uid, room


def speaker_from_info(name: str, info: ServiceInfo) -> DiscoveredSpeaker | None:
    """Build a DiscoveredSpeaker from resolved service info.

    Returns None for non-player announcements and services without an IPv4
    address (SoCo talks to port 1400 over IPv4).
    """
    parsed = parse_instance_name(name)
    if parsed is None:
        logger.debug("Ignoring non-player service: %s", name)
        return None
    addresses = info.parsed_addresses(IPVersion.V4Only)
    if not addresses:
        logger.debug("No IPv4 address for service: %s", name)
        return None
    uid, room = parsed
    household = (info.properties or {}).get(b"hhid") or b""
    return DiscoveredSpeaker(
        uid=uid,
        room=room,
        host=addresses[0],
        household=household.decode("utf-8", errors="replace"),
    )


class SonosServiceListener(ServiceListener):
    """Reports each Sonos player announcement to a callback."""

    def __init__(self, on_found: Callable[[DiscoveredSpeaker], None]) -> None:
        self._on_found = on_found

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Resolve a new announcement and report it if it is a player."""
        info = zc.get_service_info(type_, name)
        if info is None:
            logger.debug("Could not get info for service: %s", name)
            return
        speaker = speaker_from_info(name, info)
        if speaker is None:
            return
        logger.info("Discovered Sonos speaker: %s at %s", speaker.room or speaker.uid, speaker.host)
        self._on_found(speaker)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Ignore removals; discovery stops at the first answer."""

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Ignore TXT updates; discovery stops at the first answer."""


def discover_speaker(timeout: float = 5.0) -> DiscoveredSpeaker | None:
    """Browse for Sonos players and return the first one found.

    Blocks the calling thread for at most timeout seconds.

    Args:
        timeout: Maximum time to wait in seconds.

    Returns:
        First discovered player, or None if nothing answered.
    """
    result: DiscoveredSpeaker | None = None
    found_event = threading.Event()

    def on_found(speaker: DiscoveredSpeaker) -> None:
        nonlocal result
        if result is None:
            result = speaker
            found_event.set()

    zeroconf = Zeroconf()
    browser = ServiceBrowser(zeroconf, SONOS_SERVICE_TYPE, SonosServiceListener(on_found))
    logger.debug("Started mDNS discovery for Sonos speakers")
    try:
        found_event.wait(timeout=timeout)
    finally:
        browser.cancel()
        zeroconf.close()
        logger.debug("Stopped mDNS discovery")
    return result
