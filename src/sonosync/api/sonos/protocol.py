"""Parsing utilities for SoCo payloads.

SoCo returns plain dicts and strings straight from the UPnP responses:
- Track info: ``{"title", "artist", "album", "album_art", "duration", "uri"}``
  with duration formatted as ``H:MM:SS``
- Transport info: ``current_transport_state`` is one of ``PLAYING``,
  ``PAUSED_PLAYBACK``, ``STOPPED``, ``TRANSITIONING``
- Event variables: RenderingControl reports ``volume``/``mute`` per
  channel, e.g. ``{"volume": {"Master": "6", "LF": "100"}}``
"""

import logging
from typing import Any

from sonosync.models.group import Group
from sonosync.models.group_state import PlayState
from sonosync.models.track import Track

logger = logging.getLogger(__name__)

_TRANSPORT_STATE_MAP: dict[str, PlayState] = {
    "PLAYING": PlayState.PLAYING,
    "PAUSED_PLAYBACK": PlayState.PAUSED,
    "STOPPED": PlayState.STOPPED,
    "TRANSITIONING": PlayState.TRANSITIONING,
}

_MASTER_CHANNEL = "Master"


def parse_duration(value: str) -> int:
    """Parse an ``H:MM:SS`` duration into seconds.

    Streams report "" or "NOT_IMPLEMENTED"; those parse as 0.
    """
    if not value:
        return 0
    seconds = 0
    try:
        for part in value.split(":"):
            seconds = seconds * 60 + int(part)
    except ValueError:
        return 0
    return seconds


def parse_track_info(info: dict[str, Any]) -> Track:
    """Build a Track from ``SoCo.get_current_track_info()``."""
    return Track(
        title=str(info.get("title") or ""),
        artist=str(info.get("artist") or ""),
        album=str(info.get("album") or ""),
        album_art_uri=str(info.get("album_art") or ""),
        duration=parse_duration(str(info.get("duration") or "")),
        uri=str(info.get("uri") or ""),
    )


def parse_transport_state(state: str) -> PlayState:
    """Map a UPnP transport state to a PlayState."""
    play_state = _TRANSPORT_STATE_MAP.get(state.upper())
    if play_state is None:
        logger.debug("Unknown transport state %r, treating as stopped", state)
        return PlayState.STOPPED
    return play_state


def _master_channel(value: object) -> str | None:
    """Return the Master channel value of a per-channel event variable."""
    if isinstance(value, dict):
        master = value.get(_MASTER_CHANNEL)
        return None if master is None else str(master)
    if value is None:
        return None
    return str(value)


def parse_event_volume(variables: dict[str, Any]) -> int | None:
    """Return the Master volume from RenderingControl event variables."""
    raw = _master_channel(variables.get("volume"))
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.debug("Ignoring malformed volume %r", raw)
        return None


def parse_event_mute(variables: dict[str, Any]) -> bool | None:
    """Return the Master mute state from RenderingControl event variables."""
    raw = _master_channel(variables.get("mute"))
    if raw is None:
        return None
    return raw == "1"


def parse_zone_group(zone_group: Any) -> Group | None:
    """Build a Group from a ``soco.groups.ZoneGroup``.

    The coordinator is listed first in member_names, followed by the other
    members sorted by room name.

    Returns:
        The Group, or None if the zone group has no coordinator.
    """
    coordinator = zone_group.coordinator
    if coordinator is None:
        return None
    # Stereo pairs and subs show up as extra members with the same room name
    others = sorted(
        {member.player_name for member in zone_group.members} - {coordinator.player_name}
    )
    return Group(
        id=zone_group.uid,
        name=coordinator.player_name,
        member_names=[coordinator.player_name, *others],
        host=coordinator.ip_address,
    )
