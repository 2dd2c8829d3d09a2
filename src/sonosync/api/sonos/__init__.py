"""Sonos implementation of the device capability provider (via SoCo)."""

from sonosync.api.sonos.client import (
    SonosDevice,
    SonosGroupHandle,
    SonosProvider,
    SonosTopologyListener,
)

__all__ = [
    "SonosDevice",
    "SonosGroupHandle",
    "SonosProvider",
    "SonosTopologyListener",
]
