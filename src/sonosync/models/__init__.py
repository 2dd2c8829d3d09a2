"""Data models for groups, tracks and synchronized group state."""

from sonosync.models.group import Group
from sonosync.models.group_state import Dimension, GroupState, PlayState
from sonosync.models.settings import SyncSettings
from sonosync.models.track import Track

__all__ = [
    "Dimension",
    "Group",
    "GroupState",
    "PlayState",
    "SyncSettings",
    "Track",
]
