"""GroupState model: the synchronized playback state of one group."""

from dataclasses import dataclass, replace
from enum import Enum

from sonosync.models.group import Group
from sonosync.models.track import Track


class PlayState(str, Enum):
    """Transport state of a group."""

    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"
    TRANSITIONING = "transitioning"


class Dimension(str, Enum):
    """One independently tracked facet of a group's state."""

    TRACK = "track"
    VOLUME = "volume"
    MUTE = "mute"
    PLAY_STATE = "play_state"


@dataclass(frozen=True, slots=True)
class GroupState:
    """Snapshot of one group's playback state.

    Every ``with_*`` method returns a new GroupState; the other fields are
    carried over unchanged.

    Attributes:
        group: Current group topology snapshot.
        track: Last known track, or None until first fetched.
        play_state: Transport state.
        volume: Volume level 0-100.
        is_muted: Whether the group is muted.
    """

    group: Group
    track: Track | None = None
    play_state: PlayState = PlayState.STOPPED
    volume: int = 0
    is_muted: bool = False

    @property
    def group_id(self) -> str:
        """Return the ID of the group this state belongs to."""
        return self.group.id

    @property
    def is_playing(self) -> bool:
        """Return True if the group is playing a known track."""
        return self.play_state is PlayState.PLAYING and self.track is not None

    def with_group(self, group: Group) -> "GroupState":
        """Return a copy with a refreshed group snapshot."""
        return replace(self, group=group)

    def with_track(self, track: Track) -> "GroupState":
        """Return a copy with a new track."""
        return replace(self, track=track)

    def with_volume(self, volume: int) -> "GroupState":
        """Return a copy with a new volume."""
        return replace(self, volume=volume)

    def with_mute(self, is_muted: bool) -> "GroupState":
        """Return a copy with a new mute state."""
        return replace(self, is_muted=is_muted)

    def with_play_state(self, play_state: PlayState) -> "GroupState":
        """Return a copy with a new play state."""
        return replace(self, play_state=play_state)

    def apply(self, dimension: Dimension, value: object) -> "GroupState":
        """Return a copy with one dimension replaced.

        Args:
            dimension: The dimension to update.
            value: The new value for that dimension.

        Raises:
            TypeError: If value has the wrong type for the dimension.
        """
        if dimension is Dimension.TRACK:
            if not isinstance(value, Track):
                raise TypeError(f"Expected Track, got {type(value).__name__}")
            return self.with_track(value)
        if dimension is Dimension.VOLUME:
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"Expected int volume, got {type(value).__name__}")
            return self.with_volume(value)
        if dimension is Dimension.MUTE:
            if not isinstance(value, bool):
                raise TypeError(f"Expected bool mute, got {type(value).__name__}")
            return self.with_mute(value)
        return self.with_play_state(PlayState(value))
