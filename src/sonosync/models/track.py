"""Track model for the currently playing media item."""

from dataclasses import dataclass, replace

_SECONDS_PER_MINUTE = 60

# Turntable line-in streamed to the household as internet radio
RECORD_PLAYER_URI = "x-rincon-mp3radio://http://sonos.local:8000/rapi.mp3"
RECORD_PLAYER_ART = "/modules/MMM-Sonos/record.png"


@dataclass(frozen=True, slots=True)
class Track:
    """Currently playing media descriptor.

    Attributes:
        title: Track title.
        artist: Track artist.
        album: Album name.
        album_art_uri: Album art URL (empty if unavailable).
        duration: Track length in seconds (0 for streams).
        uri: Source locator of the media item.
    """

    title: str = ""
    artist: str = ""
    album: str = ""
    album_art_uri: str = ""
    duration: int = 0
    uri: str = ""

    @property
    def has_metadata(self) -> bool:
        """Return True if the track carries a title or artist."""
        return bool(self.title or self.artist)

    @property
    def duration_text(self) -> str:
        """Return duration formatted as m:ss."""
        minutes, seconds = divmod(max(self.duration, 0), _SECONDS_PER_MINUTE)
        return f"{minutes}:{seconds:02d}"

    @property
    def is_record_player(self) -> bool:
        """Return True if this is the record player line-in stream."""
        return self.uri == RECORD_PLAYER_URI

    def display_track(self) -> "Track":
        """Return the track as it should be shown to the user.

        The record player stream carries no metadata, so it is shown with
        fixed vinyl labels and artwork. Other tracks are returned as is.
        """
        if not self.is_record_player:
            return self
        return replace(
            self,
            title="Record Player",
            artist="Vinyl",
            album="Now Spinning",
            album_art_uri=RECORD_PLAYER_ART,
        )

    def is_same_song(self, other: "Track | None") -> bool:
        """Return True if other has the same title and artist.

        Album, art and URI are ignored so that metadata refreshes of the
        same song do not count as a track change.
        """
        if other is None:
            return False
        return self.title == other.title and self.artist == other.artist
