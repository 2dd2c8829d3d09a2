"""Tests for Track model."""

import dataclasses

import pytest

from sonosync.models.track import RECORD_PLAYER_URI, Track


class TestTrack:
    """Test Track model."""

    def test_defaults(self) -> None:
        """Test an empty track."""
        track = Track()
        assert track.title == ""
        assert track.duration == 0
        assert not track.has_metadata

    def test_has_metadata(self) -> None:
        """Test has_metadata with only a title or only an artist."""
        assert Track(title="Song").has_metadata
        assert Track(artist="Band").has_metadata

    @pytest.mark.parametrize(
        ("duration", "expected"),
        [(0, "0:00"), (7, "0:07"), (185, "3:05"), (3600, "60:00"), (-5, "0:00")],
    )
    def test_duration_text(self, duration: int, expected: str) -> None:
        """Test duration is rendered as m:ss."""
        assert Track(duration=duration).duration_text == expected

    def test_is_immutable(self) -> None:
        """Test that Track cannot be modified."""
        track = Track(title="Song")
        with pytest.raises(dataclasses.FrozenInstanceError):
            track.title = "Other"  # type: ignore[misc]


class TestTrackIsSameSong:
    """Test track identity by title and artist."""

    def test_same_title_and_artist(self) -> None:
        """Test tracks with equal title and artist are the same song."""
        a = Track(title="A", artist="X", album="One", uri="x-file:1")
        b = Track(title="A", artist="X", album="Two", uri="x-file:2")
        assert a.is_same_song(b)

    def test_different_title(self) -> None:
        """Test a different title is a different song."""
        assert not Track(title="A", artist="X").is_same_song(Track(title="B", artist="X"))

    def test_different_artist(self) -> None:
        """Test a different artist is a different song."""
        assert not Track(title="A", artist="X").is_same_song(Track(title="A", artist="Y"))

    def test_none(self) -> None:
        """Test comparison with no previous track."""
        assert not Track(title="A", artist="X").is_same_song(None)


class TestTrackRecordPlayer:
    """Test the record player line-in presentation."""

    def test_detected_by_uri(self) -> None:
        """Test only the line-in stream URI is the record player."""
        assert Track(uri=RECORD_PLAYER_URI).is_record_player
        assert not Track(uri="x-rincon-mp3radio://http://radio.example/live.mp3").is_record_player
        assert not Track().is_record_player

    def test_display_track_labels(self) -> None:
        """Test the record player is shown with vinyl labels and artwork."""
        track = Track(title="rapi.mp3", uri=RECORD_PLAYER_URI, duration=0)
        shown = track.display_track()
        assert shown.title == "Record Player"
        assert shown.artist == "Vinyl"
        assert shown.album == "Now Spinning"
        assert shown.album_art_uri == "/modules/MMM-Sonos/record.png"
        assert shown.uri == RECORD_PLAYER_URI
        assert track.title == "rapi.mp3"

    def test_display_track_other(self) -> None:
        """Test other tracks are shown unchanged."""
        track = Track(title="Song", artist="Band", uri="x-file-cifs://nas/song.flac")
        assert track.display_track() is track
