"""Tests for DJ-software XML imports."""

import pytest

from track_catalog.domain.playlists.importers import (
    PlaylistFormat,
    PlaylistImportError,
    location_filename,
    parse_playlist_xml,
)

REKORDBOX_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<DJ_PLAYLISTS Version="1.0.0">
  <PRODUCT Name="rekordbox" Version="6.0.0"/>
  <COLLECTION Entries="2">
    <TRACK TrackID="1" Name="Strobe" Artist="deadmau5" Album="For Lack" Genre="Progressive House"
           AverageBpm="128.00" Tonality="Fm" TotalTime="634" Rating="255" Year="2009"
           Comments="peak time" Location="file://localhost/Users/dj/Music/Strobe%20(Club).mp3">
      <TEMPO Inizio="0.025" Bpm="128.00" Metro="4/4" Battito="1"/>
    </TRACK>
    <TRACK TrackID="2" Name="Intro" Artist="" AverageBpm="0.00" Tonality=""/>
  </COLLECTION>
</DJ_PLAYLISTS>
"""

TRAKTOR_XML = b"""<?xml version="1.0" encoding="UTF-8" standalone="no" ?>
<NML VERSION="19">
  <COLLECTION ENTRIES="1">
    <ENTRY TITLE="Opus" ARTIST="Eric Prydz">
      <LOCATION DIR="/:Users/:dj/:Music/:" FILE="Opus.mp3" VOLUME="Macintosh HD"/>
      <ALBUM TITLE="Opus"/>
      <INFO GENRE="Progressive" PLAYTIME="543" RANKING="153" RELEASE_DATE="2016/1/1" COMMENT="long build"/>
      <TEMPO BPM="126.000000" BPM_QUALITY="100"/>
      <MUSICAL_KEY VALUE="21"/>
    </ENTRY>
  </COLLECTION>
</NML>
"""

SERATO_XML = b"""<?xml version="1.0"?>
<SeratoLibrary>
  <Songs>
    <Song>
      <title>Cola</title>
      <artist>CamelPhat</artist>
      <bpm>122</bpm>
      <key>8A</key>
      <path>/Music/Cola.flac</path>
      <length>230.5</length>
    </Song>
  </Songs>
</SeratoLibrary>
"""

GENERIC_XML = b"""<?xml version="1.0"?>
<library>
  <crate name="Warmup">
    <item><title>First</title><artist>A</artist><tempo>100</tempo></item>
    <item title="Second" bpm="110" key="Am" location="/music/second.mp3"/>
  </crate>
  <item><name>Not A Track</name></item>
  <item><title>Third</title><key>2d</key></item>
</library>
"""


def _nested(depth):
    """Generic XML with a single track nested ``depth`` levels below the root."""
    return (
        b"<root>"
        + b"<level>" * depth
        + b'<track title="Deep" artist="Diver"/>'
        + b"</level>" * depth
        + b"</root>"
    )


class TestRekordbox:
    """Tests for Rekordbox XML exports."""

    def test_reads_collection(self) -> None:
        """Rekordbox COLLECTION tracks are read."""
        result = parse_playlist_xml(REKORDBOX_XML)

        assert result.format is PlaylistFormat.REKORDBOX
        assert len(result.tracks) == 2

        track = result.tracks[0]
        assert track.title == "Strobe"
        assert track.artist == "deadmau5"
        assert track.album == "For Lack"
        assert track.genre == "Progressive House"
        assert track.bpm == 128.0
        assert track.key == "4A"
        assert track.duration == 634.0
        assert track.rating == 255
        assert track.year == 2009
        assert track.comment == "peak time"
        assert location_filename(track.location) == "Strobe (Club).mp3"

    def test_absent_values(self) -> None:
        """Missing Rekordbox attributes stay absent."""
        track = parse_playlist_xml(REKORDBOX_XML).tracks[1]
        assert track.title == "Intro"
        assert track.bpm is None
        assert track.key is None
        assert track.comment is None


class TestTraktor:
    def test_reads_entries(self) -> None:
        """Traktor ENTRY elements are read."""
        result = parse_playlist_xml(TRAKTOR_XML)

        assert result.format is PlaylistFormat.TRAKTOR
        [track] = result.tracks
        assert track.title == "Opus"
        assert track.artist == "Eric Prydz"
        assert track.album == "Opus"
        assert track.genre == "Progressive"
        assert track.bpm == 126.0
        assert track.key == "8A"  # Traktor 21 = A minor
        assert track.year == 2016
        assert track.duration == 543.0
        assert location_filename(track.location) == "Opus.mp3"


class TestSerato:
    def test_reads_songs(self) -> None:
        """Serato songs are read."""
        result = parse_playlist_xml(SERATO_XML)

        assert result.format is PlaylistFormat.SERATO
        [track] = result.tracks
        assert (track.title, track.artist, track.bpm, track.key) == ("Cola", "CamelPhat", 122.0, "8A")
        assert track.location == "/Music/Cola.flac"
        assert track.duration == 230.5


class TestGeneric:
    """Tests for the best-effort scan of unknown layouts."""

    def test_finds_track_like_elements_in_order(self) -> None:
        """Generic scan finds track-like elements in document order."""
        result = parse_playlist_xml(GENERIC_XML)

        assert result.format is PlaylistFormat.GENERIC
        assert [t.title for t in result.tracks] == ["First", "Second", "Third"]
        assert result.tracks[0].bpm == 100.0
        assert result.tracks[1].key == "8A"
        assert result.tracks[1].location == "/music/second.mp3"
        assert result.tracks[2].key == "9B"  # Open Key 2d = G major

    def test_depth_cap(self) -> None:
        """Elements below the depth cap are ignored."""
        assert len(parse_playlist_xml(_nested(5), max_depth=10).tracks) == 1
        assert parse_playlist_xml(_nested(50), max_depth=10).tracks == []

    def test_deep_document_does_not_overflow(self) -> None:
        """Very deep documents do not overflow the stack."""
        assert parse_playlist_xml(_nested(2000), max_depth=10_000).tracks[0].title == "Deep"

    def test_empty_document(self) -> None:
        """A document with no tracks yields nothing."""
        result = parse_playlist_xml(b"<root/>")
        assert result.format is PlaylistFormat.GENERIC
        assert result.tracks == []


class TestLimits:
    """Tests for rejecting hostile or oversized input."""

    def test_too_large(self) -> None:
        """Files over the size limit are rejected."""
        with pytest.raises(PlaylistImportError, match="too large"):
            parse_playlist_xml(REKORDBOX_XML, max_bytes=100)

    def test_entity_declarations_rejected(self) -> None:
        """Entity declarations are rejected."""
        data = b"""<?xml version="1.0"?>
<!DOCTYPE lolz [<!ENTITY lol "lol"><!ENTITY lol2 "&lol;&lol;">]>
<library><item title="&lol2;" artist="x"/></library>"""
        with pytest.raises(PlaylistImportError, match="entity"):
            parse_playlist_xml(data)

    def test_malformed_xml(self) -> None:
        """Malformed XML is rejected."""
        with pytest.raises(PlaylistImportError, match="Invalid XML"):
            parse_playlist_xml(b"<DJ_PLAYLISTS><COLLECTION>")

    def test_track_limit(self) -> None:
        """Tracks past the limit are cut off."""
        result = parse_playlist_xml(REKORDBOX_XML, max_tracks=1)
        assert [t.title for t in result.tracks] == ["Strobe"]

    def test_import_error_is_value_error(self) -> None:
        """Import errors are ValueErrors."""
        assert issubclass(PlaylistImportError, ValueError)


@pytest.mark.parametrize(
    "location,expected",
    [
        ("file://localhost/C:/Music/My%20Song.mp3", "My Song.mp3"),
        ("file:///home/dj/a%23b.flac", "a#b.flac"),
        ("C:\\Music\\Windows.mp3", "Windows.mp3"),
        ("Macintosh HD/:Users/:dj/:Opus.mp3", "Opus.mp3"),
        ("plain.mp3", "plain.mp3"),
        ("", ""),
    ],
)
def test_location_filename(location, expected) -> None:
    """Filenames are pulled from location URLs and paths."""
    assert location_filename(location) == expected
