"""Tests for the track-catalog command line."""

from unittest.mock import patch

import pytest

from track_catalog import cli
from track_catalog.domain.library import enrichment, storage
from track_catalog.domain.library.enrichment import LookupOutcome, LookupStatus
from track_catalog.domain.library.matching import LookupCandidate, SearchQuery

REKORDBOX_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<DJ_PLAYLISTS Version="1.0.0">
  <COLLECTION Entries="1">
    <TRACK TrackID="1" Name="Strobe" Artist="deadmau5" AverageBpm="128.00" Tonality="8A"/>
  </COLLECTION>
</DJ_PLAYLISTS>
"""


@pytest.fixture(autouse=True)
def no_log_setup():
    """Keep loguru's global sinks untouched."""
    with patch.object(cli, "setup_from_config"):
        yield


def run(*argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(list(argv))
    return exc_info.value.code


def test_no_subcommand_prints_help(capsys) -> None:
    """Running without a subcommand prints usage and fails."""
    assert run() == 1
    assert "track-catalog" in capsys.readouterr().out


def test_scan_then_list(tmp_path, wav_bytes, capsys) -> None:
    """scan stores new files and list shows them."""
    music = tmp_path / "music"
    music.mkdir()
    (music / "tone.wav").write_bytes(wav_bytes)

    assert run("scan", str(music)) == 0
    assert "Found 1 files, 1 new, 1 total" in capsys.readouterr().out
    [record] = storage.load_all()
    assert record.name == "tone.wav"

    # Rescanning finds nothing new
    assert run("scan", str(music)) == 0
    assert len(storage.load_all()) == 1

    assert run("list") == 0
    assert "1 of 1 tracks" in capsys.readouterr().out


def test_list_filters(make_record, capsys) -> None:
    """list applies search and tempo filters."""
    storage.save_all(
        [
            make_record(id="a", name="slow.mp3", tempo=90),
            make_record(id="b", name="fast.mp3", tempo=140),
            make_record(id="c", name="none.mp3"),
        ]
    )

    assert run("list", "--tempo-min", "100", "--tempo-max", "150", "--with-tempo-only") == 0

    out = capsys.readouterr().out
    assert "fast.mp3" in out
    assert "slow.mp3" not in out
    assert "1 of 3 tracks" in out


def test_import_xml(tmp_path, make_record, capsys) -> None:
    """import-xml merges a Rekordbox export into stored tracks."""
    storage.save_all([make_record(id="a", name="Strobe.mp3")])
    xml_path = tmp_path / "rekordbox.xml"
    xml_path.write_bytes(REKORDBOX_XML)

    assert run("import-xml", str(xml_path)) == 0

    assert "rekordbox: 1 tracks, 1 matched, 0 dropped, 1 updated" in capsys.readouterr().out
    [record] = storage.load_all()
    assert record.meta("tempo") == 128.0
    assert record.meta("key") == "8A"


def test_import_invalid_xml(tmp_path) -> None:
    """import-xml rejects a file that is not XML."""
    xml_path = tmp_path / "broken.xml"
    xml_path.write_bytes(b"<DJ_PLAYLISTS>")
    assert run("import-xml", str(xml_path)) == 1


def test_import_missing_file(tmp_path) -> None:
    """import-xml fails cleanly for a missing file."""
    assert run("import-xml", str(tmp_path / "missing.xml")) == 1


def test_lookup_unknown_track() -> None:
    """lookup fails for an id that is not in the collection."""
    assert run("lookup", "nope") == 1


def test_lookup_applies_match(make_record) -> None:
    """lookup saves an accepted Spotify match."""
    record = make_record(id="a", name="Strobe.mp3", title="Strobe")
    storage.save_all([record])
    candidate = LookupCandidate(title="Strobe", artists=("deadmau5",), external_id="sp1")
    outcome = LookupOutcome(
        LookupStatus.APPLIED, SearchQuery("Strobe", "", "track:Strobe"), candidate, {"tempo": 128}
    )

    with patch.object(enrichment, "lookup_track", return_value=(None, outcome)) as mock_lookup:
        assert run("lookup", "a", "--yes") == 0

    assert mock_lookup.call_args.args[1] == record
    [saved] = storage.load_all()
    assert saved.meta("spotify_id") == "sp1"
    assert saved.meta("tempo") == 128


def test_lookup_without_credentials(make_record) -> None:
    """lookup reports missing Spotify credentials."""
    storage.save_all([make_record(id="a", title="Strobe")])
    assert run("lookup", "a") == 1


def test_serve_runs_uvicorn() -> None:
    """serve starts uvicorn on the requested port."""
    with patch("uvicorn.run") as mock_run, patch.dict("os.environ"):
        assert run("serve", "--port", "9000") == 0

    args, kwargs = mock_run.call_args
    assert args == ("web.backend.main:app",)
    assert kwargs == {"host": "127.0.0.1", "port": 9000}
