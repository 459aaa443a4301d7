"""Shared fixtures: every test gets its own config and data directories."""

import io
import wave

import pytest

from track_catalog.domain.library.models import TrackRecord


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point XDG config/data dirs at a temp directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
    monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)
    monkeypatch.delenv("TRACK_CATALOG_ALLOWED_ORIGINS", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def make_record():
    """Factory for records with a fixed id and optional metadata."""

    def _make(id="t1", name="track.mp3", source_path=None, **metadata):
        return TrackRecord(
            id=id,
            name=name,
            source_path=source_path if source_path is not None else name,
            metadata=metadata or None,
        )

    return _make


@pytest.fixture
def wav_bytes():
    """One second of silent mono 16-bit WAV audio."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(8000)
        wav.writeframes(b"\x00\x00" * 8000)
    return buffer.getvalue()
