"""Fixtures for API tests: a fresh collection and Spotify session per test."""

import pytest
from fastapi.testclient import TestClient

from track_catalog.core.config import Config
from track_catalog.domain.library.collection import TrackCollection
from track_catalog.domain.library.provider import ProviderConfig, ProviderState
from web.backend.deps import (
    SpotifySession,
    get_collection,
    get_config,
    get_spotify_session,
)
from web.backend.main import app


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def collection():
    return TrackCollection([])


@pytest.fixture
def session():
    return SpotifySession(ProviderState(config=ProviderConfig(name="spotify")))


@pytest.fixture
def client(collection, session, config):
    app.dependency_overrides[get_collection] = lambda: collection
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_spotify_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()
