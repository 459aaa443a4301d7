"""Tests for the Spotify API router."""

from unittest.mock import patch

from track_catalog.domain.library.matching import LookupCandidate
from track_catalog.domain.library.provider import ProviderConfig, ProviderState
from track_catalog.domain.library.providers.spotify import (
    SpotifyAuthError,
    SpotifyLookupError,
    api,
)

CANDIDATES = [
    LookupCandidate(title="Opus (Edit)", artists=("Eric Prydz",), external_id="sp2"),
    LookupCandidate(title="Opus", artists=("Eric Prydz",), external_id="sp1"),
]


def _search(state, query, limit=5):
    return state.with_cache(searched=query), list(CANDIDATES)


def test_check_auth_without_credentials(client) -> None:
    """Auth check is false with no credentials."""
    assert client.get("/api/spotify/check-auth").json() == {"authenticated": False}


def test_check_auth_with_client_credentials(client, session) -> None:
    """Client credentials alone count as authenticated."""
    session.update(
        ProviderState(config=ProviderConfig(name="spotify", client_id="id", client_secret="secret"))
    )
    assert client.get("/api/spotify/check-auth").json() == {"authenticated": True}


def test_logout(client, session) -> None:
    """Logout clears the session token."""
    session.update(session.state.with_authenticated(True).with_cache(token_data={"access_token": "x"}))

    response = client.post("/api/spotify/logout")

    assert response.json() == {"authenticated": False}
    assert "token_data" not in session.state.cache


class TestSearch:
    """Tests for GET /api/spotify/search."""

    def test_keeps_spotify_order_without_expectations(self, client, session) -> None:
        """Results keep Spotify's order when nothing is expected."""
        with patch.object(api, "search", side_effect=_search):
            response = client.get("/api/spotify/search", params={"q": "opus"})

        data = response.json()
        assert data["query"] == "opus"
        assert [c["external_id"] for c in data["candidates"]] == ["sp2", "sp1"]
        assert data["candidates"][0]["match_score"] is None
        assert session.state.cache["searched"] == "opus"

    def test_ranks_by_expected_title(self, client) -> None:
        """Expected title reorders results by score."""
        with patch.object(api, "search", side_effect=_search):
            response = client.get(
                "/api/spotify/search",
                params={"q": "opus", "title": "Opus", "artist": "Eric Prydz"},
            )

        candidates = response.json()["candidates"]
        assert [c["external_id"] for c in candidates] == ["sp1", "sp2"]
        assert candidates[0]["match_score"] == 1.0

    def test_requires_query(self, client) -> None:
        """Search without a query is rejected."""
        assert client.get("/api/spotify/search").status_code == 422

    def test_not_authenticated(self, client) -> None:
        """Auth failure maps to 401."""
        response = client.get("/api/spotify/search", params={"q": "opus"})
        assert response.status_code == 401

    def test_upstream_failure(self, client) -> None:
        """Upstream failure maps to 502."""
        with patch.object(api, "search", side_effect=SpotifyLookupError("rate limited", status_code=429)):
            response = client.get("/api/spotify/search", params={"q": "opus"})
        assert response.status_code == 502


class TestAudioFeatures:
    def test_returns_features(self, client) -> None:
        """Known features are returned."""
        features = {"tempo": 126.0, "key": 4, "mode": 1}
        with patch.object(api, "get_audio_features", side_effect=lambda s, i: (s, features)):
            response = client.get("/api/spotify/audio-features/sp1")
        assert response.json() == features

    def test_missing_features(self, client) -> None:
        """Missing features give 404."""
        with patch.object(api, "get_audio_features", side_effect=lambda s, i: (s, None)):
            response = client.get("/api/spotify/audio-features/sp1")
        assert response.status_code == 404

    def test_auth_error(self, client) -> None:
        """Auth failure maps to 401."""
        with patch.object(api, "get_audio_features", side_effect=SpotifyAuthError("login")):
            response = client.get("/api/spotify/audio-features/sp1")
        assert response.status_code == 401
