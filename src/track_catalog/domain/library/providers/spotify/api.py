"""
Spotify API operations.

Pure functions for catalog search and audio features.
All functions take ProviderState and return (ProviderState, result).
"""

from typing import Any, Dict, List, Optional, Tuple

import requests
from loguru import logger

from ...matching import LookupCandidate
from ...provider import ProviderState
from . import auth
from .exceptions import SpotifyAuthError, SpotifyLookupError

# Spotify API base URL
API_BASE = "https://api.spotify.com/v1"

AUDIO_FEATURE_KEYS = (
    "tempo",
    "key",
    "mode",
    "time_signature",
    "danceability",
    "energy",
    "acousticness",
    "instrumentalness",
    "liveness",
    "valence",
)


def _ensure_valid_token(state: ProviderState) -> Tuple[ProviderState, Dict[str, Any]]:
    """Ensure access token is valid, refreshing if expired.

    Falls back to an app-only client-credentials token when no user token
    is available.

    Returns:
        (updated_state, token_data)

    Raises:
        SpotifyAuthError: If no valid token can be obtained
    """
    token_data = state.cache.get("token_data")

    if token_data and not auth.is_token_expired(token_data):
        return state, token_data

    if token_data and token_data.get("refresh_token"):
        logger.info("Spotify token expired, attempting refresh")
        new_token_data = auth.refresh_token(
            token_data, state.config.client_id, state.config.client_secret
        )
        if new_token_data:
            return state.with_cache(token_data=new_token_data).with_authenticated(
                True
            ), new_token_data
        logger.warning("Token refresh failed")

    if state.has_client_credentials:
        client_token = auth.request_client_token(
            state.config.client_id, state.config.client_secret
        )
        if client_token:
            return state.with_cache(token_data=client_token).with_authenticated(
                True
            ), client_token

    raise SpotifyAuthError("Spotify authentication required")


def _get(
    state: ProviderState, path: str, params: Optional[Dict[str, Any]] = None
) -> Tuple[ProviderState, Dict[str, Any]]:
    """Authenticated GET against the Spotify Web API."""
    state, token = _ensure_valid_token(state)
    headers = {"Authorization": f"Bearer {token['access_token']}"}

    try:
        response = requests.get(
            f"{API_BASE}{path}", params=params, headers=headers, timeout=30
        )
    except requests.RequestException as e:
        raise SpotifyLookupError(f"Spotify request failed: {e}") from e

    if response.status_code == 401:
        raise SpotifyAuthError("Spotify rejected the access token")
    if response.status_code == 429:
        raise SpotifyLookupError("Spotify rate limit reached", status_code=429)
    if not response.ok:
        raise SpotifyLookupError(
            f"Spotify request failed: HTTP {response.status_code}",
            status_code=response.status_code,
        )

    try:
        return state, response.json()
    except ValueError as e:
        raise SpotifyLookupError(f"Invalid Spotify response: {e}") from e


def _to_candidate(track: Dict[str, Any]) -> LookupCandidate:
    """Convert Spotify API track response to a lookup candidate."""
    album = track.get("album") or {}
    images = album.get("images") or []
    return LookupCandidate(
        title=(track.get("name") or "").strip(),
        artists=tuple(
            a["name"] for a in track.get("artists", []) if a.get("name") is not None
        ),
        album=album.get("name", ""),
        external_id=track.get("id", ""),
        external_uri=track.get("uri", ""),
        external_url=(track.get("external_urls") or {}).get("spotify", ""),
        album_art_url=images[0].get("url") if images else None,
    )


def search(
    state: ProviderState, query: str, limit: int = 5
) -> Tuple[ProviderState, List[LookupCandidate]]:
    """Search for tracks on Spotify.

    Args:
        state: Provider state
        query: Search query string (field filters like "track:" allowed)
        limit: Maximum number of results

    Returns:
        (updated_state, candidates) in Spotify's ranking order

    Raises:
        SpotifyAuthError: Not authenticated
        SpotifyLookupError: Network or API failure
    """
    state, data = _get(
        state, "/search", params={"q": query, "type": "track", "limit": limit}
    )
    candidates = [
        _to_candidate(track)
        for track in data.get("tracks", {}).get("items", [])
        if track
    ]
    logger.info(f"Search found {len(candidates)} results for: {query}")
    return state, candidates


def get_audio_features(
    state: ProviderState, spotify_id: str
) -> Tuple[ProviderState, Optional[Dict[str, Any]]]:
    """Get audio features (tempo, key, mode, ...) for a track.

    Returns:
        (updated_state, features) - features is None when Spotify has none

    Raises:
        SpotifyAuthError: Not authenticated
        SpotifyLookupError: Network or API failure
    """
    try:
        state, data = _get(state, f"/audio-features/{spotify_id}")
    except SpotifyLookupError as e:
        if e.status_code == 404:
            return state, None
        raise

    if not data:
        return state, None
    return state, {k: data[k] for k in AUDIO_FEATURE_KEYS if data.get(k) is not None}
