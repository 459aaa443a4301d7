from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from track_catalog.domain.library.matching import score_candidates
from track_catalog.domain.library.providers import spotify
from track_catalog.domain.library.providers.spotify import SpotifyError, api

from ..deps import SpotifySession, get_spotify_session, spotify_http_error
from ..schemas import AuthStatusResponse, SearchResponse
from .tracks import candidate_to_response

router = APIRouter()


@router.get("/spotify/check-auth", response_model=AuthStatusResponse)
def check_auth(
    session: SpotifySession = Depends(get_spotify_session),
) -> AuthStatusResponse:
    return AuthStatusResponse(authenticated=spotify.is_authenticated(session.state))


@router.post("/spotify/logout", response_model=AuthStatusResponse)
def logout(
    session: SpotifySession = Depends(get_spotify_session),
) -> AuthStatusResponse:
    session.update(spotify.logout(session.state))
    return AuthStatusResponse(authenticated=session.state.authenticated)


@router.get("/spotify/search", response_model=SearchResponse)
def search(
    q: str = Query(..., min_length=1),
    limit: int = Query(5, ge=1, le=50),
    title: Optional[str] = None,
    artist: Optional[str] = None,
    session: SpotifySession = Depends(get_spotify_session),
) -> SearchResponse:
    """Search the Spotify catalog; ranked by similarity when title or artist is given."""
    try:
        state, candidates = api.search(session.state, q, limit=limit)
    except SpotifyError as e:
        raise spotify_http_error(e)
    session.update(state)

    ranked = score_candidates(candidates, expected_title=title, expected_artist=artist)
    return SearchResponse(
        query=q, candidates=[candidate_to_response(c) for c in ranked]
    )


@router.get("/spotify/audio-features/{spotify_id}")
def audio_features(
    spotify_id: str,
    session: SpotifySession = Depends(get_spotify_session),
) -> dict[str, Any]:
    try:
        state, features = api.get_audio_features(session.state, spotify_id)
    except SpotifyError as e:
        raise spotify_http_error(e)
    session.update(state)

    if features is None:
        raise HTTPException(404, "No audio features for this track")
    return features
