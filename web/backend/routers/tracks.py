from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from typing import Optional

from track_catalog.core.config import Config
from track_catalog.domain.library.collection import TrackCollection
from track_catalog.domain.library.enrichment import LookupStatus, lookup_track
from track_catalog.domain.library.matching import LookupCandidate
from track_catalog.domain.library.models import TrackRecord
from track_catalog.domain.library.normalizers import key_display_color
from track_catalog.domain.library.providers.spotify import SpotifyError
from track_catalog.domain.library.view import (
    SortSpec,
    ViewFilters,
    build_view,
    tempo_bounds,
)

from ..deps import (
    SpotifySession,
    get_collection,
    get_config,
    get_spotify_session,
    persist,
    spotify_http_error,
)
from ..schemas import (
    CandidateResponse,
    LookupRequest,
    LookupResponse,
    TempoRangeResponse,
    TrackListResponse,
    TrackResponse,
)

router = APIRouter()


def track_to_response(record: TrackRecord) -> TrackResponse:
    """Convert a record to its API shape, with the key's display color."""
    return TrackResponse(
        id=record.id,
        name=record.name,
        source_path=record.source_path,
        metadata=record.metadata,
        key_color=key_display_color(record.meta("key")),
    )


def candidate_to_response(candidate: LookupCandidate) -> CandidateResponse:
    return CandidateResponse(
        title=candidate.title,
        artists=list(candidate.artists),
        album=candidate.album,
        external_id=candidate.external_id,
        external_uri=candidate.external_uri,
        external_url=candidate.external_url,
        album_art_url=candidate.album_art_url,
        match_score=candidate.match_score,
    )


@router.get("/tracks", response_model=TrackListResponse)
def list_tracks(
    q: str = "",
    tempo_min: Optional[float] = None,
    tempo_max: Optional[float] = None,
    include_without_tempo: Optional[bool] = None,
    primary: Optional[str] = None,
    primary_direction: Optional[str] = Query(None, pattern="^(asc|desc)$"),
    secondary: Optional[str] = None,
    secondary_direction: Optional[str] = Query(None, pattern="^(asc|desc)$"),
    collection: TrackCollection = Depends(get_collection),
    config: Config = Depends(get_config),
) -> TrackListResponse:
    """Filtered and sorted view of the collection.

    Unset parameters fall back to the [view] config and the collection's
    tempo bounds.
    """
    snapshot = collection.snapshot()
    bounds = tempo_bounds(snapshot)
    view_config = config.view

    filters = ViewFilters(
        tempo_min=tempo_min if tempo_min is not None else bounds.minimum,
        tempo_max=tempo_max if tempo_max is not None else bounds.maximum,
        include_files_without_tempo=(
            include_without_tempo
            if include_without_tempo is not None
            else view_config.include_files_without_tempo
        ),
        query=q,
        search_threshold=view_config.search_threshold,
    )
    try:
        sort = SortSpec(
            primary=primary or view_config.primary_sort,
            primary_direction=primary_direction or view_config.primary_direction,
            secondary=secondary or view_config.secondary_sort,
            secondary_direction=secondary_direction or view_config.secondary_direction,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    view = build_view(snapshot, filters, sort)
    return TrackListResponse(
        tracks=[track_to_response(r) for r in view], total=len(snapshot)
    )


@router.get("/tracks/tempo-range", response_model=TempoRangeResponse)
def get_tempo_range(
    collection: TrackCollection = Depends(get_collection),
) -> TempoRangeResponse:
    bounds = tempo_bounds(collection.snapshot())
    return TempoRangeResponse(min=bounds.minimum, max=bounds.maximum)


@router.get("/tracks/{track_id}", response_model=TrackResponse)
def get_track(
    track_id: str, collection: TrackCollection = Depends(get_collection)
) -> TrackResponse:
    record = collection.get(track_id)
    if record is None:
        raise HTTPException(404, "Track not found")
    return track_to_response(record)


@router.post("/tracks/{track_id}/lookup", response_model=LookupResponse)
def lookup_track_metadata(
    track_id: str,
    request: LookupRequest,
    collection: TrackCollection = Depends(get_collection),
    session: SpotifySession = Depends(get_spotify_session),
    config: Config = Depends(get_config),
) -> LookupResponse:
    """Look up a track on Spotify and merge the best match into it.

    Matches below the confidence threshold are only applied when the
    request sets accept_low_confidence.
    """
    record = collection.get(track_id)
    if record is None:
        raise HTTPException(404, "Track not found")

    try:
        state, outcome = lookup_track(
            session.state,
            record,
            threshold=config.lookup.match_threshold,
            limit=config.lookup.search_limit,
            confirm=lambda candidate: request.accept_low_confidence,
        )
    except SpotifyError as e:
        logger.warning(f"Lookup failed for track {track_id}: {e}")
        raise spotify_http_error(e)
    session.update(state)

    if outcome.status is LookupStatus.NO_MATCH:
        raise HTTPException(404, "No match found")

    if outcome.status is LookupStatus.APPLIED:
        updated = collection.update(track_id, outcome.apply)
        if updated is None:
            raise HTTPException(404, "Track not found")
        persist(collection)
        record = updated

    return LookupResponse(
        status=outcome.status.value,
        query=outcome.query.text,
        candidate=(
            candidate_to_response(outcome.candidate) if outcome.candidate else None
        ),
        requires_confirmation=outcome.status is LookupStatus.DECLINED,
        track=track_to_response(record),
    )
