import threading
from typing import Optional

from fastapi import HTTPException
from loguru import logger

from track_catalog.core.config import Config, load_config
from track_catalog.domain.library import storage
from track_catalog.domain.library.collection import TrackCollection
from track_catalog.domain.library.provider import ProviderConfig, ProviderState
from track_catalog.domain.library.providers import spotify
from track_catalog.domain.library.providers.spotify import (
    SpotifyAuthError,
    SpotifyError,
    SpotifyLookupError,
)

_collection: Optional[TrackCollection] = None
_spotify_session: Optional["SpotifySession"] = None
_init_lock = threading.Lock()
_persist_lock = threading.Lock()


class SpotifySession:
    """Holds the current Spotify provider state between requests."""

    def __init__(self, state: ProviderState):
        self.state = state
        self._lock = threading.Lock()

    def update(self, state: ProviderState) -> None:
        with self._lock:
            self.state = state


def get_config() -> Config:
    """FastAPI dependency for configuration."""
    return load_config()


def get_collection() -> TrackCollection:
    """FastAPI dependency for the shared track collection.

    Loaded from the database on first use.
    """
    global _collection
    with _init_lock:
        if _collection is None:
            _collection = TrackCollection(storage.load_all())
            logger.info(f"Loaded collection: {len(_collection)} tracks")
    return _collection


def get_spotify_session() -> SpotifySession:
    """FastAPI dependency for the Spotify provider state."""
    global _spotify_session
    with _init_lock:
        if _spotify_session is None:
            config = load_config()
            _spotify_session = SpotifySession(
                spotify.init_provider(
                    ProviderConfig(
                        name="spotify",
                        client_id=config.spotify.client_id,
                        client_secret=config.spotify.client_secret,
                    )
                )
            )
    return _spotify_session


def persist(collection: TrackCollection) -> bool:
    """Save the collection after a change; failures are logged, not raised.

    The snapshot is read under the save lock, so the last save to finish
    always holds the newest committed records.
    """
    with _persist_lock:
        saved = storage.save_all(collection.snapshot())
    if not saved:
        logger.error("Collection changes could not be saved to the database")
    return saved


def spotify_http_error(error: SpotifyError) -> HTTPException:
    """Map Spotify failures to HTTP errors."""
    if isinstance(error, SpotifyAuthError):
        return HTTPException(status_code=401, detail=str(error))
    if isinstance(error, SpotifyLookupError):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
