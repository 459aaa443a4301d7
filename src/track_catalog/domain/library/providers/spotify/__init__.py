"""
Spotify provider for Track Catalog.

Looks up catalog metadata and audio features for local tracks.
"""

from loguru import logger

from ...provider import ProviderConfig, ProviderState

# Import from submodules
from . import api, auth
from .exceptions import SpotifyAuthError, SpotifyError, SpotifyLookupError


def init_provider(config: ProviderConfig) -> ProviderState:
    """Initialize Spotify provider from stored user tokens.

    Token lookup:
    1. Stored user tokens (refreshed if expired)
    2. App client credentials, requested lazily on first API call
    3. Unauthenticated state (lookups raise SpotifyAuthError)

    Args:
        config: Provider configuration

    Returns:
        ProviderState with authentication status and cached token data
    """
    logger.debug("Initializing Spotify provider")

    token_data = auth._load_user_tokens()
    if token_data:
        if not auth.is_token_expired(token_data):
            logger.debug("Stored Spotify token is valid")
            return ProviderState(
                config=config, authenticated=True, cache={"token_data": token_data}
            )

        logger.info("Stored Spotify token expired, attempting refresh")
        refreshed = auth.refresh_token(
            token_data, config.client_id, config.client_secret
        )
        if refreshed:
            return ProviderState(
                config=config, authenticated=True, cache={"token_data": refreshed}
            )
        logger.warning("Spotify token refresh failed")

    state = ProviderState(config=config, authenticated=False)
    if state.has_client_credentials:
        logger.debug("Spotify will use client credentials")
    else:
        logger.debug("Spotify provider not authenticated")
    return state


def is_authenticated(state: ProviderState) -> bool:
    """Whether lookups can run: a user token or app credentials exist."""
    return state.authenticated or state.has_client_credentials


def logout(state: ProviderState) -> ProviderState:
    """Forget stored and cached tokens."""
    auth.clear_user_tokens()
    return state.without_cache("token_data").with_authenticated(False)


__all__ = [
    "api",
    "auth",
    "init_provider",
    "is_authenticated",
    "logout",
    "SpotifyAuthError",
    "SpotifyError",
    "SpotifyLookupError",
]
