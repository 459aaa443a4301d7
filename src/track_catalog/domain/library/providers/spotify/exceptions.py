"""Spotify-specific exceptions for error handling."""


class SpotifyError(Exception):
    """Base exception for Spotify operations."""

    pass


class SpotifyAuthError(SpotifyError):
    """Raised when no valid credential is available or Spotify rejects it."""

    pass


class SpotifyLookupError(SpotifyError):
    """Raised when a Spotify request fails (network error or bad response)."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)
