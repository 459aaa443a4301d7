"""
Spotify token management.

Loads and stores user tokens, refreshes expired tokens and obtains
app-only tokens through the client-credentials grant.
"""

import base64
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import requests
from loguru import logger

TOKEN_URL = "https://accounts.spotify.com/api/token"


def _get_tokens_dir() -> Path:
    """Get directory for storing tokens."""
    from track_catalog.core.config import get_data_dir

    tokens_dir = get_data_dir() / "spotify"
    tokens_dir.mkdir(parents=True, exist_ok=True)
    return tokens_dir


def _load_user_tokens() -> Optional[Dict[str, Any]]:
    """Load user OAuth tokens from file."""
    tokens_file = _get_tokens_dir() / "user_tokens.json"

    if not tokens_file.exists():
        return None

    try:
        with open(tokens_file) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load Spotify tokens from file: {e}")
        return None


def _save_user_tokens(token_data: Dict[str, Any]) -> None:
    """Save user OAuth tokens to file with secure permissions."""
    tokens_file = _get_tokens_dir() / "user_tokens.json"

    with open(tokens_file, "w") as f:
        json.dump(token_data, f, indent=2)

    # Set file permissions to 0600 (owner read/write only)
    tokens_file.chmod(0o600)
    logger.debug(f"Saved Spotify tokens to {tokens_file}")


def clear_user_tokens() -> bool:
    """Delete stored user tokens.

    Returns:
        True if a token file was removed
    """
    tokens_file = _get_tokens_dir() / "user_tokens.json"
    if not tokens_file.exists():
        return False
    tokens_file.unlink()
    logger.info("Removed stored Spotify tokens")
    return True


def _basic_auth_header(client_id: str, client_secret: str) -> Dict[str, str]:
    auth = base64.b64encode(f"{client_id}:{client_secret}".encode("utf-8")).decode(
        "utf-8"
    )
    return {"Authorization": f"Basic {auth}"}


def _with_expiry(token_data: Dict[str, Any]) -> Dict[str, Any]:
    expires_in = token_data.get("expires_in", 3600)  # Default 1 hour
    expires_at = datetime.now() + timedelta(seconds=expires_in)
    return {**token_data, "expires_at": expires_at.isoformat()}


def is_token_expired(token_data: Dict[str, Any]) -> bool:
    """Check if token is expired (with 5-minute buffer)."""
    if "expires_at" not in token_data:
        return True

    try:
        expires_at = datetime.fromisoformat(token_data["expires_at"])
    except (TypeError, ValueError):
        return True
    buffer = timedelta(minutes=5)

    return datetime.now() >= (expires_at - buffer)


def refresh_token(
    token_data: Dict[str, Any], client_id: str, client_secret: str
) -> Optional[Dict[str, Any]]:
    """Refresh an expired user token.

    Args:
        token_data: Current token data with refresh_token
        client_id: Spotify app client id
        client_secret: Spotify app client secret

    Returns:
        New token data or None if refresh fails
    """
    refresh_token_value = token_data.get("refresh_token")

    if not client_id or not client_secret or not refresh_token_value:
        logger.warning("Missing credentials or refresh token for Spotify token refresh")
        return None

    try:
        response = requests.post(
            TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token_value,
            },
            headers=_basic_auth_header(client_id, client_secret),
            timeout=30,
        )
        response.raise_for_status()
        new_token_data = _with_expiry(response.json())

        # Preserve refresh token if not included in response
        if "refresh_token" not in new_token_data:
            new_token_data["refresh_token"] = refresh_token_value

        _save_user_tokens(new_token_data)
        logger.info(
            f"Spotify token refreshed successfully, expires: {new_token_data['expires_at']}"
        )
        return new_token_data

    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Failed to refresh Spotify token: {e}")
        return None


def request_client_token(
    client_id: str, client_secret: str
) -> Optional[Dict[str, Any]]:
    """Get an app-only access token (client-credentials grant).

    Sufficient for catalog search and audio features. Not persisted.

    Returns:
        Token data or None if the request fails
    """
    if not client_id or not client_secret:
        return None

    try:
        response = requests.post(
            TOKEN_URL,
            data={"grant_type": "client_credentials"},
            headers=_basic_auth_header(client_id, client_secret),
            timeout=30,
        )
        response.raise_for_status()
        token_data = _with_expiry(response.json())
        logger.info("Obtained Spotify client-credentials token")
        return token_data
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Failed to obtain Spotify client-credentials token: {e}")
        return None
