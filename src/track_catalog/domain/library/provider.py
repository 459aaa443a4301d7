"""
Provider state for external metadata services.

Providers are implemented as modules with pure functions, not classes.
Every function takes a ProviderState and returns (new_state, result), so
refreshed credentials travel with the state instead of living in globals.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ProviderConfig:
    """Configuration for an external metadata provider."""

    name: str  # Provider name, e.g. "spotify"
    client_id: str = ""
    client_secret: str = ""
    enabled: bool = True


@dataclass
class ProviderState:
    """Runtime state for a provider.

    Immutable state container passed to all provider functions.
    Functions return new ProviderState instead of mutating.
    """

    config: ProviderConfig
    authenticated: bool = False
    cache: Dict[str, Any] = field(default_factory=dict)  # token_data, etc.

    def with_authenticated(self, authenticated: bool) -> "ProviderState":
        """Return new state with updated authentication status."""
        return ProviderState(
            config=self.config, authenticated=authenticated, cache=self.cache
        )

    def with_cache(self, **updates) -> "ProviderState":
        """Return new state with updated cache entries."""
        return ProviderState(
            config=self.config,
            authenticated=self.authenticated,
            cache={**self.cache, **updates},
        )

    def without_cache(self, *keys: str) -> "ProviderState":
        """Return new state with the given cache entries removed."""
        return ProviderState(
            config=self.config,
            authenticated=self.authenticated,
            cache={k: v for k, v in self.cache.items() if k not in keys},
        )

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.config.client_id and self.config.client_secret)
