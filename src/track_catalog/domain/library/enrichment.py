"""
External lookup workflow.

Searches Spotify for a record, ranks the results, applies the acceptance
policy and fetches audio features for the chosen candidate. The caller
commits the enriched record through TrackCollection.update.
"""

from enum import Enum
from typing import Any, Callable, NamedTuple, Optional

from loguru import logger

from . import merge
from .matching import (
    AUTO_APPLY_THRESHOLD,
    LookupCandidate,
    SearchQuery,
    build_search_query,
    score_candidates,
    should_auto_apply,
)
from .models import TrackRecord
from .provider import ProviderState
from .providers.spotify import api
from .providers.spotify.exceptions import SpotifyLookupError

ConfirmCallback = Callable[[LookupCandidate], bool]


class LookupStatus(str, Enum):
    APPLIED = "applied"
    DECLINED = "declined"  # Low-confidence match rejected by the user
    NO_MATCH = "no_match"


class LookupOutcome(NamedTuple):
    """Result of looking up one record."""

    status: LookupStatus
    query: SearchQuery
    candidate: Optional[LookupCandidate] = None
    features: Optional[dict[str, Any]] = None

    def apply(self, record: TrackRecord) -> TrackRecord:
        """Enrich ``record`` with this outcome; unchanged unless APPLIED."""
        if self.status is not LookupStatus.APPLIED or self.candidate is None:
            return record
        return merge.apply_lookup(record, self.candidate, self.features)


def _decline(candidate: LookupCandidate) -> bool:
    return False


def lookup_track(
    state: ProviderState,
    record: TrackRecord,
    threshold: float = AUTO_APPLY_THRESHOLD,
    limit: int = 5,
    confirm: Optional[ConfirmCallback] = None,
) -> tuple[ProviderState, LookupOutcome]:
    """Find the best external match for a record.

    Args:
        state: Spotify provider state
        record: Record to look up
        threshold: Minimum match score applied without confirmation
        limit: Number of search results to consider
        confirm: Asked about candidates below threshold; declines if None

    Returns:
        (updated_state, outcome)

    Raises:
        SpotifyAuthError: Not authenticated
        SpotifyLookupError: Search request failed
    """
    query = build_search_query(record)
    logger.debug(f"Looking up '{record.name}' with query: {query.text}")

    state, candidates = api.search(state, query.text, limit=limit)
    ranked = score_candidates(
        candidates,
        expected_title=query.title or None,
        expected_artist=query.artist or None,
    )
    if not ranked:
        logger.info(f"No Spotify match for '{record.name}'")
        return state, LookupOutcome(LookupStatus.NO_MATCH, query)

    best = ranked[0]
    if not should_auto_apply(best, threshold):
        ask = confirm or _decline
        if not ask(best):
            logger.info(
                f"Low-confidence match declined for '{record.name}' "
                f"(score {best.match_score:.2f})"
            )
            return state, LookupOutcome(LookupStatus.DECLINED, query, best)

    features = None
    try:
        state, features = api.get_audio_features(state, best.external_id)
    except SpotifyLookupError as e:
        # Basic track info is still worth applying
        logger.warning(f"Could not fetch audio features for {best.external_id}: {e}")

    logger.info(f"Matched '{record.name}' to '{best.title}' ({best.external_id})")
    return state, LookupOutcome(LookupStatus.APPLIED, query, best, features)
