"""Library domain - track records, metadata and the collection.

This domain handles:
- Track record model and key/tempo normalization
- Tag extraction from audio files and library scanning
- Ranking lookup candidates
- Filtered and sorted collection views
"""

# Models
from .models import TrackRecord, create_track, new_track_id

# Normalizers
from .normalizers import (
    ParsedKey,
    parse_key,
    key_sort_value,
    key_display_color,
    normalize_key,
    normalize_tempo,
    camelot_from_pitch_class,
)

# Collection ownership
from .collection import DuplicateTrackError, TrackCollection

# Candidate matching
from .matching import (
    LookupCandidate,
    SearchQuery,
    build_search_query,
    score_candidates,
    should_auto_apply,
)

# Views
from .view import SortSpec, TempoRange, ViewFilters, build_view, tempo_bounds

__all__ = [
    # Models
    "TrackRecord",
    "create_track",
    "new_track_id",
    # Normalizers
    "ParsedKey",
    "parse_key",
    "key_sort_value",
    "key_display_color",
    "normalize_key",
    "normalize_tempo",
    "camelot_from_pitch_class",
    # Collection
    "DuplicateTrackError",
    "TrackCollection",
    # Matching
    "LookupCandidate",
    "SearchQuery",
    "build_search_query",
    "score_candidates",
    "should_auto_apply",
    # Views
    "SortSpec",
    "TempoRange",
    "ViewFilters",
    "build_view",
    "tempo_bounds",
]
