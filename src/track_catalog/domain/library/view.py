"""
Collection view engine.

Derives the filtered, searched and sorted sequence of records that the
CLI and web backend render. Views are read-only projections: the
collection snapshot passed in is never modified.
"""

import math
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Iterable, NamedTuple, Optional

from rapidfuzz import fuzz, utils

from .models import TrackRecord
from .normalizers import key_sort_value

DEFAULT_TEMPO_MIN = 60
DEFAULT_TEMPO_MAX = 180

# Fuzzy distance tolerance: 0.0 = exact only, 1.0 = anything matches
DEFAULT_SEARCH_THRESHOLD = 0.4

SEARCH_FIELDS = ("title", "artist", "album")


def _tempo(record: TrackRecord) -> Optional[float]:
    tempo = record.meta("tempo")
    if isinstance(tempo, bool) or not isinstance(tempo, (int, float)):
        return None
    return tempo if tempo > 0 else None


def _number(record: TrackRecord, field: str) -> float:
    value = record.meta(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


SORT_VALUES: dict[str, Callable[[TrackRecord], Any]] = {
    "key": lambda r: key_sort_value(r.meta("key")),
    "tempo": lambda r: _tempo(r) or 0,
    "title": lambda r: str(r.meta("title") or r.name or ""),
    "duration": lambda r: _number(r, "duration"),
    "artist": lambda r: str(r.meta("artist") or ""),
}


class TempoRange(NamedTuple):
    minimum: int
    maximum: int


@dataclass(frozen=True)
class ViewFilters:
    """Which records a view includes."""

    tempo_min: float = DEFAULT_TEMPO_MIN
    tempo_max: float = DEFAULT_TEMPO_MAX
    include_files_without_tempo: bool = True
    query: str = ""
    search_threshold: float = DEFAULT_SEARCH_THRESHOLD


@dataclass(frozen=True)
class SortSpec:
    """Two-level sort order for a view."""

    primary: str = "key"
    primary_direction: str = "asc"
    secondary: str = "tempo"
    secondary_direction: str = "asc"

    def __post_init__(self):
        for key in (self.primary, self.secondary):
            if key not in SORT_VALUES:
                raise ValueError(
                    f"Invalid sort key '{key}'. Must be one of: {', '.join(SORT_VALUES)}"
                )
        for direction in (self.primary_direction, self.secondary_direction):
            if direction not in ("asc", "desc"):
                raise ValueError(
                    f"Invalid sort direction '{direction}'. Must be 'asc' or 'desc'"
                )


def tempo_bounds(records: Iterable[TrackRecord]) -> TempoRange:
    """Slider bounds covering every known tempo and at least 60-180 BPM."""
    tempos = [t for t in (_tempo(r) for r in records) if t is not None]
    return TempoRange(
        minimum=math.floor(min(tempos + [DEFAULT_TEMPO_MIN])),
        maximum=math.ceil(max(tempos + [DEFAULT_TEMPO_MAX])),
    )


def passes_tempo_filter(record: TrackRecord, filters: ViewFilters) -> bool:
    tempo = _tempo(record)
    if tempo is None:
        return filters.include_files_without_tempo
    return filters.tempo_min <= tempo <= filters.tempo_max


def matches_query(record: TrackRecord, query: str, threshold: float) -> bool:
    """Typo-tolerant match of the query against name, title, artist and album."""
    cutoff = (1.0 - threshold) * 100
    candidates = [record.name] + [
        str(record.meta(field)) for field in SEARCH_FIELDS if record.meta(field)
    ]
    for text in candidates:
        if fuzz.partial_ratio(query, text, processor=utils.default_process) >= cutoff:
            return True
    return False


def _compare(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _record_comparator(sort: SortSpec) -> Callable[[TrackRecord, TrackRecord], int]:
    primary = SORT_VALUES[sort.primary]
    secondary = SORT_VALUES[sort.secondary]
    primary_sign = 1 if sort.primary_direction == "asc" else -1
    secondary_sign = 1 if sort.secondary_direction == "asc" else -1

    def compare(a: TrackRecord, b: TrackRecord) -> int:
        result = _compare(primary(a), primary(b)) * primary_sign
        if result:
            return result
        result = _compare(secondary(a), secondary(b)) * secondary_sign
        if result:
            return result
        # Name always ascending, whatever the chosen directions
        return (
            _compare(a.name, b.name)
            or _compare(a.source_path, b.source_path)
            or _compare(a.id, b.id)
        )

    return compare


def sort_records(records: Iterable[TrackRecord], sort: SortSpec) -> list[TrackRecord]:
    return sorted(records, key=cmp_to_key(_record_comparator(sort)))


def build_view(
    records: Iterable[TrackRecord],
    filters: Optional[ViewFilters] = None,
    sort: Optional[SortSpec] = None,
) -> list[TrackRecord]:
    """Filter by tempo, then by search query, then sort.

    Args:
        records: Collection snapshot
        filters: Tempo range and search settings (defaults if None)
        sort: Sort order (key then tempo, ascending, if None)

    Returns:
        New list of records in display order
    """
    filters = filters or ViewFilters()
    sort = sort or SortSpec()

    visible = [r for r in records if passes_tempo_filter(r, filters)]

    query = filters.query.strip()
    if query:
        visible = [
            r for r in visible if matches_query(r, query, filters.search_threshold)
        ]

    return sort_records(visible, sort)
