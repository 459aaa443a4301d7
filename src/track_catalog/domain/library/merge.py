"""
Metadata merge engine.

Folds partial metadata from DJ-software imports and external lookups into
existing Track Records. Every function here is pure: records are never
mutated, merged copies are returned instead.

Field precedence:
- Default is fill-only: an existing value is kept, incoming data only fills gaps.
- ``key`` always takes the incoming value when one is present.
- Audio features and streaming links come only from lookups, so the latest
  lookup wins for those.
- ``tempo`` is fill-only for every source.
"""

from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from loguru import logger

from track_catalog.domain.playlists.importers import ImportedTrack, location_filename

from .models import AUDIO_FEATURE_FIELDS, SPOTIFY_LINK_FIELDS, TrackRecord
from .normalizers import camelot_from_pitch_class, normalize_tempo

OVERWRITE_FIELDS = frozenset({"key"})
LOOKUP_OVERWRITE_FIELDS = frozenset(AUDIO_FEATURE_FIELDS) | frozenset(
    SPOTIFY_LINK_FIELDS
)

# ImportedTrack attribute -> metadata field
IMPORT_FIELD_MAP = {
    "bpm": "tempo",
    "key": "key",
    "genre": "genre",
    "year": "year",
    "comment": "comment",
    "energy": "energy",
}


class MergeSource(str, Enum):
    """Where incoming metadata came from."""

    IMPORT = "import"  # DJ-software XML export
    LOOKUP = "lookup"  # External music service


def is_present(value: Any) -> bool:
    """True unless the value is None, an empty string or an empty container."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def merge_field(
    existing: Any, incoming: Any, field: str, source: MergeSource = MergeSource.IMPORT
) -> Any:
    """Decide the value of one metadata field after a merge.

    Examples:
        >>> merge_field(128, 140, "tempo")
        128
        >>> merge_field("5A", "9B", "key", MergeSource.LOOKUP)
        '9B'
        >>> merge_field(None, "House", "genre")
        'House'
    """
    if not is_present(incoming):
        return existing
    if field in OVERWRITE_FIELDS:
        return incoming
    if source is MergeSource.LOOKUP and field in LOOKUP_OVERWRITE_FIELDS:
        return incoming
    return existing if is_present(existing) else incoming


def merge_metadata(
    existing: Optional[dict[str, Any]],
    incoming: dict[str, Any],
    source: MergeSource,
) -> dict[str, Any]:
    """Merge a partial metadata bag into existing metadata, field by field."""
    merged = dict(existing or {})
    for field, value in incoming.items():
        result = merge_field(merged.get(field), value, field, source)
        if is_present(result):
            merged[field] = result
    return merged


def imported_metadata(track: ImportedTrack) -> dict[str, Any]:
    """Metadata fields an import contributes, keyed by record field name."""
    return {
        field: getattr(track, attr)
        for attr, field in IMPORT_FIELD_MAP.items()
        if is_present(getattr(track, attr))
    }


def _matches_import(record: TrackRecord, track: ImportedTrack) -> bool:
    name = record.name.lower()
    title = track.title.strip().lower()

    if title:
        if title in name:
            return True
        tag_title = str(record.meta("title", "")).lower()
        if tag_title and title in tag_title:
            return True

    filename = location_filename(track.location).lower()
    if filename and name:
        return filename in name or name in filename
    return False


def find_import_target(
    records: Sequence[TrackRecord], track: ImportedTrack
) -> Optional[int]:
    """Index of the first record an imported track belongs to, if any.

    A record matches when its filename contains the imported title, its
    tag title contains the imported title, or its filename and the last
    segment of the imported location contain one another.
    """
    for index, record in enumerate(records):
        if _matches_import(record, track):
            return index
    return None


def merge_import(
    records: Iterable[TrackRecord], tracks: Iterable[ImportedTrack]
) -> tuple[list[TrackRecord], dict[str, int]]:
    """Merge imported tracks into a collection snapshot.

    Imports only enrich known files: tracks that match no record are dropped.
    Several imported tracks may enrich the same record; they are applied in
    order.

    Returns:
        Tuple of (new record list, stats dict with matched/dropped/updated counts)
    """
    merged = list(records)
    stats = {"matched": 0, "dropped": 0, "updated": 0}
    changed: set[int] = set()

    for track in tracks:
        index = find_import_target(merged, track)
        if index is None:
            stats["dropped"] += 1
            logger.debug(f"No match for imported track '{track.title}'")
            continue

        stats["matched"] += 1
        record = merged[index]
        metadata = merge_metadata(
            record.metadata, imported_metadata(track), MergeSource.IMPORT
        )
        if metadata != (record.metadata or {}):
            merged[index] = record.with_metadata(metadata)
            changed.add(index)

    stats["updated"] = len(changed)
    logger.info(
        f"Import merge: {stats['matched']} matched, {stats['dropped']} dropped, "
        f"{stats['updated']} records updated"
    )
    return merged, stats


def lookup_metadata(candidate: Any, features: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Metadata fields a lookup contributes.

    Args:
        candidate: LookupCandidate chosen for the record
        features: Audio features for the candidate, or None if unavailable
    """
    incoming: dict[str, Any] = {
        "title": candidate.title,
        "artist": ", ".join(candidate.artists),
        "album": candidate.album,
        "spotify_id": candidate.external_id,
        "spotify_uri": candidate.external_uri,
        "spotify_url": candidate.external_url,
        "spotify_album_art": candidate.album_art_url,
    }

    if features:
        tempo = normalize_tempo(features.get("tempo"))
        if tempo is not None:
            incoming["tempo"] = round(tempo)
        incoming["key"] = camelot_from_pitch_class(
            features.get("key"), features.get("mode")
        )
        for field in AUDIO_FEATURE_FIELDS:
            if field in features:
                incoming[field] = features[field]

    return {k: v for k, v in incoming.items() if is_present(v)}


def apply_lookup(
    record: TrackRecord, candidate: Any, features: Optional[dict[str, Any]] = None
) -> TrackRecord:
    """Derive the record enriched by an accepted lookup candidate."""
    incoming = lookup_metadata(candidate, features)
    metadata = merge_metadata(record.metadata, incoming, MergeSource.LOOKUP)

    # Album art falls back to embedded cover art
    if not is_present(metadata.get("spotify_album_art")) and is_present(
        metadata.get("picture")
    ):
        metadata["spotify_album_art"] = metadata["picture"]

    return record.with_metadata(metadata)
