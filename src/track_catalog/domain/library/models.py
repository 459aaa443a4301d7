"""
Music library domain models.

Contains data structures for representing catalogued tracks.
"""

import uuid
from typing import Any, NamedTuple, Optional

# Every metadata key a Track Record may carry
TAG_FIELDS = (
    "title",
    "artist",
    "album",
    "genre",
    "tempo",  # Beats per minute, > 0
    "key",  # Camelot notation, e.g. "8B"
    "duration",  # in seconds
    "year",
    "comment",
    "energy",
    "picture",  # Embedded cover art (data: URI)
)

SPOTIFY_LINK_FIELDS = (
    "spotify_id",
    "spotify_uri",
    "spotify_url",
    "spotify_album_art",
)

AUDIO_FEATURE_FIELDS = (
    "mode",
    "time_signature",
    "danceability",
    "energy",
    "acousticness",
    "instrumentalness",
    "liveness",
    "valence",
)

METADATA_FIELDS = tuple(
    dict.fromkeys(TAG_FIELDS + SPOTIFY_LINK_FIELDS + AUDIO_FEATURE_FIELDS)
)


def new_track_id() -> str:
    """Generate a collision-free track identifier."""
    return f"file-{uuid.uuid4().hex}"


class TrackRecord(NamedTuple):
    """Canonical metadata entity for one audio file.

    Records are never mutated: every change produces a derived copy via
    ``with_metadata`` and replaces the record in the collection.
    """

    id: str
    name: str  # Original filename, never changes
    source_path: str = ""  # Relative path as traversed
    metadata: Optional[dict[str, Any]] = None

    def meta(self, field: str, default: Any = None) -> Any:
        """Get a metadata value, tolerating records without metadata."""
        if not self.metadata:
            return default
        value = self.metadata.get(field)
        return default if value is None else value

    def with_metadata(self, metadata: dict[str, Any]) -> "TrackRecord":
        """Return a copy of this record carrying new metadata."""
        return self._replace(metadata=dict(metadata))

    def display_title(self) -> str:
        """Title for display, falling back to the filename."""
        return self.meta("title") or self.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible data."""
        return {
            "id": self.id,
            "name": self.name,
            "source_path": self.source_path,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackRecord":
        """Deserialize from data produced by ``to_dict``."""
        metadata = data.get("metadata")
        return cls(
            id=data["id"],
            name=data["name"],
            source_path=data.get("source_path") or "",
            metadata=dict(metadata) if metadata is not None else None,
        )


def create_track(
    name: str, source_path: str = "", metadata: Optional[dict[str, Any]] = None
) -> TrackRecord:
    """Create a Track Record for a file seen for the first time."""
    return TrackRecord(
        id=new_track_id(),
        name=name,
        source_path=source_path or name,
        metadata=dict(metadata) if metadata else None,
    )
