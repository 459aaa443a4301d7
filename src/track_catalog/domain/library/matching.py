"""
Lookup candidate matching.

Builds search queries from a Track Record and ranks external lookup
candidates by how closely they resemble the record's title and artist.
"""

from pathlib import PurePath
from typing import NamedTuple, Optional

from rapidfuzz import fuzz

from .models import TrackRecord

# Auto-apply candidates scoring at or above this
AUTO_APPLY_THRESHOLD = 0.6


class LookupCandidate(NamedTuple):
    """One search result from an external music service."""

    title: str
    artists: tuple[str, ...] = ()
    album: str = ""
    external_id: str = ""
    external_uri: str = ""
    external_url: str = ""
    album_art_url: Optional[str] = None
    match_score: Optional[float] = None  # None until scored


class SearchQuery(NamedTuple):
    """Search terms derived from a record."""

    title: str
    artist: str
    text: str  # Query string sent to the service


def filename_stem(name: str) -> str:
    """Filename without its extension ("song.mp3" -> "song")."""
    return PurePath(name).stem if name else ""


def _split_title(title: str) -> tuple[str, str]:
    """Separate bracketed edit info and a featured-artist clause.

    Returns:
        Tuple of (clean title, featured artist or "")
    """
    edit = ""
    if "[" in title:
        base, _, rest = title.partition("[")
        edit, _, tail = rest.partition("]")
        edit = edit.strip()
        title = base + tail

    featured = ""
    feat_at = title.lower().find("(feat.")
    if feat_at >= 0:
        clause = title[feat_at + len("(feat.") :]
        featured = clause.split(")", 1)[0].strip()
        title = title[:feat_at]

    title = title.strip()
    if edit:
        title = f"{title} - {edit}"
    return title, featured


def build_search_query(record: TrackRecord) -> SearchQuery:
    """Derive search terms from a record's title and artist.

    Examples:
        "Song [Radio Edit]" -> title "Song - Radio Edit"
        "Song (feat. Other)" by "Main" -> artist "Main, Other"

    Records with neither title nor artist search by filename stem.
    """
    raw_title = str(record.meta("title", "")).strip()
    artist = str(record.meta("artist", "")).strip()

    title, featured = _split_title(raw_title) if raw_title else ("", "")
    if featured:
        artist = f"{artist}, {featured}" if artist else featured

    if title and artist:
        text = f"track:{title} artist:{artist}"
    elif title:
        text = f"track:{title}"
    elif artist:
        text = f"artist:{artist}"
    else:
        text = filename_stem(record.name)

    return SearchQuery(title=title, artist=artist, text=text)


def similarity(a: str, b: str) -> float:
    """Normalized 0-1 string similarity, case-insensitive."""
    return fuzz.ratio(a.lower(), b.lower()) / 100.0


def score_candidates(
    candidates: list[LookupCandidate],
    expected_title: Optional[str] = None,
    expected_artist: Optional[str] = None,
) -> list[LookupCandidate]:
    """Score candidates against the expected title/artist, best first.

    Only the components that were given are averaged. With neither given
    the candidates are returned unscored in their original order. Ties
    keep their original order.
    """
    if not expected_title and not expected_artist:
        return list(candidates)

    scored = []
    for candidate in candidates:
        components = []
        if expected_title:
            components.append(similarity(expected_title, candidate.title))
        if expected_artist:
            components.append(similarity(expected_artist, " ".join(candidate.artists)))
        scored.append(candidate._replace(match_score=sum(components) / len(components)))

    return sorted(scored, key=lambda c: c.match_score, reverse=True)


def should_auto_apply(
    candidate: LookupCandidate, threshold: float = AUTO_APPLY_THRESHOLD
) -> bool:
    """Whether a candidate can be applied without asking the user.

    Unscored candidates (no expected title or artist to compare against)
    are accepted.
    """
    if candidate.match_score is None:
        return True
    return candidate.match_score >= threshold
