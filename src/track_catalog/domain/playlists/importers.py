"""
DJ-software library import for Track Catalog.
Supports Rekordbox XML, Traktor NML and Serato XML exports, plus a
best-effort scan of any other XML layout.
"""

import xml.etree.ElementTree as ET
from enum import Enum
from typing import Any, Iterator, NamedTuple, Optional
from urllib.parse import unquote, urlparse

from loguru import logger

from track_catalog.domain.library.normalizers import normalize_key, normalize_tempo

# Security limits for untrusted XML files
MAX_XML_BYTES = 100 * 1024 * 1024  # 100MB
MAX_GENERIC_DEPTH = 32
MAX_TRACKS = 100_000

TITLE_FIELDS = ("title", "name")
ARTIST_FIELDS = ("artist",)
TEMPO_FIELDS = ("bpm", "averagebpm", "tempo")
KEY_FIELDS = ("key", "tonality", "initialkey")


class PlaylistImportError(ValueError):
    """Raised when an XML export cannot be read at all."""

    pass


class PlaylistFormat(str, Enum):
    """DJ-software export formats, detected from the document root."""

    REKORDBOX = "rekordbox"
    TRAKTOR = "traktor"
    SERATO = "serato"
    GENERIC = "generic"


class ImportedTrack(NamedTuple):
    """One track as described by a DJ-software export."""

    title: str = ""
    artist: str = ""
    album: str = ""
    genre: str = ""
    bpm: Optional[float] = None
    key: Optional[str] = None  # Normalized to Camelot where recognized
    location: str = ""
    duration: Optional[float] = None
    rating: Optional[int] = None
    year: Optional[int] = None
    comment: Optional[str] = None
    energy: Optional[str] = None


class PlaylistImport(NamedTuple):
    """Result of parsing one export file."""

    format: PlaylistFormat
    tracks: list[ImportedTrack]


def _strip_ns(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _fields(elem: ET.Element) -> dict[str, str]:
    """Attributes plus leaf child text, keyed by lowercase name.

    Attributes win over child elements with the same name.
    """
    fields: dict[str, str] = {}
    for child in elem:
        if len(child) == 0 and child.text and child.text.strip():
            fields.setdefault(_strip_ns(child.tag).lower(), child.text.strip())
    for name, value in elem.attrib.items():
        fields[_strip_ns(name).lower()] = value.strip()
    return fields


def _first(fields: dict[str, str], *names: str) -> str:
    for name in names:
        value = fields.get(name)
        if value:
            return value
    return ""


def _to_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _to_year(value: Any) -> Optional[int]:
    """Year from "2019", "2019-05-01" or Traktor's "2019/5/1"."""
    if not value:
        return None
    head = str(value).replace("/", "-").split("-")[0].strip()
    year = _to_int(head)
    return year if year and year > 0 else None


def _child(elem: ET.Element, name: str) -> ET.Element:
    found = elem.find(name)
    return found if found is not None else ET.Element(name)


def location_filename(location: str) -> str:
    """Last path segment of a track location (file URL or OS path)."""
    if not location:
        return ""
    path = location
    if location.lower().startswith("file:"):
        path = urlparse(location).path
    path = unquote(path)
    return path.replace("\\", "/").rstrip("/").split("/")[-1]


def _rekordbox_tracks(root: ET.Element) -> Iterator[ImportedTrack]:
    for track in root.iterfind("./COLLECTION/TRACK"):
        a = _fields(track)
        yield ImportedTrack(
            title=a.get("name", ""),
            artist=a.get("artist", ""),
            album=a.get("album", ""),
            genre=a.get("genre", ""),
            bpm=normalize_tempo(a.get("averagebpm")),
            key=normalize_key(_first(a, "tonality", "key")),
            location=a.get("location", ""),
            duration=_to_float(a.get("totaltime")),
            rating=_to_int(a.get("rating")),
            year=_to_year(a.get("year")),
            comment=a.get("comments") or None,
            energy=a.get("energy") or None,
        )


def _traktor_tracks(root: ET.Element) -> Iterator[ImportedTrack]:
    for entry in root.iterfind("./COLLECTION/ENTRY"):
        e = _fields(entry)
        info = _fields(_child(entry, "INFO"))
        location = _fields(_child(entry, "LOCATION"))
        album = _fields(_child(entry, "ALBUM"))
        tempo = _fields(_child(entry, "TEMPO"))
        musical_key = _fields(_child(entry, "MUSICAL_KEY"))

        key_value = musical_key.get("value")
        yield ImportedTrack(
            title=_first(e, "title") or info.get("title", ""),
            artist=_first(e, "artist") or info.get("artist", ""),
            album=album.get("title", "") or info.get("album", ""),
            genre=info.get("genre", ""),
            bpm=normalize_tempo(tempo.get("bpm")),
            key=normalize_key(_to_int(key_value) if key_value else info.get("key")),
            location="".join(
                location.get(part, "") for part in ("volume", "dir", "file")
            ),
            duration=_to_float(info.get("playtime")),
            rating=_to_int(info.get("ranking")),
            year=_to_year(info.get("release_date")),
            comment=info.get("comment") or None,
            energy=info.get("energy") or None,
        )


def _serato_tracks(root: ET.Element) -> Iterator[ImportedTrack]:
    for song in root.iterfind("./Songs/Song"):
        s = _fields(song)
        yield ImportedTrack(
            title=s.get("title", ""),
            artist=s.get("artist", ""),
            album=s.get("album", ""),
            genre=s.get("genre", ""),
            bpm=normalize_tempo(s.get("bpm")),
            key=normalize_key(s.get("key")),
            location=_first(s, "path", "location"),
            duration=_to_float(s.get("length")),
            rating=_to_int(s.get("rating")),
            year=_to_year(s.get("year")),
            comment=s.get("comment") or None,
            energy=s.get("energy") or None,
        )


def _looks_like_track(fields: dict[str, str]) -> bool:
    return bool(_first(fields, *TITLE_FIELDS)) and bool(
        _first(fields, *ARTIST_FIELDS, *TEMPO_FIELDS, *KEY_FIELDS)
    )


def _generic_tracks(root: ET.Element, max_depth: int) -> Iterator[ImportedTrack]:
    """Depth-first scan for any element bearing track-like fields.

    A matching element is taken as one track and not searched further.
    Elements deeper than ``max_depth`` are ignored.
    """
    stack: list[tuple[ET.Element, int]] = [(root, 0)]
    while stack:
        elem, depth = stack.pop()
        fields = _fields(elem)
        if _looks_like_track(fields):
            yield ImportedTrack(
                title=_first(fields, *TITLE_FIELDS),
                artist=_first(fields, *ARTIST_FIELDS),
                album=_first(fields, "album"),
                genre=_first(fields, "genre"),
                bpm=normalize_tempo(_first(fields, *TEMPO_FIELDS)),
                key=normalize_key(_first(fields, *KEY_FIELDS)),
                location=_first(fields, "location", "path", "file"),
                duration=_to_float(_first(fields, "duration", "length", "totaltime")),
                rating=_to_int(_first(fields, "rating")),
                year=_to_year(_first(fields, "year")),
                comment=_first(fields, "comment", "comments") or None,
                energy=_first(fields, "energy") or None,
            )
            continue

        if depth >= max_depth:
            logger.debug(f"Generic XML scan stopped at depth {depth}")
            continue
        # Reversed so tracks come out in document order
        for child in reversed(list(elem)):
            stack.append((child, depth + 1))


def detect_playlist_format(root: ET.Element) -> PlaylistFormat:
    """Detect the export format from the document root element."""
    tag = _strip_ns(root.tag)
    if tag == "DJ_PLAYLISTS":
        return PlaylistFormat.REKORDBOX
    if tag == "NML":
        return PlaylistFormat.TRAKTOR
    if tag == "SeratoLibrary":
        return PlaylistFormat.SERATO
    return PlaylistFormat.GENERIC


def parse_playlist_xml(
    data: bytes,
    max_bytes: int = MAX_XML_BYTES,
    max_depth: int = MAX_GENERIC_DEPTH,
    max_tracks: int = MAX_TRACKS,
) -> PlaylistImport:
    """Parse a DJ-software XML export into per-track records.

    Args:
        data: Raw XML file contents
        max_bytes: Reject files larger than this
        max_depth: Nesting limit for the generic scanner
        max_tracks: Stop reading after this many tracks

    Returns:
        PlaylistImport with the detected format and extracted tracks

    Raises:
        PlaylistImportError: If the file is too large or not well-formed XML
    """
    if len(data) > max_bytes:
        raise PlaylistImportError(
            f"XML file too large: {len(data) / 1024 / 1024:.1f}MB "
            f"(max {max_bytes / 1024 / 1024:.0f}MB)"
        )
    if b"<!ENTITY" in data:
        raise PlaylistImportError("XML entity declarations are not allowed")

    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise PlaylistImportError(f"Invalid XML: {e}") from e

    playlist_format = detect_playlist_format(root)
    logger.info(f"Detected {playlist_format.value} XML format")

    if playlist_format is PlaylistFormat.REKORDBOX:
        extracted = _rekordbox_tracks(root)
    elif playlist_format is PlaylistFormat.TRAKTOR:
        extracted = _traktor_tracks(root)
    elif playlist_format is PlaylistFormat.SERATO:
        extracted = _serato_tracks(root)
    else:
        extracted = _generic_tracks(root, max_depth)

    tracks = []
    for track in extracted:
        if len(tracks) >= max_tracks:
            logger.warning(f"Track limit reached ({max_tracks}), ignoring the rest")
            break
        tracks.append(track)

    logger.info(f"Extracted {len(tracks)} tracks from {playlist_format.value} XML")
    return PlaylistImport(format=playlist_format, tracks=tracks)
