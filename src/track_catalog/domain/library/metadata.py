"""
Embedded tag extraction.

Reads metadata from raw audio bytes using Mutagen. Extraction is best-effort:
unreadable files produce an empty metadata bag instead of an error.
"""

import base64
import io
from typing import Any, Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError

from .normalizers import normalize_key, normalize_tempo


def get_tag_value(audio_file: Any, tag_names: list[str]) -> Optional[str]:
    """Get tag value, trying multiple possible tag names."""
    tags = getattr(audio_file, "tags", None)
    if tags is None:
        return None

    for tag_name in tag_names:
        try:
            value = tags.get(tag_name)
        except (KeyError, ValueError):
            # Some formats (like Vorbis) raise ValueError for non-existent keys
            continue
        if not value:
            continue
        if isinstance(value, list):
            value = value[0]
        text = getattr(value, "text", None)
        if isinstance(text, list) and text:
            value = text[0]
        if isinstance(value, bytes):
            # MP4 freeform atoms
            value = value.decode("utf-8", errors="ignore")
        result = str(value).strip()
        if result:
            return result
    return None


def _parse_year(value: Optional[str]) -> Optional[int]:
    """Take the year from dates like "2019", "2019-05-01" or "2019/5/1"."""
    if not value:
        return None
    head = value.replace("/", "-").split("-")[0].strip()
    try:
        return int(head)
    except ValueError:
        return None


def _data_uri(data: bytes, mime: Optional[str]) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime or 'image/jpeg'};base64,{encoded}"


def extract_picture(audio_file: Any) -> Optional[str]:
    """Return embedded cover art as a data: URI, if present."""
    # FLAC / Ogg pictures
    pictures = getattr(audio_file, "pictures", None)
    if pictures:
        picture = pictures[0]
        return _data_uri(picture.data, picture.mime)

    tags = getattr(audio_file, "tags", None)
    if tags is None:
        return None

    # ID3 APIC frames
    getall = getattr(tags, "getall", None)
    if callable(getall):
        frames = getall("APIC")
        if frames:
            return _data_uri(frames[0].data, frames[0].mime)

    # MP4 cover atoms
    try:
        covers = tags.get("covr")
    except (KeyError, ValueError):
        covers = None
    if covers:
        cover = covers[0]
        image_format = getattr(cover, "imageformat", None)
        mime = "image/png" if image_format == 14 else "image/jpeg"
        return _data_uri(bytes(cover), mime)

    return None


def extract_tag_metadata(data: bytes, filename: str = "") -> dict[str, Any]:
    """Extract metadata from audio bytes.

    Args:
        data: Raw file contents
        filename: Original file name, used only for log messages

    Returns:
        Dict with any of: title, artist, album, genre, year, tempo, key,
        duration, comment, picture. Empty dict if nothing could be read.
    """
    try:
        audio_file = MutagenFile(io.BytesIO(data))
    except (MutagenError, OSError, ValueError, EOFError) as e:
        logger.warning(f"Could not read tags from {filename or '<bytes>'}: {e}")
        return {}
    except Exception:
        logger.exception(f"Unexpected error reading tags from {filename or '<bytes>'}")
        return {}

    if audio_file is None:
        logger.debug(f"Unrecognized audio format: {filename or '<bytes>'}")
        return {}

    metadata: dict[str, Any] = {}

    try:
        # ID3 (MP3), MP4, and Vorbis/Opus tags (lowercase)
        metadata["title"] = get_tag_value(
            audio_file, ["TIT2", "\xa9nam", "TITLE", "title"]
        )
        metadata["artist"] = get_tag_value(
            audio_file, ["TPE1", "\xa9ART", "ARTIST", "artist"]
        )
        metadata["album"] = get_tag_value(
            audio_file, ["TALB", "\xa9alb", "ALBUM", "album"]
        )
        metadata["genre"] = get_tag_value(
            audio_file, ["TCON", "\xa9gen", "GENRE", "genre"]
        )
        metadata["comment"] = get_tag_value(
            audio_file, ["COMM::eng", "COMM::XXX", "\xa9cmt", "COMMENT", "comment"]
        )

        # DJ metadata (ID3, MP4, Vorbis/Opus)
        metadata["key"] = normalize_key(
            get_tag_value(
                audio_file,
                [
                    "TKEY",
                    "----:com.apple.iTunes:initialkey",
                    "KEY",
                    "INITIAL_KEY",
                    "initialkey",
                    "key",
                ],
            )
        )
        metadata["tempo"] = normalize_tempo(
            get_tag_value(
                audio_file, ["TBPM", "tmpo", "BPM", "BEATS_PER_MINUTE", "bpm"]
            )
        )
        metadata["year"] = _parse_year(
            get_tag_value(
                audio_file,
                ["TDRC", "TYER", "\xa9day", "DATE", "YEAR", "date", "year"],
            )
        )

        info = getattr(audio_file, "info", None)
        if info is not None:
            metadata["duration"] = getattr(info, "length", None)

        metadata["picture"] = extract_picture(audio_file)
    except Exception:
        # Partial data is still useful
        logger.exception(f"Error while reading tags from {filename or '<bytes>'}")

    return {k: v for k, v in metadata.items() if v not in (None, "")}
