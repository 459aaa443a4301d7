"""Playlists domain - DJ-software library exports.

This domain handles:
- Format detection (Rekordbox, Traktor, Serato, generic XML)
- Per-format extraction into ImportedTrack records
"""

from .importers import (
    ImportedTrack,
    PlaylistFormat,
    PlaylistImport,
    PlaylistImportError,
    detect_playlist_format,
    parse_playlist_xml,
)

__all__ = [
    "ImportedTrack",
    "PlaylistFormat",
    "PlaylistImport",
    "PlaylistImportError",
    "detect_playlist_format",
    "parse_playlist_xml",
]
