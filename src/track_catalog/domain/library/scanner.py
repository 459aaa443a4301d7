"""
Music library scanning.

Walks library directories for audio files and turns them into new Track
Records with tag-derived metadata.
"""

from dataclasses import replace
from pathlib import Path
from typing import Iterable, Iterator

from loguru import logger

from track_catalog.core.config import Config

from .metadata import extract_tag_metadata
from .models import TrackRecord, create_track


def is_supported_format(local_path: Path, supported_formats: list[str]) -> bool:
    """Check if file format is supported."""
    return local_path.suffix.lower() in supported_formats


def iter_audio_files(
    directory: Path, supported_formats: list[str], recursive: bool = True
) -> Iterator[tuple[str, bytes]]:
    """Lazily yield (relative path, file bytes) for every audio file.

    Files are read one at a time as the caller iterates. Unreadable files
    are logged and skipped.
    """
    pattern = "**/*" if recursive else "*"
    try:
        paths = sorted(directory.glob(pattern))
    except PermissionError:
        logger.warning(f"Permission denied accessing: {directory}")
        return

    for local_path in paths:
        if not local_path.is_file() or not is_supported_format(
            local_path, supported_formats
        ):
            continue
        try:
            data = local_path.read_bytes()
        except OSError as e:
            logger.warning(f"Error reading {local_path}: {e}")
            continue
        yield local_path.relative_to(directory).as_posix(), data


def ingest_files(
    files: Iterable[tuple[str, bytes]], progress_callback=None
) -> list[TrackRecord]:
    """Create Track Records for (relative path, bytes) pairs.

    Args:
        files: Pairs as produced by iter_audio_files
        progress_callback: Optional callback function(relative_path, record)

    Returns:
        New records with fresh ids; metadata is None for untagged files
    """
    records = []
    for relative_path, data in files:
        name = Path(relative_path).name
        metadata = extract_tag_metadata(data, filename=name)
        record = create_track(name, source_path=relative_path, metadata=metadata)
        records.append(record)
        if progress_callback:
            progress_callback(relative_path, record)
    return records


def scan_music_library(config: Config, progress_callback=None) -> list[TrackRecord]:
    """Scan all configured library paths for music files.

    Returns:
        New records for every audio file found (not yet in any collection)
    """
    all_records: list[TrackRecord] = []
    formats = [fmt.lower() for fmt in config.library.supported_formats]

    for library_path in config.library.library_paths:
        path = Path(library_path).expanduser()
        if not path.exists():
            logger.warning(f"Library path does not exist: {path}")
            continue

        logger.info(f"Scanning: {path}")
        files = iter_audio_files(path, formats, recursive=config.library.scan_recursive)
        all_records.extend(ingest_files(files, progress_callback=progress_callback))

    logger.info(f"Library scan complete: {len(all_records)} tracks found")
    return all_records


def scan_paths(
    paths: list[Path], config: Config, progress_callback=None
) -> list[TrackRecord]:
    """Scan explicit directories instead of the configured library paths."""
    overridden = replace(
        config, library=replace(config.library, library_paths=[str(p) for p in paths])
    )
    return scan_music_library(overridden, progress_callback=progress_callback)
