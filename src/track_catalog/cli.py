"""
Track Catalog CLI - Entry point

Scans audio files into the collection, merges DJ-software exports, looks
tracks up on Spotify and prints filtered/sorted views.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Optional

from track_catalog.core.config import SORT_DIRECTIONS, SORT_KEYS, Config, load_config
from track_catalog.core.console import print_table, track_table
from track_catalog.core.output import log, setup_from_config
from track_catalog.domain.library import storage
from track_catalog.domain.library.collection import TrackCollection
from track_catalog.domain.library.matching import LookupCandidate
from track_catalog.domain.library.models import TrackRecord
from track_catalog.domain.library.normalizers import key_display_color
from track_catalog.domain.library.view import (
    SortSpec,
    ViewFilters,
    build_view,
    tempo_bounds,
)


def _load_collection() -> TrackCollection:
    return TrackCollection(storage.load_all())


def _save(collection: TrackCollection) -> int:
    if not storage.save_all(collection.snapshot()):
        log("❌ Could not save collection", level="error")
        return 1
    return 0


def run_scan(config: Config, paths: list[str]) -> int:
    """Scan directories (default: configured library paths) for new files."""
    from track_catalog.domain.library.scanner import scan_music_library, scan_paths

    collection = _load_collection()
    if paths:
        records = scan_paths([Path(p).expanduser() for p in paths], config)
    else:
        records = scan_music_library(config)

    added = collection.add_new(records)
    log(f"Found {len(records)} files, {len(added)} new, {len(collection)} total")
    return _save(collection) if added else 0


def run_import_xml(config: Config, xml_path: str) -> int:
    """Merge a DJ-software XML export into the collection."""
    from track_catalog.domain.library.merge import merge_import
    from track_catalog.domain.playlists.importers import (
        PlaylistImportError,
        parse_playlist_xml,
    )

    path = Path(xml_path).expanduser()
    try:
        data = path.read_bytes()
    except OSError as e:
        log(f"❌ Cannot read {path}: {e}", level="error")
        return 1

    try:
        parsed = parse_playlist_xml(
            data,
            max_bytes=config.imports.max_file_size_mb * 1024 * 1024,
            max_depth=config.imports.generic_max_depth,
            max_tracks=config.imports.max_tracks,
        )
    except PlaylistImportError as e:
        log(f"❌ {e}", level="error")
        return 1

    collection = _load_collection()
    stats: dict[str, int] = {}

    def _merge(snapshot):
        merged, merge_stats = merge_import(snapshot, parsed.tracks)
        stats.update(merge_stats)
        return merged

    collection.transform(_merge)
    log(
        f"{parsed.format.value}: {len(parsed.tracks)} tracks, "
        f"{stats['matched']} matched, {stats['dropped']} dropped, "
        f"{stats['updated']} updated"
    )
    return _save(collection) if stats["updated"] else 0


def _table_rows(records: list[TrackRecord]) -> list[dict]:
    return [
        {
            "id": record.id,
            "key": record.meta("key"),
            "key_color": key_display_color(record.meta("key")),
            "tempo": record.meta("tempo"),
            "title": record.display_title(),
            "artist": record.meta("artist"),
            "duration": record.meta("duration"),
        }
        for record in records
    ]


def run_list(config: Config, args: argparse.Namespace) -> int:
    """Print the filtered and sorted collection."""
    snapshot = _load_collection().snapshot()
    bounds = tempo_bounds(snapshot)
    view_config = config.view

    include_without_tempo = view_config.include_files_without_tempo
    if args.with_tempo_only:
        include_without_tempo = False

    filters = ViewFilters(
        tempo_min=args.tempo_min if args.tempo_min is not None else bounds.minimum,
        tempo_max=args.tempo_max if args.tempo_max is not None else bounds.maximum,
        include_files_without_tempo=include_without_tempo,
        query=args.query or "",
        search_threshold=view_config.search_threshold,
    )
    sort = SortSpec(
        primary=args.sort or view_config.primary_sort,
        primary_direction=args.direction or view_config.primary_direction,
        secondary=args.then or view_config.secondary_sort,
        secondary_direction=args.then_direction or view_config.secondary_direction,
    )

    view = build_view(snapshot, filters, sort)
    print_table(track_table(_table_rows(view)), f"{len(view)} of {len(snapshot)} tracks")
    return 0


def _confirm(candidate: LookupCandidate) -> bool:
    artists = ", ".join(candidate.artists)
    score = candidate.match_score or 0.0
    answer = input(
        f"Low-confidence match ({score:.0%}): {candidate.title} - {artists}. Apply? [y/N] "
    )
    return answer.strip().lower() in ("y", "yes")


def run_lookup(config: Config, track_id: str, assume_yes: bool = False) -> int:
    """Look up one track on Spotify and merge the result."""
    from track_catalog.domain.library.enrichment import LookupStatus, lookup_track
    from track_catalog.domain.library.provider import ProviderConfig
    from track_catalog.domain.library.providers import spotify

    collection = _load_collection()
    record = collection.get(track_id)
    if record is None:
        log(f"❌ Track not found: {track_id}", level="error")
        return 1

    state = spotify.init_provider(
        ProviderConfig(
            name="spotify",
            client_id=config.spotify.client_id,
            client_secret=config.spotify.client_secret,
        )
    )

    try:
        _, outcome = lookup_track(
            state,
            record,
            threshold=config.lookup.match_threshold,
            limit=config.lookup.search_limit,
            confirm=(lambda candidate: True) if assume_yes else _confirm,
        )
    except spotify.SpotifyAuthError as e:
        log(f"❌ {e}. Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET.", level="error")
        return 1
    except spotify.SpotifyLookupError as e:
        log(f"❌ Spotify lookup failed: {e}", level="error")
        return 1

    if outcome.status is LookupStatus.NO_MATCH:
        log(f"No match found for query: {outcome.query.text}", level="warning")
        return 1
    if outcome.status is LookupStatus.DECLINED:
        log("Match declined, track unchanged")
        return 0

    collection.update(track_id, outcome.apply)
    log(f"✓ Applied: {outcome.candidate.title} ({outcome.candidate.external_id})")
    return _save(collection)


def run_serve(config: Config, host: Optional[str], port: Optional[int]) -> int:
    """Run the FastAPI backend with uvicorn."""
    import uvicorn

    if config.web.allowed_origins:
        os.environ.setdefault(
            "TRACK_CATALOG_ALLOWED_ORIGINS", ",".join(config.web.allowed_origins)
        )
    uvicorn.run(
        "web.backend.main:app",
        host=host or config.web.host,
        port=port or config.web.port,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="track-catalog",
        description="Track Catalog - DJ music library cataloguing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    scan_parser = subparsers.add_parser("scan", help="Scan directories for audio files")
    scan_parser.add_argument(
        "paths", nargs="*", help="Directories to scan (default: library_paths)"
    )

    import_parser = subparsers.add_parser(
        "import-xml", help="Merge a Rekordbox/Traktor/Serato XML export"
    )
    import_parser.add_argument("xml_file", help="Path to the XML export")

    list_parser = subparsers.add_parser("list", help="Show the collection")
    list_parser.add_argument("-q", "--query", help="Fuzzy search text")
    list_parser.add_argument("--tempo-min", type=float, help="Minimum BPM")
    list_parser.add_argument("--tempo-max", type=float, help="Maximum BPM")
    list_parser.add_argument(
        "--with-tempo-only",
        action="store_true",
        help="Hide tracks without a known tempo",
    )
    list_parser.add_argument("--sort", choices=SORT_KEYS, help="Primary sort key")
    list_parser.add_argument(
        "--direction", choices=SORT_DIRECTIONS, help="Primary sort direction"
    )
    list_parser.add_argument("--then", choices=SORT_KEYS, help="Secondary sort key")
    list_parser.add_argument(
        "--then-direction", choices=SORT_DIRECTIONS, help="Secondary sort direction"
    )

    lookup_parser = subparsers.add_parser("lookup", help="Look up a track on Spotify")
    lookup_parser.add_argument("track_id", help="Track id (see 'list')")
    lookup_parser.add_argument(
        "-y", "--yes", action="store_true", help="Apply low-confidence matches too"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the web API")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Port")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the track-catalog command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.subcommand:
        parser.print_help()
        sys.exit(1)

    config = load_config()
    setup_from_config(config.logging)

    if args.subcommand == "scan":
        sys.exit(run_scan(config, args.paths))
    elif args.subcommand == "import-xml":
        sys.exit(run_import_xml(config, args.xml_file))
    elif args.subcommand == "list":
        sys.exit(run_list(config, args))
    elif args.subcommand == "lookup":
        sys.exit(run_lookup(config, args.track_id, assume_yes=args.yes))
    elif args.subcommand == "serve":
        sys.exit(run_serve(config, args.host, args.port))


if __name__ == "__main__":
    main()
