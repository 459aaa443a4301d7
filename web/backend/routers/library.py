from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from loguru import logger

from track_catalog.core.config import Config
from track_catalog.domain.library.collection import TrackCollection
from track_catalog.domain.library.merge import merge_import
from track_catalog.domain.library.scanner import scan_music_library, scan_paths
from track_catalog.domain.playlists.importers import (
    PlaylistImportError,
    parse_playlist_xml,
)

from ..deps import get_collection, get_config, persist
from ..schemas import ImportResponse, ScanRequest, ScanResponse

router = APIRouter()


@router.post("/library/scan", response_model=ScanResponse)
def scan_library(
    request: ScanRequest,
    collection: TrackCollection = Depends(get_collection),
    config: Config = Depends(get_config),
) -> ScanResponse:
    """Scan library directories and add files not seen before."""
    if request.paths:
        missing = [p for p in request.paths if not Path(p).expanduser().is_dir()]
        if missing:
            raise HTTPException(400, f"Not a directory: {', '.join(missing)}")
        records = scan_paths([Path(p).expanduser() for p in request.paths], config)
    else:
        records = scan_music_library(config)

    added = collection.add_new(records)
    if added:
        persist(collection)

    return ScanResponse(found=len(records), added=len(added), total=len(collection))


@router.post("/library/import-xml", response_model=ImportResponse)
def import_xml(
    xml_file: UploadFile = File(...),
    collection: TrackCollection = Depends(get_collection),
    config: Config = Depends(get_config),
) -> ImportResponse:
    """Merge a Rekordbox, Traktor or Serato export into known tracks."""
    max_bytes = config.imports.max_file_size_mb * 1024 * 1024
    # Read one byte past the limit so oversized uploads are detected
    data = xml_file.file.read(max_bytes + 1)

    try:
        parsed = parse_playlist_xml(
            data,
            max_bytes=max_bytes,
            max_depth=config.imports.generic_max_depth,
            max_tracks=config.imports.max_tracks,
        )
    except PlaylistImportError as e:
        logger.warning(f"Rejected XML import {xml_file.filename}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    stats: dict[str, int] = {}

    def _merge(snapshot):
        merged, merge_stats = merge_import(snapshot, parsed.tracks)
        stats.update(merge_stats)
        return merged

    collection.transform(_merge)
    if stats.get("updated"):
        persist(collection)

    return ImportResponse(
        format=parsed.format.value,
        extracted=len(parsed.tracks),
        matched=stats.get("matched", 0),
        dropped=stats.get("dropped", 0),
        updated=stats.get("updated", 0),
    )
