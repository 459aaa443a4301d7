from pydantic import BaseModel
from typing import Any, Optional


class TrackResponse(BaseModel):
    id: str
    name: str
    source_path: str
    metadata: Optional[dict[str, Any]] = None
    key_color: str


class TrackListResponse(BaseModel):
    tracks: list[TrackResponse]
    total: int  # Collection size before filtering


class TempoRangeResponse(BaseModel):
    min: int
    max: int


class ScanRequest(BaseModel):
    paths: Optional[list[str]] = None  # Defaults to configured library paths


class ScanResponse(BaseModel):
    found: int
    added: int
    total: int


class ImportResponse(BaseModel):
    format: str
    extracted: int
    matched: int
    dropped: int
    updated: int


class AuthStatusResponse(BaseModel):
    authenticated: bool


class CandidateResponse(BaseModel):
    title: str
    artists: list[str]
    album: str
    external_id: str
    external_uri: str
    external_url: str
    album_art_url: Optional[str] = None
    match_score: Optional[float] = None


class SearchResponse(BaseModel):
    query: str
    candidates: list[CandidateResponse]


class LookupRequest(BaseModel):
    accept_low_confidence: bool = False


class LookupResponse(BaseModel):
    status: str  # applied, declined, no_match
    query: str
    candidate: Optional[CandidateResponse] = None
    requires_confirmation: bool = False
    track: TrackResponse
