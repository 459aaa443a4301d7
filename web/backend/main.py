import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from track_catalog.core.config import WebConfig
from web.backend.routers import library, spotify, tracks


def _allowed_origins() -> list[str]:
    """CORS origins; `track-catalog serve` exports [web] allowed_origins here."""
    env_origins = os.getenv("TRACK_CATALOG_ALLOWED_ORIGINS", "")
    origins = [o.strip() for o in env_origins.split(",") if o.strip()]
    return origins or WebConfig().allowed_origins


app = FastAPI(title="Track Catalog Web API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tracks.router, prefix="/api", tags=["tracks"])
app.include_router(library.router, prefix="/api", tags=["library"])
app.include_router(spotify.router, prefix="/api", tags=["spotify"])


@app.get("/health")
def health_check():
    return {"status": "healthy"}
