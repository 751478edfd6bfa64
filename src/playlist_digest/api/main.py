from __future__ import annotations

import os
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from playlist_digest.exceptions import StateFileError
from playlist_digest.jobs import JSONStateStore, RunStats
from playlist_digest.jobs.json_store import STATE_FILENAME
from playlist_digest.pipeline import get_status

# --- CONFIG ---
OUTPUT_DIR_ENV = "PLAYLIST_DIGEST_OUTPUT"
COLLECTION_PREFIX = "playlist-"


def get_output_dir() -> str:
    return os.getenv(OUTPUT_DIR_ENV, "./output")


app = FastAPI(title="playlist-digest status")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # For dev
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# --- Response Models ---
class PlaylistSummary(BaseModel):
    playlistId: str  # noqa: N815
    playlistTitle: str  # noqa: N815
    stats: RunStats


class FailedItemResponse(BaseModel):
    id: str
    title: str
    error: str


def _load_store(output_dir: str, playlist_id: str) -> JSONStateStore:
    store = JSONStateStore(output_dir, playlist_id)
    try:
        record = store.load()
    except StateFileError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)
    if record is None:
        raise HTTPException(status_code=404, detail="Playlist not tracked")
    return store


# --- ENDPOINTS ---
@app.get("/playlists", response_model=list[PlaylistSummary])
async def list_playlists(output_dir: str = Depends(get_output_dir)):
    base = Path(output_dir)
    if not base.is_dir():
        return []

    playlists = []
    for entry in sorted(base.iterdir()):
        if not entry.name.startswith(COLLECTION_PREFIX) or not (entry / STATE_FILENAME).exists():
            continue
        playlist_id = entry.name[len(COLLECTION_PREFIX) :]
        try:
            collection = get_status(output_dir, playlist_id)
        except StateFileError:
            continue
        playlists.append(
            PlaylistSummary(
                playlistId=collection.playlist_id,
                playlistTitle=collection.playlist_title,
                stats=collection.stats,
            )
        )
    return playlists


@app.get("/playlists/{playlist_id}")
async def get_playlist(playlist_id: str, output_dir: str = Depends(get_output_dir)):
    """Full state document, in its on-disk (camelCase) shape."""
    store = _load_store(output_dir, playlist_id)
    return store.get_record().model_dump(mode="json", by_alias=True)


@app.get("/playlists/{playlist_id}/stats", response_model=RunStats)
async def get_playlist_stats(playlist_id: str, output_dir: str = Depends(get_output_dir)):
    store = _load_store(output_dir, playlist_id)
    return store.get_stats()


@app.get("/playlists/{playlist_id}/failed", response_model=list[FailedItemResponse])
async def get_playlist_failed(playlist_id: str, output_dir: str = Depends(get_output_dir)):
    _load_store(output_dir, playlist_id)
    collection = get_status(output_dir, playlist_id)
    return [
        FailedItemResponse(id=item.item_id, title=item.title, error=item.error)
        for item in collection.failed
    ]
