"""Blobs controller — serves bytes kept by the local blob store."""

import mimetypes

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from api.storage.services.blob_store import LocalBlobStore

router = APIRouter(prefix="/blobs", tags=["Blobs"])

CHUNK_SIZE = 1024 * 1024  # 1MB


@router.get("/{key}")
async def get_blob(request: Request, key: str):
    """Stream a stored blob."""
    store = request.app.state.blob_store
    if not isinstance(store, LocalBlobStore):
        raise HTTPException(status_code=404, detail="Blob not found")

    filepath = store.path_for(key)
    if not filepath:
        raise HTTPException(status_code=404, detail="Blob not found")

    content_type, _ = mimetypes.guess_type(key)
    if not content_type:
        content_type = "application/octet-stream"

    def iterfile():
        with open(filepath, "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                yield chunk

    return StreamingResponse(
        iterfile(),
        media_type=content_type,
        headers={"Content-Length": str(filepath.stat().st_size)},
    )
