"""Upload controller — creates a share session from multipart uploads."""

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from api.sessions.repositories.code_registry import CodeRegistry
from api.storage.services.blob_store import BlobStore
from api.upload.dto.upload import UploadResponse
from api.upload.services import upload_service
from dependencies import get_blob_store, get_registry
from errors import BlobStoreError, CapacityError, FileTooLargeError, ValidationError

router = APIRouter(prefix="/api/sessions", tags=["Upload"])


@router.post("", response_model=UploadResponse, status_code=201)
async def create_session(
    request: Request,
    files: list[UploadFile] | None = File(default=None),
    registry: CodeRegistry = Depends(get_registry),
    store: BlobStore = Depends(get_blob_store),
):
    """Store the uploaded files and return their share code."""
    try:
        return await upload_service.save_uploads(
            registry, store, files, str(request.base_url)
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except BlobStoreError:
        raise HTTPException(status_code=502, detail="Could not store the upload")
    except CapacityError:
        raise HTTPException(status_code=503, detail="No share codes available, try again later")
