"""Pages controller — HTML routes for the send/receive page."""

from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from api.download.controllers.download_controller import to_streaming_response
from api.download.services.download_service import DeliveryPipeline
from api.sessions.repositories.code_registry import CodeRegistry
from api.storage.services.blob_store import BlobStore
from api.upload.services import upload_service
from dependencies import get_blob_store, get_pipeline, get_registry
from errors import (
    BlobStoreError,
    CapacityError,
    FileTooLargeError,
    NotFoundError,
    UpstreamFetchError,
    ValidationError,
)

router = APIRouter(tags=["Pages"])

TEMPLATES_DIR = Path(__file__).parent.parent.parent.parent.parent / "templates"
templates = Jinja2Templates(directory=TEMPLATES_DIR)


def _remaining(dt: datetime) -> str:
    now = datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    seconds = (dt - now).total_seconds()
    if seconds <= 0:
        return "expired"
    if seconds < 60:
        return "in less than a minute"
    if seconds < 3600:
        m = int(seconds // 60)
        return f"in {m} min"
    h = int(seconds // 3600)
    return f"in {h}h"


templates.env.filters["remaining"] = _remaining


def _render(request: Request, status_code: int = 200, **context) -> HTMLResponse:
    page = {"generated_code": None, "summary": None, "expires_at": None, "error": None}
    page.update(context)
    return templates.TemplateResponse(request, "index.html", page, status_code=status_code)


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    return _render(request)


@router.post("/send", response_class=HTMLResponse)
async def send(
    request: Request,
    files: list[UploadFile] | None = File(default=None),
    registry: CodeRegistry = Depends(get_registry),
    store: BlobStore = Depends(get_blob_store),
):
    """Form upload — shows the code on success."""
    try:
        created = await upload_service.save_uploads(
            registry, store, files, str(request.base_url)
        )
    except ValidationError:
        return _render(request, 400, error="Please choose a file to send.")
    except FileTooLargeError:
        return _render(request, 413, error="That file is too large.")
    except BlobStoreError:
        return _render(request, 502, error="The upload could not be stored. Please try again.")
    except CapacityError:
        return _render(request, 503, error="No codes are available right now. Please try again later.")

    return _render(
        request,
        generated_code=created.code,
        summary=created.summary,
        expires_at=created.expires_at,
    )


@router.post("/receive")
async def receive(
    request: Request,
    code: str = Form(""),
    pipeline: DeliveryPipeline = Depends(get_pipeline),
):
    """Form download — streams the files or re-renders with an error."""
    try:
        delivery = await pipeline.deliver(code)
    except NotFoundError:
        return _render(request, 404, error="Invalid or expired code.")
    except UpstreamFetchError:
        return _render(request, 502, error="The file could not be retrieved.")

    return to_streaming_response(delivery)
