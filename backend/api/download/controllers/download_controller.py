"""Download controller — resolves a code to a file or zip stream."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from api.download.services.download_service import Delivery, DeliveryPipeline
from dependencies import get_pipeline
from errors import NotFoundError, UpstreamFetchError

router = APIRouter(prefix="/api/sessions", tags=["Download"])


def to_streaming_response(delivery: Delivery) -> StreamingResponse:
    return StreamingResponse(
        delivery.body,
        media_type=delivery.media_type,
        headers=delivery.headers,
        background=BackgroundTask(delivery.aclose),
    )


@router.get("/{code}/download")
async def download(code: str, pipeline: DeliveryPipeline = Depends(get_pipeline)):
    """Stream the session's file, or a zip when it holds several."""
    try:
        delivery = await pipeline.deliver(code)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Invalid or expired code")
    except UpstreamFetchError:
        raise HTTPException(status_code=502, detail="Could not fetch the file")

    return to_streaming_response(delivery)
