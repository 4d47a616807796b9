"""Per-request access to the objects owned by the application."""

import httpx
from fastapi import Request

from api.download.services.download_service import DeliveryPipeline
from api.sessions.repositories.code_registry import CodeRegistry
from api.storage.services.blob_store import BlobStore
from config import CHUNK_SIZE


def get_registry(request: Request) -> CodeRegistry:
    return request.app.state.registry


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_pipeline(request: Request) -> DeliveryPipeline:
    return DeliveryPipeline(
        get_registry(request),
        get_http_client(request),
        chunk_size=CHUNK_SIZE,
    )
