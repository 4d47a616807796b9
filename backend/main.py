"""Y-Share — Main application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

import config
from api.download.controllers.download_controller import router as download_router
from api.pages.controllers.pages_controller import router as pages_router
from api.sessions.repositories.code_registry import CodeRegistry
from api.storage.controllers.blobs_controller import router as blobs_router
from api.storage.services.blob_store import BlobStore, HttpBlobStore, LocalBlobStore
from api.upload.controllers.upload_controller import router as upload_router
from logging_config import setup_logging

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent.parent / "static"


def build_blob_store(client: httpx.AsyncClient) -> BlobStore:
    """Pick the blob store named by YSHARE_BLOB_BACKEND."""
    if config.BLOB_BACKEND == "http":
        return HttpBlobStore(
            config.BLOB_URL,
            client,
            upload_key=config.BLOB_KEY,
            ttl=config.SESSION_TTL,
            max_size=config.MAX_FILE_SIZE,
        )
    if config.BLOB_BACKEND != "local":
        raise ValueError(f"Unknown blob backend: {config.BLOB_BACKEND}")
    return LocalBlobStore(config.FILES_DIR, max_size=config.MAX_FILE_SIZE)


def create_app(
    registry: CodeRegistry | None = None,
    blob_store: BlobStore | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    setup_logging(config.LOG_LEVEL)

    # A fresh registry is empty and therefore falsy, so test against None
    if http_client is None:
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(30.0, read=60.0),
            follow_redirects=True,
        )
    if registry is None:
        registry = CodeRegistry(
            ttl=config.SESSION_TTL,
            max_attempts=config.CODE_MAX_ATTEMPTS,
        )
    if blob_store is None:
        blob_store = build_blob_store(http_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(app.state.blob_store, LocalBlobStore):
            app.state.blob_store.init()
        logger.info("Y-Share started (blob store: %s)", type(app.state.blob_store).__name__)
        yield
        app.state.registry.clear()
        await app.state.http_client.aclose()

    app = FastAPI(title="Y-Share", version="0.1.0", lifespan=lifespan)
    app.state.registry = registry
    app.state.blob_store = blob_store
    app.state.http_client = http_client

    # Static files
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # Router registration order matters:
    # 1. Health check
    @app.get("/api/health")
    async def health():
        return {"status": "ok", "sessions": len(app.state.registry)}

    # 2. API routers
    app.include_router(upload_router)
    app.include_router(download_router)

    # 3. Local blobs
    app.include_router(blobs_router)

    # 4. Pages
    app.include_router(pages_router)

    return app


app = create_app()
