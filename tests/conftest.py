"""Shared fixtures — manual clock, fake blob store, in-process app."""

from datetime import timedelta

import httpx
import pytest

from api.download.services.download_service import DeliveryPipeline
from api.sessions.repositories.code_registry import CodeRegistry
from api.storage.services.blob_store import LocalBlobStore
from helpers import FakeBlobStore, ManualClock
from main import create_app


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def registry(clock):
    return CodeRegistry(ttl=timedelta(minutes=10), scheduler=clock, clock=clock.now)


@pytest.fixture
def fake_store():
    return FakeBlobStore()


@pytest.fixture
async def remote_client(fake_store):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_store.handler)) as client:
        yield client


@pytest.fixture
def pipeline(registry, remote_client):
    return DeliveryPipeline(registry, remote_client, chunk_size=4)


@pytest.fixture
def blob_dir(tmp_path):
    return tmp_path / "files"


@pytest.fixture
async def app(registry, blob_dir):
    """App whose blob fetches loop back into itself."""
    holder = {}

    async def loopback(scope, receive, send):
        await holder["app"](scope, receive, send)

    http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=loopback))
    application = create_app(
        registry=registry,
        blob_store=LocalBlobStore(blob_dir, max_size=1024),
        http_client=http_client,
    )
    holder["app"] = application
    yield application
    await http_client.aclose()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
