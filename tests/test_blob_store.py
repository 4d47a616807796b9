import json
from datetime import timedelta

import httpx
import pytest

from api.storage.services.blob_store import HttpBlobStore, LocalBlobStore, make_key
from errors import BlobStoreError
from helpers import make_upload


def test_make_key_hides_user_name():
    key = make_key("../../etc/passwd")
    assert key.startswith("upload-")
    assert "/" not in key and "passwd" not in key


def test_make_key_keeps_simple_suffix():
    assert make_key("Photo.PNG").endswith(".png")
    assert "." not in make_key("archive.tar.g$z")[len("upload-"):]


async def test_local_store_put_and_path_for(tmp_path):
    store = LocalBlobStore(tmp_path / "files")

    url = await store.put(make_upload("notes.txt", b"hello"), "http://test/")

    key = url.rsplit("/", 1)[1]
    assert url == f"http://test/blobs/{key}"
    assert store.path_for(key).read_bytes() == b"hello"


def test_local_store_rejects_unsafe_keys(tmp_path):
    store = LocalBlobStore(tmp_path)
    (tmp_path / "secret").write_bytes(b"x")

    assert store.path_for("../secret") is None
    assert store.path_for(".hidden") is None
    assert store.path_for("missing") is None


def drop_server(replies):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return replies(request)

    return seen, httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_http_store_forwards_to_drop_server():
    seen, client = drop_server(lambda request: httpx.Response(
        200, json={"url": f"https://drop.test/abc123/{request.url.path.lstrip('/')}"}
    ))
    store = HttpBlobStore(
        "https://drop.test/", client, upload_key="k3y", ttl=timedelta(minutes=10)
    )

    async with client:
        url = await store.put(make_upload("a.pdf", b"pdf!", "application/pdf"), "http://ignored/")

    request = seen[0]
    assert request.method == "PUT"
    assert request.url.path.startswith("/upload-") and request.url.path.endswith(".pdf")
    assert request.headers["X-Upload-Key"] == "k3y"
    assert request.headers["X-Expires"] == "10m"
    assert request.headers["Content-Type"] == "application/pdf"
    assert request.content == b"pdf!"
    assert url.startswith("https://drop.test/abc123/upload-")


async def test_http_store_error_status():
    _, client = drop_server(lambda request: httpx.Response(403, json={"detail": "nope"}))
    store = HttpBlobStore("https://drop.test", client)

    async with client:
        with pytest.raises(BlobStoreError):
            await store.put(make_upload("a.txt", b"x"), "http://ignored/")


async def test_http_store_reply_without_url():
    _, client = drop_server(lambda request: httpx.Response(200, content=json.dumps({"code": "x"})))
    store = HttpBlobStore("https://drop.test", client)

    async with client:
        with pytest.raises(BlobStoreError):
            await store.put(make_upload("a.txt", b"x"), "http://ignored/")


def test_http_store_needs_base_url():
    with pytest.raises(ValueError):
        HttpBlobStore("", httpx.AsyncClient())
