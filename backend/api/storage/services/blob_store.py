"""Blob stores — where uploaded bytes actually live.

Sessions only ever hold the URL a store hands back. Stores never delete:
expired sessions leave their blobs behind.
"""

import logging
import math
import re
import secrets
from collections.abc import AsyncIterator
from datetime import timedelta
from pathlib import Path
from typing import Protocol

import httpx
from fastapi import UploadFile

from errors import BlobStoreError, FileTooLargeError

logger = logging.getLogger(__name__)

READ_SIZE = 1024 * 1024  # 1MB

_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


def make_key(filename: str) -> str:
    """Opaque storage key. The user's name never reaches the store."""
    suffix = Path(filename or "").suffix.lower()
    if not _SAFE_SUFFIX.match(suffix):
        suffix = ""
    return f"upload-{secrets.token_hex(8)}{suffix}"


async def read_chunks(upload: UploadFile, max_size: int) -> AsyncIterator[bytes]:
    """Yield the upload in chunks, raising FileTooLargeError past max_size."""
    size = 0
    while chunk := await upload.read(READ_SIZE):
        size += len(chunk)
        if max_size and size > max_size:
            raise FileTooLargeError(f"{upload.filename} exceeds the maximum file size")
        yield chunk


class BlobStore(Protocol):
    async def put(self, upload: UploadFile, public_base: str) -> str: ...


class LocalBlobStore:
    """Keeps blobs on local disk and serves them from GET /blobs/{key}."""

    def __init__(self, root: Path, max_size: int = 0):
        self.root = Path(root)
        self.max_size = max_size

    def init(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path | None:
        """Resolve a key to a stored file, or None for unknown or unsafe keys."""
        if not key or "/" in key or "\\" in key or key.startswith("."):
            return None
        path = self.root / key
        return path if path.is_file() else None

    async def put(self, upload: UploadFile, public_base: str) -> str:
        self.init()
        key = make_key(upload.filename)
        target = self.root / key
        try:
            with open(target, "wb") as f:
                async for chunk in read_chunks(upload, self.max_size):
                    f.write(chunk)
        except Exception:
            target.unlink(missing_ok=True)
            raise

        logger.info("Stored blob %s (%d bytes)", key, target.stat().st_size)
        return f"{public_base.rstrip('/')}/blobs/{key}"


class HttpBlobStore:
    """Forwards uploads to a Drop server (``PUT /{filename}``) and keeps its URL."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient,
        upload_key: str = "",
        ttl: timedelta | None = None,
        max_size: int = 0,
    ):
        if not base_url:
            raise ValueError("HttpBlobStore needs a base URL")
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.upload_key = upload_key
        self.ttl = ttl
        self.max_size = max_size

    def _headers(self) -> dict[str, str]:
        headers = {}
        if self.upload_key:
            headers["X-Upload-Key"] = self.upload_key
        if self.ttl:
            headers["X-Expires"] = f"{math.ceil(self.ttl.total_seconds() / 60)}m"
        return headers

    async def put(self, upload: UploadFile, public_base: str) -> str:
        key = make_key(upload.filename)
        headers = self._headers()
        if upload.content_type:
            headers["Content-Type"] = upload.content_type

        try:
            response = await self.client.put(
                f"{self.base_url}/{key}",
                content=read_chunks(upload, self.max_size),
                headers=headers,
            )
            response.raise_for_status()
            url = response.json()["url"]
        except httpx.HTTPError as e:
            raise BlobStoreError(f"Blob store rejected {key}: {e}") from e
        except FileTooLargeError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise BlobStoreError(f"Blob store returned no URL for {key}") from e

        logger.info("Stored blob %s at %s", key, url)
        return url
