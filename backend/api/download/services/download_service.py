"""Download service — resolves a code and streams its files back out.

One file is piped through untouched; several files are zipped on the fly.
The first upstream fetch is opened before anything is returned, so a dead
blob store still turns into a normal error response. Anything that fails
after that point can only be logged and abort the stream.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from urllib.parse import quote

import httpx

from api.download.services.archive_service import ZIP_MEDIA_TYPE, stream_zip
from api.sessions.models.share_session import FileRef, ShareSession
from api.sessions.repositories.code_registry import CodeRegistry
from errors import NotFoundError, UpstreamFetchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DEFAULT_MEDIA_TYPE = "application/octet-stream"

# Characters encodeURIComponent leaves alone, beyond quote()'s defaults
URI_COMPONENT_SAFE = "!~*'()"


def content_disposition(filename: str) -> str:
    """Attachment header with an RFC 5987 UTF-8 file name."""
    return f"attachment; filename*=UTF-8''{quote(filename, safe=URI_COMPONENT_SAFE)}"


@dataclass
class Delivery:
    filename: str
    media_type: str
    body: AsyncIterator[bytes]
    headers: dict[str, str] = field(default_factory=dict)
    upstream: list[httpx.Response] = field(default_factory=list)

    def __post_init__(self):
        self.headers.setdefault("Content-Disposition", content_disposition(self.filename))

    async def aclose(self) -> None:
        """Release the body and any upstream response it never got to read."""
        await self.body.aclose()
        for response in self.upstream:
            await response.aclose()


class DeliveryPipeline:
    def __init__(self, registry: CodeRegistry, client: httpx.AsyncClient, chunk_size: int = CHUNK_SIZE):
        self.registry = registry
        self.client = client
        self.chunk_size = chunk_size

    async def deliver(self, code: str) -> Delivery:
        session = self.registry.resolve(code.strip())
        if session is None:
            raise NotFoundError(code)

        if session.is_archive:
            return await self._deliver_archive(session)
        return await self._deliver_single(session)

    async def _open(self, ref: FileRef) -> httpx.Response:
        request = self.client.build_request("GET", ref.remote_url)
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamFetchError(ref.remote_url, str(e) or type(e).__name__) from e

        if response.is_error:
            await response.aclose()
            raise UpstreamFetchError(ref.remote_url, f"HTTP {response.status_code}")
        return response

    async def _pipe(self, ref: FileRef, response: httpx.Response) -> AsyncIterator[bytes]:
        """Relay one upstream body. Reads only as fast as the caller pulls."""
        try:
            async for chunk in response.aiter_bytes(self.chunk_size):
                yield chunk
        except httpx.HTTPError as e:
            raise UpstreamFetchError(ref.remote_url, str(e) or type(e).__name__) from e
        finally:
            await response.aclose()

    async def _deliver_single(self, session: ShareSession) -> Delivery:
        ref = session.files[0]
        try:
            response = await self._open(ref)
        except UpstreamFetchError as e:
            logger.warning("Session %s: %s", session.code, e)
            raise

        media_type = response.headers.get("content-type") or ref.mime_type or DEFAULT_MEDIA_TYPE
        logger.info("Session %s: streaming %s", session.code, ref.remote_url)

        async def body():
            try:
                async with aclosing(self._pipe(ref, response)) as chunks:
                    async for chunk in chunks:
                        yield chunk
            except UpstreamFetchError as e:
                logger.error("Session %s: download aborted mid-stream: %s", session.code, e)
                raise

        return Delivery(
            filename=ref.display_name, media_type=media_type, body=body(), upstream=[response],
        )

    async def _deliver_archive(self, session: ShareSession) -> Delivery:
        files = session.files
        try:
            first = await self._open(files[0])
        except UpstreamFetchError as e:
            logger.warning("Session %s: %s", session.code, e)
            raise

        logger.info("Session %s: streaming archive of %d files", session.code, len(files))

        async def entries():
            for index, ref in enumerate(files):
                response = first if index == 0 else await self._open(ref)
                yield ref.display_name, self._pipe(ref, response)

        async def body():
            try:
                async with aclosing(stream_zip(entries())) as chunks:
                    async for chunk in chunks:
                        yield chunk
            except UpstreamFetchError as e:
                # Whole archive is abandoned; a truncated zip is never finalized
                failed = next((i for i, ref in enumerate(files) if ref.remote_url == e.url), 0)
                logger.error(
                    "Session %s: archive aborted at file %d of %d: %s",
                    session.code, failed + 1, len(files), e,
                )
                raise
            finally:
                await first.aclose()

        return Delivery(
            filename=f"{session.code}.zip", media_type=ZIP_MEDIA_TYPE, body=body(), upstream=[first],
        )
