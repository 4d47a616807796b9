"""Test doubles — manual clock, scripted blob store, upload builders."""

import io
from datetime import datetime, timedelta, timezone

import httpx
from fastapi import UploadFile
from starlette.datastructures import Headers


class ManualTimer:
    def __init__(self, deadline, callback):
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualClock:
    """Clock and scheduler in one; time only moves on advance()."""

    def __init__(self, start=None):
        self.current = start or datetime.now(timezone.utc)
        self.timers = []

    def now(self):
        return self.current

    def call_later(self, delay, callback):
        timer = ManualTimer(self.current + timedelta(seconds=delay), callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds):
        self.current += timedelta(seconds=seconds)
        due = sorted(
            (t for t in self.timers if t.deadline <= self.current),
            key=lambda t: t.deadline,
        )
        for timer in due:
            self.timers.remove(timer)
            if not timer.cancelled:
                timer.callback()

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]


class FailingStream(httpx.AsyncByteStream):
    """Sends one chunk, then drops the connection."""

    def __init__(self, first_chunk: bytes):
        self.first_chunk = first_chunk

    async def __aiter__(self):
        yield self.first_chunk
        raise httpx.ReadError("connection reset by peer")


class TrackedStream(httpx.AsyncByteStream):
    """Serves content in small pieces and reports when it is closed."""

    def __init__(self, content: bytes, on_close, piece: int = 8):
        self.content = content
        self.on_close = on_close
        self.piece = piece

    async def __aiter__(self):
        for i in range(0, len(self.content), self.piece):
            yield self.content[i:i + self.piece]

    async def aclose(self):
        self.on_close()


class FakeBlobStore:
    """Remote blobs keyed by URL, served through httpx.MockTransport."""

    def __init__(self):
        self.blobs = {}
        self.down = set()
        self.broken = set()
        self.requested = []
        self.closed = []

    def add(self, url, content, content_type="application/octet-stream"):
        self.blobs[url] = (content, content_type)
        return url

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        if url in self.down:
            raise httpx.ConnectError("blob store unreachable", request=request)
        if url not in self.blobs:
            return httpx.Response(404, request=request)
        content, content_type = self.blobs[url]
        headers = {"content-type": content_type}
        if url in self.broken:
            return httpx.Response(200, headers=headers, stream=FailingStream(content[:4]))
        stream = TrackedStream(content, lambda: self.closed.append(url))
        return httpx.Response(200, headers=headers, stream=stream)


def make_upload(filename, content, content_type="application/octet-stream"):
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


async def collect(body):
    return b"".join([chunk async for chunk in body])
