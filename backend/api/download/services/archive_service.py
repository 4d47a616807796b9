"""Archive service — builds a zip on the fly from streamed entries.

zipfile writes into a sink that is emptied after every write, so at most one
chunk plus the compressor's window is held in memory. The output is treated
as non-seekable: sizes and CRCs go into data descriptors after each entry.
"""

import time
import zipfile
from collections.abc import AsyncIterable, AsyncIterator
from contextlib import aclosing

ZIP_MEDIA_TYPE = "application/zip"


class _DrainableSink:
    """Write-only file object whose contents are taken with drain()."""

    def __init__(self):
        self._buffer = bytearray()

    def write(self, data) -> int:
        self._buffer += data
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


def entry_info(name: str, compresslevel: int) -> zipfile.ZipInfo:
    """Header for a streamed entry, stamped with the current local time."""
    info = zipfile.ZipInfo(name, date_time=time.localtime()[:6])
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o600 << 16
    if hasattr(info, "compress_level"):
        info.compress_level = compresslevel
    else:
        # Python < 3.13
        info._compresslevel = compresslevel
    return info


async def stream_zip(
    entries: AsyncIterable[tuple[str, AsyncIterable[bytes]]],
    compresslevel: int = 9,
) -> AsyncIterator[bytes]:
    """Yield a deflated zip of (name, chunks) entries, in order."""
    sink = _DrainableSink()
    archive = zipfile.ZipFile(
        sink, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=compresslevel
    )

    # Entries and their chunk streams are closed even when the consumer
    # stops early, so no upstream response outlives the archive.
    async with aclosing(entries) as pending:
        async for name, chunks in pending:
            async with aclosing(chunks) as source:
                with archive.open(entry_info(name, compresslevel), mode="w") as entry:
                    async for chunk in source:
                        entry.write(chunk)
                        data = sink.drain()
                        if data:
                            yield data
            data = sink.drain()
            if data:
                yield data

    archive.close()
    yield sink.drain()
