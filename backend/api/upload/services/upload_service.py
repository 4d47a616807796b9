"""Upload service — turns stored uploads into a share session."""

import logging
from collections.abc import Sequence
from typing import NamedTuple

from fastapi import UploadFile

from api.sessions.models.share_session import FileRef
from api.sessions.repositories.code_registry import CodeRegistry
from api.storage.services.blob_store import BlobStore
from api.upload.dto.upload import UploadResponse
from api.upload.services.filename_service import normalize_filename
from errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class StoredPart(NamedTuple):
    """One upload part after its bytes reached the blob store."""

    remote_url: str
    raw_name: str
    mime_type: str


def build_file_ref(part: StoredPart) -> FileRef:
    return FileRef(
        remote_url=part.remote_url,
        display_name=normalize_filename(part.raw_name),
        mime_type=part.mime_type or DEFAULT_MIME_TYPE,
    )


def summarize(files: Sequence[FileRef]) -> str:
    """The single file's name, otherwise a file count."""
    if len(files) == 1:
        return files[0].display_name
    return f"{len(files)} files"


def create_session(registry: CodeRegistry, parts: Sequence[StoredPart]) -> UploadResponse:
    """Register stored parts under a fresh code."""
    if not parts:
        raise ValidationError("Please choose at least one file")

    files = [build_file_ref(part) for part in parts]
    code = registry.create(files)
    session = registry.resolve(code)

    return UploadResponse(
        code=code,
        summary=summarize(files),
        file_count=len(files),
        expires_at=session.expires_at,
    )


def selected_files(uploads: Sequence[UploadFile] | None) -> list[UploadFile]:
    """Drop the empty part a browser sends when no file was chosen."""
    return [upload for upload in uploads or [] if upload.filename]


async def save_uploads(
    registry: CodeRegistry,
    store: BlobStore,
    uploads: Sequence[UploadFile] | None,
    public_base: str,
) -> UploadResponse:
    """Push every upload to the blob store, then create the session."""
    uploads = selected_files(uploads)
    if not uploads:
        raise ValidationError("Please choose at least one file")

    parts = []
    for upload in uploads:
        url = await store.put(upload, public_base)
        parts.append(StoredPart(url, upload.filename, upload.content_type or ""))

    return create_session(registry, parts)
