"""Share session models — in-memory only, never persisted."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class FileRef:
    """One uploaded file, as stored in the remote blob store."""

    remote_url: str
    display_name: str
    mime_type: str


@dataclass(frozen=True)
class ShareSession:
    code: str
    files: tuple[FileRef, ...]
    created_at: datetime
    expires_at: datetime

    @property
    def is_archive(self) -> bool:
        return len(self.files) > 1
