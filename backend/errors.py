"""Domain errors shared by services and controllers."""


class ShareError(Exception):
    """Base class for share-session failures."""


class ValidationError(ShareError):
    """Upload request carried no files."""


class NotFoundError(ShareError):
    """Code never existed, already expired, or is malformed."""

    def __init__(self, code: str):
        super().__init__(f"No live session for code {code!r}")
        self.code = code


class UpstreamFetchError(ShareError):
    """The blob store failed to serve a stored file."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Fetching {url} failed: {reason}")
        self.url = url
        self.reason = reason


class CapacityError(ShareError):
    """No free code could be allocated."""


class BlobStoreError(ShareError):
    """The blob store refused or failed to accept an upload."""


class FileTooLargeError(ValueError):
    """An uploaded file exceeded the configured size limit."""
