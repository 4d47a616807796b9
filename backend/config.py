"""Application configuration."""

import os
import re
from datetime import timedelta
from pathlib import Path


def parse_duration(duration_str: str) -> timedelta | None:
    """Parse duration string like '30s', '10m', '2h', '3d' into a timedelta."""
    if not duration_str:
        return None

    match = re.match(r"^(\d+)([smhdw])$", duration_str.strip().lower())
    if not match:
        return None

    value = int(match.group(1))
    unit = match.group(2)

    deltas = {
        "s": timedelta(seconds=value),
        "m": timedelta(minutes=value),
        "h": timedelta(hours=value),
        "d": timedelta(days=value),
        "w": timedelta(weeks=value),
    }

    return deltas[unit]


def parse_size(size_str: str) -> int:
    """Parse size string like '100MB', '1GB' into bytes."""
    if not size_str:
        return 0

    match = re.match(r"^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB|TB)$", size_str.strip().upper())
    if not match:
        return 0

    value = float(match.group(1))
    unit = match.group(2)

    multipliers = {
        "B": 1,
        "KB": 1024,
        "MB": 1024**2,
        "GB": 1024**3,
        "TB": 1024**4,
    }

    return int(value * multipliers[unit])


DATA_DIR = Path(os.environ.get("DATA_DIR", str(Path(__file__).parent.parent / "data")))
FILES_DIR = DATA_DIR / "files"

# Share sessions
SESSION_TTL = parse_duration(os.environ.get("YSHARE_SESSION_TTL", "10m")) or timedelta(minutes=10)
CODE_MAX_ATTEMPTS = int(os.environ.get("YSHARE_CODE_MAX_ATTEMPTS", "1000"))

# Uploads
MAX_FILE_SIZE = parse_size(os.environ.get("YSHARE_MAX_FILE_SIZE", "100MB"))
CHUNK_SIZE = int(os.environ.get("YSHARE_CHUNK_SIZE", str(64 * 1024)))

# Blob store: "local" keeps bytes under FILES_DIR, "http" forwards them to a Drop server
BLOB_BACKEND = os.environ.get("YSHARE_BLOB_BACKEND", "local").strip().lower()
BLOB_URL = os.environ.get("YSHARE_BLOB_URL", "").strip().rstrip("/")
BLOB_KEY = os.environ.get("YSHARE_BLOB_KEY", "").strip()

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
