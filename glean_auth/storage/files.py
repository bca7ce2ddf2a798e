"""JSON file helpers shared by the token store and metadata cache."""

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def server_key(server_url: str) -> str:
    """Short stable file stem for a server URL."""
    return hashlib.sha256(server_url.encode()).hexdigest()[:16]


def write_private_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON readable only by the current user.

    Args:
        path: Destination file; parent directories are created
        data: JSON-serializable mapping
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, indent=2).encode()

    # Owner-only from creation
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(payload)


def read_json(path: Path) -> dict[str, Any] | None:
    """Read a JSON object from disk.

    Returns:
        The parsed object, or None if the file is missing or unreadable
    """
    if not path.exists():
        return None

    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read {path}: {e}")
        return None

    if not isinstance(data, dict):
        logger.error(f"Unexpected content in {path}")
        return None
    return data
