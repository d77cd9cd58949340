"""
services/hash_service.py – Streaming SHA-256 of savefiles.

The file is read in fixed-size chunks so multi-hundred-megabyte megabase
saves are never loaded fully into memory.
"""

import hashlib
from pathlib import Path

from services.exceptions import StorageError

# ── Configuration ────────────────────────────────────────────────────────────
CHUNK_SIZE: int = 1024 * 1024  # 1 MiB


def compute_sha256(path: Path) -> str:
    """
    Hash the contents of *path*.

    Returns
    -------
    Lowercase hex digest (64 characters).

    Raises
    ------
    StorageError if the file is missing or unreadable.
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as fh:
            for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as exc:
        raise StorageError(f"Cannot read savefile '{path}': {exc}") from exc
    return digest.hexdigest()
