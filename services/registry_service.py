"""
services/registry_service.py – Loading, merging and persisting megabases.json.

Responsibilities
----------------
1. Decode the registry document ``{"saves": [...]}`` into a Megabases value.
2. Merge new entries: append, sort, then coalesce structurally equal
   neighbours (sort + unique, *not* de-duplication by hash).
3. Remove every entry sharing a content hash; the only operation that
   enforces hash identity.
4. Re-serialise the whole registry after every mutation.

The registry is single-writer: no locking is performed.  Writes go to a
sibling temp file that then replaces the document, so an interrupted write
never leaves a truncated registry behind.
"""

import json
import logging
import os
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, List

from models.megabase import MegabaseMetadata
from services.exceptions import (
    RegistryDecodeError,
    RegistryNotFoundError,
    StorageError,
)

# ── Configuration ────────────────────────────────────────────────────────────
DEFAULT_REGISTRY_NAME: str = "megabases.json"
JSON_INDENT: int = 2

logger = logging.getLogger(__name__)


@dataclass
class Megabases:
    """
    The ordered collection of indexed megabases.

    Mutate only through upsert() and remove_by_hash() so the collection
    stays sorted and free of structurally equal duplicates.
    """

    saves: List[MegabaseMetadata] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.saves)

    def __iter__(self) -> Iterator[MegabaseMetadata]:
        return iter(self.saves)

    def upsert(self, metadata: MegabaseMetadata) -> None:
        """Insert *metadata*, keeping sort order and dropping exact duplicates."""
        merged = sorted(self.saves + [metadata])
        unique: List[MegabaseMetadata] = []
        for entry in merged:
            if unique and unique[-1] == entry:
                continue
            unique.append(entry)
        self.saves = unique

    def remove_by_hash(self, sha256: str) -> int:
        """
        Remove every entry whose sha256 equals *sha256*.

        Returns
        -------
        Number of entries removed.
        """
        kept = [entry for entry in self.saves if entry.sha256 != sha256]
        removed = len(self.saves) - len(kept)
        self.saves = kept
        return removed

    def find_by_hash(self, sha256: str) -> List[MegabaseMetadata]:
        return [entry for entry in self.saves if entry.sha256 == sha256]

    # ── Serialisation ─────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {"saves": [entry.to_dict() for entry in self.saves]}

    @classmethod
    def from_dict(cls, data: Any) -> "Megabases":
        if not isinstance(data, dict) or not isinstance(data.get("saves"), list):
            raise RegistryDecodeError(
                'Registry document must be an object with a "saves" array.'
            )
        return cls(saves=[MegabaseMetadata.from_dict(item) for item in data["saves"]])


# ── Public API ───────────────────────────────────────────────────────────────


def load_registry(path: Path, *, missing_ok: bool = False) -> Megabases:
    """
    Read and decode the registry at *path*.

    Parameters
    ----------
    path       : Location of megabases.json.
    missing_ok : Treat a missing document as an empty registry.

    Raises
    ------
    RegistryNotFoundError if *path* does not exist and missing_ok is False.
    StorageError on any other filesystem error.
    RegistryDecodeError if the document is not a valid registry.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        if missing_ok:
            logger.debug("No registry at '%s'; starting empty.", path)
            return Megabases()
        raise RegistryNotFoundError(path) from exc
    except UnicodeDecodeError as exc:
        raise RegistryDecodeError(f"Registry '{path}' is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise StorageError(f"Cannot read registry '{path}': {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RegistryDecodeError(f"Registry '{path}' is not valid JSON: {exc}") from exc

    return Megabases.from_dict(data)


def _target_mode(path: Path) -> int:
    """Permission bits the rewritten registry should carry."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def persist_registry(registry: Megabases, path: Path) -> None:
    """
    Pretty-print *registry* to *path*, replacing its previous contents.

    The previous file mode is kept.  No temp file is left behind on failure.

    Raises
    ------
    StorageError on any filesystem error or when an entry cannot be encoded.
    """
    text = json.dumps(registry.to_dict(), indent=JSON_INDENT, ensure_ascii=False)
    try:
        payload = text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise StorageError(f"Cannot encode registry '{path}': {exc}") from exc

    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            tmp_name = fh.name
            fh.write(payload)
        os.chmod(tmp_name, _target_mode(path))
        os.replace(tmp_name, path)
    except BaseException as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        if isinstance(exc, OSError):
            raise StorageError(f"Cannot write registry '{path}': {exc}") from exc
        raise

    logger.debug("Wrote %d saves to '%s'.", len(registry), path)


def write_metadata_to_disk(path: Path, metadata: MegabaseMetadata) -> Megabases:
    """Load (missing = empty), upsert *metadata*, persist.  Returns the result."""
    registry = load_registry(path, missing_ok=True)
    registry.upsert(metadata)
    persist_registry(registry, path)
    return registry


def remove_metadata_from_disk_with_sha256(path: Path, sha256: str) -> int:
    """
    Remove every entry with *sha256* from the registry at *path*.

    A missing registry is left untouched.  Returns the number removed.
    """
    if not path.exists():
        return 0
    registry = load_registry(path)
    removed = registry.remove_by_hash(sha256)
    persist_registry(registry, path)
    return removed
