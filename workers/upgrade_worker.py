"""
workers/upgrade_worker.py – Bring stored megabase entries up to the current
schema.

Upgrade rules
-------------
  missing author      : resolve it from the source link.
  "/user/" author     : rewrite the relative Reddit profile path into an
                        absolute link.

Every rule replaces the whole entry: remove by sha256, then write the
corrected entry.  Each replacement persists immediately, so a failure on a
later entry never rolls back earlier ones.

The pass visits the entries loaded when it starts exactly once; it does not
loop until nothing changes.  Both rules are checked in order against the
same entry, so an author resolved by the first rule is normalised by the
second in the same visit.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Callable, List, Optional

from models.megabase import MegabaseMetadata
from services import registry_service

# ── Configuration ────────────────────────────────────────────────────────────
RELATIVE_PROFILE_PREFIX: str = "/user/"
PROFILE_BASE_URL: str = "https://www.reddit.com"

# ── Types ────────────────────────────────────────────────────────────────────
AuthorResolver = Callable[[str], str]
StatusCallback = Callable[[str], None]

logger = logging.getLogger(__name__)


def needs_author(metadata: MegabaseMetadata) -> bool:
    return metadata.author is None


def needs_author_normalization(metadata: MegabaseMetadata) -> bool:
    return metadata.author is not None and metadata.author.startswith(
        RELATIVE_PROFILE_PREFIX
    )


class UpgradeWorker:
    """
    Runs one upgrade pass over the registry at *registry_path*.

    Instantiate, then call run().  Errors from the author resolver or the
    registry propagate and end the pass.
    """

    def __init__(
        self,
        registry_path: Path,
        resolve_author: AuthorResolver,
        status: Optional[StatusCallback] = None,
    ) -> None:
        self._registry_path = registry_path
        self._resolve_author = resolve_author
        self._status = status or (lambda message: None)

    def run(self) -> List[MegabaseMetadata]:
        """
        Execute the pass.

        Returns
        -------
        The replacement entries written, in the order they were written.

        Raises
        ------
        RegistryNotFoundError if the registry does not exist.
        Any error raised by the author resolver.
        """
        self._status("Checking to upgrade existing metadata")
        snapshot = registry_service.load_registry(self._registry_path)

        written: List[MegabaseMetadata] = []
        for metadata in snapshot:
            if needs_author(metadata):
                self._status(f"Upgrading {metadata.name}")
                self._status(metadata.source_link)
                author = self._resolve_author(metadata.source_link)
                metadata = self._replace(metadata, author=author)
                written.append(metadata)

            if needs_author_normalization(metadata):
                metadata = self._replace(
                    metadata, author=PROFILE_BASE_URL + metadata.author
                )
                written.append(metadata)

        logger.info("Upgrade pass rewrote %d entries.", len(written))
        return written

    # ── Steps ─────────────────────────────────────────────────────────────────

    def _replace(self, metadata: MegabaseMetadata, **changes) -> MegabaseMetadata:
        upgraded = dataclasses.replace(metadata, **changes)
        registry_service.remove_metadata_from_disk_with_sha256(
            self._registry_path, metadata.sha256
        )
        registry_service.write_metadata_to_disk(self._registry_path, upgraded)
        logger.debug("Replaced %s: author %r -> %r", metadata.name, metadata.author, upgraded.author)
        return upgraded
