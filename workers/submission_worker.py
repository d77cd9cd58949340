"""
workers/submission_worker.py – Orchestrates indexing of one new megabase:
source link → author → savefile → hash + version → registry.

Status contract
---------------
  status(str) : Human-readable progress and the final summary, for the
                operator's terminal.

Errors from any step propagate to the caller; nothing is written to the
registry unless every step succeeded.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Callable, Optional

from models.megabase import FactorioVersion, MegabaseMetadata
from services import metadata_service, registry_service
from services.exceptions import InvalidSubmissionError

# ── Types ────────────────────────────────────────────────────────────────────
Prompt = Callable[[str], str]
AuthorResolver = Callable[[str], str]
Hasher = Callable[[Path], str]
VersionFinder = Callable[[Path], FactorioVersion]
StatusCallback = Callable[[str], None]

SAVE_EXTENSION: str = ".zip"

logger = logging.getLogger(__name__)


def normalize_save_filename(raw: str) -> Path:
    """Strip quotes pasted from a shell and add ".zip" when it is missing."""
    filename = raw.strip().replace("'", "")
    if not filename.endswith(SAVE_EXTENSION):
        filename += SAVE_EXTENSION
    return Path(filename)


class SubmissionWorker:
    """
    Collects one submission from the operator and merges it into the
    registry at *registry_path*.

    Instantiate, then call run() once per submission.
    """

    def __init__(
        self,
        registry_path: Path,
        prompt: Prompt,
        resolve_author: AuthorResolver,
        hasher: Hasher,
        version_finder: VersionFinder,
        status: Optional[StatusCallback] = None,
    ) -> None:
        self._registry_path = registry_path
        self._prompt = prompt
        self._resolve_author = resolve_author
        self._hasher = hasher
        self._version_finder = version_finder
        self._status = status or (lambda message: None)

    def run(self) -> MegabaseMetadata:
        """
        Run the submission pipeline.

        Returns
        -------
        The entry written to the registry.
        """
        # ── 1. Source link and author ────────────────────────────────────
        source_link = self._prompt(
            "Enter a base source link for the post describing the megabase."
        )
        if not source_link:
            raise InvalidSubmissionError("A source link is required.")
        author = self._resolve_author(source_link)

        # ── 2. Savefile ──────────────────────────────────────────────────
        save_path = normalize_save_filename(
            self._prompt("Enter the name of the savefile (.zip not required nor forbidden)")
        )

        # ── 3. Hash + version (parallel) ─────────────────────────────────
        metadata = metadata_service.populate_metadata(
            save_path,
            hasher=self._hasher,
            version_finder=self._version_finder,
        )
        metadata = dataclasses.replace(metadata, author=author, source_link=source_link)

        # ── 4. Report ────────────────────────────────────────────────────
        self._status(repr(metadata))
        self._status(metadata_service.format_summary(metadata))

        # ── 5. Merge ─────────────────────────────────────────────────────
        registry = registry_service.write_metadata_to_disk(self._registry_path, metadata)
        same_save = registry.find_by_hash(metadata.sha256)
        if len(same_save) > 1:
            logger.warning(
                "%d entries now share sha256 %s; the next upgrade pass will not merge them.",
                len(same_save),
                metadata.sha256,
            )
        self._status(f"Indexed {metadata}; registry holds {len(registry)} saves.")
        return metadata
