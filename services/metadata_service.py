"""
services/metadata_service.py – Build the automated part of a megabase entry.

The content hash and the Factorio version are independent, so both are
computed in parallel and joined before the entry is returned.  Author and
source link are operator-supplied and left for the caller to fill in.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from models.megabase import FactorioVersion, MegabaseMetadata
from services import hash_service, version_service

# ── Types ────────────────────────────────────────────────────────────────────
Hasher = Callable[[Path], str]
VersionFinder = Callable[[Path], FactorioVersion]

SUMMARY_HEADER: str = "Name|Link|Factorio Version|sha256"

logger = logging.getLogger(__name__)


def populate_metadata(
    save_path: Path,
    *,
    hasher: Hasher = hash_service.compute_sha256,
    version_finder: VersionFinder = version_service.discover_factorio_version,
) -> MegabaseMetadata:
    """
    Inspect *save_path* and return an entry with name, sha256 and version set.

    Parameters
    ----------
    save_path      : Savefile on disk.
    hasher         : Returns the lowercase hex SHA-256 of a file.
    version_finder : Returns the Factorio version a save was written with.

    Returns
    -------
    MegabaseMetadata with author None, empty source_link and no mirror.

    Raises
    ------
    Whatever *hasher* or *version_finder* raise; no partial entry is built.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="megabase") as pool:
        sha256_future = pool.submit(hasher, save_path)
        version_future = pool.submit(version_finder, save_path)
        sha256 = sha256_future.result()
        factorio_version = version_future.result()

    logger.debug("%s: sha256=%s version=%s", save_path.name, sha256, factorio_version)
    return MegabaseMetadata(
        name=save_path.name,
        author=None,
        source_link="",
        factorio_version=factorio_version,
        sha256=sha256,
    )


def format_summary(metadata: MegabaseMetadata) -> str:
    """Render the pipe-separated header and row for pasting into the index post."""
    row = "|".join(
        (
            metadata.name,
            metadata.source_link,
            str(metadata.factorio_version),
            metadata.sha256,
        )
    )
    return f"{SUMMARY_HEADER}\n{row}"
