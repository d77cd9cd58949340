"""
main.py – Megabase index incrementer entry point.

Runs the interactive indexing loop: upgrade existing entries, then collect
one new submission from the operator, forever.

Environment
-----------
  MEGABASE_INDEX_PATH : Registry document (default ./megabases.json).
  FACTORIO_PATH       : Factorio executable or install directory.
  MEGABASE_LOG_LEVEL  : Logging level name (default INFO).
"""

import functools
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from services import author_service, hash_service, version_service
from services.exceptions import (
    MalformedVersionError,
    MegabaseIndexError,
    NotFoundError,
    NotReachableError,
    OperatorAbortError,
    RegistryDecodeError,
    StorageError,
)
from services.prompt_service import prompt_operator
from services.registry_service import DEFAULT_REGISTRY_NAME
from workers.submission_worker import SubmissionWorker
from workers.upgrade_worker import UpgradeWorker

logger = logging.getLogger("megabase_index")


def _status(message: str) -> None:
    print(message, file=sys.stderr, flush=True)


def _configure_logging() -> None:
    level = os.environ.get("MEGABASE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _describe(exc: MegabaseIndexError) -> str:
    if isinstance(exc, StorageError):
        return f"Storage error:\n{exc}"
    if isinstance(exc, RegistryDecodeError):
        return f"Registry is corrupt:\n{exc}"
    if isinstance(exc, NotReachableError):
        return f"Source link unreachable:\n{exc}"
    if isinstance(exc, NotFoundError):
        return f"Lookup failed:\n{exc}"
    if isinstance(exc, MalformedVersionError):
        return f"Bad version:\n{exc}"
    return f"Error:\n{exc}"


def run_loop(registry_path: Path, factorio: Optional[Path] = None) -> None:
    """Upgrade, then accept one submission, until interrupted or an error occurs."""
    resolve_author = functools.partial(author_service.resolve_author, prompt=prompt_operator)
    find_version = functools.partial(
        version_service.discover_factorio_version, executable=factorio
    )

    upgrader = UpgradeWorker(registry_path, resolve_author, status=_status)
    submitter = SubmissionWorker(
        registry_path,
        prompt=prompt_operator,
        resolve_author=resolve_author,
        hasher=hash_service.compute_sha256,
        version_finder=find_version,
        status=_status,
    )

    while True:
        if registry_path.exists():
            upgrader.run()
        else:
            logger.info("No registry at '%s' yet; skipping upgrade pass.", registry_path)
        submitter.run()


def main() -> None:
    _configure_logging()

    registry_path = Path(os.environ.get("MEGABASE_INDEX_PATH", DEFAULT_REGISTRY_NAME))
    factorio_env = os.environ.get(version_service.FACTORIO_PATH_ENV)
    factorio = Path(factorio_env) if factorio_env else None

    try:
        run_loop(registry_path, factorio)
    except (KeyboardInterrupt, OperatorAbortError):
        _status("Stopping.")
        sys.exit(0)
    except MegabaseIndexError as exc:
        logger.debug("Fatal error", exc_info=True)
        _status(_describe(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
