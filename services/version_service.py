"""
services/version_service.py – Discover which Factorio version wrote a save.

Runs the Factorio executable for a one-tick benchmark of the savefile and
reads the "Map version X.Y.Z" line it logs while loading the map.

Security notes
--------------
* All arguments passed to subprocess are provided as a list (never shell=True).
* The executable comes from an explicit argument, FACTORIO_PATH or a fixed
  list of install locations; never from the savefile name.
"""

import logging
import os
import platform
import re
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional

from models.megabase import FactorioVersion
from services.exceptions import (
    FactorioNotFoundError,
    MalformedVersionError,
    VersionNotFoundError,
)

# ── Configuration ────────────────────────────────────────────────────────────
FACTORIO_PATH_ENV: str = "FACTORIO_PATH"
BENCHMARK_TIMEOUT: float = 600.0

MAP_VERSION_PATTERN: re.Pattern = re.compile(
    r"Map version (\d+\.\d+\.\d+)(?:-\d+)?"
)

logger = logging.getLogger(__name__)


# ── Executable resolution ────────────────────────────────────────────────────


def _executable_name() -> str:
    return "factorio.exe" if platform.system() == "Windows" else "factorio"


def _from_install_dir(directory: Path) -> Path:
    """Map a Factorio install directory onto its executable."""
    if platform.system() == "Darwin":
        bundled = directory / "factorio.app" / "Contents" / "MacOS" / "factorio"
        if bundled.exists():
            return bundled
    return directory / "bin" / "x64" / _executable_name()


def _well_known_install_dirs() -> List[Path]:
    home = Path.home()
    system = platform.system()
    if system == "Windows":
        return [
            Path(r"C:\Program Files (x86)\Steam\steamapps\common\Factorio"),
            Path(r"C:\Program Files\Steam\steamapps\common\Factorio"),
            Path(r"C:\Program Files\Factorio"),
        ]
    if system == "Darwin":
        return [
            home / "Library/Application Support/Steam/steamapps/common/Factorio",
            Path("/Applications"),
        ]
    return [
        home / ".steam/steam/steamapps/common/Factorio",
        home / ".local/share/Steam/steamapps/common/Factorio",
        home / "factorio",
        Path("/opt/factorio"),
    ]


def _candidates(explicit: Optional[Path]) -> Iterable[Path]:
    if explicit is not None:
        yield explicit
        return
    configured = os.environ.get(FACTORIO_PATH_ENV)
    if configured:
        yield Path(configured)
        return
    on_path = shutil.which("factorio")
    if on_path:
        yield Path(on_path)
    yield from _well_known_install_dirs()


def find_factorio_executable(explicit: Optional[Path] = None) -> Path:
    """
    Locate the Factorio executable.

    Parameters
    ----------
    explicit : Executable or install directory chosen by the caller.  When
               given (or when FACTORIO_PATH is set) no other location is tried.

    Raises
    ------
    FactorioNotFoundError when no candidate exists.
    """
    tried: List[Path] = []
    for candidate in _candidates(explicit):
        resolved = _from_install_dir(candidate) if candidate.is_dir() else candidate
        tried.append(resolved)
        if resolved.is_file():
            logger.debug("Using Factorio executable '%s'.", resolved)
            return resolved

    listing = "\n  ".join(str(p) for p in tried) or "(none)"
    raise FactorioNotFoundError(
        f"Could not locate a Factorio executable. Tried:\n  {listing}\n"
        f"Set {FACTORIO_PATH_ENV} to the executable or install directory."
    )


# ── Public API ───────────────────────────────────────────────────────────────


def parse_map_version(log_text: str) -> FactorioVersion:
    """
    Extract the map version from Factorio's log output.

    Raises
    ------
    VersionNotFoundError when no usable "Map version" line is present.
    """
    match = MAP_VERSION_PATTERN.search(log_text)
    if match is None:
        raise VersionNotFoundError("Factorio output did not contain a map version.")
    try:
        return FactorioVersion.parse(match.group(1))
    except MalformedVersionError as exc:
        raise VersionNotFoundError(f"Unusable map version in Factorio output: {exc}") from exc


def discover_factorio_version(
    save_path: Path,
    *,
    executable: Optional[Path] = None,
) -> FactorioVersion:
    """
    Ask Factorio which version *save_path* was written with.

    Expected invocation:
        factorio --benchmark <save> --benchmark-ticks 1 --benchmark-runs 1

    Raises
    ------
    FactorioNotFoundError when no executable can be located.
    VersionNotFoundError when Factorio cannot be run or reports no version.
    """
    factorio = find_factorio_executable(executable)
    cmd = [
        str(factorio),
        "--benchmark",
        str(save_path),
        "--benchmark-ticks",
        "1",
        "--benchmark-runs",
        "1",
    ]
    logger.info("Loading '%s' in Factorio to read its version.", save_path.name)

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            shell=False,
            timeout=BENCHMARK_TIMEOUT,
        )
    except subprocess.TimeoutExpired as exc:
        raise VersionNotFoundError(
            f"Factorio did not finish loading '{save_path}' within "
            f"{BENCHMARK_TIMEOUT:.0f} seconds."
        ) from exc
    except OSError as exc:
        raise VersionNotFoundError(f"OS error launching Factorio: {exc}") from exc

    output = (result.stdout or "") + (result.stderr or "")
    try:
        return parse_map_version(output)
    except VersionNotFoundError:
        if result.returncode != 0:
            logger.warning(
                "Factorio exited with code %d: %s", result.returncode, output[-500:]
            )
        raise
