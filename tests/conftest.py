import sys
from pathlib import Path

import pytest

# Ensure the project root is on sys.path for test imports without installing
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models.megabase import FactorioVersion, MegabaseMetadata  # noqa: E402

POOBER_SHA256 = "e8346b825adb2059de4710e1aa9431f97fb40026c375b0de8ea126a5f8b254f4"


def make_metadata(**overrides) -> MegabaseMetadata:
    fields = dict(
        name="base.zip",
        author=None,
        source_link="https://example.com/post",
        factorio_version=FactorioVersion(0, 17, 79),
        sha256=POOBER_SHA256,
        download_link_mirror=None,
    )
    fields.update(overrides)
    return MegabaseMetadata(**fields)


@pytest.fixture
def registry_path(tmp_path: Path) -> Path:
    return tmp_path / "megabases.json"
