import hashlib
import threading
from pathlib import Path

import pytest

from conftest import POOBER_SHA256, make_metadata
from models.megabase import FactorioVersion
from services import hash_service, metadata_service
from services.exceptions import StorageError, VersionNotFoundError


def test_populate_uses_bare_filename(tmp_path: Path):
    save = tmp_path / "saves" / "base.zip"

    metadata = metadata_service.populate_metadata(
        save,
        hasher=lambda path: POOBER_SHA256,
        version_finder=lambda path: FactorioVersion(0, 17, 79),
    )

    assert metadata.name == "base.zip"
    assert metadata.sha256 == POOBER_SHA256
    assert metadata.factorio_version == FactorioVersion(0, 17, 79)
    assert metadata.author is None
    assert metadata.download_link_mirror is None


def test_hash_and_version_run_concurrently(tmp_path: Path):
    barrier = threading.Barrier(2, timeout=5)

    def hasher(path: Path) -> str:
        barrier.wait()
        return POOBER_SHA256

    def version_finder(path: Path) -> FactorioVersion:
        barrier.wait()
        return FactorioVersion(1, 1, 110)

    metadata = metadata_service.populate_metadata(
        tmp_path / "base.zip", hasher=hasher, version_finder=version_finder
    )
    assert metadata.factorio_version == FactorioVersion(1, 1, 110)


def test_hash_failure_propagates(tmp_path: Path):
    with pytest.raises(StorageError):
        metadata_service.populate_metadata(
            tmp_path / "missing.zip",
            hasher=hash_service.compute_sha256,
            version_finder=lambda path: FactorioVersion(0, 17, 79),
        )


def test_version_failure_propagates(tmp_path: Path):
    def no_version(path: Path) -> FactorioVersion:
        raise VersionNotFoundError("nope")

    with pytest.raises(VersionNotFoundError):
        metadata_service.populate_metadata(
            tmp_path / "base.zip", hasher=lambda path: POOBER_SHA256, version_finder=no_version
        )


def test_format_summary():
    summary = metadata_service.format_summary(make_metadata(author="alice"))
    assert summary.splitlines() == [
        "Name|Link|Factorio Version|sha256",
        f"base.zip|https://example.com/post|0.17.79|{POOBER_SHA256}",
    ]


def test_compute_sha256_matches_hashlib(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(hash_service, "CHUNK_SIZE", 7)
    payload = bytes(range(256)) * 10
    save = tmp_path / "base.zip"
    save.write_bytes(payload)

    assert hash_service.compute_sha256(save) == hashlib.sha256(payload).hexdigest()


def test_compute_sha256_of_empty_file(tmp_path: Path):
    save = tmp_path / "empty.zip"
    save.write_bytes(b"")
    assert hash_service.compute_sha256(save) == hashlib.sha256(b"").hexdigest()
