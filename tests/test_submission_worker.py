import json
from pathlib import Path

import pytest

from conftest import POOBER_SHA256
from models.megabase import FactorioVersion
from services import registry_service
from services.exceptions import InvalidSubmissionError, VersionNotFoundError
from workers.submission_worker import SubmissionWorker, normalize_save_filename


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("base", "base.zip"),
        ("base.zip", "base.zip"),
        ("  'My Base.zip'  \n", "My Base.zip"),
        ("'0.17 megabase'", "0.17 megabase.zip"),
    ],
)
def test_normalize_save_filename(raw, expected):
    assert normalize_save_filename(raw) == Path(expected)


def _scripted(*answers):
    queue = list(answers)
    asked = []

    def prompt(message: str) -> str:
        asked.append(message)
        return queue.pop(0)

    prompt.asked = asked
    return prompt


def test_submission_is_written(registry_path: Path):
    prompt = _scripted("https://example.com/post", "'base'")
    seen_paths = []

    def hasher(path: Path) -> str:
        seen_paths.append(path)
        return POOBER_SHA256

    messages = []
    worker = SubmissionWorker(
        registry_path,
        prompt=prompt,
        resolve_author=lambda link: "alice",
        hasher=hasher,
        version_finder=lambda path: FactorioVersion(0, 18, 17),
        status=messages.append,
    )

    written = worker.run()

    assert written.name == "base.zip"
    assert written.author == "alice"
    assert written.source_link == "https://example.com/post"
    assert seen_paths == [Path("base.zip")]
    assert registry_service.load_registry(registry_path).saves == [written]
    assert (
        "Name|Link|Factorio Version|sha256\n"
        f"base.zip|https://example.com/post|0.18.17|{POOBER_SHA256}"
    ) in messages


def test_submission_merges_into_existing_registry(registry_path: Path):
    for source_link in ("https://a", "https://b"):
        SubmissionWorker(
            registry_path,
            prompt=_scripted(source_link, "base.zip"),
            resolve_author=lambda link: "alice",
            hasher=lambda path: POOBER_SHA256,
            version_finder=lambda path: FactorioVersion(0, 18, 17),
        ).run()

    saves = json.loads(registry_path.read_text(encoding="utf-8"))["saves"]
    assert [s["source_link"] for s in saves] == ["https://a", "https://b"]


def test_failed_version_lookup_writes_nothing(registry_path: Path):
    def no_version(path: Path) -> FactorioVersion:
        raise VersionNotFoundError("no map version")

    worker = SubmissionWorker(
        registry_path,
        prompt=_scripted("https://example.com/post", "base"),
        resolve_author=lambda link: "alice",
        hasher=lambda path: POOBER_SHA256,
        version_finder=no_version,
    )

    with pytest.raises(VersionNotFoundError):
        worker.run()
    assert not registry_path.exists()


def test_empty_source_link_is_rejected(registry_path: Path):
    def resolver(link: str) -> str:
        raise AssertionError("author lookup should not run")

    worker = SubmissionWorker(
        registry_path,
        prompt=_scripted("", "base"),
        resolve_author=resolver,
        hasher=lambda path: POOBER_SHA256,
        version_finder=lambda path: FactorioVersion(0, 18, 17),
    )

    with pytest.raises(InvalidSubmissionError):
        worker.run()
    assert not registry_path.exists()


def test_final_status_describes_entry(registry_path: Path):
    messages = []
    SubmissionWorker(
        registry_path,
        prompt=_scripted("https://example.com/post", "base"),
        resolve_author=lambda link: "alice",
        hasher=lambda path: POOBER_SHA256,
        version_finder=lambda path: FactorioVersion(0, 18, 17),
        status=messages.append,
    ).run()

    assert messages[-1] == "Indexed base.zip  (alice, Factorio 0.18.17); registry holds 1 saves."
