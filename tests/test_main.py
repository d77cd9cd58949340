from pathlib import Path

import pytest

import main
from services.exceptions import (
    OperatorAbortError,
    RegistryDecodeError,
    VersionNotFoundError,
)


def _failing_loop(exc):
    def run_loop(registry_path: Path, factorio=None) -> None:
        raise exc

    return run_loop


def test_main_reads_environment(monkeypatch, tmp_path: Path):
    seen = {}

    def run_loop(registry_path: Path, factorio=None) -> None:
        seen["args"] = (registry_path, factorio)
        raise KeyboardInterrupt

    monkeypatch.setenv("MEGABASE_INDEX_PATH", str(tmp_path / "index.json"))
    monkeypatch.setenv("FACTORIO_PATH", str(tmp_path / "factorio"))
    monkeypatch.setattr(main, "run_loop", run_loop)

    with pytest.raises(SystemExit) as exit_info:
        main.main()

    assert exit_info.value.code == 0
    assert seen["args"] == (tmp_path / "index.json", tmp_path / "factorio")


def test_operator_abort_exits_cleanly(monkeypatch):
    monkeypatch.setattr(main, "run_loop", _failing_loop(OperatorAbortError("closed")))
    with pytest.raises(SystemExit) as exit_info:
        main.main()
    assert exit_info.value.code == 0


@pytest.mark.parametrize(
    "exc, heading",
    [
        (RegistryDecodeError("bad json"), "Registry is corrupt"),
        (VersionNotFoundError("no map version"), "Lookup failed"),
    ],
)
def test_fatal_errors_exit_nonzero(monkeypatch, capsys, exc, heading):
    monkeypatch.setattr(main, "run_loop", _failing_loop(exc))
    with pytest.raises(SystemExit) as exit_info:
        main.main()
    assert exit_info.value.code == 1
    assert heading in capsys.readouterr().err
