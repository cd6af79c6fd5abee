"""Tests for the planboard command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from planboard.board_engine import BoardStore
from planboard.board_engine.model import Board, Column, Project, Task
from planboard.cli import main


@pytest.fixture(autouse=True)
def _fast_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLANBOARD_BCRYPT_ROUNDS", "4")
    monkeypatch.delenv("PLANBOARD_DATA_DIR", raising=False)


def test_user_create_and_list(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    data_dir = str(tmp_path / "data")
    rc = main(["--data-dir", data_dir, "user", "create", "--email", "Root@Example.org",
               "--name", "Root", "--password", "secret1", "--admin"])
    assert rc == 0
    created = json.loads(capsys.readouterr().out)["user"]
    assert created["email"] == "root@example.org"
    assert created["role"] == "admin"
    assert "password_hash" not in created

    assert main(["--data-dir", data_dir, "user", "list"]) == 0
    users = json.loads(capsys.readouterr().out)["users"]
    assert [u["email"] for u in users] == ["root@example.org"]


def test_user_create_duplicate_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    args = ["--data-dir", str(tmp_path), "user", "create", "--email", "a@example.org",
            "--name", "A", "--password", "secret1"]
    assert main(args) == 0
    capsys.readouterr()
    assert main(args) == 1
    assert "already exists" in capsys.readouterr().err


def test_backup(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--data-dir", str(tmp_path), "backup"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert Path(payload["path"]).exists()
    assert Path(payload["path"]).parent == tmp_path.resolve() / "backups"


def test_data_dir_after_subcommand(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["backup", "--data-dir", str(tmp_path)]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert Path(payload["path"]).parent == tmp_path.resolve() / "backups"

    data_dir = str(tmp_path / "data")
    assert main(["user", "create", "--data-dir", data_dir, "--email", "a@example.org",
                 "--name", "A", "--password", "secret1"]) == 0
    capsys.readouterr()
    assert main(["--data-dir", data_dir, "user", "list"]) == 0
    assert [u["email"] for u in json.loads(capsys.readouterr().out)["users"]] == ["a@example.org"]
    assert main(["user", "list", "--data-dir", data_dir]) == 0
    assert [u["email"] for u in json.loads(capsys.readouterr().out)["users"]] == ["a@example.org"]


def test_check_and_fix(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    store = BoardStore(tmp_path)
    with store.transaction() as tx:
        tx.add("projects", Project(name="P", owner_id=1))
        tx.add("boards", Board(name="B", project_id=1))
        tx.add("columns", Column(name="C", board_id=1))
        tx.add("tasks", Task(title="T", column_id=1, position=3))

    assert main(["--data-dir", str(tmp_path), "check"]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["ok"] is False
    assert report["problems"] == ["column 1: task positions"]

    assert main(["--data-dir", str(tmp_path), "check", "--fix"]) == 0
    assert json.loads(capsys.readouterr().out) == {"renumbered": 1}
    assert main(["--data-dir", str(tmp_path), "check"]) == 0


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        main([])
