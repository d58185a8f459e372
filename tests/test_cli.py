from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from pygoose.cli import app
from pygoose.db import Database

runner = CliRunner()

USERS = """-- +goose Up
CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT);

-- +goose Down
DROP TABLE users;
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("GOOSE_DRIVER", "GOOSE_DBSTRING", "GOOSE_DIR", "GOOSE_CONF"):
        monkeypatch.delenv(key, raising=False)


def _invoke(migrations_dir: Path, db_path: Path, *args: str):
    return runner.invoke(
        app,
        ["--dir", str(migrations_dir), "--driver", "sqlite3", "--dbstring", str(db_path), *args],
    )


def test_up_status_and_version(migrations_dir, tmp_path):
    (migrations_dir / "1_users.sql").write_text(USERS)
    db_path = tmp_path / "cli.db"

    result = _invoke(migrations_dir, db_path, "up")
    assert result.exit_code == 0, result.output
    assert "1_users.sql" in result.output
    assert "goose: version 1" in result.output

    result = _invoke(migrations_dir, db_path, "version")
    assert result.exit_code == 0
    assert "goose: dbversion 1" in result.output

    result = _invoke(migrations_dir, db_path, "down")
    assert result.exit_code == 0
    assert "goose: version 0" in result.output

    result = _invoke(migrations_dir, db_path, "status")
    assert result.exit_code == 0
    assert "Pending" in result.output


def test_create_writes_template(migrations_dir):
    result = runner.invoke(app, ["--dir", str(migrations_dir), "create", "add_users"])

    assert result.exit_code == 0, result.output
    created = list(migrations_dir.glob("*_add_users.sql"))
    assert len(created) == 1
    assert created[0].read_text().startswith("-- +goose Up")


def test_unknown_driver_exits_with_error(migrations_dir, tmp_path):
    result = runner.invoke(
        app,
        ["--dir", str(migrations_dir), "--driver", "oracle", "--dbstring", "x", "version"],
    )

    assert result.exit_code == 1
    assert "unknown dialect" in result.output


def test_failed_migration_exits_with_error(migrations_dir, tmp_path):
    (migrations_dir / "1_broken.sql").write_text("-- +goose Up\nCREATE TABLE broken (;\n")

    result = _invoke(migrations_dir, tmp_path / "cli.db", "up")

    assert result.exit_code == 1
    assert "goose run failed" in result.output


def test_commands_dispose_their_engine(migrations_dir, tmp_path, monkeypatch):
    (migrations_dir / "1_users.sql").write_text(USERS)
    disposed = []
    original = Database.dispose

    def tracking_dispose(self):
        disposed.append(self.dbstring)
        original(self)

    monkeypatch.setattr(Database, "dispose", tracking_dispose)
    db_path = tmp_path / "cli.db"

    assert _invoke(migrations_dir, db_path, "up").exit_code == 0
    assert _invoke(migrations_dir, db_path, "status").exit_code == 0
    (migrations_dir / "2_broken.sql").write_text("-- +goose Up\nCREATE TABLE broken (;\n")
    assert _invoke(migrations_dir, db_path, "up").exit_code == 1

    assert disposed == [str(db_path)] * 3
