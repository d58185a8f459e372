from __future__ import annotations

from pathlib import Path

import pytest

from pygoose.config import get_settings, load_config_file
from pygoose.dialect import MYSQL, SQLITE3
from pygoose.errors import ConfigurationError, UnknownDialectError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("GOOSE_DRIVER", "GOOSE_DBSTRING", "GOOSE_DIR", "GOOSE_CONF"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _write_config(tmp_path: Path, driver: str, connstring: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(f"DBX:\n  Driver: {driver}\n  Connstring: {connstring}\n")
    return path


def test_config_file_with_env_expansion(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_DB_PATH", str(tmp_path / "app.db"))
    config = _write_config(tmp_path, "sqlite3", "$APP_DB_PATH")

    settings = get_settings(config_path=config)

    assert settings.driver == "sqlite3"
    assert settings.dbstring == str(tmp_path / "app.db")
    assert settings.dialect is SQLITE3
    assert settings.migrations_dir == Path("db/migrations")


def test_explicit_values_override_config(tmp_path):
    settings = get_settings(
        driver="tidb",
        dbstring="app@tcp(localhost:4000)/shop",
        migrations_dir=tmp_path,
        config_path=tmp_path / "missing.yaml",
    )

    assert settings.dialect.name == "tidb"
    assert settings.migrations_dir == tmp_path


def test_environment_supplies_driver_and_dbstring(monkeypatch, tmp_path):
    monkeypatch.setenv("GOOSE_DRIVER", "mysql")
    monkeypatch.setenv("GOOSE_DBSTRING", "app@tcp(localhost:3306)/shop")
    monkeypatch.setenv("GOOSE_DIR", str(tmp_path))

    settings = get_settings()

    assert settings.dialect is MYSQL
    assert settings.migrations_dir == tmp_path


def test_driver_and_dbstring_come_together(tmp_path):
    with pytest.raises(ConfigurationError, match="both present or absent"):
        get_settings(driver="postgres", config_path=tmp_path / "missing.yaml")


def test_unknown_driver_fails_at_selection(tmp_path):
    with pytest.raises(UnknownDialectError):
        get_settings(driver="oracle", dbstring="whatever")


def test_config_file_problems(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config_file(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("other: {}\n")
    with pytest.raises(ConfigurationError, match="no DBX section"):
        load_config_file(bad)

    empty = _write_config(tmp_path, "postgres", "''")
    with pytest.raises(ConfigurationError):
        get_settings(config_path=empty)
