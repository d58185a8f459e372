"""Runtime configuration helpers for pygoose."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

from .dialect import Dialect, dialect_by_name
from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path("etc/config.yaml")
DEFAULT_MIGRATIONS_DIR = Path("db/migrations")


def _load_env_file() -> None:
    env_path = Path(".env")
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key, value)


_load_env_file()


@dataclass(frozen=True)
class Settings:
    """Resolved driver, connection string and migrations directory."""

    driver: str
    dbstring: str
    migrations_dir: Path
    dialect: Dialect


def load_config_file(path: Path) -> tuple[str, str]:
    """Read ``DBX.Driver`` and ``DBX.Connstring`` from a YAML config file.

    ``$VAR`` references are expanded from the environment.
    """

    if not path.exists():
        msg = f"config file not found: {path}"
        raise ConfigurationError(msg)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        msg = f"invalid config file {path}: {exc}"
        raise ConfigurationError(msg) from exc
    section = data.get("DBX") if isinstance(data, dict) else None
    if not isinstance(section, dict):
        msg = f"config file {path} has no DBX section"
        raise ConfigurationError(msg)
    driver = os.path.expandvars(str(section.get("Driver") or ""))
    dbstring = os.path.expandvars(str(section.get("Connstring") or ""))
    return driver, dbstring


@lru_cache(maxsize=1)
def get_settings(
    driver: str | None = None,
    dbstring: str | None = None,
    migrations_dir: Path | None = None,
    config_path: Path | None = None,
) -> Settings:
    """Return configuration from explicit values, the environment or the config file.

    Driver and connection string must be supplied together; when neither is
    given both are read from the config file. The dialect is resolved here so
    an unknown driver fails before any connection is attempted.
    """

    driver = driver or os.getenv("GOOSE_DRIVER") or None
    dbstring = dbstring or os.getenv("GOOSE_DBSTRING") or None
    if migrations_dir is None:
        migrations_dir = Path(os.getenv("GOOSE_DIR", str(DEFAULT_MIGRATIONS_DIR)))
    if config_path is None:
        config_path = Path(os.getenv("GOOSE_CONF", str(DEFAULT_CONFIG_PATH)))

    if driver is None and dbstring is None:
        driver, dbstring = load_config_file(config_path)
    elif driver is None or dbstring is None:
        raise ConfigurationError("--dbstring and --driver must be either both present or absent")

    if not driver:
        raise ConfigurationError("no database driver configured")
    if not dbstring:
        msg = f"dbstring={dbstring!r} not supported"
        raise ConfigurationError(msg)

    return Settings(
        driver=driver,
        dbstring=dbstring,
        migrations_dir=migrations_dir,
        dialect=dialect_by_name(driver),
    )


__all__ = ["DEFAULT_CONFIG_PATH", "DEFAULT_MIGRATIONS_DIR", "Settings", "get_settings", "load_config_file"]
