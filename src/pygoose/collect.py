"""Discover versioned SQL migrations on disk."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from .errors import RunnerError, ScriptError
from .models import Migration

MAX_VERSION = 2**63 - 1

SQL_TEMPLATE = """-- +goose Up
-- SQL in section 'Up' is executed when this migration is applied


-- +goose Down
-- SQL section 'Down' is executed when this migration is rolled back

"""


def parse_version(path: Path) -> int:
    """Return the numeric prefix of ``<version>_<name>.sql``."""

    prefix, separator, _ = path.name.partition("_")
    if not separator:
        msg = f"{path.name}: no filename separator '_' found"
        raise ScriptError(msg)
    try:
        version = int(prefix)
    except ValueError:
        msg = f"{path.name}: failed to parse version from migration file"
        raise ScriptError(msg) from None
    if version < 1:
        msg = f"{path.name}: migration versions must be greater than zero"
        raise ScriptError(msg)
    return version


def discover(dirpath: Path) -> list[Migration]:
    """Every migration in ``dirpath``, sorted by version."""

    if not dirpath.is_dir():
        msg = f"migrations directory not found: {dirpath}"
        raise ScriptError(msg)

    seen: dict[int, Path] = {}
    for path in sorted(dirpath.glob("*.sql")):
        version = parse_version(path)
        if version in seen:
            msg = f"duplicate version {version}: {seen[version].name} and {path.name}"
            raise ScriptError(msg)
        seen[version] = path
    return [Migration(version=version, path=seen[version]) for version in sorted(seen)]


def collect_migrations(dirpath: Path, current: int, target: int) -> list[Migration]:
    """Migrations between ``current`` and ``target``, ascending.

    Applying up from ``current`` includes ``target``; reverting down to
    ``target`` includes ``current`` but not ``target``.
    """

    low, high = sorted((current, target))
    return [migration for migration in discover(dirpath) if low < migration.version <= high]


def previous_version(dirpath: Path, current: int) -> int:
    """Latest version below ``current``; ``0`` when ``current`` is the first one."""

    previous = -1
    saw_current = False
    for migration in discover(dirpath):
        if migration.version < current:
            previous = migration.version
        elif migration.version == current:
            saw_current = True
    if previous == -1:
        if not saw_current:
            msg = f"no previous version found for {current}"
            raise RunnerError(msg)
        previous = 0
    return previous


def create_migration(dirpath: Path, name: str, now: datetime | None = None) -> Path:
    """Write a new, empty migration named after the current timestamp."""

    slug = re.sub(r"\W+", "_", name).strip("_").lower()
    if not slug:
        msg = f"invalid migration name: {name!r}"
        raise ScriptError(msg)
    timestamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    dirpath.mkdir(parents=True, exist_ok=True)
    path = dirpath / f"{timestamp}_{slug}.sql"
    if path.exists():
        msg = f"migration already exists: {path}"
        raise ScriptError(msg)
    path.write_text(SQL_TEMPLATE, encoding="utf-8")
    return path


__all__ = [
    "MAX_VERSION",
    "SQL_TEMPLATE",
    "collect_migrations",
    "create_migration",
    "discover",
    "parse_version",
    "previous_version",
]
