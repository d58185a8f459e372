"""Bookkeeping table helpers: the table is append-only."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine

from .dialect import VERSION_TABLE, Dialect
from .models import Direction, VersionRow

logger = logging.getLogger(__name__)


def insert_version(connection: Connection, dialect: Dialect, version: int, direction: Direction) -> None:
    """Append one bookkeeping row using the live driver's placeholder style."""

    sql = dialect.insert_version_sql(connection.dialect.paramstyle)
    connection.exec_driver_sql(sql, (version, bool(direction)))


def current_version(rows: Iterable[VersionRow]) -> int:
    """Derive the current version from rows ordered most recent first.

    A version whose latest row records a revert is skipped, even if older
    rows show it applied.
    """

    skipped: set[int] = set()
    for row in rows:
        if row.version_id in skipped:
            continue
        if row.is_applied:
            return row.version_id
        skipped.add(row.version_id)
    return 0


def latest_rows(rows: Iterable[VersionRow]) -> dict[int, VersionRow]:
    """Most recent row per version."""

    latest: dict[int, VersionRow] = {}
    for row in rows:
        latest.setdefault(row.version_id, row)
    return latest


def create_version_table(engine: Engine, dialect: Dialect) -> None:
    logger.info("creating %s table", VERSION_TABLE)
    with engine.begin() as connection:
        connection.exec_driver_sql(dialect.create_version_table_sql())
        insert_version(connection, dialect, 0, Direction.UP)


def fetch_version_rows(engine: Engine, dialect: Dialect) -> list[VersionRow]:
    with engine.connect() as connection:
        return dialect.db_version_query(connection)


def ensure_version_table(engine: Engine, dialect: Dialect) -> int:
    """Create the bookkeeping table on first use and return the current version."""

    if not inspect(engine).has_table(VERSION_TABLE):
        create_version_table(engine, dialect)
        return 0
    return current_version(fetch_version_rows(engine, dialect))


__all__ = [
    "create_version_table",
    "current_version",
    "ensure_version_table",
    "fetch_version_rows",
    "insert_version",
    "latest_rows",
]
