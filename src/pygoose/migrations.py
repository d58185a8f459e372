"""Execute a single SQL migration and record it in the bookkeeping table."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.engine import Connection, Engine

from .dialect import Dialect
from .models import Direction
from .splitter import split_statements
from .versions import insert_version

logger = logging.getLogger(__name__)


def _execute(connection: Connection, statements: list[str], script: str) -> None:
    total = len(statements)
    for index, statement in enumerate(statements, start=1):
        logger.debug("%s: statement %d/%d", script, index, total)
        # Sent without a parameter set so drivers leave `%` alone.
        connection.exec_driver_sql(statement, execution_options={"no_parameters": True})


def run_sql_migration(
    engine: Engine,
    dialect: Dialect,
    script_path: Path | str,
    version: int,
    direction: Direction,
) -> None:
    """Apply or revert one migration script.

    Transactional scripts run with every statement and the bookkeeping insert
    in one transaction: any failure rolls all of it back. Scripts annotated
    ``-- +goose NO TRANSACTION`` run on an autocommit connection, so a failure
    leaves the statements before it applied and skips the bookkeeping insert.
    Database errors propagate unchanged.
    """

    path = Path(script_path)
    with path.open("rb") as handle:
        result = split_statements(handle, direction)

    logger.info("%s %s (%d statements)", direction.value, path.name, len(result.statements))

    if result.use_transaction:
        with engine.begin() as connection:
            _execute(connection, result.statements, path.name)
            insert_version(connection, dialect, version, direction)
        return

    logger.warning("%s: running without a transaction, a failure leaves earlier statements applied", path.name)
    with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as connection:
        _execute(connection, result.statements, path.name)
        insert_version(connection, dialect, version, direction)


__all__ = ["run_sql_migration"]
