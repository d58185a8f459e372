"""Migration commands: up, down, redo, reset, status and version."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .collect import MAX_VERSION, collect_migrations, discover, previous_version
from .db import Database
from .errors import RunnerError
from .migrations import run_sql_migration
from .models import Direction, Migration, MigrationStatus
from .versions import ensure_version_table, fetch_version_rows, latest_rows

logger = logging.getLogger(__name__)


@dataclass
class Runner:
    """Drive migrations from ``migrations_dir`` against ``database``."""

    database: Database
    migrations_dir: Path

    def version(self) -> int:
        return ensure_version_table(self.database.engine, self.database.dialect)

    def run_to(self, target: int) -> list[Migration]:
        """Move the database to ``target``, returning the migrations that ran."""

        current = self.version()
        migrations = collect_migrations(self.migrations_dir, current, target)
        if not migrations:
            logger.info("no migrations to run. current version: %d", current)
            return []

        direction = Direction.from_versions(current, target)
        if direction is Direction.DOWN:
            migrations.reverse()

        logger.info("migrating db, current version: %d, target: %d", current, target)
        for migration in migrations:
            run_sql_migration(
                self.database.engine,
                self.database.dialect,
                migration.path,
                migration.version,
                direction,
            )
            logger.info("OK    %s", migration.name)
        return migrations

    def up(self) -> list[Migration]:
        return self.run_to(MAX_VERSION)

    def up_to(self, version: int) -> list[Migration]:
        current = self.version()
        if version < current:
            msg = f"cannot migrate up to {version}: current version is {current}"
            raise RunnerError(msg)
        return self.run_to(version)

    def down(self) -> list[Migration]:
        current = self.version()
        if current == 0:
            raise RunnerError("no migrations to roll back")
        return self.run_to(previous_version(self.migrations_dir, current))

    def down_to(self, version: int) -> list[Migration]:
        current = self.version()
        if version > current:
            msg = f"cannot roll back to {version}: current version is {current}"
            raise RunnerError(msg)
        return self.run_to(version)

    def redo(self) -> list[Migration]:
        current = self.version()
        if current == 0:
            raise RunnerError("no migrations to redo")
        previous = previous_version(self.migrations_dir, current)
        return self.run_to(previous) + self.run_to(current)

    def reset(self) -> list[Migration]:
        return self.run_to(0)

    def status(self) -> list[MigrationStatus]:
        self.version()
        rows = latest_rows(fetch_version_rows(self.database.engine, self.database.dialect))
        statuses: list[MigrationStatus] = []
        for migration in discover(self.migrations_dir):
            row = rows.get(migration.version)
            if row is None or not row.is_applied:
                statuses.append(MigrationStatus(migration=migration, applied=False))
            else:
                statuses.append(MigrationStatus(migration=migration, applied=True, applied_at=row.tstamp))
        return statuses


__all__ = ["Runner"]
