"""Domain models used across parsing, execution and bookkeeping."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


class Direction(enum.Enum):
    """Whether a migration is being applied or reverted."""

    UP = "up"
    DOWN = "down"

    def __bool__(self) -> bool:
        # recorded as ``is_applied`` in the bookkeeping table
        return self is Direction.UP

    @classmethod
    def from_versions(cls, current: int, target: int) -> Direction:
        return cls.UP if target > current else cls.DOWN


@dataclass(frozen=True, slots=True)
class VersionRow:
    """One row of the ``goose_db_version`` bookkeeping table."""

    version_id: int
    is_applied: bool
    tstamp: datetime | str | None = None


@dataclass(frozen=True, slots=True)
class Migration:
    """A versioned SQL script on disk."""

    version: int
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class MigrationStatus:
    """Applied/pending state of a single migration, as shown by ``status``."""

    migration: Migration
    applied: bool
    applied_at: datetime | str | None = None

    @property
    def label(self) -> str:
        if not self.applied:
            return "Pending"
        if self.applied_at is None:
            return "Applied"
        if isinstance(self.applied_at, datetime):
            return self.applied_at.strftime("%a %b %d %H:%M:%S %Y")
        return str(self.applied_at)
