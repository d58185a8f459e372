"""pygoose package exports."""

from .config import Settings, get_settings
from .db import Database
from .dialect import Dialect, dialect_by_name
from .errors import MigrationError, MissingDirectionError, ScriptError, UnknownDialectError
from .migrations import run_sql_migration
from .models import Direction, Migration, VersionRow
from .runner import Runner
from .splitter import SplitResult, split_statements

__all__ = [
    "Database",
    "Dialect",
    "Direction",
    "Migration",
    "MigrationError",
    "MissingDirectionError",
    "Runner",
    "ScriptError",
    "Settings",
    "SplitResult",
    "UnknownDialectError",
    "VersionRow",
    "dialect_by_name",
    "get_settings",
    "run_sql_migration",
    "split_statements",
]
