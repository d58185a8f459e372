"""Exception hierarchy shared across pygoose modules."""

from __future__ import annotations


class MigrationError(RuntimeError):
    """Base class for every error raised by pygoose itself."""


class ScriptError(MigrationError):
    """Raised when a migration script or the migrations directory is malformed."""


class MissingDirectionError(ScriptError):
    """Raised when a script carries neither an Up nor a Down annotation."""


class LineTooLongError(ScriptError):
    """Raised when a single script line exceeds the scanner buffer."""


class ConfigurationError(MigrationError):
    """Raised when driver, connection string or config file are unusable."""


class UnknownDialectError(ConfigurationError):
    """Raised when no dialect is registered under the requested name."""


class DialectError(MigrationError):
    """Raised when a dialect cannot interpret a connection string."""


class RunnerError(MigrationError):
    """Raised when a migration command cannot be carried out."""


__all__ = [
    "ConfigurationError",
    "DialectError",
    "LineTooLongError",
    "MigrationError",
    "MissingDirectionError",
    "RunnerError",
    "ScriptError",
    "UnknownDialectError",
]
