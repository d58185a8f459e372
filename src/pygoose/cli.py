"""Command line interface for pygoose."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from .collect import create_migration
from .config import DEFAULT_CONFIG_PATH, DEFAULT_MIGRATIONS_DIR, get_settings
from .db import Database
from .errors import MigrationError
from .models import Migration
from .runner import Runner

app = typer.Typer(help="Apply and roll back versioned SQL migrations.", no_args_is_help=True)
console = Console()


@dataclass
class CliOptions:
    migrations_dir: Path
    config_path: Path
    driver: Optional[str]
    dbstring: Optional[str]


def configure_logging(verbose: bool = False) -> None:
    logger = logging.getLogger("pygoose")
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except (MigrationError, SQLAlchemyError, OSError) as exc:
        console.print(f"[bold red]goose run failed[/bold red]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def _load_database(options: CliOptions) -> Database:
    get_settings.cache_clear()
    settings = get_settings(
        driver=options.driver,
        dbstring=options.dbstring,
        migrations_dir=options.migrations_dir,
        config_path=options.config_path,
    )
    return Database(settings.dialect, settings.dbstring)


@contextmanager
def _open_database(options: CliOptions) -> Iterator[Database]:
    database = _load_database(options)
    try:
        yield database
    finally:
        database.dispose()


@contextmanager
def _open_runner(options: CliOptions) -> Iterator[Runner]:
    with _open_database(options) as database:
        yield Runner(database, options.migrations_dir)


def _report(migrations: list[Migration], runner: Runner) -> None:
    if not migrations:
        console.print(f"goose: no migrations to run. current version: {runner.version()}")
        return
    for migration in migrations:
        console.print(f"[green]OK[/green]    {migration.name}")
    console.print(f"goose: version {runner.version()}")


@app.callback()
def main(
    ctx: typer.Context,
    migrations_dir: Path = typer.Option(
        DEFAULT_MIGRATIONS_DIR, "--dir", envvar="GOOSE_DIR", help="Directory with migration files."
    ),
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH, "--conf", envvar="GOOSE_CONF", help="YAML configuration file."
    ),
    driver: Optional[str] = typer.Option(None, "--driver", envvar="GOOSE_DRIVER", help="Database driver."),
    dbstring: Optional[str] = typer.Option(
        None, "--dbstring", envvar="GOOSE_DBSTRING", help="Database connection string."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every executed statement."),
) -> None:
    """Apply and roll back versioned SQL migrations."""

    configure_logging(verbose)
    ctx.obj = CliOptions(
        migrations_dir=migrations_dir,
        config_path=config_path,
        driver=driver,
        dbstring=dbstring,
    )


@app.command()
def up(ctx: typer.Context) -> None:
    """Migrate the DB to the most recent version available."""

    with _reporting_errors(), _open_runner(ctx.obj) as runner:
        _report(runner.up(), runner)


@app.command("up-to")
def up_to(ctx: typer.Context, version: int = typer.Argument(..., help="Target version.")) -> None:
    """Migrate the DB to a specific VERSION."""

    with _reporting_errors(), _open_runner(ctx.obj) as runner:
        _report(runner.up_to(version), runner)


@app.command()
def down(ctx: typer.Context) -> None:
    """Roll back the version by 1."""

    with _reporting_errors(), _open_runner(ctx.obj) as runner:
        _report(runner.down(), runner)


@app.command("down-to")
def down_to(ctx: typer.Context, version: int = typer.Argument(..., help="Target version.")) -> None:
    """Roll back to a specific VERSION."""

    with _reporting_errors(), _open_runner(ctx.obj) as runner:
        _report(runner.down_to(version), runner)


@app.command()
def redo(ctx: typer.Context) -> None:
    """Re-run the latest migration."""

    with _reporting_errors(), _open_runner(ctx.obj) as runner:
        _report(runner.redo(), runner)


@app.command()
def reset(ctx: typer.Context) -> None:
    """Roll back all migrations."""

    with _reporting_errors(), _open_runner(ctx.obj) as runner:
        _report(runner.reset(), runner)


@app.command()
def status(ctx: typer.Context) -> None:
    """Dump the migration status for the current DB."""

    with _reporting_errors(), _open_runner(ctx.obj) as runner:
        statuses = runner.status()

    table = Table(title="goose: status")
    table.add_column("Applied At")
    table.add_column("Migration")
    for entry in statuses:
        style = None if entry.applied else "yellow"
        table.add_row(entry.label, entry.migration.name, style=style)
    console.print(table)


@app.command()
def version(ctx: typer.Context) -> None:
    """Print the current version of the database."""

    with _reporting_errors(), _open_runner(ctx.obj) as runner:
        current = runner.version()
    console.print(f"goose: dbversion {current}")


@app.command()
def create(ctx: typer.Context, name: str = typer.Argument(..., help="Name of the new migration.")) -> None:
    """Create a new SQL migration file with the next version."""

    with _reporting_errors():
        path = create_migration(ctx.obj.migrations_dir, name)
    console.print(f"goose: created {path}")


@app.command("create-db")
def create_db(
    ctx: typer.Context,
    soft: bool = typer.Option(False, "--soft", help="Do nothing if the database already exists."),
) -> None:
    """Create the database."""

    with _reporting_errors(), _open_database(ctx.obj) as database:
        created = database.create(soft=soft)
    console.print("goose: database created" if created else "goose: database already exists")


@app.command("drop-db")
def drop_db(
    ctx: typer.Context,
    soft: bool = typer.Option(False, "--soft", help="Do nothing if the database does not exist."),
) -> None:
    """Drop the database."""

    with _reporting_errors(), _open_database(ctx.obj) as database:
        database.drop(soft=soft)
    console.print("goose: database dropped")


if __name__ == "__main__":  # pragma: no cover
    app()
