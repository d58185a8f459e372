"""Database handle built around a SQLAlchemy engine."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from .dialect import Dialect, Family

logger = logging.getLogger(__name__)


def _enable_sqlite_transactional_ddl(engine: Engine) -> None:
    # pysqlite only opens transactions before DML; take over BEGIN so DDL rolls back too.
    @event.listens_for(engine, "connect")
    def _disable_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection):
        if connection.get_execution_options().get("isolation_level") != "AUTOCOMMIT":
            connection.exec_driver_sql("BEGIN")


class Database:
    """Lightweight wrapper pairing a SQLAlchemy engine with its goose dialect."""

    def __init__(self, dialect: Dialect, dbstring: str) -> None:
        self.dialect = dialect
        self.dbstring = dbstring
        self.url = dialect.url(dbstring)
        self.engine: Engine = create_engine(self.url, future=True)
        if dialect.family is Family.SQLITE:
            _enable_sqlite_transactional_ddl(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # -- Administrative helpers ------------------------------------------
    def create(self, *, soft: bool = False) -> bool:
        """Create the target database; with ``soft`` an existing one is left alone.

        Returns ``False`` when nothing was created.
        """

        name = self.dialect.get_db_name(self.dbstring)
        server = self.dialect.connect_to_server(self.dbstring)
        try:
            with server.connect() as conn:
                exists_sql = self.dialect.database_exists_sql(conn.dialect.paramstyle)
                if soft and exists_sql is not None:
                    if conn.exec_driver_sql(exists_sql, (name,)).first() is not None:
                        logger.info("database %s already exists", name)
                        return False
                conn.exec_driver_sql(self.dialect.create_database_sql(name, if_not_exists=soft))
        finally:
            server.dispose()
        logger.info("database %s created", name)
        return True

    def drop(self, *, soft: bool = False) -> None:
        """Drop the target database; with ``soft`` a missing one is not an error."""

        name = self.dialect.get_db_name(self.dbstring)
        server = self.dialect.connect_to_server(self.dbstring)
        try:
            with server.connect() as conn:
                conn.exec_driver_sql(self.dialect.drop_database_sql(name, if_exists=soft))
        finally:
            server.dispose()
        logger.info("database %s dropped", name)


__all__ = ["Database"]
