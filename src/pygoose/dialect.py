"""SQL dialects for the few engine-specific statements pygoose issues."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError

from .errors import DialectError, UnknownDialectError
from .models import VersionRow

VERSION_TABLE = "goose_db_version"

_PLACEHOLDERS: dict[str, Callable[[int], str]] = {
    "qmark": lambda position: "?",
    "numeric": lambda position: f":{position}",
    "numeric_dollar": lambda position: f"${position}",
    "format": lambda position: "%s",
    "pyformat": lambda position: "%s",
}

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")
_PG_KEYWORD = re.compile(r"(\w+)\s*=\s*('(?:[^'\\]|\\.)*'|\S*)")
_MYSQL_DSN = re.compile(
    r"^(?:(?P<user>[^:@/]*)(?::(?P<password>[^@]*))?@)?"
    r"(?:(?P<net>\w+)(?:\((?P<addr>[^)]*)\))?)?"
    r"/(?P<database>[^?]*)(?:\?(?P<params>.*))?$"
)


class Family(enum.Enum):
    """Wire-protocol family a dialect belongs to."""

    POSTGRES = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"


# SQLAlchemy driver used when a connection string does not name one.
_DEFAULT_DRIVERS = {
    Family.POSTGRES: "postgresql+psycopg",
    Family.MYSQL: "mysql+pymysql",
    Family.SQLITE: "sqlite",
}

# Server-level database to connect to for create/drop.
_MAINTENANCE_DATABASE = {
    Family.POSTGRES: "postgres",
    Family.MYSQL: None,
}


def render_placeholder(paramstyle: str, position: int) -> str:
    try:
        return _PLACEHOLDERS[paramstyle](position)
    except KeyError:
        msg = f"unsupported DBAPI paramstyle: {paramstyle!r}"
        raise DialectError(msg) from None


def _parse_postgres(dbstring: str) -> URL:
    if "://" in dbstring:
        return make_url(dbstring)
    pairs = {key: value.strip("'") for key, value in _PG_KEYWORD.findall(dbstring)}
    if "dbname" not in pairs:
        msg = f"unsupported dbstring: {dbstring!r}"
        raise DialectError(msg)
    port = pairs.pop("port", None)
    return URL.create(
        "postgresql",
        username=pairs.pop("user", None),
        password=pairs.pop("password", None),
        host=pairs.pop("host", None),
        port=int(port) if port else None,
        database=pairs.pop("dbname"),
        query=pairs,
    )


def _parse_mysql(dbstring: str) -> URL:
    if "://" in dbstring:
        return make_url(dbstring)
    match = _MYSQL_DSN.match(dbstring)
    if match is None:
        msg = f"unsupported dbstring: {dbstring!r}"
        raise DialectError(msg)
    host, port = None, None
    if match.group("addr"):
        host, _, port_text = match.group("addr").partition(":")
        port = int(port_text) if port_text else None
    query = {}
    for param in (match.group("params") or "").split("&"):
        key, _, value = param.partition("=")
        # only charset has a PyMySQL equivalent; other go-sql-driver options are dropped
        if key == "charset" and value:
            query["charset"] = value
    return URL.create(
        "mysql",
        username=match.group("user") or None,
        password=match.group("password"),
        host=host or None,
        port=port,
        database=match.group("database") or None,
        query=query,
    )


def _parse_sqlite(dbstring: str) -> URL:
    if dbstring.startswith("sqlite:"):
        return make_url(dbstring)
    return URL.create("sqlite", database=dbstring)


_PARSERS: dict[Family, Callable[[str], URL]] = {
    Family.POSTGRES: _parse_postgres,
    Family.MYSQL: _parse_mysql,
    Family.SQLITE: _parse_sqlite,
}


@dataclass(frozen=True)
class Dialect:
    """Engine-specific SQL and connection handling.

    ``paramstyle`` is the placeholder style the engine uses natively: ``$1``
    for the Postgres family and ``?`` for the MySQL family.
    """

    name: str
    family: Family
    paramstyle: str
    version_table_ddl: str

    def create_version_table_sql(self) -> str:
        return self.version_table_ddl

    def insert_version_sql(self, paramstyle: str | None = None) -> str:
        """Return the version insert with two positional parameters: version and is_applied."""

        style = paramstyle or self.paramstyle
        first, second = render_placeholder(style, 1), render_placeholder(style, 2)
        return f"INSERT INTO {VERSION_TABLE} (version_id, is_applied) VALUES ({first}, {second});"

    def version_query_sql(self) -> str:
        return f"SELECT version_id, is_applied, tstamp FROM {VERSION_TABLE} ORDER BY id DESC"

    def db_version_query(self, connection: Connection) -> list[VersionRow]:
        """Fetch every bookkeeping row, most recent first."""

        result = connection.exec_driver_sql(self.version_query_sql())
        return [
            VersionRow(version_id=int(version_id), is_applied=bool(is_applied), tstamp=tstamp)
            for version_id, is_applied, tstamp in result
        ]

    # -- Connection strings ------------------------------------------------
    def url(self, dbstring: str) -> URL:
        """Translate a goose connection string into a SQLAlchemy URL."""

        try:
            url = _PARSERS[self.family](dbstring)
        except (ArgumentError, ValueError) as exc:
            msg = f"unsupported dbstring: {dbstring!r}"
            raise DialectError(msg) from exc
        if "+" not in url.drivername:
            url = url.set(drivername=_DEFAULT_DRIVERS[self.family])
        return url

    def get_db_name(self, dbstring: str) -> str:
        database = self.url(dbstring).database
        if not database:
            msg = f"no database name in dbstring: {dbstring!r}"
            raise DialectError(msg)
        return database

    def server_url(self, dbstring: str) -> URL:
        """URL of the server itself, ignoring the target database."""

        if self.family not in _MAINTENANCE_DATABASE:
            msg = f"{self.name} has no database server to connect to"
            raise DialectError(msg)
        url = self.url(dbstring)
        # URL.set() skips None values.
        return URL.create(
            url.drivername,
            username=url.username,
            password=url.password,
            host=url.host,
            port=url.port,
            database=_MAINTENANCE_DATABASE[self.family],
            query=url.query,
        )

    def connect_to_server(self, dbstring: str) -> Engine:
        return create_engine(self.server_url(dbstring), isolation_level="AUTOCOMMIT", future=True)

    # -- Administrative statements ------------------------------------------
    def database_exists_sql(self, paramstyle: str | None = None) -> str | None:
        if self.family is not Family.POSTGRES:
            return None
        placeholder = render_placeholder(paramstyle or self.paramstyle, 1)
        return f"SELECT 1 FROM pg_database WHERE datname = {placeholder}"

    def create_database_sql(self, name: str, *, if_not_exists: bool = False) -> str:
        name = quote_identifier(name)
        if self.family is Family.MYSQL:
            guard = "IF NOT EXISTS " if if_not_exists else ""
            return f"CREATE DATABASE {guard}{name} CHARACTER SET utf8 COLLATE utf8_general_ci"
        return f"CREATE DATABASE {name}"

    def drop_database_sql(self, name: str, *, if_exists: bool = False) -> str:
        guard = "IF EXISTS " if if_exists else ""
        return f"DROP DATABASE {guard}{quote_identifier(name)}"


def quote_identifier(name: str) -> str:
    """Admit only plain identifiers as database names."""

    if not _IDENTIFIER.fullmatch(name):
        msg = f"invalid database name: {name!r}"
        raise DialectError(msg)
    return name


_SERIAL_TABLE = f"""CREATE TABLE {VERSION_TABLE} (
    id serial NOT NULL,
    version_id bigint NOT NULL,
    is_applied boolean NOT NULL,
    tstamp timestamp NULL default now(),
    PRIMARY KEY(id)
);"""

POSTGRES = Dialect("postgres", Family.POSTGRES, "numeric_dollar", _SERIAL_TABLE)
MYSQL = Dialect("mysql", Family.MYSQL, "qmark", _SERIAL_TABLE)
REDSHIFT = Dialect(
    "redshift",
    Family.POSTGRES,
    "numeric_dollar",
    f"""CREATE TABLE {VERSION_TABLE} (
    id integer NOT NULL identity(1, 1),
    version_id bigint NOT NULL,
    is_applied boolean NOT NULL,
    tstamp timestamp NULL default sysdate,
    PRIMARY KEY(id)
);""",
)
TIDB = Dialect(
    "tidb",
    Family.MYSQL,
    "qmark",
    f"""CREATE TABLE {VERSION_TABLE} (
    id BIGINT UNSIGNED NOT NULL AUTO_INCREMENT UNIQUE,
    version_id bigint NOT NULL,
    is_applied boolean NOT NULL,
    tstamp timestamp NULL default now(),
    PRIMARY KEY(id)
);""",
)
SQLITE3 = Dialect(
    "sqlite3",
    Family.SQLITE,
    "qmark",
    f"""CREATE TABLE {VERSION_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    version_id INTEGER NOT NULL,
    is_applied INTEGER NOT NULL,
    tstamp TIMESTAMP DEFAULT (datetime('now'))
);""",
)

DIALECTS: dict[str, Dialect] = {
    "postgres": POSTGRES,
    "pgx": POSTGRES,
    "mysql": MYSQL,
    "mymysql": MYSQL,
    "redshift": REDSHIFT,
    "tidb": TIDB,
    "sqlite3": SQLITE3,
    "sqlite": SQLITE3,
}


def dialect_by_name(name: str) -> Dialect:
    """Resolve a driver or dialect name, aliases included."""

    try:
        return DIALECTS[name]
    except KeyError:
        msg = f"{name!r}: unknown dialect"
        raise UnknownDialectError(msg) from None


__all__ = [
    "DIALECTS",
    "Dialect",
    "Family",
    "MYSQL",
    "POSTGRES",
    "REDSHIFT",
    "SQLITE3",
    "TIDB",
    "VERSION_TABLE",
    "dialect_by_name",
    "quote_identifier",
    "render_placeholder",
]
