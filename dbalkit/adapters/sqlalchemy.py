"""SQLAlchemy backed connection.

Implements :class:`~dbalkit.protocols.ConnectionProtocol` on top of a SQLAlchemy
:class:`~sqlalchemy.engine.Engine`. The engine is created eagerly so a missing DB-API package
surfaces at construction, the connection itself is only opened on first use.
"""

import logging
from collections.abc import Generator, Mapping, Sequence
from contextlib import contextmanager
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final, Optional

from sqlalchemy import create_engine, inspect, literal, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import NoSuchModuleError, SQLAlchemyError

from dbalkit.core.identifiers import identifier_text
from dbalkit.drivers import (
    DRIVER_DB2,
    DRIVER_DRIZZLE,
    DRIVER_MYSQL,
    DRIVER_OCI8,
    DRIVER_PGSQL,
    DRIVER_SQLITE,
    DRIVER_SQLSRV,
    SUPPORTED_DRIVERS,
    DriverOption,
)
from dbalkit.exceptions import ImproperConfigurationError, MissingDependencyError, RepositoryError, wrap_exceptions
from dbalkit.protocols import IsolationLevel
from dbalkit.utils.logging import get_logger, log_with_context
from dbalkit.utils.text import sanitize_invalid_utf8

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine, Inspector
    from sqlalchemy.engine.interfaces import Dialect

    from dbalkit.typing import ConnectionParams

__all__ = (
    "SQLAlchemyConnection",
    "SQLAlchemyConnectionFactory",
    "build_engine_url",
)

logger = get_logger("adapters.sqlalchemy")

# Drizzle has no dialect of its own and is reached over the MySQL wire protocol.
_DRIVERNAMES: Final[Mapping[str, str]] = MappingProxyType({DRIVER_DRIZZLE: DRIVER_MYSQL})

_DBAPI_PACKAGES: Final[Mapping[str, tuple[str, str]]] = MappingProxyType(
    {
        DRIVER_MYSQL: ("pymysql", "mysql"),
        DRIVER_DRIZZLE: ("pymysql", "mysql"),
        DRIVER_PGSQL: ("psycopg", "postgres"),
        DRIVER_OCI8: ("oracledb", "oracle"),
        DRIVER_SQLSRV: ("pyodbc", "mssql"),
        DRIVER_DB2: ("ibm_db_sa", "db2"),
    }
)

_TIMEOUT_ARGUMENTS: Final[Mapping[str, str]] = MappingProxyType(
    {
        "mysql": "connect_timeout",
        "postgresql": "connect_timeout",
        "sqlite": "timeout",
        "mssql": "timeout",
        "oracle": "tcp_connect_timeout",
    }
)

_ISOLATION_LEVELS: Final[Mapping[IsolationLevel, str]] = MappingProxyType(
    {
        IsolationLevel.READ_UNCOMMITTED: "READ UNCOMMITTED",
        IsolationLevel.READ_COMMITTED: "READ COMMITTED",
        IsolationLevel.REPEATABLE_READ: "REPEATABLE READ",
        IsolationLevel.SERIALIZABLE: "SERIALIZABLE",
    }
)

# query() and execute() statements carry their values inline and must reach the DB-API
# without a parameter set, or format and pyformat drivers %-interpolate them.
_INLINED: Final[Mapping[str, Any]] = MappingProxyType({"no_parameters": True})

# Dialects compiling for these paramstyles escape "%" as "%%" inside rendered literals.
_PERCENT_PARAMSTYLES: Final = frozenset({"format", "pyformat"})


def _backend(driver: str) -> str:
    return _DRIVERNAMES.get(driver, driver).split("+", 1)[0]


def build_engine_url(params: "ConnectionParams") -> URL:
    """Build the SQLAlchemy URL for a normalized configuration.

    Args:
        params: Connection parameters as produced by
            :meth:`~dbalkit.config.ConnectionDescriptor.connection_params`.

    Returns:
        The engine URL. File based drivers use ``path`` as the database.
    """
    driver = params["driver"]
    drivername = _DRIVERNAMES.get(driver, driver)
    if driver == DRIVER_SQLITE:
        return URL.create(drivername, database=params.get("path") or params.get("dbname"))

    query: dict[str, str] = {}
    charset = params.get("charset")
    backend = _backend(driver)
    if charset and backend == "mysql":
        query["charset"] = charset.lower()
    elif charset and backend == "postgresql":
        query["client_encoding"] = charset

    return URL.create(
        drivername,
        username=params.get("user"),
        password=params.get("password"),
        host=params.get("host"),
        port=params.get("port"),
        database=params.get("dbname"),
        query=query,
    )


def _engine_arguments(params: "ConnectionParams") -> "dict[str, Any]":
    options = params.get("driverOptions") or {}
    connect_args: dict[str, Any] = {}
    timeout_argument = _TIMEOUT_ARGUMENTS.get(_backend(params["driver"]))
    timeout = options.get(DriverOption.TIMEOUT, params.get("timeout"))
    if timeout_argument and timeout is not None:
        connect_args[timeout_argument] = timeout

    arguments: dict[str, Any] = {"connect_args": connect_args}
    if options.get(DriverOption.AUTOCOMMIT):
        arguments["isolation_level"] = "AUTOCOMMIT"
    return arguments


@contextmanager
def handle_database_exceptions() -> "Generator[None, None, None]":
    """Wrap SQLAlchemy errors in :class:`~dbalkit.exceptions.RepositoryError`."""
    try:
        yield
    except SQLAlchemyError as e:
        msg = f"Database error: {e}"
        raise RepositoryError(msg) from e


def _rows(result: Any) -> Any:
    if result.returns_rows:
        return [dict(row) for row in result.mappings()]
    return result.rowcount


def _split_table(table: str) -> "tuple[Optional[str], str]":
    schema, _, name = table.rpartition(".")
    return schema or None, name


class SQLAlchemyConnection:
    """A single lazily opened SQLAlchemy connection.

    Statements run outside :meth:`begin_transaction` are committed as soon as they finish.
    """

    __slots__ = ("_connection", "_depth", "_engine", "_params")

    def __init__(self, engine: "Engine", params: "ConnectionParams") -> None:
        self._engine = engine
        self._params = params
        self._connection: Optional[Connection] = None
        self._depth = 0

    @property
    def engine(self) -> "Engine":
        return self._engine

    @property
    def dialect(self) -> "Dialect":
        return self._engine.dialect

    @property
    def identifier_quote_character(self) -> str:
        return self.dialect.identifier_preparer.initial_quote

    @property
    def database(self) -> Optional[str]:
        return self._params.get("dbname")

    def get_params(self) -> "ConnectionParams":
        return self._params

    def connect(self) -> bool:
        if self.is_connected():
            return False
        with handle_database_exceptions():
            self._connection = self._engine.connect()
        log_with_context(logger, logging.DEBUG, "Connected", driver=self._params["driver"], database=self.database)
        return True

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
        self._connection = None
        self._depth = 0

    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    def _conn(self) -> "Connection":
        self.connect()
        assert self._connection is not None
        return self._connection

    def _finish(self) -> None:
        connection = self._connection
        if self._depth == 0 and connection is not None and connection.in_transaction():
            connection.commit()

    def begin_transaction(self) -> None:
        connection = self._conn()
        with handle_database_exceptions():
            if self._depth == 0:
                if connection.in_transaction():
                    connection.commit()
                connection.begin()
        self._depth += 1

    def commit(self) -> None:
        if self._depth == 0:
            msg = "There is no active transaction."
            raise RepositoryError(msg)
        self._depth -= 1
        if self._depth == 0:
            with handle_database_exceptions():
                self._conn().commit()

    def rollback(self) -> None:
        if self._depth == 0:
            msg = "There is no active transaction."
            raise RepositoryError(msg)
        self._depth = 0
        with handle_database_exceptions():
            self._conn().rollback()

    def in_transaction(self) -> bool:
        return self._depth > 0

    def create_savepoint(self, savepoint: str) -> None:
        connection = self._conn()
        with handle_database_exceptions():
            self.dialect.do_savepoint(connection, savepoint)

    def release_savepoint(self, savepoint: str) -> None:
        connection = self._conn()
        with handle_database_exceptions():
            self.dialect.do_release_savepoint(connection, savepoint)

    def rollback_savepoint(self, savepoint: str) -> None:
        connection = self._conn()
        with handle_database_exceptions():
            self.dialect.do_rollback_to_savepoint(connection, savepoint)

    def set_transaction_isolation(self, level: IsolationLevel) -> None:
        with handle_database_exceptions():
            self._conn().execution_options(isolation_level=_ISOLATION_LEVELS[IsolationLevel(level)])

    def execute(self, statement: str) -> int:
        connection = self._conn()
        with handle_database_exceptions():
            rowcount = connection.exec_driver_sql(statement, execution_options=_INLINED).rowcount
            self._finish()
        return rowcount

    def query(self, sql: str) -> Any:
        connection = self._conn()
        with handle_database_exceptions():
            rows = _rows(connection.exec_driver_sql(sql, execution_options=_INLINED))
            self._finish()
        return rows

    def execute_query(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> Any:
        connection = self._conn()
        with handle_database_exceptions():
            rows = _rows(connection.execute(text(sql), dict(parameters or {})))
            self._finish()
        return rows

    def fetch_all(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> "list[dict[str, Any]]":
        connection = self._conn()
        with handle_database_exceptions():
            rows = [dict(row) for row in connection.execute(text(sql), dict(parameters or {})).mappings()]
            self._finish()
        return rows

    def fetch_one(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> "Optional[dict[str, Any]]":
        connection = self._conn()
        with handle_database_exceptions():
            row = connection.execute(text(sql), dict(parameters or {})).mappings().first()
            self._finish()
        return None if row is None else dict(row)

    def fetch_column(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None, column: int = 0) -> Any:
        connection = self._conn()
        with handle_database_exceptions():
            row = connection.execute(text(sql), dict(parameters or {})).first()
            self._finish()
        return None if row is None else row[column]

    def quote(self, value: Any) -> str:
        """Render ``value`` as a literal of the connection's dialect.

        The result is plain SQL: ``%`` is never escaped for the DB-API paramstyle.
        """
        if isinstance(value, (bytes, bytearray)):
            value = sanitize_invalid_utf8(bytes(value))
        with handle_database_exceptions():
            rendered = str(literal(value).compile(dialect=self.dialect, compile_kwargs={"literal_binds": True}))
        if self.dialect.paramstyle in _PERCENT_PARAMSTYLES:
            rendered = rendered.replace("%%", "%")
        return rendered

    def quote_identifier(self, identifier: Any) -> str:
        """Quote every dotted part of ``identifier``.

        Raises:
            InvalidLeafValueError: If ``identifier`` cannot be read as a name.
        """
        preparer = self.dialect.identifier_preparer
        return ".".join(preparer.quote_identifier(part) for part in identifier_text(identifier).split("."))

    def _inspector(self) -> "Inspector":
        return inspect(self._conn())

    def list_databases(self) -> "list[str]":
        with handle_database_exceptions():
            return list(self._inspector().get_schema_names())

    def list_namespace_names(self) -> "list[str]":
        with handle_database_exceptions():
            inspector = self._inspector()
            default = inspector.default_schema_name
            return [name for name in inspector.get_schema_names() if name != default]

    def list_sequences(self) -> "list[str]":
        with handle_database_exceptions():
            return list(self._inspector().get_sequence_names())

    def list_table_columns(self, table: str) -> "list[dict[str, Any]]":
        schema, name = _split_table(table)
        with handle_database_exceptions():
            columns = self._inspector().get_columns(name, schema=schema)
            return [{**column, "type": column["type"].compile(dialect=self.dialect)} for column in columns]

    def list_table_indexes(self, table: str) -> "list[dict[str, Any]]":
        schema, name = _split_table(table)
        with handle_database_exceptions():
            return [dict(index) for index in self._inspector().get_indexes(name, schema=schema)]

    def list_table_names(self) -> "list[str]":
        with handle_database_exceptions():
            return list(self._inspector().get_table_names())

    def list_table_details(self, table: str) -> "dict[str, Any]":
        schema, name = _split_table(table)
        with handle_database_exceptions():
            primary_key = self._inspector().get_pk_constraint(name, schema=schema)
        return {
            "name": name,
            "schema": schema,
            "columns": self.list_table_columns(table),
            "indexes": self.list_table_indexes(table),
            "primary_key": list(primary_key.get("constrained_columns") or []),
            "foreign_keys": self.list_table_foreign_keys(table),
        }

    def list_views(self) -> "list[str]":
        with handle_database_exceptions():
            return list(self._inspector().get_view_names())

    def list_table_foreign_keys(self, table: str) -> "list[dict[str, Any]]":
        schema, name = _split_table(table)
        with handle_database_exceptions():
            return [dict(key) for key in self._inspector().get_foreign_keys(name, schema=schema)]

    def tables_exist(self, tables: "Sequence[str]") -> bool:
        if isinstance(tables, str):
            tables = [tables]
        with handle_database_exceptions():
            inspector = self._inspector()
            return all(inspector.has_table(name, schema=schema) for schema, name in map(_split_table, tables))


class SQLAlchemyConnectionFactory:
    """Creates :class:`SQLAlchemyConnection` instances.

    Args:
        engine_options: Extra keyword arguments for :func:`sqlalchemy.create_engine`.
    """

    __slots__ = ("_engine_options",)

    def __init__(self, **engine_options: Any) -> None:
        self._engine_options = engine_options

    def available_drivers(self) -> "frozenset[str]":
        return SUPPORTED_DRIVERS

    def get_connection(self, params: "ConnectionParams") -> SQLAlchemyConnection:
        """Create the engine for ``params`` and wrap it.

        Raises:
            ImproperConfigurationError: If the driver is not supported.
            MissingDependencyError: If the DB-API package of the driver is not installed.

        Returns:
            A connection that is not opened yet.
        """
        driver = params.get("driver")
        if driver not in SUPPORTED_DRIVERS:
            msg = f"Selected driver unavailable: {driver!r}"
            raise ImproperConfigurationError(msg)

        arguments = _engine_arguments(params)
        arguments.update(self._engine_options)
        with wrap_exceptions():
            try:
                engine = create_engine(build_engine_url(params), **arguments)
            except (ImportError, NoSuchModuleError) as exc:
                package, extra = _DBAPI_PACKAGES.get(driver, (driver, driver))
                raise MissingDependencyError(package=package, install_package=extra) from exc
        return SQLAlchemyConnection(engine, params)
