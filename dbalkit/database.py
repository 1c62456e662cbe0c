"""The database facade.

:class:`Database` validates a configuration, opens a connection through a connection factory
and adds table prefixing, identifier quoting and ``?`` placeholder compilation on top of it.
Connection, transaction and schema operations are forwarded to the connection.
"""

import logging
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import TYPE_CHECKING, Any, Optional

from mypy_extensions import mypyc_attr

from dbalkit.config import ConnectionDescriptor, DatabaseContext
from dbalkit.core.compiler import PlaceholderCompiler, convert_to_named
from dbalkit.core.identifiers import IdentifierRewriter
from dbalkit.exceptions import InvalidLeafValueError, UnsupportedOperationError
from dbalkit.protocols import DELEGATED_OPERATIONS, IsolationLevel
from dbalkit.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from dbalkit.protocols import ConnectionFactoryProtocol, ConnectionProtocol
    from dbalkit.typing import BindParameters, ConnectionParams, RewriteValue

__all__ = ("Database", "IsolationLevel")

logger = get_logger("database")


def _default_factory() -> "ConnectionFactoryProtocol":
    from dbalkit.adapters.sqlalchemy import SQLAlchemyConnectionFactory

    return SQLAlchemyConnectionFactory()


def _table_maybe_invalid(table: Any) -> str:
    if not isinstance(table, str):
        msg = "Invalid table name type. Table name must be a string."
        raise InvalidLeafValueError(msg)
    table = table.strip()
    if not table:
        msg = "Invalid table name. Table name could not be empty."
        raise InvalidLeafValueError(msg)
    return table


@mypyc_attr(allow_interpreted_subclasses=True)
class Database:
    """Configured database connection.

    Args:
        config: Raw configuration mapping, see :func:`~dbalkit.config.normalize_database_params`.
        connection_factory: Factory opening the connection. Defaults to the SQLAlchemy adapter.
        context: Caller-owned context that records this configuration for
            :meth:`create_from_last_params`.

    Raises:
        ImproperConfigurationError: If the prefix has an unsupported type or the database name
            is empty.
        UnresolvedDriverError: If the driver is not available in ``connection_factory``.
    """

    IsolationLevel = IsolationLevel

    __slots__ = ("_compiler", "_connection", "_descriptor", "_quote_character", "_rewriter")

    def __init__(
        self,
        config: "Mapping[str, Any]",
        *,
        connection_factory: "Optional[ConnectionFactoryProtocol]" = None,
        context: "Optional[DatabaseContext]" = None,
    ) -> None:
        factory = connection_factory or _default_factory()
        self._descriptor = ConnectionDescriptor.from_config(config, available_drivers=factory.available_drivers())
        self._connection: ConnectionProtocol = factory.get_connection(self._descriptor.connection_params())
        if context is not None:
            context.record(self._descriptor)
        self._quote_character = self._connection.identifier_quote_character
        self._rewriter = IdentifierRewriter(
            quote_character=self._quote_character,
            prefix=self._descriptor.prefix,
            database_name=self._descriptor.name,
            quote=self._connection.quote,
            quote_identifier=self._connection.quote_identifier,
        )
        self._compiler = PlaceholderCompiler(self._connection.quote)
        log_with_context(
            logger,
            logging.DEBUG,
            "Database ready",
            descriptor=self._descriptor,
            quote_character=self._quote_character,
        )

    @classmethod
    def create(
        cls,
        config: "Optional[Mapping[str, Any]]" = None,
        *,
        connection_factory: "Optional[ConnectionFactoryProtocol]" = None,
        context: "Optional[DatabaseContext]" = None,
    ) -> "Database":
        """Create a database, falling back to the configuration recorded in ``context``.

        Raises:
            NotInitializedError: If ``config`` is not a mapping and nothing was recorded.
        """
        if not isinstance(config, Mapping):
            return cls.create_from_last_params(context, connection_factory=connection_factory)
        return cls(config, connection_factory=connection_factory, context=context)

    @classmethod
    def create_from_last_params(
        cls,
        context: "Optional[DatabaseContext]",
        *,
        connection_factory: "Optional[ConnectionFactoryProtocol]" = None,
    ) -> "Database":
        """Re-create a database from the last configuration recorded in ``context``.

        Raises:
            NotInitializedError: If ``context`` is missing or empty.
        """
        descriptor = (context or DatabaseContext()).require()
        return cls(descriptor.to_params(), connection_factory=connection_factory, context=context)

    def __enter__(self) -> "Database":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    @property
    def connection(self) -> "ConnectionProtocol":
        return self._connection

    @property
    def descriptor(self) -> ConnectionDescriptor:
        return self._descriptor

    @property
    def table_prefix(self) -> str:
        return self._descriptor.prefix

    @property
    def quote_character(self) -> str:
        return self._quote_character

    @property
    def user_params(self) -> "dict[str, Any]":
        """Normalized configuration without the table prefix."""
        params = self._descriptor.params
        return {key: dict(value) if isinstance(value, Mapping) else value for key, value in params.items()}

    @property
    def connection_params(self) -> "ConnectionParams":
        return self._connection.get_params()

    def trim_table_selector(self, table: "RewriteValue") -> "RewriteValue":
        return self._rewriter.trim(table)

    def quote_identifiers(self, value: "RewriteValue") -> "RewriteValue":
        return self._rewriter.quote_identifiers(value)

    def quotes(self, value: "RewriteValue") -> "RewriteValue":
        return self._rewriter.quotes(value)

    def prefix_tables(self, table: "RewriteValue", use_identifier: bool = False) -> "RewriteValue":
        return self._rewriter.prefix_tables(table, use_identifier)

    prefix = prefix_tables

    def compile_binds_question_mark(self, sql: str, binds: "BindParameters" = None) -> str:
        return self._compiler.compile(sql, binds)

    def query_bind(self, sql: str, binds: "BindParameters" = None) -> Any:
        """Inline ``binds`` into ``sql`` and run it.

        Raises:
            BindCountMismatchError: Before anything is executed, if the binds do not fit.
        """
        return self._connection.query(self._compiler.compile(sql, binds))

    def execute_prepare(self, sql: str, params: "BindParameters" = None) -> Any:
        """Run ``sql`` with driver-side parameter binding.

        Args:
            sql: Statement using ``:name`` parameters, or positional ``?`` markers when
                ``params`` is a sequence.
            params: Named or positional parameter values.

        Returns:
            The statement result.
        """
        if params is None or isinstance(params, Mapping):
            return self._connection.execute_query(sql, params)
        if not isinstance(params, Sequence) or isinstance(params, (str, bytes)):
            params = [params]
        named_sql, named = convert_to_named(sql, params)
        return self._connection.execute_query(named_sql, named)

    def call(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Forward ``operation`` to the connection by name.

        Raises:
            UnsupportedOperationError: If ``operation`` is not part of the connection interface.
        """
        if operation not in DELEGATED_OPERATIONS:
            logger.debug("Rejected delegated call to %r", operation)
            raise UnsupportedOperationError(operation)
        return getattr(self._connection, operation)(*args, **kwargs)

    def connect(self) -> bool:
        return self._connection.connect()

    def close(self) -> None:
        self._connection.close()

    def is_connected(self) -> bool:
        return self._connection.is_connected()

    def begin_transaction(self) -> None:
        self._connection.begin_transaction()

    def commit(self) -> None:
        self._connection.commit()

    def rollback(self) -> None:
        self._connection.rollback()

    def in_transaction(self) -> bool:
        return self._connection.in_transaction()

    def create_savepoint(self, savepoint: str) -> None:
        self._connection.create_savepoint(savepoint)

    def release_savepoint(self, savepoint: str) -> None:
        self._connection.release_savepoint(savepoint)

    def rollback_savepoint(self, savepoint: str) -> None:
        self._connection.rollback_savepoint(savepoint)

    def set_transaction_isolation(self, level: IsolationLevel) -> None:
        self._connection.set_transaction_isolation(level)

    def execute(self, statement: str) -> int:
        return self._connection.execute(statement)

    def query(self, sql: str) -> Any:
        return self._connection.query(sql)

    def execute_query(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> Any:
        return self._connection.execute_query(sql, parameters)

    def fetch_all(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> "list[dict[str, Any]]":
        return self._connection.fetch_all(sql, parameters)

    def fetch_one(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> "Optional[dict[str, Any]]":
        return self._connection.fetch_one(sql, parameters)

    def fetch_column(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None, column: int = 0) -> Any:
        return self._connection.fetch_column(sql, parameters, column)

    def quote(self, value: Any) -> str:
        return self._connection.quote(value)

    def quote_identifier(self, identifier: str) -> str:
        return self._connection.quote_identifier(identifier)

    def get_params(self) -> "ConnectionParams":
        return self._connection.get_params()

    # Schema

    def list_databases(self) -> "list[str]":
        return self._connection.list_databases()

    get_list_databases = get_list_database = get_databases = list_databases

    def list_namespace_names(self) -> "list[str]":
        return self._connection.list_namespace_names()

    get_list_namespace_names = get_list_namespace_name = get_namespace_names = list_namespace_names

    def list_sequences(self) -> "list[str]":
        return self._connection.list_sequences()

    get_sequences = get_list_sequences = get_list_sequence = list_sequences

    def list_table_columns(self, table: str) -> "list[dict[str, Any]]":
        return self._connection.list_table_columns(_table_maybe_invalid(table))

    get_table_columns = get_list_table_column = get_list_table_columns = list_table_columns

    def list_table_indexes(self, table: str) -> "list[dict[str, Any]]":
        return self._connection.list_table_indexes(_table_maybe_invalid(table))

    get_list_table_indexes = get_table_indexes = get_list_table_index = list_table_indexes

    def list_table_names(self) -> "list[str]":
        return self._connection.list_table_names()

    get_list_table_names = get_table_names = get_list_table_name = list_table_names

    def list_tables(self) -> "list[dict[str, Any]]":
        """Details of every table, see :meth:`list_table_details`."""
        return [self._connection.list_table_details(name) for name in self._connection.list_table_names()]

    get_list_tables = get_list_table = list_tables

    def list_table_details(self, table: str) -> "dict[str, Any]":
        return self._connection.list_table_details(_table_maybe_invalid(table))

    get_table_details = get_list_table_details = get_list_table_detail = list_table_details

    def list_views(self) -> "list[str]":
        return self._connection.list_views()

    get_list_views = get_list_view = list_views

    def list_table_foreign_keys(self, table: str) -> "list[dict[str, Any]]":
        return self._connection.list_table_foreign_keys(_table_maybe_invalid(table))

    get_table_foreign_keys = get_list_table_foreign_keys = get_list_table_foreign_key = list_table_foreign_keys

    def tables_exist(self, tables: "str | Sequence[str]") -> bool:
        """Check that every table exists, after applying the table prefix.

        Raises:
            InvalidLeafValueError: If ``tables`` is neither a string nor a sequence.
        """
        if not isinstance(tables, (str, list, tuple)):
            msg = "Invalid table name type. Table name must be a string or a sequence."
            raise InvalidLeafValueError(msg)
        prefixed = self.prefix_tables(tables)
        if isinstance(prefixed, str):
            prefixed = [prefixed]
        return self._connection.tables_exist(list(prefixed))
