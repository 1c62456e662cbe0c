"""Runtime-checkable protocols for the wrapped connection.

:class:`ConnectionProtocol` lists every operation :class:`~dbalkit.database.Database`
forwards to the underlying connection; :class:`ConnectionFactoryProtocol` opens such
connections from a normalized configuration.
"""

from collections.abc import Mapping, Sequence
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Final, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dbalkit.typing import ConnectionParams

__all__ = (
    "DELEGATED_OPERATIONS",
    "ConnectionFactoryProtocol",
    "ConnectionProtocol",
    "IsolationLevel",
)


class IsolationLevel(IntEnum):
    """Transaction isolation levels."""

    READ_UNCOMMITTED = 1
    READ_COMMITTED = 2
    REPEATABLE_READ = 3
    SERIALIZABLE = 4


@runtime_checkable
class ConnectionProtocol(Protocol):
    """Operations offered by the wrapped database connection."""

    def connect(self) -> bool:
        """Open the connection; returns False when it was already open."""
        ...

    def close(self) -> None: ...

    def is_connected(self) -> bool: ...

    def begin_transaction(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def in_transaction(self) -> bool: ...

    def create_savepoint(self, savepoint: str) -> None: ...

    def release_savepoint(self, savepoint: str) -> None: ...

    def rollback_savepoint(self, savepoint: str) -> None: ...

    def set_transaction_isolation(self, level: IsolationLevel) -> None: ...

    def execute(self, statement: str) -> int:
        """Run a statement and return the affected row count."""
        ...

    def query(self, sql: str) -> Any:
        """Run a fully inlined statement and return its result."""
        ...

    def execute_query(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> Any:
        """Run a statement with named ``:param`` bindings."""
        ...

    def fetch_all(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> "list[dict[str, Any]]": ...

    def fetch_one(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None) -> "Optional[dict[str, Any]]": ...

    def fetch_column(self, sql: str, parameters: "Optional[Mapping[str, Any]]" = None, column: int = 0) -> Any: ...

    def quote(self, value: Any) -> str:
        """Render a value as a SQL literal."""
        ...

    def quote_identifier(self, identifier: str) -> str:
        """Quote an identifier, each dotted part separately."""
        ...

    @property
    def identifier_quote_character(self) -> str: ...

    @property
    def database(self) -> Optional[str]: ...

    def get_params(self) -> "ConnectionParams": ...

    def list_databases(self) -> "list[str]": ...

    def list_namespace_names(self) -> "list[str]": ...

    def list_sequences(self) -> "list[str]": ...

    def list_table_columns(self, table: str) -> "list[dict[str, Any]]": ...

    def list_table_indexes(self, table: str) -> "list[dict[str, Any]]": ...

    def list_table_names(self) -> "list[str]": ...

    def list_table_details(self, table: str) -> "dict[str, Any]": ...

    def list_views(self) -> "list[str]": ...

    def list_table_foreign_keys(self, table: str) -> "list[dict[str, Any]]": ...

    def tables_exist(self, tables: "Sequence[str]") -> bool: ...


@runtime_checkable
class ConnectionFactoryProtocol(Protocol):
    """Creates connections from normalized configuration."""

    def available_drivers(self) -> "frozenset[str]":
        """Canonical driver ids this factory can connect with."""
        ...

    def get_connection(self, params: "ConnectionParams") -> ConnectionProtocol: ...


DELEGATED_OPERATIONS: Final[frozenset[str]] = frozenset(
    (
        "connect",
        "close",
        "is_connected",
        "begin_transaction",
        "commit",
        "rollback",
        "in_transaction",
        "create_savepoint",
        "release_savepoint",
        "rollback_savepoint",
        "set_transaction_isolation",
        "execute",
        "query",
        "execute_query",
        "fetch_all",
        "fetch_one",
        "fetch_column",
        "quote",
        "quote_identifier",
        "get_params",
        "list_databases",
        "list_namespace_names",
        "list_sequences",
        "list_table_columns",
        "list_table_indexes",
        "list_table_names",
        "list_table_details",
        "list_views",
        "list_table_foreign_keys",
        "tables_exist",
    )
)
