"""End-to-end tests against an in-memory SQLite database."""

import functools
import sqlite3
from collections.abc import Generator
from types import SimpleNamespace
from typing import Any

import pytest

from dbalkit import Database, DatabaseContext, IsolationLevel, RepositoryError
from dbalkit.adapters import SQLAlchemyConnectionFactory
from dbalkit.drivers import DRIVER_SQLITE

pytestmark = pytest.mark.sqlite


@pytest.fixture
def context() -> DatabaseContext:
    return DatabaseContext()


@pytest.fixture
def database(context: DatabaseContext) -> Generator[Database, None, None]:
    database = Database({"driver": "pdo_sqlite", "path": ":memory:", "prefix": "wp_"}, context=context)
    database.execute("CREATE TABLE wp_orders (id INTEGER PRIMARY KEY, name TEXT NOT NULL, total REAL)")
    yield database
    database.close()


def _count(database: Database) -> int:
    return database.fetch_column("SELECT COUNT(*) FROM wp_orders")


def test_configuration(database: Database) -> None:
    assert database.descriptor.driver == DRIVER_SQLITE
    assert database.descriptor.name == ":memory:"
    assert database.quote_character == '"'
    assert database.connection_params["path"] == ":memory:"


def test_connects_lazily() -> None:
    database = Database({"driver": "sqlite", "name": ":memory:"})

    assert database.is_connected() is False
    assert database.connect() is True
    assert database.connect() is False
    database.close()
    assert database.is_connected() is False


def test_query_bind_round_trip(database: Database) -> None:
    table = database.prefix_tables("orders")

    database.query_bind(f"INSERT INTO {table} (name, total) VALUES (?, ?)", ["o'neil", 9.5])
    rows = database.query_bind(f"SELECT name, total FROM {table} WHERE name = ? AND name <> '?'", "o'neil")

    assert rows == [{"name": "o'neil", "total": 9.5}]


def test_execute_prepare(database: Database) -> None:
    database.execute_prepare("INSERT INTO wp_orders (name, total) VALUES (:name, :total)", {"name": "a", "total": 1})
    database.execute_prepare("INSERT INTO wp_orders (name, total) VALUES (?, ?)", ["b", 2])

    assert database.fetch_all("SELECT name FROM wp_orders ORDER BY id") == [{"name": "a"}, {"name": "b"}]
    assert database.fetch_one("SELECT name FROM wp_orders WHERE total = :total", {"total": 2}) == {"name": "b"}
    assert database.fetch_one("SELECT name FROM wp_orders WHERE total > 5") is None


def test_transaction_rollback(database: Database) -> None:
    database.begin_transaction()
    assert database.in_transaction() is True

    database.execute("INSERT INTO wp_orders (name) VALUES ('discarded')")
    database.rollback()

    assert database.in_transaction() is False
    assert _count(database) == 0


def test_transaction_commit(database: Database) -> None:
    database.begin_transaction()
    database.execute("INSERT INTO wp_orders (name) VALUES ('kept')")
    database.commit()

    assert _count(database) == 1


def test_savepoints(database: Database) -> None:
    database.begin_transaction()
    database.execute("INSERT INTO wp_orders (name) VALUES ('first')")
    database.create_savepoint("sp1")
    database.execute("INSERT INTO wp_orders (name) VALUES ('second')")
    database.rollback_savepoint("sp1")
    database.commit()

    assert database.fetch_all("SELECT name FROM wp_orders") == [{"name": "first"}]


def test_commit_without_transaction(database: Database) -> None:
    with pytest.raises(RepositoryError):
        database.commit()


def test_set_transaction_isolation(database: Database) -> None:
    database.set_transaction_isolation(IsolationLevel.SERIALIZABLE)

    assert _count(database) == 0


def test_database_errors_are_wrapped(database: Database) -> None:
    with pytest.raises(RepositoryError, match="Database error"):
        database.query("SELECT * FROM missing_table")


def test_schema(database: Database) -> None:
    database.execute("CREATE VIEW wp_big_orders AS SELECT * FROM wp_orders WHERE total > 100")

    assert database.list_table_names() == ["wp_orders"]
    assert database.list_views() == ["wp_big_orders"]
    assert database.list_databases() == ["main"]
    assert [column["name"] for column in database.get_table_columns("wp_orders")] == ["id", "name", "total"]
    assert database.list_table_columns("wp_orders")[1]["type"] == "TEXT"
    assert database.list_table_indexes("wp_orders") == []
    assert database.list_table_foreign_keys("wp_orders") == []

    details = database.list_table_details("wp_orders")
    assert details["primary_key"] == ["id"]
    assert [table["name"] for table in database.list_tables()] == ["wp_orders"]


def test_tables_exist(database: Database) -> None:
    assert database.tables_exist("orders") is True
    assert database.tables_exist(["orders", "wp_orders"]) is True
    assert database.tables_exist(["orders", "customers"]) is False


def test_quoting(database: Database) -> None:
    assert database.quote_identifiers(" orders ") == '"orders"'
    assert database.quotes(["it's", None]) == ["'it''s'", "NULL"]
    assert database.prefix_tables("orders", True) == '"wp_orders"'


def test_call(database: Database) -> None:
    assert database.call("fetch_column", "SELECT 42") == 42


def test_create_from_last_params(database: Database, context: DatabaseContext) -> None:
    again = Database.create_from_last_params(context)

    assert again.descriptor == database.descriptor
    assert again.table_prefix == "wp_"
    again.close()


class _FormatCursor(sqlite3.Cursor):
    """Interpolates parameters into the statement the way pymysql does."""

    def execute(self, sql: str, parameters: Any = None) -> sqlite3.Cursor:  # type: ignore[override]
        if parameters is not None:
            sql = sql % tuple(parameters)
        return super().execute(sql)


class _FormatConnection(sqlite3.Connection):
    def cursor(self, factory: Any = _FormatCursor) -> sqlite3.Cursor:  # type: ignore[override]
        return super().cursor(factory=factory)


def _format_dbapi() -> SimpleNamespace:
    module = SimpleNamespace(**{name: getattr(sqlite3, name) for name in dir(sqlite3) if not name.startswith("_")})
    module.paramstyle = "format"
    module.connect = functools.partial(sqlite3.connect, factory=_FormatConnection)
    return module


def test_percent_signs_with_format_paramstyle() -> None:
    database = Database(
        {"driver": "sqlite", "name": ":memory:"}, connection_factory=SQLAlchemyConnectionFactory(module=_format_dbapi())
    )
    database.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
    database.query_bind("INSERT INTO t (id, name) VALUES (?, ?)", [1, "a 50% cut"])

    rows = database.query_bind("SELECT id, name FROM t WHERE name LIKE 'a%' AND id = ?", [1])

    assert rows == [{"id": 1, "name": "a 50% cut"}]
    assert database.quotes("50% off") == "'50% off'"
    database.close()
