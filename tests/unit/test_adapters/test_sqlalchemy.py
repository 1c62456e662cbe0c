"""Tests for the SQLAlchemy adapter that need no database."""

from typing import Any
from unittest.mock import Mock

import pytest
from sqlalchemy.dialects.mysql import pymysql as mysql_pymysql
from sqlalchemy.dialects.postgresql import psycopg as postgresql_psycopg

from dbalkit.adapters.sqlalchemy import (
    SQLAlchemyConnection,
    SQLAlchemyConnectionFactory,
    _engine_arguments,
    build_engine_url,
)
from dbalkit.database import Database
from dbalkit.drivers import DRIVER_DRIZZLE, DRIVER_MYSQL, DRIVER_PGSQL, DRIVER_SQLITE, SUPPORTED_DRIVERS, DriverOption
from dbalkit.exceptions import ImproperConfigurationError, InvalidLeafValueError, MissingDependencyError
from dbalkit.protocols import ConnectionFactoryProtocol, ConnectionProtocol

# pyright: reportPrivateUsage=false


def test_mysql_url() -> None:
    url = build_engine_url(
        {
            "driver": DRIVER_MYSQL,
            "dbname": "shop",
            "host": "db.local",
            "user": "app",
            "password": "secret",
            "port": 3306,
            "charset": "UTF8",
        }
    )

    assert url.drivername == "mysql+pymysql"
    assert url.host == "db.local"
    assert url.port == 3306
    assert url.username == "app"
    assert url.password == "secret"
    assert url.database == "shop"
    assert url.query == {"charset": "utf8"}


def test_drizzle_connects_over_mysql() -> None:
    url = build_engine_url({"driver": DRIVER_DRIZZLE, "dbname": "shop"})

    assert url.drivername == "mysql+pymysql"


def test_postgres_client_encoding() -> None:
    url = build_engine_url({"driver": DRIVER_PGSQL, "dbname": "shop", "charset": "UTF8"})

    assert url.query == {"client_encoding": "UTF8"}


def test_sqlite_uses_path() -> None:
    url = build_engine_url({"driver": DRIVER_SQLITE, "dbname": "app", "path": "/var/db/app.sqlite", "host": "x"})

    assert url.drivername == "sqlite+pysqlite"
    assert url.database == "/var/db/app.sqlite"
    assert url.host is None


@pytest.mark.parametrize(
    ("params", "expected"),
    [
        ({"driver": DRIVER_SQLITE, "driverOptions": {DriverOption.TIMEOUT: 7}}, {"connect_args": {"timeout": 7}}),
        ({"driver": DRIVER_MYSQL, "timeout": 3}, {"connect_args": {"connect_timeout": 3}}),
        (
            {"driver": DRIVER_PGSQL, "driverOptions": {DriverOption.TIMEOUT: 5, DriverOption.AUTOCOMMIT: 1}},
            {"connect_args": {"connect_timeout": 5}, "isolation_level": "AUTOCOMMIT"},
        ),
        ({"driver": "db2+ibm_db", "driverOptions": {DriverOption.TIMEOUT: 5}}, {"connect_args": {}}),
    ],
)
def test_engine_arguments(params: "dict[str, Any]", expected: "dict[str, Any]") -> None:
    assert _engine_arguments(params) == expected  # type: ignore[arg-type]


def test_factory_offers_supported_drivers() -> None:
    factory = SQLAlchemyConnectionFactory()

    assert isinstance(factory, ConnectionFactoryProtocol)
    assert factory.available_drivers() == SUPPORTED_DRIVERS


def test_factory_rejects_unknown_driver() -> None:
    with pytest.raises(ImproperConfigurationError):
        SQLAlchemyConnectionFactory().get_connection({"driver": "cobol+odbc", "dbname": "x"})


def test_factory_missing_dbapi_package(monkeypatch: pytest.MonkeyPatch) -> None:
    def create_engine(*args: Any, **kwargs: Any) -> Any:
        raise ModuleNotFoundError("No module named 'pymysql'")

    monkeypatch.setattr("dbalkit.adapters.sqlalchemy.create_engine", create_engine)

    with pytest.raises(MissingDependencyError, match=r"dbalkit\[mysql\]"):
        SQLAlchemyConnectionFactory().get_connection({"driver": DRIVER_MYSQL, "dbname": "x"})


def test_connection_is_lazy() -> None:
    connection = SQLAlchemyConnectionFactory().get_connection({"driver": DRIVER_SQLITE, "dbname": ":memory:"})

    assert isinstance(connection, SQLAlchemyConnection)
    assert isinstance(connection, ConnectionProtocol)
    assert connection.is_connected() is False
    assert connection.identifier_quote_character == '"'
    assert connection.quote("it's") == "'it''s'"
    assert connection.quote_identifier("main.orders") == '"main"."orders"'
    assert connection.is_connected() is False
    assert connection.database == ":memory:"


def _offline_connection(dialect: Any, driver: str) -> SQLAlchemyConnection:
    params: Any = {"driver": driver, "dbname": "shop"}
    return SQLAlchemyConnection(Mock(dialect=dialect), params)


@pytest.mark.parametrize(
    ("dialect", "driver"), [(mysql_pymysql.dialect(), DRIVER_MYSQL), (postgresql_psycopg.dialect(), DRIVER_PGSQL)]
)
def test_quote_keeps_percent_signs(dialect: Any, driver: str) -> None:
    connection = _offline_connection(dialect, driver)

    assert dialect.paramstyle in {"format", "pyformat"}
    assert connection.quote("50% off") == "'50% off'"
    assert connection.quote("100%%") == "'100%%'"
    assert connection.quote(b"5%") == "'5%'"


def test_inlined_sql_keeps_percent_signs() -> None:
    connection = _offline_connection(mysql_pymysql.dialect(), DRIVER_MYSQL)
    factory = Mock()
    factory.available_drivers.return_value = SUPPORTED_DRIVERS
    factory.get_connection.return_value = connection

    database = Database({"name": "shop"}, connection_factory=factory)

    assert database.quotes(["50% off", "it's"]) == ["'50% off'", "'it''s'"]
    sql = database.compile_binds_question_mark("SELECT * FROM t WHERE a LIKE ? AND b = '5%'", ["50%"])
    assert sql == "SELECT * FROM t WHERE a LIKE '50%' AND b = '5%'"


def test_quote_identifier_reads_non_string_names() -> None:
    connection = _offline_connection(mysql_pymysql.dialect(), DRIVER_MYSQL)

    assert connection.quote_identifier(5) == "`5`"
    assert connection.quote_identifier(b"shop.orders") == "`shop`.`orders`"


@pytest.mark.parametrize("identifier", [None, True, object()])
def test_quote_identifier_rejects_unnamed_values(identifier: Any) -> None:
    connection = _offline_connection(mysql_pymysql.dialect(), DRIVER_MYSQL)

    with pytest.raises(InvalidLeafValueError):
        connection.quote_identifier(identifier)
