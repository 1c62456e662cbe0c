"""Driver name resolution.

Historical configurations name their driver in many ways (``MariaDB``, ``pgsql``,
``pdo_sqlite``, ``mssql`` ...). :func:`resolve_driver` folds these synonyms into one of the
canonical driver ids understood by the connection factory.
"""

import re
from collections.abc import Collection
from enum import IntEnum
from typing import Final, Optional

from dbalkit.utils.logging import get_logger

__all__ = (
    "DEFAULT_DRIVER",
    "DRIVER_DB2",
    "DRIVER_DRIZZLE",
    "DRIVER_MYSQL",
    "DRIVER_OCI8",
    "DRIVER_PGSQL",
    "DRIVER_RULES",
    "DRIVER_SQLITE",
    "DRIVER_SQLSRV",
    "SUPPORTED_DRIVERS",
    "DriverOption",
    "ErrorMode",
    "resolve_driver",
)

logger = get_logger("drivers")

DRIVER_MYSQL: Final = "mysql+pymysql"
DRIVER_PGSQL: Final = "postgresql+psycopg"
DRIVER_SQLITE: Final = "sqlite+pysqlite"
# Drizzle speaks the MySQL protocol; a "+pymysql" suffix would trip the mysql rule.
DRIVER_DRIZZLE: Final = "drizzle"
DRIVER_DB2: Final = "db2+ibm_db"
DRIVER_SQLSRV: Final = "mssql+pyodbc"
DRIVER_OCI8: Final = "oracle+oracledb"

DEFAULT_DRIVER: Final = DRIVER_MYSQL

SUPPORTED_DRIVERS: Final[frozenset[str]] = frozenset(
    (DRIVER_MYSQL, DRIVER_PGSQL, DRIVER_SQLITE, DRIVER_DRIZZLE, DRIVER_DB2, DRIVER_SQLSRV, DRIVER_OCI8)
)

# First match wins.
DRIVER_RULES: Final[tuple[tuple["re.Pattern[str]", str], ...]] = (
    (re.compile(r"maria|mysq"), DRIVER_MYSQL),
    (re.compile(r"postg|pg?sql"), DRIVER_PGSQL),
    (re.compile(r"sqlit"), DRIVER_SQLITE),
    (re.compile(r"oci"), DRIVER_OCI8),
    (re.compile(r"drizz"), DRIVER_DRIZZLE),
    (re.compile(r"ibm|db2"), DRIVER_DB2),
    (re.compile(r"mssql|sqlsrv"), DRIVER_SQLSRV),
)


class DriverOption(IntEnum):
    """Driver option codes.

    The numbering follows the PDO attribute codes used by existing configuration files so
    integer-keyed ``options`` mappings keep their meaning.
    """

    AUTOCOMMIT = 0
    TIMEOUT = 2
    ERRMODE = 3
    CASE = 8
    PERSISTENT = 12
    STRINGIFY_FETCHES = 17
    DEFAULT_FETCH_MODE = 19
    EMULATE_PREPARES = 20


class ErrorMode(IntEnum):
    """Values for :attr:`DriverOption.ERRMODE`."""

    SILENT = 0
    WARNING = 1
    EXCEPTION = 2


def resolve_driver(name: "object", available: "Optional[Collection[str]]" = None) -> "Optional[str]":
    """Resolve a free-form driver name to a canonical driver id.

    Args:
        name: Driver name as written in the configuration.
        available: Driver ids accepted by the connection factory. Defaults to
            :data:`SUPPORTED_DRIVERS`.

    Returns:
        The canonical driver id, or ``None`` when the name is empty, not a string, or the
        candidate is not in ``available``.
    """
    if not isinstance(name, str) or not name.strip():
        return None
    candidate = name.strip().lower()
    for pattern, driver in DRIVER_RULES:
        if pattern.search(candidate):
            candidate = driver
            break
    if candidate in (SUPPORTED_DRIVERS if available is None else available):
        return candidate
    logger.debug("Driver %r resolved to unavailable candidate %r", name, candidate)
    return None
