"""dbalkit: configuration normalization and SQL helpers on top of SQLAlchemy."""

from dbalkit import adapters, config, core, drivers, exceptions, protocols, typing, utils
from dbalkit.__metadata__ import __version__
from dbalkit.config import ConnectionDescriptor, DatabaseContext, normalize_database_params
from dbalkit.core import IdentifierRewriter, PlaceholderCompiler, compile_binds_question_mark
from dbalkit.database import Database
from dbalkit.drivers import SUPPORTED_DRIVERS, DriverOption, ErrorMode, resolve_driver
from dbalkit.exceptions import (
    BindCountMismatchError,
    DBALKitError,
    ImproperConfigurationError,
    InvalidLeafValueError,
    MissingDependencyError,
    NotInitializedError,
    RepositoryError,
    UnresolvedDriverError,
    UnsupportedOperationError,
)
from dbalkit.protocols import ConnectionFactoryProtocol, ConnectionProtocol, IsolationLevel
from dbalkit.utils.text import sanitize_invalid_utf8

__all__ = (
    "SUPPORTED_DRIVERS",
    "BindCountMismatchError",
    "ConnectionDescriptor",
    "ConnectionFactoryProtocol",
    "ConnectionProtocol",
    "DBALKitError",
    "Database",
    "DatabaseContext",
    "DriverOption",
    "ErrorMode",
    "IdentifierRewriter",
    "ImproperConfigurationError",
    "InvalidLeafValueError",
    "IsolationLevel",
    "MissingDependencyError",
    "NotInitializedError",
    "PlaceholderCompiler",
    "RepositoryError",
    "UnresolvedDriverError",
    "UnsupportedOperationError",
    "__version__",
    "adapters",
    "compile_binds_question_mark",
    "config",
    "core",
    "drivers",
    "exceptions",
    "normalize_database_params",
    "protocols",
    "resolve_driver",
    "sanitize_invalid_utf8",
    "typing",
    "utils",
)
