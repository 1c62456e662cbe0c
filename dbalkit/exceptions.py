from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "BindCountMismatchError",
    "DBALKitError",
    "ImproperConfigurationError",
    "InvalidLeafValueError",
    "MissingDependencyError",
    "NotInitializedError",
    "ParameterError",
    "RepositoryError",
    "UnresolvedDriverError",
    "UnsupportedOperationError",
    "wrap_exceptions",
)


class DBALKitError(Exception):
    """Base exception class from which all dbalkit exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``DBALKitError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(DBALKitError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a driver depends on a DB-API package that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install dbalkit[{install_package or package}]' to install dbalkit with the required extra "
            f"or 'pip install {package}' to install the package separately",
        )


class ImproperConfigurationError(DBALKitError):
    """Improper Configuration error.

    Raised while building a connection descriptor from an unusable configuration mapping.
    """


class UnresolvedDriverError(ImproperConfigurationError):
    """The configured driver name does not resolve to a supported driver."""

    driver: Optional[str]

    def __init__(self, driver: Any = None) -> None:
        self.driver = driver if isinstance(driver, str) else None
        super().__init__(f"Selected driver unavailable: {driver!r}")


class NotInitializedError(DBALKitError, RuntimeError):
    """No configuration has been recorded yet in the database context."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "Database has not been initialized before.")


class ParameterError(DBALKitError):
    """Base class for parameter-related errors."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with optional SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class BindCountMismatchError(ParameterError):
    """Placeholder count and bind value count disagree."""

    expected: int
    received: int

    def __init__(self, expected: int, received: int, sql: Optional[str] = None) -> None:
        super().__init__(
            f"Invalid statement binding count: query has {expected} placeholder(s) but {received} value(s) given.",
            sql,
        )
        self.expected = expected
        self.received = received


class InvalidLeafValueError(DBALKitError, ValueError):
    """A callable or resource-like value was passed where an identifier or value was expected."""


class UnsupportedOperationError(DBALKitError, AttributeError):
    """A delegated operation name is not part of the connection interface."""

    operation: str

    def __init__(self, operation: str) -> None:
        super().__init__(f"Call to undefined operation {operation!r}.")
        self.operation = operation


class RepositoryError(DBALKitError):
    """Base repository exception type."""


@contextmanager
def wrap_exceptions(wrap_exceptions: bool = True) -> Generator[None, None, None]:
    try:
        yield

    except DBALKitError:
        raise
    except Exception as exc:
        if wrap_exceptions is False:
            raise
        msg = "An error occurred during the operation."
        raise RepositoryError(detail=msg) from exc
