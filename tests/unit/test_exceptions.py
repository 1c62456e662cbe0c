import pytest

from dbalkit.exceptions import (
    BindCountMismatchError,
    DBALKitError,
    ImproperConfigurationError,
    InvalidLeafValueError,
    MissingDependencyError,
    NotInitializedError,
    ParameterError,
    RepositoryError,
    UnresolvedDriverError,
    UnsupportedOperationError,
    wrap_exceptions,
)


def test_exception_hierarchy() -> None:
    assert issubclass(UnresolvedDriverError, ImproperConfigurationError)
    assert issubclass(BindCountMismatchError, ParameterError)
    assert issubclass(InvalidLeafValueError, ValueError)
    assert issubclass(UnsupportedOperationError, AttributeError)
    assert issubclass(MissingDependencyError, ImportError)
    assert issubclass(NotInitializedError, RuntimeError)

    for exc_type in (
        ImproperConfigurationError,
        ParameterError,
        InvalidLeafValueError,
        UnsupportedOperationError,
        MissingDependencyError,
        NotInitializedError,
        RepositoryError,
    ):
        assert issubclass(exc_type, DBALKitError)


def test_detail() -> None:
    exc = DBALKitError("first", "second")

    assert exc.detail == "first"
    assert str(exc) == "second first"
    assert repr(exc) == "DBALKitError - first"
    assert repr(DBALKitError()) == "DBALKitError"


def test_unresolved_driver() -> None:
    exc = UnresolvedDriverError("oracle")

    assert exc.driver == "oracle"
    assert str(exc) == "Selected driver unavailable: 'oracle'"
    assert UnresolvedDriverError(None).driver is None


def test_bind_count_mismatch_message() -> None:
    exc = BindCountMismatchError(1, 2, "SELECT ?")

    assert "1 placeholder(s) but 2 value(s)" in str(exc)
    assert "SQL: SELECT ?" in str(exc)


def test_missing_dependency_message() -> None:
    exc = MissingDependencyError(package="pymysql", install_package="mysql")

    assert "pip install dbalkit[mysql]" in str(exc)
    assert "pip install pymysql" in str(exc)


def test_not_initialized_default_message() -> None:
    assert str(NotInitializedError()) == "Database has not been initialized before."


def test_wrap_exceptions() -> None:
    with pytest.raises(RepositoryError) as exc_info, wrap_exceptions():
        raise KeyError("missing")

    assert isinstance(exc_info.value.__cause__, KeyError)


def test_wrap_exceptions_keeps_own_errors() -> None:
    with pytest.raises(InvalidLeafValueError), wrap_exceptions():
        raise InvalidLeafValueError("callable")


def test_wrap_exceptions_disabled() -> None:
    with pytest.raises(KeyError), wrap_exceptions(wrap_exceptions=False):
        raise KeyError("missing")
