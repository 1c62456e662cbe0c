"""Tests for the logging helpers."""

import io
import logging
from collections.abc import Generator

import pytest

from dbalkit._serialization import decode_json
from dbalkit.config import ConnectionDescriptor
from dbalkit.utils.logging import (
    REDACTED,
    ROOT_LOGGER_NAME,
    StructuredFormatter,
    configure_logging,
    descriptor_fields,
    get_logger,
    log_with_context,
    scrub_fields,
)


@pytest.fixture
def restore_root_logger() -> Generator[logging.Logger, None, None]:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate


@pytest.fixture
def stream(restore_root_logger: logging.Logger) -> io.StringIO:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    configure_logging(level="DEBUG", extra_handlers=[handler])
    return stream


def _entries(stream: io.StringIO) -> "list[dict]":
    return [decode_json(line) for line in stream.getvalue().splitlines()]


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("dbalkit.test", logging.INFO, __file__, 10, message, (), None)


def test_get_logger_namespaces_names() -> None:
    assert get_logger().name == "dbalkit"
    assert get_logger("config").name == "dbalkit.config"
    assert get_logger("dbalkit.database").name == "dbalkit.database"
    assert get_logger("dbalkitx").name == "dbalkit.dbalkitx"


def test_scrub_fields() -> None:
    fields = {"user": "app", "password": "s3cret", "params": {"dbpass": "s3cret", "host": "db"}, "DB_PASS": "x"}

    assert scrub_fields(fields) == {
        "user": "app",
        "password": REDACTED,
        "params": {"dbpass": REDACTED, "host": "db"},
        "DB_PASS": REDACTED,
    }
    assert fields["password"] == "s3cret"


def test_descriptor_fields_omit_credentials() -> None:
    descriptor = ConnectionDescriptor.from_config(
        {"name": "shop", "dbuser": "app", "dbpass": "s3cret", "prefix": "wp_"}
    )

    fields = descriptor_fields(descriptor)

    assert fields == {"database": "shop", "driver": "mysql+pymysql", "host": "localhost", "port": 3306, "prefix": "wp_"}


def test_structured_formatter_scrubs_extras() -> None:
    record = _record("descriptor built")
    record.extra_fields = {"driver": "sqlite+pysqlite", "password": "s3cret"}  # type: ignore[attr-defined]

    entry = decode_json(StructuredFormatter().format(record))

    assert entry["message"] == "descriptor built"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "dbalkit.test"
    assert entry["driver"] == "sqlite+pysqlite"
    assert entry["password"] == REDACTED


def test_log_with_context(stream: io.StringIO, restore_root_logger: logging.Logger) -> None:
    log_with_context(get_logger("test.context"), logging.INFO, "table prefixed", table="wp_orders", dbpassword="pw")

    entry = _entries(stream)[-1]
    assert restore_root_logger.propagate is False
    assert entry["message"] == "table prefixed"
    assert entry["table"] == "wp_orders"
    assert entry["dbpassword"] == REDACTED


def test_log_with_context_descriptor(stream: io.StringIO) -> None:
    descriptor = ConnectionDescriptor.from_config({"name": "shop", "dbpass": "s3cret"})

    log_with_context(get_logger("test.descriptor"), logging.INFO, "ready", descriptor=descriptor, prefix="override")

    entry = _entries(stream)[-1]
    assert entry["database"] == "shop"
    assert entry["driver"] == "mysql+pymysql"
    assert entry["prefix"] == "override"
    assert "s3cret" not in stream.getvalue()


def test_descriptor_construction_is_logged_without_password(stream: io.StringIO) -> None:
    ConnectionDescriptor.from_config({"name": "shop", "dbpass": "s3cret", "prefix": "wp_"})

    entry = next(entry for entry in _entries(stream) if entry["message"] == "Built connection descriptor")
    assert entry["database"] == "shop"
    assert entry["prefix"] == "wp_"
    assert "s3cret" not in stream.getvalue()


def test_log_with_context_respects_level(restore_root_logger: logging.Logger) -> None:
    stream = io.StringIO()
    configure_logging(level="WARNING", format_style="simple", extra_handlers=[logging.StreamHandler(stream)])

    log_with_context(get_logger("test.level"), logging.INFO, "ignored")

    assert stream.getvalue() == ""
