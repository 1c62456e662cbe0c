"""Logging helpers for dbalkit.

Every module logs through :func:`get_logger`, which keeps loggers under the ``dbalkit``
namespace. Nothing is printed until an application calls :func:`configure_logging`.

Structured fields attached with :func:`log_with_context` are scrubbed of credentials before
they reach a formatter, so configuration mappings can be logged as they are.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Final

from dbalkit._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

    from dbalkit.config import ConnectionDescriptor

__all__ = (
    "REDACTED",
    "ROOT_LOGGER_NAME",
    "SENSITIVE_FIELDS",
    "StructuredFormatter",
    "configure_logging",
    "descriptor_fields",
    "get_logger",
    "log_with_context",
    "scrub_fields",
)

ROOT_LOGGER_NAME: Final = "dbalkit"
REDACTED: Final = "***"

# Every spelling of the password accepted by the configuration normalizer.
SENSITIVE_FIELDS: Final = frozenset({"password", "pass", "dbpass", "db_pass", "dbpassword", "db_password"})


def scrub_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``fields`` with credential values replaced by :data:`REDACTED`.

    Nested mappings are scrubbed as well.
    """
    scrubbed: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(key, str) and key.lower() in SENSITIVE_FIELDS:
            scrubbed[key] = REDACTED
        elif isinstance(value, Mapping):
            scrubbed[key] = scrub_fields(value)
        else:
            scrubbed[key] = value
    return scrubbed


def descriptor_fields(descriptor: ConnectionDescriptor) -> dict[str, Any]:
    """Structured fields identifying the database a descriptor points at."""
    return {
        "database": descriptor.name,
        "driver": descriptor.driver,
        "host": descriptor.host,
        "port": descriptor.port,
        "prefix": descriptor.prefix,
    }


class StructuredFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_entry.update(scrub_fields(extra_fields))

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return encode_json(log_entry)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger under the ``dbalkit`` namespace.

    Args:
        name: Logger name, with or without the ``dbalkit.`` prefix. If not provided,
            returns the root dbalkit logger.

    Returns:
        The logger.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: list[logging.Handler] | None = None,
) -> None:
    """Configure output for the whole dbalkit package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_style: ``"structured"`` for JSON lines, ``"simple"`` for plain text
        log_to_file: Optional file path, always written as JSON lines
        extra_handlers: Additional handlers, used with the formatter they already carry
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    if format_style == "structured":
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    for handler in extra_handlers or ():
        root_logger.addHandler(handler)

    root_logger.propagate = False


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    descriptor: ConnectionDescriptor | None = None,
    **extra_fields: Any,
) -> None:
    """Log a message with structured extra fields.

    Args:
        logger: The logger to use
        level: Log level
        message: Log message
        descriptor: Connection the message is about; adds its database, driver, host,
            port and prefix to the fields. Explicit ``extra_fields`` win.
        **extra_fields: Additional fields. Credentials are replaced by :data:`REDACTED`.
    """
    if not logger.isEnabledFor(level):
        return
    fields = descriptor_fields(descriptor) if descriptor is not None else {}
    fields.update(extra_fields)
    record = logger.makeRecord(logger.name, level, "(unknown file)", 0, message, (), None)
    record.extra_fields = scrub_fields(fields)  # type: ignore[attr-defined]
    logger.handle(record)
