"""Identifier trimming, quoting and table prefixing.

Every operation walks a value of one of three shapes and only rewrites string leaves:

- scalar: a single identifier such as ``"orders"`` or ``"shop.orders"``
- sequence: a list or tuple of values
- record: a mapping or dataclass instance whose values are rewritten, keys preserved

New containers are built on the way back up, so a rejected leaf never leaves a half
rewritten structure behind.
"""

import dataclasses
import io
import socket
from collections.abc import Mapping, Sequence
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable, Optional

from dbalkit.exceptions import InvalidLeafValueError
from dbalkit.utils.dispatch import TypeDispatcher
from dbalkit.utils.text import sanitize_invalid_utf8

if TYPE_CHECKING:
    from dbalkit.typing import RewriteValue

__all__ = (
    "IdentifierRewriter",
    "Shape",
    "identifier_text",
    "quote_identifier",
    "quote_literal",
    "shape_of",
)

DEFAULT_QUOTE_CHARACTER = '"'


class Shape(Enum):
    SCALAR = auto()
    SEQUENCE = auto()
    RECORD = auto()


_shapes: "TypeDispatcher[Shape]" = TypeDispatcher()
_shapes.register(str, Shape.SCALAR)
_shapes.register(bytes, Shape.SCALAR)
_shapes.register(bytearray, Shape.SCALAR)
_shapes.register(Mapping, Shape.RECORD)
_shapes.register(Sequence, Shape.SEQUENCE)


def shape_of(value: Any) -> Shape:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return Shape.RECORD
    return _shapes.get(value) or Shape.SCALAR


def quote_identifier(name: str, quote_character: str = DEFAULT_QUOTE_CHARACTER) -> str:
    """Quote each dotted part of an identifier, doubling embedded quote characters.

    >>> quote_identifier("shop.orders")
    '"shop"."orders"'
    >>> quote_identifier("orders", "`")
    '`orders`'
    """
    if not quote_character:
        return name
    escaped = quote_character * 2
    return ".".join(
        f"{quote_character}{part.replace(quote_character, escaped)}{quote_character}" for part in name.split(".")
    )


def identifier_text(value: Any) -> str:
    """Read a scalar leaf as an identifier name.

    Bytes are decoded, numbers are converted with :class:`str`.

    Raises:
        InvalidLeafValueError: For ``None``, booleans and any other non-string value.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return sanitize_invalid_utf8(bytes(value))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    msg = f"Invalid identifier: {type(value).__name__} values cannot be used as identifiers."
    raise InvalidLeafValueError(msg)


def quote_literal(value: Any) -> str:
    """Render a value as an ANSI SQL literal.

    Used when no connection supplies its own quoting.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return repr(value)
    text = value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else str(value)
    return "'{}'".format(text.replace("'", "''"))


def _reject_invalid(value: Any) -> None:
    if callable(value) or isinstance(value, (io.IOBase, socket.socket)):
        msg = f"Invalid value to quote: {type(value).__name__} objects cannot be used as identifiers or values."
        raise InvalidLeafValueError(msg)


def _rebuild(value: Any, shape: Shape, transform: "Callable[[Any], Any]") -> Any:
    if shape is Shape.RECORD:
        if isinstance(value, Mapping):
            return {key: transform(item) for key, item in value.items()}
        changes = {f.name: transform(getattr(value, f.name)) for f in dataclasses.fields(value) if f.init}
        return dataclasses.replace(value, **changes)
    items = [transform(item) for item in value]
    if isinstance(value, tuple):
        return type(value)(*items) if hasattr(value, "_fields") else type(value)(items)
    return items


class IdentifierRewriter:
    """Trim, quote and prefix table identifiers.

    Args:
        quote_character: Identifier quote character of the target database.
        prefix: Table prefix; blank disables prefixing.
        database_name: Name of the current database. A dotted identifier is only prefixed
            when its first part names this database.
        quote: Value quoting primitive, defaults to :func:`quote_literal`.
        quote_identifier: Identifier quoting primitive, defaults to :func:`quote_identifier`
            with ``quote_character``.
    """

    __slots__ = ("_quote", "_quote_identifier", "database_name", "prefix", "quote_character")

    def __init__(
        self,
        *,
        quote_character: str = DEFAULT_QUOTE_CHARACTER,
        prefix: str = "",
        database_name: Optional[str] = None,
        quote: "Optional[Callable[[Any], str]]" = None,
        quote_identifier: "Optional[Callable[[str], str]]" = None,
    ) -> None:
        self.quote_character = quote_character
        self.prefix = prefix.strip()
        self.database_name = database_name
        self._quote = quote or quote_literal
        self._quote_identifier = quote_identifier or self._default_quote_identifier

    def _default_quote_identifier(self, name: str) -> str:
        return quote_identifier(name, self.quote_character)

    def trim(self, table: "RewriteValue") -> "RewriteValue":
        """Strip whitespace and quote characters around every dotted part of each identifier."""
        shape = shape_of(table)
        if shape is not Shape.SCALAR:
            return _rebuild(table, shape, self.trim)
        if not isinstance(table, str):
            return table
        return ".".join(self._trim_part(part) for part in table.split("."))

    def _trim_part(self, part: str) -> str:
        return part.strip().strip(self.quote_character).strip()

    def quote_identifiers(self, value: "RewriteValue") -> "RewriteValue":
        """Trim, then quote every identifier through the identifier quoting primitive.

        Raises:
            InvalidLeafValueError: If a callable or resource-like value is encountered.
        """
        _reject_invalid(value)
        shape = shape_of(value)
        if shape is not Shape.SCALAR:
            return _rebuild(value, shape, self.quote_identifiers)
        return self._quote_identifier(self.trim(identifier_text(value)))

    def quotes(self, value: "RewriteValue") -> "RewriteValue":
        """Trim, then quote every leaf through the value quoting primitive.

        Raises:
            InvalidLeafValueError: If a callable or resource-like value is encountered.
        """
        _reject_invalid(value)
        shape = shape_of(value)
        if shape is not Shape.SCALAR:
            return _rebuild(value, shape, self.quotes)
        return self._quote(self.trim(value))

    def prefix_tables(self, table: "RewriteValue", use_identifier: bool = False) -> "RewriteValue":
        """Apply the table prefix to every identifier.

        A table already starting with the prefix is left alone. Dotted names are only
        prefixed when their first part is the current database. Identifiers that already
        contain the quote character are always returned quoted.

        Args:
            table: Identifier(s) to prefix.
            use_identifier: Wrap each result in the quote character.

        Raises:
            InvalidLeafValueError: If a callable or resource-like value is encountered.

        Returns:
            The prefixed identifier(s); non-string scalars become ``None``.
        """
        _reject_invalid(table)
        shape = shape_of(table)
        if shape is not Shape.SCALAR:
            return _rebuild(table, shape, lambda item: self.prefix_tables(item, use_identifier))
        if not isinstance(table, str):
            return None

        quote = self.quote_character
        if quote and quote in table:
            use_identifier = True
        if self.prefix:
            parts = [self._trim_part(part) for part in table.split(".")]
            if len(parts) > 1:
                if self.database_name is not None and parts[0] == self.database_name:
                    parts[1] = self._apply_prefix(parts[1])
                if use_identifier:
                    return f"{quote}{f'{quote}.{quote}'.join(parts)}{quote}"
                return ".".join(parts)
            table = self._apply_prefix(parts[0])

        return f"{quote}{table}{quote}" if use_identifier else table

    def _apply_prefix(self, table: str) -> str:
        if not self.prefix or table.startswith(self.prefix):
            return table
        return f"{self.prefix}{table}"
