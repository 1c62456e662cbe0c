"""Positional ``?`` placeholder compilation.

Inlines bound values into a ``?``-marked SQL template. Markers inside single quoted string
literals are left alone; nothing else about the SQL is parsed.
"""

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable, Final

from mypy_extensions import mypyc_attr

from dbalkit.exceptions import BindCountMismatchError
from dbalkit.utils.logging import get_logger

if TYPE_CHECKING:
    from dbalkit.typing import BindParameters

__all__ = ("PlaceholderCompiler", "compile_binds_question_mark", "convert_to_named")

logger = get_logger("core.compiler")

MARKER: Final = "?"
_STRING_LITERAL_RE: Final = re.compile(r"'[^']*'")
_MARKER_RE: Final = re.compile(r"\?")


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


@mypyc_attr(allow_interpreted_subclasses=True)
class PlaceholderCompiler:
    """Compile ``?`` templates by inlining quoted values.

    Leaf values are rendered through ``quote``, the value quoting primitive of the wrapped
    connection. Integers are inlined bare.
    """

    __slots__ = ("_quote",)

    def __init__(self, quote: "Callable[[Any], str]") -> None:
        self._quote = quote

    def compile(self, sql: str, binds: "BindParameters" = None) -> str:
        """Inline ``binds`` into ``sql``.

        Args:
            sql: SQL template with positional ``?`` markers.
            binds: Values for the markers. A scalar counts as a single value; a mapping
                contributes its values in order.

        Raises:
            BindCountMismatchError: If the template contains string literals and the number of
                markers outside them differs from the number of values.

        Returns:
            The SQL with every marker replaced. Without string literals a count mismatch
            returns the template unchanged.
        """
        values = self._normalize_binds(binds)
        if not values or MARKER not in sql:
            return sql

        literals = _STRING_LITERAL_RE.findall(sql)
        if literals:
            masked = _STRING_LITERAL_RE.sub(lambda match: match.group(0).replace(MARKER, " "), sql)
            positions = [match.start() for match in _MARKER_RE.finditer(masked)]
            if len(positions) != len(values):
                logger.warning("Bind count mismatch: %d marker(s), %d value(s)", len(positions), len(values))
                raise BindCountMismatchError(len(positions), len(values), sql)
        else:
            positions = [match.start() for match in _MARKER_RE.finditer(sql)]
            if len(positions) != len(values):
                return sql

        # Splice right to left so earlier offsets stay valid.
        for position, value in zip(reversed(positions), reversed(values)):
            sql = f"{sql[:position]}{self.render(value)}{sql[position + 1 :]}"
        return sql

    def render(self, value: Any) -> str:
        """Render one bound value as SQL."""
        if _is_sequence(value):
            return f"({','.join(self._render_scalar(item) for item in value)})"
        return self._render_scalar(value)

    def _render_scalar(self, value: Any) -> str:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return self._quote(value)

    @staticmethod
    def _normalize_binds(binds: "BindParameters") -> "list[Any]":
        if binds is None:
            return []
        if isinstance(binds, Mapping):
            return list(binds.values())
        if _is_sequence(binds):
            return list(binds)
        return [binds]


def compile_binds_question_mark(sql: str, binds: "BindParameters", quote: "Callable[[Any], str]") -> str:
    """Functional shortcut for :meth:`PlaceholderCompiler.compile`."""
    return PlaceholderCompiler(quote).compile(sql, binds)


def convert_to_named(sql: str, binds: "Sequence[Any]") -> "tuple[str, dict[str, Any]]":
    """Rewrite positional ``?`` markers to ``:p0``, ``:p1`` ... named parameters.

    Markers inside single quoted string literals are left alone.

    Raises:
        BindCountMismatchError: If the number of markers differs from the number of values.

    Returns:
        The rewritten SQL and the matching parameter mapping.
    """
    masked = _STRING_LITERAL_RE.sub(lambda match: match.group(0).replace(MARKER, " "), sql)
    positions = [match.start() for match in _MARKER_RE.finditer(masked)]
    if len(positions) != len(binds):
        raise BindCountMismatchError(len(positions), len(binds), sql)
    parameters = {f"p{index}": value for index, value in enumerate(binds)}
    for index in reversed(range(len(positions))):
        position = positions[index]
        sql = f"{sql[:position]}:p{index}{sql[position + 1 :]}"
    return sql, parameters
