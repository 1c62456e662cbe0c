"""SQL text helpers: placeholder compilation and identifier rewriting."""

from dbalkit.core.compiler import PlaceholderCompiler, compile_binds_question_mark, convert_to_named
from dbalkit.core.identifiers import IdentifierRewriter, quote_identifier, quote_literal

__all__ = (
    "IdentifierRewriter",
    "PlaceholderCompiler",
    "compile_binds_question_mark",
    "convert_to_named",
    "quote_identifier",
    "quote_literal",
)
