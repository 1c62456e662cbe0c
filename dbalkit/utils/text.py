"""Text helpers."""

import re
from typing import Any, Final

__all__ = (
    "is_blank",
    "normalize_collation",
    "sanitize_invalid_utf8",
)

_COLLATE_SEPARATORS_RE: Final = re.compile(r"[-_]+")

FALLBACK_ENCODING: Final = "cp1250"


def is_blank(value: Any) -> bool:
    """Return True for anything that is not a string with visible characters."""
    return not isinstance(value, str) or not value.strip()


def normalize_collation(collate: str) -> str:
    """Collapse runs of ``-``/``_`` to a single underscore and lowercase.

    >>> normalize_collation("UTF8MB4--Unicode-CI")
    'utf8mb4_unicode_ci'
    """
    return _COLLATE_SEPARATORS_RE.sub("_", collate).strip().lower()


def sanitize_invalid_utf8(value: "bytes | str") -> str:
    """Decode a value coming off a socket that may not be valid UTF-8.

    Valid UTF-8 is returned as-is. Anything else is re-read as Windows-1250 with
    undecodable bytes dropped, the encoding legacy MySQL clients most often leak.

    Args:
        value: Raw bytes or an already decoded string.

    Returns:
        Decoded text.
    """
    if isinstance(value, str):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            # lone surrogates, usually left behind by surrogateescape decoding
            try:
                value = value.encode("utf-8", "surrogateescape")
            except UnicodeEncodeError:
                return value.encode("utf-8", "ignore").decode("utf-8")
        else:
            return value
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode(FALLBACK_ENCODING, "ignore")
