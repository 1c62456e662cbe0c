from collections.abc import Mapping, Sequence
from typing import Any, TypedDict, Union

from typing_extensions import NotRequired, TypeAlias

__all__ = (
    "BindParameters",
    "ConnectionParams",
    "DatabaseParams",
    "DriverOptions",
    "RewriteValue",
)


DriverOptions: TypeAlias = "dict[int, Union[int, float]]"
"""Integer-keyed low level connection tunables."""

RewriteValue: TypeAlias = Union[str, "Sequence[Any]", "Mapping[str, Any]", Any]
"""Scalar identifier, ordered sequence, or structured record of identifiers."""

BindParameters: TypeAlias = Union[None, "Sequence[Any]", "Mapping[Any, Any]", Any]
"""Positional values for ``?`` markers; a lone scalar counts as a single value."""


class DatabaseParams(TypedDict, total=False):
    """Canonical configuration keys.

    Any of the historical aliases (``dbhost``, ``db_user``, ``hostname``, ...) are also accepted
    by the normalizer; only the canonical spellings are listed here.
    """

    host: NotRequired[str]
    user: NotRequired[str]
    dbname: NotRequired[str]
    name: NotRequired[str]
    password: NotRequired[str]
    driver: NotRequired[str]
    path: NotRequired[str]
    port: NotRequired[int]
    prefix: NotRequired["str | bool | None"]
    protocol: NotRequired[str]
    charset: NotRequired[str]
    collate: NotRequired[str]
    timeout: NotRequired[int]
    options: NotRequired["DriverOptions"]
    driverOptions: NotRequired["DriverOptions"]  # noqa: N815


class ConnectionParams(TypedDict, total=False):
    """Mapping handed to a connection factory."""

    dbname: str
    driver: str
    host: NotRequired[str]
    user: NotRequired[str]
    password: NotRequired[str]
    port: NotRequired[int]
    path: NotRequired[str]
    charset: NotRequired[str]
    protocol: NotRequired[str]
    collate: NotRequired[str]
    timeout: NotRequired[int]
    driverOptions: NotRequired["DriverOptions"]  # noqa: N815
