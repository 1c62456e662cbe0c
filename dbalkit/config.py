"""Connection configuration.

:func:`normalize_database_params` reconciles the many key spellings found in older
configuration files (``dbhost``, ``db_user``, ``hostname``, ``dbpassword`` ...) into the
canonical keys, fills defaults and builds the integer-keyed driver options.
:class:`ConnectionDescriptor` is the validated, immutable result.
"""

import logging
import math
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Final, Optional, Union

from dbalkit.drivers import DEFAULT_DRIVER, DRIVER_MYSQL, DRIVER_SQLITE, DriverOption, ErrorMode, resolve_driver
from dbalkit.exceptions import ImproperConfigurationError, NotInitializedError, UnresolvedDriverError
from dbalkit.utils.logging import get_logger, log_with_context
from dbalkit.utils.text import is_blank, normalize_collation

__all__ = (
    "DEFAULT_CHARSET",
    "DEFAULT_TIMEOUT",
    "ConnectionDescriptor",
    "DatabaseContext",
    "normalize_database_params",
)

logger = get_logger("config")

DB_HOST: Final = "host"
DB_USER: Final = "user"
DB_NAME: Final = "dbname"
DB_PASSWORD: Final = "password"
DB_DRIVER: Final = "driver"
DB_PATH: Final = "path"
DB_PORT: Final = "port"
DB_PREFIX: Final = "prefix"
DB_PROTOCOL: Final = "protocol"
DB_CHARSET: Final = "charset"
DB_TIMEOUT: Final = "timeout"
DB_OPTIONS: Final = "options"
DB_COLLATE: Final = "collate"
DRIVER_OPTIONS: Final = "driverOptions"

DEFAULT_CHARSET: Final = "UTF8"
DEFAULT_TIMEOUT: Final = 5
DEFAULT_MYSQL_PORT: Final = 3306
DEFAULT_MYSQL_COLLATE: Final = "utf8_unicode_ci"
DEFAULT_HOST: Final = "localhost"

DEFAULT_PARAMS: Final[Mapping[str, Any]] = MappingProxyType({DB_CHARSET: DEFAULT_CHARSET})

_CONCATENATED_ALIASES: Final = (
    (DB_HOST, "dbhost"),
    (DB_USER, "dbuser"),
    (DB_NAME, "name"),
    (DB_PASSWORD, "dbpass"),
    (DB_DRIVER, "dbdriver"),
    (DB_PATH, "dbpath"),
    (DB_PORT, "dbport"),
    (DB_PREFIX, "dbprefix"),
    (DB_PROTOCOL, "dbprotocol"),
    (DB_CHARSET, "dbcharset"),
    (DB_COLLATE, "dbcollate"),
    (DB_TIMEOUT, "dbtimeout"),
    (DB_OPTIONS, "dboptions"),
)
_UNDERSCORED_ALIASES: Final = (
    (DB_HOST, "db_host"),
    (DB_USER, "db_user"),
    (DB_NAME, "db_name"),
    (DB_PASSWORD, "db_pass"),
    (DB_DRIVER, "db_driver"),
    (DB_PATH, "db_path"),
    (DB_PORT, "db_port"),
    (DB_PREFIX, "db_prefix"),
    (DB_PROTOCOL, "db_protocol"),
    (DB_CHARSET, "db_charset"),
    (DB_COLLATE, "db_collate"),
    (DB_TIMEOUT, "db_timeout"),
    (DB_OPTIONS, "db_options"),
)
_FALLBACK_ALIASES: Final = (
    (DB_HOST, ("hostname", "dbhostname")),
    (DB_PASSWORD, ("dbpassword", "pass")),
    (DB_USER, ("dbusername", "username")),
)
_DRIVER_OPTION_ALIASES: Final = (DRIVER_OPTIONS, "driver_options")


def _is_set(params: "Mapping[str, Any]", key: str) -> bool:
    return params.get(key) is not None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return False
    return isinstance(value, float) and math.isfinite(value)


def _resolve_aliases(params: "dict[str, Any]") -> None:
    for aliases in (_CONCATENATED_ALIASES, _UNDERSCORED_ALIASES):
        for key, alias in aliases:
            if not _is_set(params, key) and _is_set(params, alias):
                params[key] = params[alias]

    for key, fallbacks in _FALLBACK_ALIASES:
        if _is_set(params, key):
            continue
        for alias in fallbacks:
            if _is_set(params, alias):
                params[key] = params[alias]
                break


def _resolve_driver(params: "dict[str, Any]", available: "Optional[Collection[str]]", default_driver: str) -> None:
    port = params.get(DB_PORT)
    if not params.get(DB_DRIVER) and _is_numeric(port) and abs(float(port)) == DEFAULT_MYSQL_PORT:
        params[DB_DRIVER] = DRIVER_MYSQL

    if not params.get(DB_DRIVER):
        params[DB_DRIVER] = default_driver

    # An unresolvable name is kept as None here; ConnectionDescriptor rejects it.
    params[DB_DRIVER] = resolve_driver(params[DB_DRIVER], available)

    if not params.get(DB_PORT) and params[DB_DRIVER] == DRIVER_MYSQL:
        params[DB_PORT] = DEFAULT_MYSQL_PORT

    if params[DB_DRIVER] == DRIVER_SQLITE:
        if not params.get(DB_PATH):
            if isinstance(params.get(DB_NAME), str):
                params[DB_PATH] = params[DB_NAME]
        elif not params.get(DB_NAME) and isinstance(params.get(DB_PATH), str):
            params[DB_NAME] = params[DB_PATH]


def _resolve_charset(params: "dict[str, Any]") -> None:
    charset = DEFAULT_CHARSET
    current = params.get(DB_CHARSET)
    if isinstance(current, str) and "-" in current:
        params[DB_CHARSET] = current.upper().strip().replace("-", "")

    if _is_set(params, DB_COLLATE):
        collate = params[DB_COLLATE]
        # Compares against the bare "mysql" name, which canonical driver ids never equal.
        if not isinstance(collate, str) and params.get(DB_DRIVER) == "mysql":
            collate = DEFAULT_MYSQL_COLLATE
        if isinstance(collate, str):
            charset = normalize_collation(collate).split("_", 1)[0] or charset

    if is_blank(params.get(DB_CHARSET)):
        params[DB_CHARSET] = charset


def _build_driver_options(params: "dict[str, Any]") -> "dict[int, Union[int, float]]":
    default_options: dict[int, Union[int, float]] = {
        DriverOption.TIMEOUT: DEFAULT_TIMEOUT,
        DriverOption.ERRMODE: ErrorMode.EXCEPTION,
    }
    if not isinstance(params.get(DB_OPTIONS), Mapping):
        params[DB_OPTIONS] = dict(default_options)

    supplied: Any = None
    for alias in _DRIVER_OPTION_ALIASES:
        if isinstance(params.get(alias), Mapping):
            supplied = params[alias]
            break

    driver_options: dict[int, Union[int, float]] = {}
    if supplied is not None:
        for key, value in supplied.items():
            if not _is_int(key):
                continue
            if _is_int(value) or (key == DriverOption.TIMEOUT and isinstance(value, float)):
                driver_options[int(key)] = value

    for key, value in params[DB_OPTIONS].items():
        if not _is_int(key) or not _is_int(value) or int(key) in driver_options:
            continue
        driver_options[int(key)] = value

    driver_options[int(DriverOption.ERRMODE)] = int(ErrorMode.EXCEPTION)

    timeout: Optional[int] = None
    if _is_set(params, DB_TIMEOUT):
        raw_timeout = params[DB_TIMEOUT]
        timeout = int(float(raw_timeout)) if _is_numeric(raw_timeout) else DEFAULT_TIMEOUT
        if timeout < 1:
            timeout = DEFAULT_TIMEOUT
        params[DB_TIMEOUT] = timeout

    if timeout is not None or not _is_numeric(driver_options.get(int(DriverOption.TIMEOUT))):
        driver_options[int(DriverOption.TIMEOUT)] = DEFAULT_TIMEOUT if timeout is None else timeout

    return driver_options


def normalize_database_params(
    configs: "Mapping[str, Any]",
    *,
    available_drivers: "Optional[Collection[str]]" = None,
    default_driver: str = DEFAULT_DRIVER,
) -> "dict[str, Any]":
    """Normalize a configuration mapping.

    Every step only fills a canonical key that is still unset, so canonical spellings always
    win over aliases and normalizing an already normalized mapping changes nothing.

    Args:
        configs: Raw configuration, in any of the supported key spellings.
        available_drivers: Driver ids accepted by the connection factory.
        default_driver: Driver used when neither a driver nor a MySQL port is given.

    Returns:
        A new mapping with canonical keys. The driver is ``None`` when it could not be
        resolved. An empty input is returned as an empty mapping.
    """
    if not configs:
        return dict(configs)

    params: dict[str, Any] = {**DEFAULT_PARAMS, **configs}

    _resolve_aliases(params)
    _resolve_driver(params, available_drivers, default_driver)
    _resolve_charset(params)
    driver_options = _build_driver_options(params)

    if not params.get(DB_HOST):
        params[DB_HOST] = DEFAULT_HOST

    params.pop("driver_options", None)
    params[DRIVER_OPTIONS] = driver_options
    params[DB_OPTIONS] = dict(driver_options)
    return params


def _optional_int(value: Any) -> Optional[int]:
    return int(float(value)) if _is_numeric(value) else None


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Validated connection configuration.

    Build it with :meth:`from_config`; construction either succeeds completely or raises.
    """

    name: str
    driver: str
    host: str = DEFAULT_HOST
    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    path: Optional[str] = None
    port: Optional[int] = None
    prefix: str = ""
    protocol: Optional[str] = None
    charset: str = DEFAULT_CHARSET
    collate: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT
    options: "Mapping[int, Union[int, float]]" = field(default_factory=lambda: MappingProxyType({}), hash=False)
    params: "Mapping[str, Any]" = field(default_factory=lambda: MappingProxyType({}), repr=False, hash=False)

    @classmethod
    def from_config(
        cls,
        configs: "Mapping[str, Any]",
        *,
        available_drivers: "Optional[Collection[str]]" = None,
        default_driver: str = DEFAULT_DRIVER,
    ) -> "ConnectionDescriptor":
        """Normalize and validate a configuration mapping.

        Args:
            configs: Raw configuration mapping.
            available_drivers: Driver ids accepted by the connection factory.
            default_driver: Driver used when none can be inferred.

        Raises:
            ImproperConfigurationError: If the prefix has an unsupported type or the database
                name is empty.
            UnresolvedDriverError: If the driver does not resolve to an available driver.

        Returns:
            The descriptor.
        """
        params = normalize_database_params(configs, available_drivers=available_drivers, default_driver=default_driver)

        raw_prefix = params.pop(DB_PREFIX, None)
        if raw_prefix is not None and not isinstance(raw_prefix, (str, bool)):
            msg = f"Prefix must be a string, {type(raw_prefix).__name__} given."
            raise ImproperConfigurationError(msg)
        prefix = raw_prefix.strip() if isinstance(raw_prefix, str) else ""

        driver = params.get(DB_DRIVER)
        resolved = resolve_driver(driver, available_drivers) if isinstance(driver, str) else None
        if not resolved:
            raise UnresolvedDriverError(driver)
        if not params.get(DB_NAME):
            msg = "Database name could not be empty."
            raise ImproperConfigurationError(msg)
        params[DB_DRIVER] = resolved

        options = params[DRIVER_OPTIONS]
        frozen = {
            key: MappingProxyType(dict(value)) if isinstance(value, dict) else value for key, value in params.items()
        }
        raw_timeout = params.get(DB_TIMEOUT, options.get(int(DriverOption.TIMEOUT)))
        timeout = _optional_int(raw_timeout)
        descriptor = cls(
            name=str(params[DB_NAME]),
            driver=resolved,
            host=str(params[DB_HOST]),
            user=params.get(DB_USER),
            password=params.get(DB_PASSWORD),
            path=params.get(DB_PATH),
            port=_optional_int(params.get(DB_PORT)),
            prefix=prefix,
            protocol=params.get(DB_PROTOCOL),
            charset=params[DB_CHARSET],
            collate=params.get(DB_COLLATE),
            timeout=DEFAULT_TIMEOUT if timeout is None else timeout,
            options=MappingProxyType(dict(options)),
            params=MappingProxyType(frozen),
        )
        log_with_context(logger, logging.DEBUG, "Built connection descriptor", descriptor=descriptor)
        return descriptor

    def to_params(self) -> "dict[str, Any]":
        """Full normalized configuration, table prefix included."""
        params = {key: dict(value) if isinstance(value, Mapping) else value for key, value in self.params.items()}
        if self.prefix:
            params[DB_PREFIX] = self.prefix
        return params

    def connection_params(self) -> "dict[str, Any]":
        """Configuration handed to the connection factory.

        Numeric keys, leftover ``db*`` aliases (``dbname`` excepted), ``pass`` and the
        duplicated ``options`` mapping are removed.
        """
        params: dict[str, Any] = {}
        for key, value in self.params.items():
            if not isinstance(key, str) or key.isdigit() or key in {"pass", DB_OPTIONS}:
                continue
            if key != DB_NAME and key.lower().startswith("db"):
                continue
            params[key] = dict(value) if isinstance(value, Mapping) else value
        return params


class DatabaseContext:
    """Holds the most recently built descriptor.

    Owned and passed around by the caller; every successful :class:`~dbalkit.database.Database`
    construction given this context overwrites the slot.
    """

    __slots__ = ("_last",)

    def __init__(self) -> None:
        self._last: Optional[ConnectionDescriptor] = None

    @property
    def last_descriptor(self) -> Optional[ConnectionDescriptor]:
        return self._last

    @property
    def last_params(self) -> "Optional[dict[str, Any]]":
        return None if self._last is None else self._last.to_params()

    def record(self, descriptor: ConnectionDescriptor) -> None:
        self._last = descriptor

    def require(self) -> ConnectionDescriptor:
        """Return the last descriptor.

        Raises:
            NotInitializedError: If nothing has been recorded yet.
        """
        if self._last is None:
            raise NotInitializedError
        return self._last

    def clear(self) -> None:
        self._last = None
