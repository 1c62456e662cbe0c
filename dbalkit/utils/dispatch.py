from typing import Any, Generic, TypeVar

__all__ = ("TypeDispatcher",)


T = TypeVar("T")


class TypeDispatcher(Generic[T]):
    """Type lookup cache for dispatching on the type of a value.

    Lookups are cached per concrete type. Registered abstract base classes (``Mapping``,
    ``Sequence`` ...) are honored through ``issubclass`` after the MRO walk.
    """

    __slots__ = ("_cache", "_registry")

    def __init__(self) -> None:
        self._cache: dict[type, T | None] = {}
        self._registry: dict[type, T] = {}

    def register(self, type_: type, value: T) -> None:
        """Register a value for a specific type.

        Args:
            type_: The type to register.
            value: The value associated with the type.
        """
        self._registry[type_] = value
        self._cache.clear()

    def get(self, obj: Any) -> T | None:
        """Get the value associated with the object's type.

        Args:
            obj: The object to lookup.

        Returns:
            The associated value or None if not found.
        """
        obj_type = type(obj)
        if obj_type in self._cache:
            return self._cache[obj_type]

        value = self._resolve(obj_type)
        self._cache[obj_type] = value
        return value

    def _resolve(self, obj_type: type) -> T | None:
        for base in obj_type.__mro__:
            if base in self._registry:
                return self._registry[base]

        # Registration order decides between overlapping ABCs.
        for registered, value in self._registry.items():
            if issubclass(obj_type, registered):
                return value

        return None

    def clear_cache(self) -> None:
        """Clear the resolution cache."""
        self._cache.clear()
