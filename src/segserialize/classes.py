"""Resolve class names to classes when decoding foreign objects and arrays."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, TypeVar, overload

TypeT = TypeVar("TypeT", bound=type)


@dataclass(init=False, slots=True)
class ClassRegistry:
    """
    An explicit mapping of names to classes that can be constructed without arguments.

    Values whose class is not one of the built-in serializable types are
    serialized with the name of their class. Decoding them requires the class to
    be registered here under that name; nothing is looked up implicitly.

    Parameters
    ----------
    classes
        Classes to register under their `__name__`, or a mapping of names to
        classes.

    Examples
    --------
    >>> registry = ClassRegistry()
    >>> @registry.register
    ... class Point:
    ...     pass
    >>> registry.lookup('Point') is Point
    True
    >>> registry.lookup('Missing') is None
    True
    """

    index: Mapping[str, type]
    _index: dict[str, type]

    def __init__(self, classes: Iterable[type] | Mapping[str, type] = ()) -> None:
        self._index = {}
        self.index = MappingProxyType(self._index)
        if isinstance(classes, Mapping):
            for name, cls in classes.items():
                self.register(cls, name=name)
        else:
            for cls in classes:
                self.register(cls)

    @overload
    def register(self, cls: TypeT, /) -> TypeT: ...

    @overload
    def register(self, cls: None = None, /, *, name: str) -> Callable[[TypeT], TypeT]: ...

    @overload
    def register(self, cls: TypeT, /, *, name: str | None = None) -> TypeT: ...

    def register(
        self, cls: TypeT | None = None, /, *, name: str | None = None
    ) -> TypeT | Callable[[TypeT], TypeT]:
        """
        Register a class under a name, by default its `__name__`.

        Can be used as a class decorator, with or without a `name`.
        """
        if cls is None:

            def register__decorator(cls: TypeT) -> TypeT:
                return self.register(cls, name=name)

            return register__decorator

        name = cls.__name__ if name is None else name
        existing = self._index.get(name)
        if existing is not None and existing is not cls:
            raise ValueError(
                f"Cannot register {cls!r} as {name!r}: the name is already "
                f"registered to {existing!r}"
            )
        self._index[name] = cls
        return cls

    def lookup(self, name: str) -> type | None:
        """Get the class registered under `name`, or `None`."""
        return self._index.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)
