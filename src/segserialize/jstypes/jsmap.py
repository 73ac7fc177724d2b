from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass
from operator import itemgetter
from typing import TYPE_CHECKING, TypeVar

from segserialize.jstypes._equality import IdentityKey, identity_key

if TYPE_CHECKING:
    from typing_extensions import Self

KT = TypeVar("KT")
VT = TypeVar("VT")
U = TypeVar("U")


@dataclass(init=False, eq=False, slots=True)
class JSMap(MutableMapping[KT, VT]):
    """An insertion-ordered mapping that accepts any object as a key.

    Keys are matched by value for strings, numbers, bytes, `None` and
    `JSUndefined`, and by object identity for everything else, so keys don't
    need to be hashable. A NaN key only matches the same float object. Maps
    are deserialized as `JSMap`.

    Parameters
    ----------
    init
        Another Mapping to copy items from, or a series of `(key, value)` pairs.

    Examples
    --------
    >>> bob, alice = {"name": "Bob"}, {"name": "Alice"}
    >>> m = JSMap([(bob, 1), (alice, 2)])
    >>> m
    JSMap([({'name': 'Bob'}, 1), ({'name': 'Alice'}, 2)])
    >>> m[alice]
    2

    Two JSMaps are equal if they hold equal items in the same order. A JSMap
    is equal to another kind of Mapping if it would be equal as a `dict`.

    >>> JSMap([(1, 'a'), (2, 'b')]) == JSMap([(1, 'a'), (2, 'b')])
    True
    >>> JSMap([(1, 'a'), (2, 'b')]) == JSMap([(2, 'b'), (1, 'a')])
    False
    >>> JSMap([(1, 'a'), (2, 'b')]) == {2: 'b', 1: 'a'}
    True
    """

    _items: dict[IdentityKey, tuple[KT, VT]]

    def __init__(
        self, init: Mapping[KT, VT] | Iterable[tuple[KT, VT]] | None = None, /
    ) -> None:
        self._items = {}
        if init is not None:
            self.update(init)

    def __setitem__(self, key: KT, value: VT, /) -> None:
        self._items[identity_key(key)] = key, value

    def __delitem__(self, key: KT, /) -> None:
        del self._items[identity_key(key)]

    def __getitem__(self, key: KT, /) -> VT:
        return self._items[identity_key(key)][1]

    def __iter__(self) -> Iterator[KT]:
        return map(itemgetter(0), self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if isinstance(other, JSMap):
            if len(self) != len(other):
                return False
            return all(
                x == y for x, y in zip(self._items.values(), other._items.values())
            )
        if isinstance(other, Mapping):
            if len(self) != len(other):
                return False
            try:
                self_as_dict = dict(self._items.values())
            except TypeError:
                # An unhashable key; compare items in order instead
                return all(x == y for x, y in zip(self._items.values(), other.items()))
            return self_as_dict == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._items.values())!r})"

    def clear(self) -> None:
        self._items.clear()

    def update(  # type: ignore[override]
        self, other: Mapping[KT, VT] | Iterable[tuple[KT, VT]] = (), /
    ) -> None:
        items = other.items() if isinstance(other, Mapping) else other
        self._items.update((identity_key(k), (k, v)) for k, v in items)

    def get(self, key: KT, /, default: U | None = None) -> VT | U | None:  # type: ignore[override]
        return self._items.get(identity_key(key), (None, default))[1]

    def copy(self) -> Self:
        return type(self)(self._items.values())
