from __future__ import annotations

from collections.abc import Iterable, Iterator, MutableSet
from dataclasses import dataclass
from typing import AbstractSet, TypeVar

from segserialize.jstypes._equality import IdentityKey, identity_key

T = TypeVar("T")


@dataclass(init=False, eq=False, slots=True)
class JSSet(MutableSet[T]):
    """
    An insertion-ordered set that accepts any object as a member.

    Members follow the same equality rules as `JSMap` keys: atomic values are
    compared by value, everything else by identity, so members don't need to be
    hashable. Sets are deserialized as `JSSet`.

    Examples
    --------
    >>> a, b = [], []  # equal, but not hashable
    >>> JSSet([a, b, a])
    JSSet([[], []])

    Equality between two JSSets compares members in order; equality with
    another kind of set behaves as if the JSSet was a `set`.

    >>> JSSet([1, 2]) == JSSet([1, 2])
    True
    >>> JSSet([1, 2]) == JSSet([2, 1])
    False
    >>> JSSet([1, 2]) == {2, 1}
    True
    """

    _members: dict[IdentityKey, T]

    def __init__(self, iterable: Iterable[T] | None = None, /) -> None:
        self._members = {}
        if iterable is not None:
            self._members.update((identity_key(x), x) for x in iterable)

    def add(self, value: T) -> None:
        self._members[identity_key(value)] = value

    def discard(self, value: T) -> None:
        self._members.pop(identity_key(value), None)

    def __contains__(self, value: object, /) -> bool:
        return identity_key(value) in self._members

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if isinstance(other, JSSet):
            if len(self) != len(other):
                return False
            return all(
                x == y for x, y in zip(self._members.values(), other._members.values())
            )
        if isinstance(other, AbstractSet):
            if len(self) != len(other):
                return False
            try:
                self_as_set = set(self._members.values())
            except TypeError:
                # An unhashable member; compare members in order instead
                return all(x == y for x, y in zip(self._members.values(), other))
            return self_as_set == other
        return NotImplemented

    def __iter__(self) -> Iterator[T]:
        return iter(self._members.values())

    def __len__(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._members.values())!r})"

    def clear(self) -> None:
        self._members.clear()
