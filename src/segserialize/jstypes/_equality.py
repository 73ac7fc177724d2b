from __future__ import annotations

from typing import Final, NewType

from segserialize.jstypes.jsundefined import JSUndefinedEnum

IdentityKey = NewType("IdentityKey", object)
"""The type of the opaque values returned by `identity_key`."""

_BY_VALUE: Final = (int, float, str, bytes, type(None), JSUndefinedEnum)


def identity_key(value: object) -> IdentityKey:
    """
    Get a surrogate value that compares atomic values by value, others by identity.

    `JSMap` keys and `JSSet` members are indexed by this key, so containers can
    hold unhashable values (like `dict` or `list`) and two equal but distinct
    containers remain separate entries.

    NaN is not equal to itself, so a NaN only matches the very same float
    object, as it does for `dict` keys.

    >>> nan = float('nan')
    >>> identity_key(nan) == identity_key(nan)
    True
    >>> identity_key(nan) == identity_key(float('nan'))
    False
    >>> identity_key(True) == identity_key(1)
    False
    >>> l1, l2 = [0], [0]
    >>> identity_key(l1) == identity_key(l2)
    False
    >>> identity_key('a') == identity_key(''.join(['a']))
    True
    """
    if type(value) is bool:
        # 0 == False and 1 == True, but they are different keys
        return IdentityKey(("bool", value))
    if isinstance(value, _BY_VALUE) and value == value:
        return IdentityKey(value)
    # The id is wrapped so that it can't collide with an int key
    return IdentityKey((id(value),))
