from __future__ import annotations

import math
import re
from datetime import timezone
from typing import TypeVar

from hypothesis import strategies as st

from segserialize.constants import FLOAT64_SAFE_INT_RANGE
from segserialize.jstypes import JSMap, JSSet, JSUndefined, TypedArray, TypedArrayKind
from segserialize.jstypes._equality import identity_key

K = TypeVar("K")
T = TypeVar("T")

float_safe_integers = st.integers(
    min_value=FLOAT64_SAFE_INT_RANGE.start, max_value=FLOAT64_SAFE_INT_RANGE.stop - 1
)
bigints = st.integers(min_value=2**53).flatmap(
    lambda n: st.sampled_from([n, -n])
)
"""Generate integers that can't be represented exactly by a float."""

finite_floats = st.floats(allow_nan=False, allow_infinity=False)

json_primitives = st.one_of(
    st.none(), st.booleans(), float_safe_integers, finite_floats, st.text()
)

regex_sources = st.sampled_from(["", r"^\w+$", r"ab+c", r"(\w+)\s(\w+)", r"a/b"])
regex_flags = st.sets(
    st.sampled_from([re.ASCII, re.IGNORECASE, re.MULTILINE, re.DOTALL, re.VERBOSE])
).map(sum)
regexes = st.builds(re.compile, regex_sources, regex_flags)

datetimes = st.datetimes(timezones=st.none() | st.just(timezone.utc))


def typed_array_elements(kind: TypedArrayKind) -> st.SearchStrategy[float]:
    if kind is TypedArrayKind.Float32Array:
        return st.floats(width=32, allow_nan=False)
    if kind is TypedArrayKind.Float64Array:
        return st.floats(allow_nan=False)
    bits = kind.itemsize * 8
    if kind.format.islower():  # signed
        return st.integers(min_value=-(2 ** (bits - 1)), max_value=2 ** (bits - 1) - 1)
    return st.integers(min_value=0, max_value=2**bits - 1)


def typed_arrays(
    kinds: st.SearchStrategy[TypedArrayKind] | None = None,
    max_size: int | None = 32,
) -> st.SearchStrategy[TypedArray]:
    if kinds is None:
        kinds = st.sampled_from(TypedArrayKind)
    return kinds.flatmap(
        lambda kind: st.lists(typed_array_elements(kind), max_size=max_size).map(
            lambda values: TypedArray(kind, values)
        )
    )


def js_maps(
    keys: st.SearchStrategy[K],
    values: st.SearchStrategy[T],
    max_size: int | None = None,
) -> st.SearchStrategy[JSMap[K, T]]:
    return st.builds(
        JSMap,
        st.lists(
            elements=st.tuples(keys, values),
            max_size=max_size,
            unique_by=lambda item: identity_key(item[0]),
        ),
    )


def js_sets(
    elements: st.SearchStrategy[T], max_size: int | None = None
) -> st.SearchStrategy[JSSet[T]]:
    return st.builds(
        JSSet,
        st.lists(elements=elements, max_size=max_size, unique_by=identity_key),
    )


def any_atomic(*, allow_nan: bool = False) -> st.SearchStrategy[object]:
    """Generate non-container values that decode as values equal to themselves.

    NaN is not equal to itself, so it's only included if `allow_nan` is set.
    """
    return st.one_of(
        json_primitives,
        bigints,
        st.just(JSUndefined),
        st.just(math.inf),
        *([st.just(math.nan)] if allow_nan else []),
        datetimes,
        regexes,
        st.binary(max_size=64),
        st.binary(max_size=64).map(bytearray),
        typed_arrays(max_size=8),
    )


def any_object(*, max_leaves: int = 30) -> st.SearchStrategy[object]:
    """Generate nested plain containers of atomic values.

    Only values that decode as an equal value are generated, so tuples (which
    decode as lists) and negative infinity (which decodes as None) are excluded.
    """
    return st.recursive(
        any_atomic(),
        lambda children: st.one_of(
            st.lists(children, max_size=8),
            st.dictionaries(st.text(max_size=8), children, max_size=8),
            js_maps(st.one_of(json_primitives, children), children, max_size=6),
            js_sets(children, max_size=6),
        ),
        max_leaves=max_leaves,
    )

