from __future__ import annotations

import logging
import math
import re
from array import array
from collections import OrderedDict, UserDict
from datetime import datetime
from functools import partial
from weakref import WeakKeyDictionary, WeakSet, WeakValueDictionary

import pytest

from segserialize._errors import UnknownTagError, UnsupportedTypeError
from segserialize.constants import Composite
from segserialize.decode import DefaultDecodeContext
from segserialize.jstypes import (
    JSError,
    JSMap,
    JSSet,
    JSTypeError,
    JSUndefined,
    TypedArray,
    TypedArrayKind,
)
from segserialize.references import CircularReference
from segserialize.registry import TypeDescriptor, TypeRegistry, default_type_registry


class Point:
    def __init__(self) -> None:
        self.x = 1


class Tags(list[str]):
    pass


class WithJSONHook:
    def __json__(self) -> object:
        return {"hook": True}


def test_default_type_registry_order() -> None:
    assert [d.name for d in default_type_registry] == [
        "NaN",
        "undefined",
        "Infinity",
        "BIGINT",
        "JSON",
        "ARRAY",
        "OBJECT",
        "DATE",
        "REGEX",
        "ArrayBuffer",
        "Buffer",
        "CircularRef",
        "ReferenceError",
        "SyntaxError",
        "RangeError",
        "TypeError",
        "Error",
        "WeakMap",
        "WeakSet",
        "Map",
        "Set",
        "Int8Array",
        "Uint8Array",
        "Uint8ClampedArray",
        "Int16Array",
        "Uint16Array",
        "Int32Array",
        "Uint32Array",
        "Float32Array",
        "Float64Array",
        "BigInt64Array",
        "BigUint64Array",
        "function",
        "JSONable",
        "ForeignArray",
        "ForeignObject",
    ]


@pytest.mark.parametrize(
    "value,name",
    [
        # sentinels and bigints are matched before JSON would accept them
        (math.nan, "NaN"),
        (JSUndefined, "undefined"),
        (math.inf, "Infinity"),
        (-math.inf, "JSON"),
        (2**53, "BIGINT"),
        (-(2**53), "BIGINT"),
        (2**53 - 1, "JSON"),
        (-(2**53 - 1), "JSON"),
        (None, "JSON"),
        (True, "JSON"),
        (1.5, "JSON"),
        ("text", "JSON"),
        ([], "ARRAY"),
        ((1, 2), "ARRAY"),
        ({}, "OBJECT"),
        ({"a": 1}, "OBJECT"),
        ({1: "a"}, "Map"),
        (OrderedDict(a=1), "Map"),
        (UserDict(a=1), "Map"),
        (JSMap(), "Map"),
        (datetime(2024, 1, 2), "DATE"),
        (re.compile("a+"), "REGEX"),
        (bytearray(b"a"), "ArrayBuffer"),
        (b"a", "Buffer"),
        (memoryview(b"a"), "Buffer"),
        (CircularReference(()), "CircularRef"),
        (set(), "Set"),
        (frozenset([1]), "Set"),
        (JSSet(), "Set"),
        ({"a": 1}.keys(), "Set"),
        (TypedArray(TypedArrayKind.Uint8ClampedArray), "Uint8ClampedArray"),
        (TypedArray(TypedArrayKind.BigInt64Array), "BigInt64Array"),
        (array("h"), "Int16Array"),
        (array("B"), "Uint8Array"),
        (array("f"), "Float32Array"),
        (array("d"), "Float64Array"),
        (len, "function"),
        (lambda: None, "function"),
        (Point, "function"),
        (Point().__init__, "function"),
        (partial(print, 1), "function"),
        (WithJSONHook(), "JSONable"),
        (Tags(["a"]), "ForeignArray"),
        (Point(), "ForeignObject"),
    ],
)
def test_match(value: object, name: str) -> None:
    assert default_type_registry.match(value).name == name


@pytest.mark.parametrize(
    "error,name",
    [
        (ReferenceError("x"), "ReferenceError"),
        (SyntaxError("x"), "SyntaxError"),
        (IndentationError("x"), "SyntaxError"),
        (ValueError("x"), "RangeError"),
        (UnicodeError("x"), "RangeError"),
        (TypeError("x"), "TypeError"),
        (JSTypeError("x"), "TypeError"),
        (KeyError("x"), "Error"),
        (Exception("x"), "Error"),
        (JSError("x", name="TypeError"), "Error"),
        (KeyboardInterrupt(), "Error"),
    ],
)
def test_match__named_errors_before_generic_error(
    error: BaseException, name: str
) -> None:
    assert default_type_registry.match(error).name == name


@pytest.mark.parametrize(
    "value",
    [WeakKeyDictionary(), WeakValueDictionary(), WeakSet()],
)
def test_match__weak_containers_before_maps_and_sets(value: object) -> None:
    assert default_type_registry.match(value).name in ("WeakMap", "WeakSet")


@pytest.mark.parametrize(
    "value,composite",
    [
        ([], Composite.ARRAY),
        ((), Composite.ARRAY),
        ({}, Composite.OBJECT),
        (JSMap(), Composite.MAP),
        ({1: 2}, Composite.MAP),
        (frozenset(), Composite.SET),
        ("", None),
        (Tags(), None),
        (Point(), None),
        (TypedArray(TypedArrayKind.Int8Array), None),
    ],
)
def test_match__composite(value: object, composite: Composite | None) -> None:
    assert default_type_registry.match(value).composite is composite


def _raise(value: object) -> bool:
    raise RuntimeError("predicate failed")


def _encode_nothing(value: object, ctx: object) -> bytes:
    return b""


def test_match__predicate_errors_do_not_match(
    caplog: pytest.LogCaptureFixture,
) -> None:
    failing = TypeDescriptor("failing", match=_raise, encode=_encode_nothing)
    anything = TypeDescriptor(
        "anything", match=lambda value: True, encode=_encode_nothing
    )
    registry = TypeRegistry([failing, anything])

    with caplog.at_level(logging.DEBUG, logger="segserialize.registry"):
        assert registry.match(42) is anything

    (record,) = caplog.records
    assert record.levelno == logging.DEBUG
    assert "'failing'" in record.getMessage()
    assert record.exc_info is not None
    assert isinstance(record.exc_info[1], RuntimeError)


def test_match__nothing_matches() -> None:
    strings = TypeDescriptor(
        "strings", match=lambda v: isinstance(v, str), encode=_encode_nothing
    )
    registry = TypeRegistry([strings])

    with pytest.raises(UnsupportedTypeError, match="type int") as exc_info:
        registry.match(42)

    assert exc_info.value.value == 42


class _NoDict:
    __slots__ = ()


def test_match__values_without_attributes_are_unsupported() -> None:
    with pytest.raises(UnsupportedTypeError):
        default_type_registry.match(_NoDict())


def test_type_registry__rejects_duplicate_names() -> None:
    descriptor = TypeDescriptor("x", match=lambda v: True, encode=_encode_nothing)

    with pytest.raises(ValueError, match="'x' is used more than once"):
        TypeRegistry([descriptor, descriptor])


def test_type_registry__index_is_read_only() -> None:
    with pytest.raises(TypeError):
        default_type_registry.index["x"] = default_type_registry.descriptors[0]  # type: ignore[index]


def test_type_registry__get() -> None:
    descriptor = default_type_registry.get("Map")
    assert descriptor is not None
    assert descriptor.composite is Composite.MAP
    assert default_type_registry.get("Missing") is None
    assert len(default_type_registry) == len(default_type_registry.descriptors)


def test_decode__unknown_tag() -> None:
    ctx = DefaultDecodeContext()

    with pytest.raises(UnknownTagError) as exc_info:
        default_type_registry.decode("Symbol", b"", ctx)

    assert exc_info.value.tag == "Symbol"


@pytest.mark.parametrize("name", ["function", "WeakMap", "WeakSet"])
def test_decode__tags_without_decoder(name: str) -> None:
    ctx = DefaultDecodeContext()

    with pytest.raises(UnknownTagError, match="cannot decode"):
        default_type_registry.decode(name, b"", ctx)


def test_decode__tag_names_are_exact() -> None:
    ctx = DefaultDecodeContext()

    assert default_type_registry.decode("JSON", b"[1]", ctx) == [1]
    with pytest.raises(UnknownTagError):
        default_type_registry.decode("json", b"[1]", ctx)
