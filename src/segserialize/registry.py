"""
The ordered table of value kinds that can be serialized.

Each `TypeDescriptor` owns a predicate that recognises the Python values of
its kind, an encoder that turns a value into a payload and (usually) a decoder
that turns a payload back into a value. A `TypeRegistry` picks the
descriptor of a value by trying predicates in priority order; the first
predicate that accepts the value wins. Predicates overlap, so the order of
`default_type_registry` is significant.
"""

from __future__ import annotations

import inspect
import json
import logging
import math
import re
from array import array
from collections.abc import Iterable, Iterator, Mapping
from collections.abc import Set as AbstractSet
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from functools import partial
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Final, Generator, Protocol
from weakref import WeakKeyDictionary, WeakSet, WeakValueDictionary

from segserialize._errors import (
    MalformedPayloadError,
    UnknownTagError,
    UnresolvableForeignTypeError,
    UnsupportedTypeError,
)
from segserialize.constants import FLOAT64_SAFE_INT_RANGE, Composite
from segserialize.framing import frame, unframe, unframe_exactly
from segserialize.jstypes.jsbuffers import TypedArray, TypedArrayKind
from segserialize.jstypes.jserror import (
    JSError,
    JSRangeError,
    JSReferenceError,
    JSSyntaxError,
    JSTypeError,
    error_fields,
)
from segserialize.jstypes.jsmap import JSMap
from segserialize.jstypes.jsset import JSSet
from segserialize.jstypes.jsundefined import JSUndefined
from segserialize.references import CircularReference

if TYPE_CHECKING:
    from segserialize.decode import DecodeContext
    from segserialize.encode import EncodeContext

logger = logging.getLogger(__name__)


class EncodeFn(Protocol):
    """Create the payload bytes of a value matched by a descriptor."""

    def __call__(self, value: Any, /, ctx: EncodeContext) -> bytes: ...


class DecodeFn(Protocol):
    """Create a value from the payload bytes written by a descriptor's encoder."""

    def __call__(self, payload: bytes, /, ctx: DecodeContext) -> object: ...


@dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """
    One value kind of the serialized format.

    Parameters
    ----------
    name
        The tag name that identifies the kind in serialized data.
    match
        A predicate that is true for the Python values of this kind.
    encode
        Create the payload of a matched value.
    decode
        Create a value from a payload, or `None` if the kind cannot be decoded.
    composite
        The container kind of the values, if the cycle normalizer needs to
        descend into them.
    """

    name: str
    match: Callable[[Any], object]
    encode: EncodeFn
    decode: DecodeFn | None = None
    composite: Composite | None = None


@dataclass(init=False, slots=True)
class TypeRegistry:
    """
    An ordered collection of TypeDescriptors.

    >>> registry = TypeRegistry(default_type_registry)
    >>> registry.match(float('nan')).name
    'NaN'
    >>> registry.match([1, 2]).composite
    Composite.ARRAY
    >>> registry.match(lambda: 1).name
    'function'

    Custom kinds can be given priority over the defaults by listing them first:

    >>> from fractions import Fraction
    >>> fraction = TypeDescriptor(
    ...     'Fraction',
    ...     match=lambda v: isinstance(v, Fraction),
    ...     encode=lambda v, ctx: str(v).encode(),
    ...     decode=lambda payload, ctx: Fraction(payload.decode()),
    ... )
    >>> registry = TypeRegistry([fraction, *default_type_registry])
    >>> registry.match(Fraction(1, 3)).name
    'Fraction'
    """

    descriptors: tuple[TypeDescriptor, ...]
    index: Mapping[str, TypeDescriptor]

    def __init__(self, descriptors: Iterable[TypeDescriptor]) -> None:
        self.descriptors = tuple(descriptors)
        index: dict[str, TypeDescriptor] = {}
        for descriptor in self.descriptors:
            if descriptor.name in index:
                raise ValueError(
                    f"Type descriptor name {descriptor.name!r} is used more than once"
                )
            index[descriptor.name] = descriptor
        self.index = MappingProxyType(index)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(<{len(self.descriptors)} descriptors>)"

    def __iter__(self) -> Iterator[TypeDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    def get(self, name: str) -> TypeDescriptor | None:
        """Get the descriptor registered under a tag name, or `None`."""
        return self.index.get(name)

    def match(self, value: object) -> TypeDescriptor:
        """
        Get the first descriptor whose predicate accepts `value`.

        A predicate that raises an `Exception` does not match; the next
        descriptor is tried.

        Raises
        ------
        UnsupportedTypeError
            If no descriptor matches.
        """
        for descriptor in self.descriptors:
            try:
                if descriptor.match(value):
                    return descriptor
            except Exception:
                logger.debug(
                    "Predicate of type descriptor %r failed for a %s value; "
                    "treating it as no match",
                    descriptor.name,
                    type(value).__name__,
                    exc_info=True,
                )
        raise UnsupportedTypeError(
            f"No type descriptor matches a value of type {type(value).__name__}",
            value=value,
        )

    def decode(self, tag_name: str, payload: bytes, ctx: DecodeContext) -> object:
        """
        Decode a payload with the descriptor registered under `tag_name`.

        Raises
        ------
        UnknownTagError
            If no descriptor is registered under `tag_name`, or the descriptor
            cannot decode.
        """
        descriptor = self.index.get(tag_name)
        if descriptor is None:
            raise UnknownTagError("No type descriptor has the tag name", tag=tag_name)
        if descriptor.decode is None:
            raise UnknownTagError(
                "The type descriptor of the tag name cannot decode", tag=tag_name
            )
        return descriptor.decode(payload, ctx)


@contextmanager
def parsing_payload(tag: str) -> Generator[None, None, None]:
    """Report errors parsing a payload as MalformedPayloadError."""
    try:
        yield
    except (ValueError, re.error) as e:
        raise MalformedPayloadError(
            f"{tag} payload is not valid: {e}", tag=tag
        ) from e


def dumps_json(value: object) -> bytes:
    """Encode a JSON record, rejecting values that JSON cannot represent."""
    try:
        return json.dumps(value, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise UnsupportedTypeError(
            f"Value cannot be represented as JSON: {e}", value=value
        ) from e


def _encode_empty(value: object, ctx: EncodeContext) -> bytes:
    return b""


def _decode_empty(create: Callable[[], object], tag: str) -> DecodeFn:
    def decode_empty(payload: bytes, ctx: DecodeContext) -> object:
        if payload:
            raise MalformedPayloadError(f"{tag} payload must be empty", tag=tag)
        return create()

    return decode_empty


def _refuse(reason: str) -> EncodeFn:
    def refuse(value: object, ctx: EncodeContext) -> bytes:
        raise UnsupportedTypeError(
            f"Cannot serialize a {type(value).__name__}: {reason}", value=value
        )

    return refuse


# Primitives


def _is_nan(value: object) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _is_infinity(value: object) -> bool:
    return isinstance(value, float) and value == math.inf


def _is_bigint(value: object) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and value not in FLOAT64_SAFE_INT_RANGE
    )


_BIGINT_TEXT: Final = re.compile(rb"-?[0-9]+")


# int <-> str conversion is limited to 4300 digits, Decimal conversion is not
def _encode_bigint(value: int, ctx: EncodeContext) -> bytes:
    return str(Decimal(int(value))).encode("ascii")


def _decode_bigint(payload: bytes, ctx: DecodeContext) -> int:
    with parsing_payload("BIGINT"):
        if _BIGINT_TEXT.fullmatch(payload) is None:
            raise ValueError("expected decimal digits with an optional '-' sign")
        return int(Decimal(payload.decode("ascii")))


def _is_json_primitive(value: object) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def _encode_json_primitive(value: object, ctx: EncodeContext) -> bytes:
    if isinstance(value, float) and not math.isfinite(value):
        # -Infinity has no JSON form, it's written as null like JSON.stringify
        return b"null"
    return json.dumps(value).encode("utf-8")


def _decode_json(payload: bytes, ctx: DecodeContext) -> object:
    with parsing_payload("JSON"):
        return json.loads(payload)


def _is_date(value: object) -> bool:
    return isinstance(value, datetime)


def _encode_date(value: datetime, ctx: EncodeContext) -> bytes:
    return value.isoformat().encode("ascii")


def _decode_date(payload: bytes, ctx: DecodeContext) -> datetime:
    with parsing_payload("DATE"):
        return datetime.fromisoformat(payload.decode("ascii"))


_REGEX_FLAGS: Final = (
    ("a", re.ASCII),
    ("i", re.IGNORECASE),
    ("m", re.MULTILINE),
    ("s", re.DOTALL),
    ("x", re.VERBOSE),
)


def _is_regex(value: object) -> bool:
    return isinstance(value, re.Pattern) and isinstance(value.pattern, str)


def _encode_regex(value: re.Pattern[str], ctx: EncodeContext) -> bytes:
    flags = "".join(letter for letter, flag in _REGEX_FLAGS if value.flags & flag)
    return f"/{value.pattern}/{flags}".encode("utf-8", "surrogatepass")


def _decode_regex(payload: bytes, ctx: DecodeContext) -> re.Pattern[str]:
    with parsing_payload("REGEX"):
        text = payload.decode("utf-8", "surrogatepass")
        body, separator, flag_letters = text.rpartition("/")
        if not (separator and body.startswith("/")):
            raise ValueError("expected /source/flags")
        flags = 0
        for letter in flag_letters:
            for known_letter, flag in _REGEX_FLAGS:
                if letter == known_letter:
                    flags |= flag
                    break
            else:
                raise ValueError(f"unknown flag {letter!r}")
        return re.compile(body[1:], flags)


# Containers


def _is_array(value: object) -> bool:
    return type(value) is list or isinstance(value, tuple)


def _encode_array(value: Iterable[object], ctx: EncodeContext) -> bytes:
    return b"".join(frame(ctx.encode_value(element)) for element in value)


def _decode_array(payload: bytes, ctx: DecodeContext) -> list[object]:
    elements: list[object] = []
    if not payload:
        return elements
    for block in unframe(payload):
        elements.append(ctx.decode_value(block))
    return elements


def _is_object(value: object) -> bool:
    return type(value) is dict and all(isinstance(key, str) for key in value)


def _encode_object(value: dict[str, object], ctx: EncodeContext) -> bytes:
    return b"".join(
        frame(
            frame(key.encode("utf-8", "surrogatepass"))
            + frame(ctx.encode_value(child))
        )
        for key, child in value.items()
    )


def _decode_object(payload: bytes, ctx: DecodeContext) -> dict[str, object]:
    obj: dict[str, object] = {}
    if not payload:
        return obj
    for block in unframe(payload):
        key_data, value_data = unframe_exactly(block, 2)
        with parsing_payload("OBJECT"):
            key = key_data.decode("utf-8", "surrogatepass")
        obj[key] = ctx.decode_value(value_data)
    return obj


def _is_map(value: object) -> bool:
    # Unlike list subclasses, dict subclasses (OrderedDict, defaultdict, ...) are
    # maps: their class is not recorded and they decode as JSMap.
    return isinstance(value, Mapping)


def _encode_map(value: Mapping[object, object], ctx: EncodeContext) -> bytes:
    return b"".join(
        frame(frame(ctx.encode_value(key)) + frame(ctx.encode_value(child)))
        for key, child in value.items()
    )


def _decode_map(payload: bytes, ctx: DecodeContext) -> JSMap[object, object]:
    jsmap: JSMap[object, object] = JSMap()
    if not payload:
        return jsmap
    for block in unframe(payload):
        key_data, value_data = unframe_exactly(block, 2)
        jsmap[ctx.decode_value(key_data)] = ctx.decode_value(value_data)
    return jsmap


def _is_set(value: object) -> bool:
    return isinstance(value, AbstractSet)


def _decode_set(payload: bytes, ctx: DecodeContext) -> JSSet[object]:
    # A list, not a generator: a generator adds a frame per nesting level
    members: list[object] = []
    if payload:
        for block in unframe(payload):
            members.append(ctx.decode_value(block))
    return JSSet(members)


# Buffers


def _is_array_buffer(value: object) -> bool:
    return isinstance(value, bytearray)


def _is_buffer(value: object) -> bool:
    return isinstance(value, (bytes, memoryview))


def _encode_buffer(value: bytes | bytearray | memoryview, ctx: EncodeContext) -> bytes:
    if isinstance(value, memoryview):
        return value.tobytes()
    return bytes(value)


def _decode_array_buffer(payload: bytes, ctx: DecodeContext) -> bytearray:
    return bytearray(payload)


def _decode_buffer(payload: bytes, ctx: DecodeContext) -> bytes:
    return bytes(payload)


def _is_typed_array(kind: TypedArrayKind, value: object) -> bool:
    if isinstance(value, TypedArray):
        return value.kind is kind
    return isinstance(value, array) and TypedArrayKind.for_array(value) is kind


def _encode_typed_array(
    value: TypedArray | array[int] | array[float], ctx: EncodeContext
) -> bytes:
    if isinstance(value, TypedArray):
        return value.data
    return TypedArray.from_array(value).data


def _decode_typed_array(
    kind: TypedArrayKind, payload: bytes, ctx: DecodeContext
) -> TypedArray:
    with parsing_payload(kind.value):
        return TypedArray.from_bytes(kind, payload)


def _typed_array_descriptor(kind: TypedArrayKind) -> TypeDescriptor:
    return TypeDescriptor(
        kind.value,
        match=partial(_is_typed_array, kind),
        encode=_encode_typed_array,
        decode=partial(_decode_typed_array, kind),
    )


# References


def _is_circular_reference(value: object) -> bool:
    return isinstance(value, CircularReference)


def _encode_circular_reference(value: CircularReference, ctx: EncodeContext) -> bytes:
    return dumps_json(value.to_json())


def _decode_circular_reference(
    payload: bytes, ctx: DecodeContext
) -> CircularReference:
    with parsing_payload("CircularRef"):
        return CircularReference.from_json(json.loads(payload))


# Errors


def _encode_error(value: BaseException, ctx: EncodeContext) -> bytes:
    name, message, stack = error_fields(value)
    return dumps_json({"n": name, "m": message, "s": stack})


def _error_descriptor(
    error_type: type[JSError], python_type: type[BaseException]
) -> TypeDescriptor:
    tag = error_type.kind_name

    def decode_error(payload: bytes, ctx: DecodeContext) -> JSError:
        with parsing_payload(tag):
            record = json.loads(payload)
            if not (
                isinstance(record, dict)
                and isinstance(record.get("n"), str)
                and isinstance(record.get("m"), str)
                and isinstance(record.get("s"), (str, type(None)))
            ):
                raise ValueError("expected an object with n, m and s fields")
        error = error_type()
        error.name = record["n"]
        error.message = record["m"]
        error.stack = record["s"]
        return error

    return TypeDescriptor(
        tag,
        match=lambda value: isinstance(value, python_type),
        encode=_encode_error,
        decode=decode_error,
    )


# Functions and weak containers


def _is_weak_map(value: object) -> bool:
    return isinstance(value, (WeakKeyDictionary, WeakValueDictionary))


def _is_weak_set(value: object) -> bool:
    return isinstance(value, WeakSet)


def _is_function(value: object) -> bool:
    return inspect.isroutine(value) or isinstance(value, (type, partial))


# Foreign values


def _has_json_hook(value: object) -> bool:
    return callable(getattr(value, "__json__", None))


def _encode_json_hook(value: Any, ctx: EncodeContext) -> bytes:
    return dumps_json(value.__json__())


def _is_foreign_array(value: object) -> bool:
    # Exact lists are matched by ARRAY first
    return isinstance(value, list)


def _is_foreign_object(value: object) -> bool:
    return isinstance(getattr(value, "__dict__", None), dict)


def _encode_foreign_array(value: list[object], ctx: EncodeContext) -> bytes:
    return dumps_json({"name": type(value).__name__, "value": list(value)})


def _encode_foreign_object(value: object, ctx: EncodeContext) -> bytes:
    return dumps_json({"name": type(value).__name__, "value": dict(vars(value))})


def _decode_foreign_record(
    tag: str, payload: bytes, value_type: type[list[Any] | dict[str, Any]]
) -> tuple[str, Any]:
    with parsing_payload(tag):
        record = json.loads(payload)
        if not (
            isinstance(record, dict)
            and isinstance(record.get("name"), str)
            and isinstance(record.get("value"), value_type)
        ):
            raise ValueError(
                f"expected an object with a name and a {value_type.__name__} value"
            )
    return record["name"], record["value"]


def _construct_foreign(name: str, ctx: DecodeContext) -> Any:
    cls = ctx.classes.lookup(name)
    if cls is None:
        raise UnresolvableForeignTypeError(
            "No class is registered under the name", name=name
        )
    logger.debug("Resolved foreign type name %r to %r", name, cls)
    try:
        return cls()
    except Exception as e:
        raise UnresolvableForeignTypeError(
            f"Class {cls.__qualname__} cannot be created without arguments: {e}",
            name=name,
        ) from e


def _decode_foreign_array(payload: bytes, ctx: DecodeContext) -> object:
    name, elements = _decode_foreign_record("ForeignArray", payload, list)
    foreign_array = _construct_foreign(name, ctx)
    try:
        foreign_array.extend(elements)
    except Exception as e:
        raise UnresolvableForeignTypeError(
            f"Elements cannot be added to a {type(foreign_array).__qualname__}: {e}",
            name=name,
        ) from e
    return foreign_array


def _decode_foreign_object(payload: bytes, ctx: DecodeContext) -> object:
    name, attributes = _decode_foreign_record("ForeignObject", payload, dict)
    foreign_object = _construct_foreign(name, ctx)
    try:
        for attribute, value in attributes.items():
            setattr(foreign_object, attribute, value)
    except Exception as e:
        raise UnresolvableForeignTypeError(
            f"Attributes cannot be set on a {type(foreign_object).__qualname__}: {e}",
            name=name,
        ) from e
    return foreign_object


default_type_registry: Final = TypeRegistry(
    [
        TypeDescriptor(
            "NaN",
            match=_is_nan,
            encode=_encode_empty,
            decode=_decode_empty(partial(float, "nan"), "NaN"),
        ),
        TypeDescriptor(
            "undefined",
            match=lambda value: value is JSUndefined,
            encode=_encode_empty,
            decode=_decode_empty(lambda: JSUndefined, "undefined"),
        ),
        TypeDescriptor(
            "Infinity",
            match=_is_infinity,
            encode=_encode_empty,
            decode=_decode_empty(partial(float, "inf"), "Infinity"),
        ),
        TypeDescriptor(
            "BIGINT", match=_is_bigint, encode=_encode_bigint, decode=_decode_bigint
        ),
        TypeDescriptor(
            "JSON",
            match=_is_json_primitive,
            encode=_encode_json_primitive,
            decode=_decode_json,
        ),
        TypeDescriptor(
            "ARRAY",
            match=_is_array,
            encode=_encode_array,
            decode=_decode_array,
            composite=Composite.ARRAY,
        ),
        TypeDescriptor(
            "OBJECT",
            match=_is_object,
            encode=_encode_object,
            decode=_decode_object,
            composite=Composite.OBJECT,
        ),
        TypeDescriptor("DATE", match=_is_date, encode=_encode_date, decode=_decode_date),
        TypeDescriptor(
            "REGEX", match=_is_regex, encode=_encode_regex, decode=_decode_regex
        ),
        TypeDescriptor(
            "ArrayBuffer",
            match=_is_array_buffer,
            encode=_encode_buffer,
            decode=_decode_array_buffer,
        ),
        TypeDescriptor(
            "Buffer", match=_is_buffer, encode=_encode_buffer, decode=_decode_buffer
        ),
        TypeDescriptor(
            "CircularRef",
            match=_is_circular_reference,
            encode=_encode_circular_reference,
            decode=_decode_circular_reference,
        ),
        _error_descriptor(JSReferenceError, ReferenceError),
        _error_descriptor(JSSyntaxError, SyntaxError),
        _error_descriptor(JSRangeError, ValueError),
        _error_descriptor(JSTypeError, TypeError),
        _error_descriptor(JSError, BaseException),
        TypeDescriptor(
            "WeakMap",
            match=_is_weak_map,
            encode=_refuse("weakly-referenced containers are not serializable"),
        ),
        TypeDescriptor(
            "WeakSet",
            match=_is_weak_set,
            encode=_refuse("weakly-referenced containers are not serializable"),
        ),
        TypeDescriptor(
            "Map",
            match=_is_map,
            encode=_encode_map,
            decode=_decode_map,
            composite=Composite.MAP,
        ),
        TypeDescriptor(
            "Set",
            match=_is_set,
            encode=_encode_array,
            decode=_decode_set,
            composite=Composite.SET,
        ),
        *(_typed_array_descriptor(kind) for kind in TypedArrayKind),
        TypeDescriptor(
            "function",
            match=_is_function,
            encode=_refuse("functions and classes are not serializable"),
        ),
        TypeDescriptor(
            "JSONable", match=_has_json_hook, encode=_encode_json_hook, decode=_decode_json
        ),
        TypeDescriptor(
            "ForeignArray",
            match=_is_foreign_array,
            encode=_encode_foreign_array,
            decode=_decode_foreign_array,
        ),
        TypeDescriptor(
            "ForeignObject",
            match=_is_foreign_object,
            encode=_encode_foreign_object,
            decode=_decode_foreign_object,
        ),
    ]
)
"""The default value kinds, in priority order."""
