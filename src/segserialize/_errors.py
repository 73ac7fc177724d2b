from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Final, cast

if TYPE_CHECKING:
    from segserialize.references import Locator

_ABBREVIATE_BYTES_OVER: Final = 32


def _field_repr(value: object) -> str:
    if isinstance(value, (bytes, bytearray)) and len(value) > _ABBREVIATE_BYTES_OVER:
        head = bytes(value[:_ABBREVIATE_BYTES_OVER])
        return f"{head!r}... ({len(value)} bytes)"
    return repr(value)


@dataclass(init=False)
class SegSerializeError(Exception):
    """The base class that all segserialize errors are subclasses of."""

    if not TYPE_CHECKING:
        message: str  # needed to have dataclass include message in the repr, etc

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)

    @property
    def message(self) -> str:
        return cast(str, self.args[0])

    def __str__(self) -> str:
        field_values = [
            (f.name, getattr(self, f.name)) for f in fields(self) if f.name != "message"
        ]
        values_fmt = ", ".join(f"{f}={_field_repr(v)}" for (f, v) in field_values)

        if values_fmt:
            return f"{self.message}: {values_fmt}"
        return self.message


@dataclass(init=False)
class EncodeError(SegSerializeError, ValueError):
    pass


@dataclass(init=False)
class UnsupportedTypeError(EncodeError):
    """
    A value cannot be represented in the serialized format.

    Raised when no type descriptor matches a value, or when the matching
    descriptor refuses to encode values of its kind (functions and weak
    containers).
    """

    value: object

    def __init__(self, message: str, *args: object, value: object) -> None:
        super().__init__(message, *args)
        self.value = value


@dataclass(init=False)
class DepthLimitError(SegSerializeError, RecursionError):
    """Values are nested more deeply than the configured `max_depth`."""

    max_depth: int

    def __init__(self, message: str, *, max_depth: int) -> None:
        super().__init__(message)
        self.max_depth = max_depth


@dataclass(init=False)
class DecodeError(SegSerializeError, ValueError):
    pass


@dataclass(init=False, repr=False)
class MalformedFrameError(DecodeError):
    """Length-prefixed data is truncated or does not split as expected."""

    position: int
    data: bytes

    def __init__(
        self, message: str, *args: object, position: int, data: bytes
    ) -> None:
        super().__init__(message, *args)
        self.position = position
        self.data = data

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"position={self.position!r}, data={_field_repr(self.data)})"
        )


@dataclass(init=False)
class MalformedPayloadError(DecodeError):
    """A well-framed payload cannot be parsed by the decoder of its tag."""

    tag: str

    def __init__(self, message: str, *args: object, tag: str) -> None:
        super().__init__(message, *args)
        self.tag = tag


@dataclass(init=False)
class UnknownTagError(DecodeError):
    """No type descriptor is able to decode a tag name."""

    tag: str | bytes

    def __init__(self, message: str, *args: object, tag: str | bytes) -> None:
        super().__init__(message, *args)
        self.tag = tag


@dataclass(init=False)
class UnresolvableForeignTypeError(DecodeError):
    """
    A foreign object or array names a class that cannot be reconstructed.

    The class name must be registered with the `ClassRegistry` given to the
    decoder, and the class must be constructible without arguments.
    """

    name: str

    def __init__(self, message: str, *args: object, name: str) -> None:
        super().__init__(message, *args)
        self.name = name


@dataclass(init=False)
class CircularLocatorError(DecodeError):
    """A back-reference's locator does not resolve against the decoded value."""

    locator: Locator

    def __init__(self, message: str, *args: object, locator: Locator) -> None:
        super().__init__(message, *args)
        self.locator = locator
