from __future__ import annotations

from dataclasses import dataclass

import pytest

from segserialize._errors import (
    CircularLocatorError,
    DecodeError,
    DepthLimitError,
    EncodeError,
    MalformedFrameError,
    MalformedPayloadError,
    SegSerializeError,
    UnknownTagError,
    UnresolvableForeignTypeError,
    UnsupportedTypeError,
)
from segserialize.references import MapKeyStep


@dataclass(init=False)
class ExampleSegSerializeError(SegSerializeError):
    level: int
    limit: float

    def __init__(self, message: str, *, level: int, limit: float) -> None:
        super().__init__(message)
        self.level = level
        self.limit = limit


def test_segserializeerror_str_with_fields() -> None:
    assert (
        str(ExampleSegSerializeError("Level too high", level=3, limit=2.123))
        == "Level too high: level=3, limit=2.123"
    )


@dataclass(init=False)
class RecursiveSegSerializeError(SegSerializeError):
    obj: object

    def __init__(self, message: str, *, obj: object) -> None:
        super().__init__(message)
        self.obj = obj


def test_segserializeerror_str_with_recursive_dataclass_field() -> None:
    @dataclass(repr=False, init=False)
    class RecursiveThing:
        obj: object

        def __init__(self) -> None:
            self.obj = self

        def __repr__(self) -> str:
            return "RecursiveThing()"

    assert (
        str(RecursiveSegSerializeError("Example", obj=RecursiveThing()))
        == "Example: obj=RecursiveThing()"
    )


def test_segserializeerror_str_without_fields() -> None:
    assert str(SegSerializeError("Something went wrong")) == "Something went wrong"
    assert SegSerializeError("Something went wrong").message == "Something went wrong"


def test_error_fields_in_str() -> None:
    assert str(UnknownTagError("Msg", tag="Symbol")) == "Msg: tag='Symbol'"
    assert (
        str(MalformedFrameError("Msg", position=2, data=b"foo"))
        == "Msg: position=2, data=b'foo'"
    )
    assert (
        str(CircularLocatorError("Msg", locator=("a", MapKeyStep(0))))
        == "Msg: locator=('a', MapKeyStep(index=0))"
    )
    assert str(DepthLimitError("Msg", max_depth=3)) == "Msg: max_depth=3"


def test_error_repr() -> None:
    assert (
        repr(UnresolvableForeignTypeError("Msg", name="Point"))
        == "UnresolvableForeignTypeError(message='Msg', name='Point')"
    )


def test_malformed_frame_error_abbreviates_long_data() -> None:
    data = bytes(range(100))
    error = MalformedFrameError("Truncated", position=100, data=data)
    head = repr(data[:32])

    assert str(error) == f"Truncated: position=100, data={head}... (100 bytes)"
    assert repr(error) == (
        f"MalformedFrameError(message='Truncated', position=100, "
        f"data={head}... (100 bytes))"
    )
    assert error.data == data


def test_malformed_frame_error_repr_short_data() -> None:
    assert (
        repr(MalformedFrameError("Msg", position=1, data=b"\x01"))
        == "MalformedFrameError(message='Msg', position=1, data=b'\\x01')"
    )


@pytest.mark.parametrize(
    "error,parents",
    [
        (UnsupportedTypeError("Msg", value=1), (EncodeError, ValueError)),
        (DepthLimitError("Msg", max_depth=1), (SegSerializeError, RecursionError)),
        (MalformedFrameError("Msg", position=0, data=b""), (DecodeError, ValueError)),
        (MalformedPayloadError("Msg", tag="JSON"), (DecodeError, ValueError)),
        (UnknownTagError("Msg", tag=b"\xff"), (DecodeError, ValueError)),
        (UnresolvableForeignTypeError("Msg", name="X"), (DecodeError, ValueError)),
        (CircularLocatorError("Msg", locator=()), (DecodeError, ValueError)),
    ],
)
def test_error_hierarchy(
    error: SegSerializeError, parents: tuple[type[Exception], ...]
) -> None:
    assert isinstance(error, SegSerializeError)
    for parent in parents:
        assert isinstance(error, parent)
