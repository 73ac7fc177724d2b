from __future__ import annotations

import struct
import sys
from array import array
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, overload

if TYPE_CHECKING:
    from typing_extensions import Self


class DataType(Enum):
    """The element types of fixed-width numeric buffers."""

    UnsignedInt = int, "BHILQ"
    SignedInt = int, "bhilq"
    Float = float, "fd"

    python_type: type[int | float]
    """The Python type that represents this data type."""
    array_typecodes: str
    """The `array.array` typecodes of this data type."""

    def __new__(cls, python_type: type[int | float], array_typecodes: str) -> Self:
        obj = object.__new__(cls)
        obj._value_ = (python_type, array_typecodes)
        obj.python_type = python_type
        obj.array_typecodes = array_typecodes
        return obj

    def __repr__(self) -> str:
        return f"{type(self).__name__}.{self._name_}"


class TypedArrayKind(Enum):
    """
    The 11 kinds of fixed-width numeric buffer.

    The value of each kind is the tag name it is serialized with. Elements are
    always stored little-endian, using the `struct` format of the kind.

    >>> TypedArrayKind.Int16Array.itemsize
    2
    >>> TypedArrayKind('BigUint64Array').data_type
    DataType.UnsignedInt
    """

    Int8Array = "Int8Array", "b", DataType.SignedInt
    Uint8Array = "Uint8Array", "B", DataType.UnsignedInt
    # Elements are clamped to 0..255 and rounded when stored, not wrapped.
    Uint8ClampedArray = "Uint8ClampedArray", "B", DataType.UnsignedInt
    Int16Array = "Int16Array", "h", DataType.SignedInt
    Uint16Array = "Uint16Array", "H", DataType.UnsignedInt
    Int32Array = "Int32Array", "i", DataType.SignedInt
    Uint32Array = "Uint32Array", "I", DataType.UnsignedInt
    Float32Array = "Float32Array", "f", DataType.Float
    Float64Array = "Float64Array", "d", DataType.Float
    BigInt64Array = "BigInt64Array", "q", DataType.SignedInt
    BigUint64Array = "BigUint64Array", "Q", DataType.UnsignedInt

    format: str
    """The `struct` format character of one element."""
    data_type: DataType

    def __new__(cls, tag_name: str, format: str, data_type: DataType) -> Self:
        obj = object.__new__(cls)
        obj._value_ = tag_name
        obj.format = format
        obj.data_type = data_type
        return obj

    def __repr__(self) -> str:
        return f"{type(self).__name__}.{self._name_}"

    @property
    def itemsize(self) -> int:
        return struct.calcsize(f"<{self.format}")

    @property
    def clamped(self) -> bool:
        return self is TypedArrayKind.Uint8ClampedArray

    @classmethod
    def for_array(cls, values: array[int] | array[float]) -> TypedArrayKind | None:
        """
        Get the kind with the same element type and width as an `array.array`.

        Returns `None` for typecodes with no numeric equivalent.

        >>> TypedArrayKind.for_array(array('H'))
        TypedArrayKind.Uint16Array
        >>> TypedArrayKind.for_array(array('d'))
        TypedArrayKind.Float64Array
        """
        for data_type in DataType:
            if values.typecode in data_type.array_typecodes:
                break
        else:
            return None
        for kind in cls:
            if (
                not kind.clamped
                and kind.data_type is data_type
                and kind.itemsize == values.itemsize
            ):
                return kind
        return None


def _clamp_uint8(value: float) -> int:
    if value != value:  # NaN
        return 0
    # round() rounds half to even, as clamped arrays do
    return round(max(0.0, min(255.0, value)))


@dataclass(init=False, eq=False, slots=True)
class TypedArray(Sequence[float]):
    """
    A fixed-width numeric buffer of one of the `TypedArrayKind`s.

    Parameters
    ----------
    kind
        The element type of the array.
    values
        Numbers to pack into the array.

    Examples
    --------
    >>> ta = TypedArray(TypedArrayKind.Int16Array, [1, 2, -3])
    >>> ta
    TypedArray(TypedArrayKind.Int16Array, [1, 2, -3])
    >>> ta.data
    b'\\x01\\x00\\x02\\x00\\xfd\\xff'
    >>> TypedArray(TypedArrayKind.Uint8ClampedArray, [-5, 2.5, 300]).tolist()
    [0, 2, 255]

    A TypedArray is equal to an `array.array` of the same kind:

    >>> ta == array('h', [1, 2, -3])
    True
    """

    kind: TypedArrayKind
    data: bytes
    """The little-endian bytes of the elements."""

    def __init__(self, kind: TypedArrayKind, values: Iterable[float] = (), /) -> None:
        if kind.clamped:
            values = map(_clamp_uint8, values)
        items = list(values)
        try:
            data = struct.pack(f"<{len(items)}{kind.format}", *items)
        except struct.error as e:
            raise ValueError(f"Values cannot be stored in a {kind.value}: {e}") from e
        self.kind = kind
        self.data = data

    @classmethod
    def from_bytes(
        cls, kind: TypedArrayKind, data: bytes | bytearray | memoryview
    ) -> Self:
        """Create a TypedArray from the little-endian bytes of its elements."""
        data = bytes(data)
        if len(data) % kind.itemsize:
            raise ValueError(
                f"{kind.value} byte length must be a multiple of {kind.itemsize}: "
                f"{len(data)}"
            )
        typed_array = cls.__new__(cls)
        typed_array.kind = kind
        typed_array.data = data
        return typed_array

    @classmethod
    def from_array(cls, values: array[int] | array[float]) -> Self:
        """Create a TypedArray with the kind and elements of an `array.array`."""
        kind = TypedArrayKind.for_array(values)
        if kind is None:
            raise ValueError(
                f"array typecode {values.typecode!r} has no TypedArrayKind"
            )
        if sys.byteorder == "big":
            values = array(values.typecode, values)
            values.byteswap()
        return cls.from_bytes(kind, values.tobytes())

    def tolist(self) -> list[float]:
        return list(struct.unpack(f"<{len(self)}{self.kind.format}", self.data))

    def __len__(self) -> int:
        return len(self.data) // self.kind.itemsize

    @overload
    def __getitem__(self, index: int, /) -> float: ...

    @overload
    def __getitem__(self, index: slice, /) -> list[float]: ...

    def __getitem__(self, index: int | slice, /) -> float | list[float]:
        if isinstance(index, slice):
            return self.tolist()[index]
        length = len(self)
        if index < 0:
            index += length
        if not 0 <= index < length:
            raise IndexError("TypedArray index out of range")
        (value,) = struct.unpack_from(
            f"<{self.kind.format}", self.data, index * self.kind.itemsize
        )
        return value  # type: ignore[no-any-return]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TypedArray):
            return self.kind is other.kind and self.data == other.data
        if isinstance(other, array):
            return (
                TypedArrayKind.for_array(other) is self.kind
                and other.tolist() == self.tolist()
            )
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind!r}, {self.tolist()!r})"
