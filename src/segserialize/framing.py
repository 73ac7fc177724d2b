"""Length-prefixed framing of byte blocks.

Each block is written as an unsigned LEB128 varint holding the block's length,
followed by the block's bytes. A concatenation of framed blocks can be split
back into the original blocks without any other delimiter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from segserialize._errors import MalformedFrameError

if TYPE_CHECKING:
    from typing_extensions import Never


def encode_varint(n: int) -> bytes:
    if n < 0:
        raise ValueError(f"varint must be non-negative: {n}")
    data = bytearray()
    while True:
        uint7 = n & 0b1111111
        n >>= 7
        if n == 0:
            data.append(uint7)
            return bytes(data)
        data.append(uint7 | 0b10000000)


def frame(data: bytes | bytearray | memoryview) -> bytes:
    """Prefix a block of bytes with its length, making it self-delimiting.

    >>> frame(b'abc')
    b'\\x03abc'
    >>> frame(b'')
    b'\\x00'
    """
    return encode_varint(len(data)) + bytes(data)


@dataclass(slots=True)
class FrameReader:
    """Read framed blocks one at a time from a byte string."""

    data: bytes
    pos: int = field(default=0)

    @property
    def eof(self) -> bool:
        return self.pos == len(self.data)

    def throw(self, message: str, *, cause: BaseException | None = None) -> Never:
        raise MalformedFrameError(
            message, data=self.data, position=self.pos
        ) from cause

    def ensure_capacity(self, count: int) -> None:
        if self.pos + count > len(self.data):
            available = max(0, len(self.data) - self.pos)
            self.throw(
                f"Data truncated: Expected {count} bytes at position {self.pos} but "
                f"{available} available"
            )

    def read_varint(self) -> int:
        data = self.data
        varint = 0
        offset = 0
        for pos in range(self.pos, len(data)):
            encoded = data[pos]
            uint7 = encoded & 0b1111111
            varint += uint7 << offset
            # The most-significant bit is set except on the final byte
            if encoded == uint7:
                self.pos = pos + 1
                return varint
            offset += 7
        count = len(data) - self.pos
        self.pos = len(data)
        self.throw(
            f"Data truncated: end of data while reading varint after reading "
            f"{count} bytes"
        )

    def read_frame(self) -> bytes:
        length = self.read_varint()
        self.ensure_capacity(length)
        block = self.data[self.pos : self.pos + length]
        self.pos += length
        return block


def unframe(data: bytes) -> list[bytes]:
    """Split a concatenation of framed blocks into the original blocks.

    >>> unframe(frame(b'abc') + frame(b'') + frame(b'de'))
    [b'abc', b'', b'de']

    Raises
    ------
    MalformedFrameError
        If a length header or a block is truncated.
    """
    reader = FrameReader(bytes(data))
    blocks = []
    while not reader.eof:
        blocks.append(reader.read_frame())
    return blocks


def unframe_exactly(data: bytes, count: int) -> list[bytes]:
    """Split `data` into blocks, requiring exactly `count` of them."""
    blocks = unframe(data)
    if len(blocks) != count:
        raise MalformedFrameError(
            f"Expected {count} framed blocks but found {len(blocks)}",
            data=bytes(data),
            position=len(data),
        )
    return blocks
