from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from segserialize._errors import DepthLimitError, UnknownTagError
from segserialize.classes import ClassRegistry
from segserialize.constants import DEFAULT_MAX_DEPTH
from segserialize.framing import unframe_exactly
from segserialize.references import restore_references
from segserialize.registry import TypeRegistry, default_type_registry

if TYPE_CHECKING:
    from _typeshed import SupportsRead
    from typing_extensions import Buffer


class DecodeContext(Protocol):
    """Maintains the state needed to decode a value and its children."""

    if TYPE_CHECKING:

        @property
        def registry(self) -> TypeRegistry:
            """The `TypeRegistry` used to decode tagged payloads."""

        @property
        def classes(self) -> ClassRegistry:
            """The classes that foreign objects and arrays can be decoded as."""

    else:
        registry: TypeRegistry
        """The `TypeRegistry` used to decode tagged payloads."""
        classes: ClassRegistry
        """The classes that foreign objects and arrays can be decoded as."""

    def decode_value(self, data: bytes) -> object:
        """Decode a single value from a framed tag name and its framed payload."""


@dataclass(init=False, slots=True)
class DefaultDecodeContext(DecodeContext):
    registry: TypeRegistry
    classes: ClassRegistry
    max_depth: int | None
    depth: int

    def __init__(
        self,
        registry: TypeRegistry | None = None,
        *,
        classes: ClassRegistry | None = None,
        max_depth: int | None = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.registry = default_type_registry if registry is None else registry
        self.classes = ClassRegistry() if classes is None else classes
        self.max_depth = max_depth
        self.depth = 0

    def decode_value(self, data: bytes) -> object:
        tag_data, payload = unframe_exactly(data, 2)
        try:
            tag_name = tag_data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnknownTagError("Tag name is not valid UTF-8", tag=tag_data) from e

        if self.max_depth is not None and self.depth > self.max_depth:
            raise DepthLimitError(
                f"Cannot decode a {tag_name} value: values are nested more than "
                f"{self.max_depth} levels deep",
                max_depth=self.max_depth,
            )
        self.depth += 1
        try:
            return self.registry.decode(tag_name, payload, self)
        finally:
            self.depth -= 1


def _as_bytes(data: Buffer) -> bytes:
    if isinstance(data, bytes):
        return data
    with memoryview(data) as view:
        return view.tobytes()


@dataclass(init=False, slots=True)
class Decoder:
    """
    A re-usable configuration for deserializing data.

    The `registry`, `classes` and `max_depth` arguments behave as described for
    [`loads()`]. The `decodes()` method behaves like `loads()` without needing
    to pass the arguments for every call.

    [`loads()`]: `segserialize.loads`

    Parameters
    ----------
    registry
        The value kinds that can be decoded.
    classes
        The classes that foreign objects and arrays can be decoded as. Foreign
        values cannot be decoded unless their class is registered.
    max_depth
        The limit on how deeply values may be nested, or `None` for no limit.
    """

    registry: TypeRegistry
    classes: ClassRegistry
    max_depth: int | None

    def __init__(
        self,
        *,
        registry: TypeRegistry | None = None,
        classes: ClassRegistry | None = None,
        max_depth: int | None = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.registry = default_type_registry if registry is None else registry
        self.classes = ClassRegistry() if classes is None else classes
        self.max_depth = max_depth

    def decodes(self, data: Buffer) -> object:
        """
        Deserialize a value from a bytes-like object.

        Parameters
        ----------
        data
            The bytes to deserialize, as any object supporting the buffer
            protocol, such as `bytes`, `bytearray` or `memoryview`.

        Returns
        -------
        :
            The deserialized value, with reference cycles restored.
        """
        ctx = DefaultDecodeContext(
            self.registry, classes=self.classes, max_depth=self.max_depth
        )
        return restore_references(ctx.decode_value(_as_bytes(data)))

    def decode(self, fp: SupportsRead[bytes]) -> object:
        """Deserialize a value from the whole content of a binary file object."""
        return self.decodes(fp.read())


def loads(
    data: Buffer,
    *,
    registry: TypeRegistry | None = None,
    classes: ClassRegistry | None = None,
    max_depth: int | None = DEFAULT_MAX_DEPTH,
) -> object:
    """
    Deserialize a Python value from data created by `dumps()`.

    Parameters
    ----------
    data
        The bytes to deserialize, as any object supporting the buffer protocol.
    registry
        The value kinds that can be decoded. Defaults to `default_type_registry`.
    classes
        The classes that foreign objects and arrays can be decoded as.
    max_depth
        The limit on how deeply values may be nested, or `None` for no limit.

    Returns
    -------
    :
        The deserialized value.

    Raises
    ------
    MalformedFrameError
        When the data is truncated or its framing is corrupt.
    UnknownTagError
        When the data contains a value kind that `registry` cannot decode.
    UnresolvableForeignTypeError
        When a foreign object or array's class is not registered in `classes`.
    DecodeError
        Is the parent of all data-specific errors thrown when decoding.

    Examples
    --------
    >>> from segserialize import dumps
    >>> a = {'name': 'a'}
    >>> a['self'] = a
    >>> result = loads(dumps(a))
    >>> result['self'] is result
    True

    Data can be any bytes-like object:

    >>> loads(bytearray(dumps([1, 2.5, 'three'])))
    [1, 2.5, 'three']
    """
    decoder = Decoder(registry=registry, classes=classes, max_depth=max_depth)
    return decoder.decodes(data)


deserialize = loads
