from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from segserialize._errors import DepthLimitError
from segserialize.constants import DEFAULT_MAX_DEPTH
from segserialize.framing import frame
from segserialize.references import normalize_references
from segserialize.registry import TypeRegistry, default_type_registry


class EncodeContext(Protocol):
    """Maintains the state needed to encode a value and its children."""

    if TYPE_CHECKING:

        @property
        def registry(self) -> TypeRegistry:
            """The `TypeRegistry` used to choose how values are encoded."""

    else:
        registry: TypeRegistry
        """The `TypeRegistry` used to choose how values are encoded."""

    def encode_value(self, value: object) -> bytes:
        """Encode a single value as a framed tag name followed by its framed payload."""


@dataclass(init=False, slots=True)
class DefaultEncodeContext(EncodeContext):
    registry: TypeRegistry
    max_depth: int | None
    depth: int

    def __init__(
        self,
        registry: TypeRegistry | None = None,
        *,
        max_depth: int | None = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.registry = default_type_registry if registry is None else registry
        self.max_depth = max_depth
        self.depth = 0

    def encode_value(self, value: object) -> bytes:
        descriptor = self.registry.match(value)
        if self.max_depth is not None and self.depth > self.max_depth:
            raise DepthLimitError(
                f"Cannot encode a {descriptor.name} value: values are nested more "
                f"than {self.max_depth} levels deep",
                max_depth=self.max_depth,
            )
        self.depth += 1
        try:
            payload = descriptor.encode(value, self)
        finally:
            self.depth -= 1
        return frame(descriptor.name.encode("utf-8")) + frame(payload)


@dataclass(init=False, slots=True)
class Encoder:
    """
    A re-usable configuration for serializing values.

    The `registry` and `max_depth` arguments behave as described for
    [`dumps()`]. The `encode()` method behaves like `dumps()` without needing
    to pass the arguments for every call.

    [`dumps()`]: `segserialize.dumps`

    Parameters
    ----------
    registry
        The value kinds that can be encoded, in priority order.
    max_depth
        The limit on how deeply values may be nested, or `None` for no limit.
    """

    registry: TypeRegistry
    max_depth: int | None

    def __init__(
        self,
        *,
        registry: TypeRegistry | None = None,
        max_depth: int | None = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.registry = default_type_registry if registry is None else registry
        self.max_depth = max_depth

    def encode(self, value: object) -> bytes:
        """
        Serialize a value, which may contain reference cycles.

        Parameters
        ----------
        value
            The Python object to serialize.

        Returns
        -------
        :
            The encoded bytes.
        """
        acyclic = normalize_references(value, registry=self.registry)
        ctx = DefaultEncodeContext(self.registry, max_depth=self.max_depth)
        return ctx.encode_value(acyclic)


def dumps(
    value: object,
    *,
    registry: TypeRegistry | None = None,
    max_depth: int | None = DEFAULT_MAX_DEPTH,
) -> bytes:
    """
    Serialize a Python value into a self-describing byte string.

    Containers may be nested in each other, and may refer back to themselves.
    References to a container from inside itself are restored when the data is
    deserialized, but a container referenced from two places that are not
    nested in each other is serialized twice, as two separate containers.

    Parameters
    ----------
    value
        The Python value to serialize.
    registry
        The value kinds that can be encoded, in priority order. Defaults to
        `default_type_registry`.
    max_depth
        The limit on how deeply values may be nested, or `None` for no limit.

    Returns
    -------
    :
        The serialized data.

    Raises
    ------
    UnsupportedTypeError
        When a `value` (or a value within it) is of a kind that cannot be
        serialized, like a function.
    DepthLimitError
        When values are nested more deeply than `max_depth`.
    EncodeError
        Is the parent of all data-specific errors thrown when encoding.

    Examples
    --------
    >>> from segserialize import loads
    >>> from segserialize.jstypes import JSSet
    >>> data = dumps({'id': 42, 'tags': JSSet(['foo', 'bar'])})
    >>> loads(data)
    {'id': 42, 'tags': JSSet(['foo', 'bar'])}
    """
    return Encoder(registry=registry, max_depth=max_depth).encode(value)


serialize = dumps
