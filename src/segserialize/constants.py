from __future__ import annotations

from enum import Enum
from typing import Final

FLOAT64_SAFE_INT_RANGE: Final = range(-(2**53 - 1), 2**53)
"""The range of integers which a 64-bit float can represent without loss.

Integers outside this range are serialized as `BIGINT` rather than `JSON`.
"""

DEFAULT_MAX_DEPTH: Final = 200
"""The default limit on how deeply values may be nested when encoding/decoding."""


class Composite(Enum):
    """The container kinds that the cycle normalizer descends into."""

    ARRAY = "ARRAY"
    OBJECT = "OBJECT"
    MAP = "Map"
    SET = "Set"

    def __repr__(self) -> str:
        return f"{type(self).__name__}.{self._name_}"
