"""
The `undefined` sentinel.

Values can be absent without being null: `JSUndefined` round-trips through
the `undefined` tag, while `None` is written as JSON `null`.

>>> JSUndefined
JSUndefined
>>> bool(JSUndefined)
False
>>> JSUndefined is None
False
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Final, Literal

if TYPE_CHECKING:
    from typing_extensions import TypeAlias


class JSUndefinedEnum(Enum):
    # A single-member enum keeps the sentinel a singleton through copy and pickle
    JSUndefined = "undefined"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return self._name_

    __str__ = __repr__


JSUndefinedType: TypeAlias = Literal[JSUndefinedEnum.JSUndefined]
JSUndefined: Final = JSUndefinedEnum.JSUndefined
