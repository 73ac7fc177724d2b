"""Python types for the values that have no exact built-in Python equivalent."""

from __future__ import annotations

from segserialize.jstypes._equality import IdentityKey as IdentityKey
from segserialize.jstypes._equality import identity_key as identity_key
from segserialize.jstypes.jsbuffers import DataType as DataType
from segserialize.jstypes.jsbuffers import TypedArray as TypedArray
from segserialize.jstypes.jsbuffers import TypedArrayKind as TypedArrayKind
from segserialize.jstypes.jserror import JSError as JSError
from segserialize.jstypes.jserror import JSRangeError as JSRangeError
from segserialize.jstypes.jserror import JSReferenceError as JSReferenceError
from segserialize.jstypes.jserror import JSSyntaxError as JSSyntaxError
from segserialize.jstypes.jserror import JSTypeError as JSTypeError
from segserialize.jstypes.jsmap import JSMap as JSMap
from segserialize.jstypes.jsset import JSSet as JSSet
from segserialize.jstypes.jsundefined import JSUndefined as JSUndefined
from segserialize.jstypes.jsundefined import JSUndefinedType as JSUndefinedType
