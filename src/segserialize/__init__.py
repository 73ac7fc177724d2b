"""The main public API of segserialize."""

from __future__ import annotations

from segserialize._errors import CircularLocatorError as CircularLocatorError
from segserialize._errors import DecodeError as DecodeError
from segserialize._errors import DepthLimitError as DepthLimitError
from segserialize._errors import EncodeError as EncodeError
from segserialize._errors import MalformedFrameError as MalformedFrameError
from segserialize._errors import MalformedPayloadError as MalformedPayloadError
from segserialize._errors import SegSerializeError as SegSerializeError
from segserialize._errors import UnknownTagError as UnknownTagError
from segserialize._errors import (
    UnresolvableForeignTypeError as UnresolvableForeignTypeError,
)
from segserialize._errors import UnsupportedTypeError as UnsupportedTypeError
from segserialize.classes import ClassRegistry as ClassRegistry
from segserialize.constants import DEFAULT_MAX_DEPTH as DEFAULT_MAX_DEPTH
from segserialize.constants import Composite as Composite
from segserialize.decode import Decoder as Decoder
from segserialize.decode import deserialize as deserialize
from segserialize.decode import loads as loads
from segserialize.encode import Encoder as Encoder
from segserialize.encode import dumps as dumps
from segserialize.encode import serialize as serialize
from segserialize.references import CircularReference as CircularReference
from segserialize.references import MapKeyStep as MapKeyStep
from segserialize.references import MapValueStep as MapValueStep
from segserialize.references import SetMemberStep as SetMemberStep
from segserialize.references import normalize_references as normalize_references
from segserialize.references import resolve_locator as resolve_locator
from segserialize.references import restore_references as restore_references
from segserialize.registry import TypeDescriptor as TypeDescriptor
from segserialize.registry import TypeRegistry as TypeRegistry
from segserialize.registry import default_type_registry as default_type_registry
