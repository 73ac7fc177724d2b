from __future__ import annotations

from traceback import format_exception
from typing import ClassVar


class JSError(Exception):
    """An exception reconstructed from a serialized error.

    Serialized errors carry a name, a message and a stack trace string. The
    name is usually the class name of the exception that was serialized, so a
    `KeyError` deserializes as a `JSError` with `name='KeyError'`. The named
    kinds deserialize as the subclasses of `JSError` that also extend the
    matching Python exception, for example `JSTypeError` is a `TypeError`.

    Parameters
    ----------
    message
        A description of the error.
    name
        The name of the error type. Defaults to the kind's name.
    stack
        The stack trace detailing where the error happened.

    Examples
    --------
    >>> err = JSTypeError("bad operand", name="TypeError")
    >>> isinstance(err, TypeError)
    True
    >>> err
    JSTypeError(name='TypeError', message='bad operand', stack=None)
    """

    kind_name: ClassVar[str] = "Error"
    """The name of the error kind this class represents when serialized."""

    name: str
    stack: str | None

    def __init__(
        self,
        message: str | None = None,
        *,
        name: str | None = None,
        stack: str | None = None,
    ) -> None:
        if message is None:
            message = ""
        super(JSError, self).__init__(message)
        self.name = self.kind_name if name is None else name
        self.stack = stack

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    @message.setter
    def message(self, message: str | None) -> None:
        self.args = (message or "",)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, message={self.message!r}, "
            f"stack={self.stack!r})"
        )

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if isinstance(other, JSError):
            return (type(self), self.name, self.message, self.stack) == (
                type(other),
                other.name,
                other.message,
                other.stack,
            )
        return NotImplemented

    __hash__ = Exception.__hash__


class JSReferenceError(JSError, ReferenceError):
    kind_name = "ReferenceError"


class JSSyntaxError(JSError, SyntaxError):
    kind_name = "SyntaxError"


class JSRangeError(JSError, ValueError):
    """A value was outside the range or set of allowed values."""

    kind_name = "RangeError"


class JSTypeError(JSError, TypeError):
    kind_name = "TypeError"


def error_fields(error: BaseException) -> tuple[str, str, str | None]:
    """
    Get the name, message and stack trace of an exception.

    `JSError` instances report the fields they were created with. Other
    exceptions use their class name and `str()`; their stack is the formatted
    traceback, or `None` if the exception has never been raised.

    >>> error_fields(ValueError("too low"))
    ('ValueError', 'too low', None)
    >>> error_fields(JSError("gone", name="KeyError", stack="KeyError: gone"))
    ('KeyError', 'gone', 'KeyError: gone')
    """
    if isinstance(error, JSError):
        return error.name, error.message, error.stack
    stack = None
    if error.__traceback__ is not None:
        stack = "".join(
            format_exception(type(error), error, error.__traceback__)
        ).rstrip()
    return type(error).__name__, str(error), stack
