# lvmdata/core/exceptions.py
from __future__ import annotations


class CoreError(Exception):
    """Base error for all lvmdata exceptions."""


# ---- Validation / construction errors ----
class InvalidValue(CoreError):
    """Raised when a Value payload does not match its kind."""


class InvalidTimeSeries(CoreError):
    """Raised when a TimeSeries is constructed with invalid inputs."""


class InvalidChannel(CoreError):
    """Raised when a Channel is constructed with invalid inputs."""


class InvalidGroup(CoreError):
    """Raised when a Group is constructed with invalid inputs."""


class InvalidDocument(CoreError):
    """Raised when a Document is constructed with invalid inputs."""


# ---- Lookup errors (also behave like KeyError / IndexError) ----
class ChannelNotFound(CoreError, KeyError):
    """Raised when a requested channel name is not present."""


class GroupNotFound(CoreError, IndexError):
    """Raised when a requested group index is not present."""


# ---- Parse errors ----
class ParseError(CoreError):
    """Base error for failures while reading LVM text.

    `line` is the 1-based line number where the failure was detected,
    or None when no line applies (e.g. empty input).
    """

    def __init__(self, message: str, *, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class MalformedEscape(ParseError):
    """Raised when a field holds an unterminated escape sequence or quote."""


class RowArityMismatch(ParseError):
    """Raised when a data row does not have one field per channel column."""

    def __init__(self, *, line: int, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"expected {expected} fields, got {actual}",
            line=line,
        )


class MissingRequiredHeaderKey(ParseError):
    """Raised when the document header lacks a required key."""

    def __init__(self, key: str, *, line: int | None = None) -> None:
        self.key = key
        super().__init__(f"missing required header key '{key}'", line=line)


class UnterminatedSection(ParseError):
    """Raised when input ends (or a new section begins) inside a section."""

    def __init__(self, section: str, *, line: int | None = None) -> None:
        self.section = section
        super().__init__(f"unterminated {section}", line=line)


class InvalidHeaderValue(ParseError):
    """Raised when a configuration key in a header has an unusable value."""

    def __init__(self, key: str, raw: str, *, line: int | None = None) -> None:
        self.key = key
        self.raw = raw
        super().__init__(f"invalid value {raw!r} for header key '{key}'", line=line)


# ---- Deserialization errors ----
class DeserializeError(CoreError):
    """Base error for the deserialization bridge. `path` locates the node."""

    def __init__(self, message: str, *, path: str = "$") -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class TypeMismatch(DeserializeError):
    """Raised when a node's kind (or arity) differs from the requested one."""

    def __init__(self, expected: str, found: str, *, path: str = "$") -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"expected {expected}, found {found}", path=path)


class MissingField(DeserializeError, KeyError):
    """Raised when a required key or index is absent."""

    def __init__(self, key: object, *, path: str = "$") -> None:
        self.key = key
        super().__init__(f"missing field {key!r}", path=path)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]
