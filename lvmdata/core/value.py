# lvmdata/core/value.py
from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from .exceptions import InvalidValue


class Kind(Enum):
    """Tag of a Value node."""

    NULL = "null"
    BOOL = "bool"
    INTEGER = "integer"
    FLOAT = "float"
    TIMESTAMP = "timestamp"
    STRING = "string"
    MAP = "map"
    SEQ = "seq"


SCALAR_KINDS = frozenset(
    {Kind.NULL, Kind.BOOL, Kind.INTEGER, Kind.FLOAT, Kind.TIMESTAMP, Kind.STRING}
)

_TIMESTAMP_TYPES = (dt.datetime, dt.date, dt.time)

_NAN = float("nan")


def _check_payload(kind: Kind, payload: Any) -> None:
    if kind is Kind.NULL:
        ok = payload is None
    elif kind is Kind.BOOL:
        ok = isinstance(payload, bool)
    elif kind is Kind.INTEGER:
        # bool is an int subclass; keep the union closed
        ok = isinstance(payload, int) and not isinstance(payload, bool)
    elif kind is Kind.FLOAT:
        ok = isinstance(payload, float)
    elif kind is Kind.TIMESTAMP:
        ok = isinstance(payload, _TIMESTAMP_TYPES)
    elif kind is Kind.STRING:
        ok = isinstance(payload, str)
    elif kind is Kind.MAP:
        ok = isinstance(payload, tuple) and all(
            isinstance(e, tuple) and len(e) == 2
            and isinstance(e[0], str) and isinstance(e[1], Value)
            for e in payload
        )
    else:
        ok = isinstance(payload, tuple) and all(isinstance(v, Value) for v in payload)

    if not ok:
        raise InvalidValue(
            f"payload of type {type(payload).__name__} is not valid for kind {kind.value}"
        )


@dataclass(frozen=True, slots=True)
class Value:
    """
    Generic, immutable node of a parsed document.

    A closed tagged union: `kind` says which variant it is and `payload`
    holds the Python representation:

    - NULL: None
    - BOOL: bool
    - INTEGER: int
    - FLOAT: float
    - TIMESTAMP: datetime.datetime | datetime.date | datetime.time
    - STRING: str
    - MAP: tuple of (key, Value) pairs, in order, duplicates allowed
    - SEQ: tuple of Value
    """
    kind: Kind
    payload: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, Kind):
            raise InvalidValue("Value.kind must be a Kind.")
        _check_payload(self.kind, self.payload)
        if self.kind is Kind.FLOAT and math.isnan(self.payload):
            object.__setattr__(self, "payload", _NAN)

    def __eq__(self, other: object) -> bool:
        # NaN payloads share one object, so two NaN floats compare equal
        if not isinstance(other, Value):
            return NotImplemented
        return self.kind is other.kind and (
            self.payload is other.payload or self.payload == other.payload
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.payload))

    # ---- constructors ----
    @classmethod
    def null(cls) -> "Value":
        return _NULL

    @classmethod
    def boolean(cls, b: bool) -> "Value":
        return cls(Kind.BOOL, b)

    @classmethod
    def integer(cls, i: int) -> "Value":
        return cls(Kind.INTEGER, i)

    @classmethod
    def real(cls, f: float) -> "Value":
        return cls(Kind.FLOAT, float(f))

    @classmethod
    def timestamp(cls, t: dt.datetime | dt.date | dt.time) -> "Value":
        return cls(Kind.TIMESTAMP, t)

    @classmethod
    def text(cls, s: str) -> "Value":
        return cls(Kind.STRING, s)

    @classmethod
    def mapping(cls, entries: Mapping[str, "Value"] | Iterable[tuple[str, "Value"]]) -> "Value":
        if isinstance(entries, Mapping):
            entries = entries.items()
        return cls(Kind.MAP, tuple((k, v) for k, v in entries))

    @classmethod
    def sequence(cls, items: Iterable["Value"]) -> "Value":
        return cls(Kind.SEQ, tuple(items))

    @classmethod
    def from_python(cls, obj: Any) -> "Value":
        """Build a Value tree from plain Python objects."""
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return _NULL
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, int):
            return cls.integer(obj)
        if isinstance(obj, float):
            return cls.real(obj)
        if isinstance(obj, _TIMESTAMP_TYPES):
            return cls.timestamp(obj)
        if isinstance(obj, str):
            return cls.text(obj)
        if isinstance(obj, Mapping):
            return cls.mapping((str(k), cls.from_python(v)) for k, v in obj.items())
        if isinstance(obj, (list, tuple)):
            return cls.sequence(cls.from_python(v) for v in obj)
        raise InvalidValue(f"cannot convert {type(obj).__name__} to a Value")

    # ---- inspection ----
    @property
    def is_null(self) -> bool:
        return self.kind is Kind.NULL

    @property
    def is_scalar(self) -> bool:
        return self.kind in SCALAR_KINDS

    def to_python(self) -> Any:
        """
        Convert to plain Python objects (dict / list / scalars).

        Duplicate MAP keys collapse to their last occurrence.
        """
        if self.kind is Kind.MAP:
            return {k: v.to_python() for k, v in self.payload}
        if self.kind is Kind.SEQ:
            return [v.to_python() for v in self.payload]
        return self.payload


_NULL = Value(Kind.NULL, None)
