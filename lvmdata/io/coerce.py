# lvmdata/io/coerce.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional

from lvmdata.core.document import CoercionFallback
from lvmdata.core.value import Value
from lvmdata.io.config import ConfigStack
from lvmdata.io.timestamps import parse_timestamp, parse_timestamp_format


logger = logging.getLogger(__name__)


class HintKind(Enum):
    AUTO = "Auto"
    INTEGER = "Integer"
    FLOAT = "Float"
    BOOLEAN = "Boolean"
    TIMESTAMP = "Timestamp"
    TEXT = "Text"


@dataclass(frozen=True, slots=True)
class TypeHint:
    """
    Requested type for a raw field.

    decimal_separator only applies to FLOAT (None = the active separator);
    format only applies to TIMESTAMP (a strptime format, None = the
    built-in date/time grammar).
    """
    kind: HintKind = HintKind.AUTO
    decimal_separator: Optional[str] = None
    format: Optional[str] = None

    def __str__(self) -> str:
        if self.kind is HintKind.FLOAT and self.decimal_separator:
            return f"Float({self.decimal_separator})"
        if self.kind is HintKind.TIMESTAMP and self.format:
            return f"Timestamp({self.format})"
        return self.kind.value

    @classmethod
    def auto(cls) -> "TypeHint":
        return cls(HintKind.AUTO)

    @classmethod
    def integer(cls) -> "TypeHint":
        return cls(HintKind.INTEGER)

    @classmethod
    def real(cls, decimal_separator: Optional[str] = None) -> "TypeHint":
        if decimal_separator not in (None, ".", ","):
            raise ValueError("decimal_separator must be '.', ',' or None")
        return cls(HintKind.FLOAT, decimal_separator=decimal_separator)

    @classmethod
    def boolean(cls) -> "TypeHint":
        return cls(HintKind.BOOLEAN)

    @classmethod
    def timestamp(cls, fmt: Optional[str] = None) -> "TypeHint":
        return cls(HintKind.TIMESTAMP, format=fmt)

    @classmethod
    def text(cls) -> "TypeHint":
        return cls(HintKind.TEXT)


AUTO = TypeHint.auto()


class Coercion(NamedTuple):
    value: Value
    fell_back: bool


# ---- grammars ----
_INT_RE = re.compile(r"[+-]?\d+")
_SPECIAL_FLOAT_RE = re.compile(r"[+-]?(?:inf|infinity|nan)", re.IGNORECASE)
_FLOAT_RES = {
    sep: re.compile(
        r"[+-]?(?:\d+(?:{s}\d*)?|{s}\d+)(?:[eE][+-]?\d+)?".format(s=re.escape(sep))
    )
    for sep in (".", ",")
}

_TRUE = frozenset({"yes", "true", "1"})
_FALSE = frozenset({"no", "false", "0"})


class Coercer:
    """
    Converts raw field text into typed Values.

    The decimal separator comes from the active ParseConfig. When no
    configuration declares one, the first float candidate decides: a value
    that only parses with "," locks "," (and likewise for ".") for the rest
    of the coercer's life.

    Values that do not match a non-Text hint are kept as String; each such
    fallback is recorded in `fallbacks`.
    """

    def __init__(self, config_stack: ConfigStack | None = None) -> None:
        self._stack = config_stack or ConfigStack()
        self._detected: Optional[str] = None
        self.fallbacks: list[CoercionFallback] = []

    @property
    def decimal_separator(self) -> Optional[str]:
        return self._stack.current.decimal_separator or self._detected

    # ---- scalar grammars ----
    def _float(self, s: str, sep: Optional[str]) -> Optional[float]:
        if _SPECIAL_FLOAT_RE.fullmatch(s):
            return float(s)
        if sep is not None:
            if _FLOAT_RES[sep].fullmatch(s):
                return float(s.replace(sep, "."))
            return None
        # undeclared: first observed separator wins
        for candidate in (".", ","):
            if _FLOAT_RES[candidate].fullmatch(s):
                if candidate in s and self._detected is None:
                    self._detected = candidate
                    logger.debug("decimal separator detected from value %r: %r", s, candidate)
                return float(s.replace(candidate, "."))
        return None

    def _auto(self, raw: str) -> Value:
        s = raw.strip()
        if not s:
            return Value.null()
        if _INT_RE.fullmatch(s):
            return Value.integer(int(s))
        f = self._float(s, self.decimal_separator)
        if f is not None:
            return Value.real(f)
        t = parse_timestamp(s)
        if t is not None:
            return Value.timestamp(t)
        return Value.text(raw)

    def _typed(self, raw: str, hint: TypeHint) -> Optional[Value]:
        s = raw.strip()
        if hint.kind is HintKind.TEXT:
            return Value.text(raw)
        if not s:
            return Value.null()
        if hint.kind is HintKind.INTEGER:
            return Value.integer(int(s)) if _INT_RE.fullmatch(s) else None
        if hint.kind is HintKind.FLOAT:
            f = self._float(s, hint.decimal_separator or self.decimal_separator)
            return None if f is None else Value.real(f)
        if hint.kind is HintKind.BOOLEAN:
            low = s.lower()
            if low in _TRUE:
                return Value.boolean(True)
            if low in _FALSE:
                return Value.boolean(False)
            return None
        if hint.kind is HintKind.TIMESTAMP:
            t = parse_timestamp_format(s, hint.format) if hint.format else parse_timestamp(s)
            return None if t is None else Value.timestamp(t)
        return self._auto(raw)

    # ---- public API ----
    def convert(
        self,
        raw: str,
        hint: TypeHint = AUTO,
        *,
        line: int | None = None,
        column: str = "",
    ) -> Coercion:
        """Coerce `raw`, reporting whether it fell back to String."""
        if hint.kind is HintKind.AUTO:
            return Coercion(self._auto(raw), False)

        value = self._typed(raw, hint)
        if value is not None:
            return Coercion(value, False)

        self.fallbacks.append(CoercionFallback(line=line, column=column, raw=raw, hint=str(hint)))
        logger.debug("line %s, %s: %r does not match %s, kept as String", line, column, raw, hint)
        return Coercion(Value.text(raw), True)

    def coerce(
        self,
        raw: str,
        hint: TypeHint = AUTO,
        *,
        line: int | None = None,
        column: str = "",
    ) -> Value:
        return self.convert(raw, hint, line=line, column=column).value

    # ---- rollback ----
    def mark(self) -> tuple[int, Optional[str]]:
        return len(self.fallbacks), self._detected

    def rewind(self, mark: tuple[int, Optional[str]]) -> None:
        """Forget fallbacks and separator detection made since `mark`."""
        n, detected = mark
        del self.fallbacks[n:]
        self._detected = detected
