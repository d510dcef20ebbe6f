# lvmdata/io/lexer.py
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from lvmdata.core.exceptions import MalformedEscape
from lvmdata.io.config import ConfigStack


LABVIEW_ID = "LabVIEW Measurement"
START_OF_HEADER = "Start_of_Header"
END_OF_HEADER = "End_of_Header"

_MARKER_RE = re.compile(r"^\*\*\*(?P<name>[^*]+)\*\*\*$")

# backslash + key -> literal character; the active delimiter is added per line
_ESCAPES = {
    "t": "\t",
    "n": "\n",
    "r": "\r",
    "\\": "\\",
    '"': '"',
}


class LineKind(Enum):
    BLANK = "blank"
    MARKER = "marker"
    DATA = "data"


@dataclass(frozen=True, slots=True)
class Line:
    """One logical line: its 1-based number, classification and fields."""
    number: int
    kind: LineKind
    fields: tuple[str, ...]
    raw: str

    @property
    def marker(self) -> str | None:
        """Name of a `***<name>***` marker line, else None."""
        if self.kind is not LineKind.MARKER:
            return None
        return _MARKER_RE.match(self.fields[0].strip()).group("name")

    @property
    def width(self) -> int:
        return len(self.fields)


def _classify(fields: tuple[str, ...]) -> LineKind:
    if all(not f.strip() for f in fields):
        return LineKind.BLANK
    if _MARKER_RE.match(fields[0].strip()) and all(not f.strip() for f in fields[1:]):
        return LineKind.MARKER
    return LineKind.DATA


def split_fields(raw: str, delimiter: str, *, escapes: bool = True, line: int | None = None) -> tuple[str, ...]:
    """
    Split one line on `delimiter`.

    With escapes enabled:
    - backslash + t / n / r / \\ / " / delimiter gives the literal character;
      any other backslash pair is kept as written
    - a field starting with a double quote runs to the closing quote, and
      delimiters inside it are literal
    A trailing lone backslash or an unclosed quote raises MalformedEscape.
    """
    if not escapes or ("\\" not in raw and '"' not in raw):
        return tuple(raw.split(delimiter))

    fields: list[str] = []
    buf: list[str] = []
    quoted = False
    at_start = True
    i = 0
    n = len(raw)
    while i < n:
        c = raw[i]
        if c == "\\":
            if i + 1 >= n:
                raise MalformedEscape("trailing backslash", line=line)
            nxt = raw[i + 1]
            if nxt == delimiter:
                buf.append(nxt)
            else:
                buf.append(_ESCAPES.get(nxt, "\\" + nxt))
            at_start = False
            i += 2
            continue
        if quoted:
            if c == '"':
                quoted = False
            else:
                buf.append(c)
        elif c == '"' and at_start:
            quoted = True
            at_start = False
        elif c == delimiter:
            fields.append("".join(buf))
            buf = []
            at_start = True
        else:
            buf.append(c)
            at_start = False
        i += 1

    if quoted:
        raise MalformedEscape("unterminated quoted field", line=line)
    fields.append("".join(buf))
    return tuple(fields)


class Lexer:
    """
    Line cursor over LVM text.

    Lines are tokenized when pulled, with the delimiter active at that
    moment, so a Separator header key reconfigures every following line.
    """

    def __init__(self, text: str, config_stack: ConfigStack) -> None:
        raw = text.split("\n")
        raw = [r[:-1] if r.endswith("\r") else r for r in raw]
        # tolerate trailing blank lines
        while raw and not raw[-1].strip():
            raw.pop()
        self._raw = raw
        self._pos = 0
        self._stack = config_stack
        self._cache: tuple[int, str, bool, Line] | None = None

    def __iter__(self) -> Iterator[Line]:
        while not self.at_eof:
            yield self.advance()

    @property
    def at_eof(self) -> bool:
        return self._pos >= len(self._raw)

    @property
    def line_number(self) -> int:
        """Number of the next line to be pulled."""
        return self._pos + 1

    def sniff_delimiter(self) -> str | None:
        """The delimiter announced by a leading `LabVIEW Measurement<sep>` id line."""
        if not self._raw or not self._raw[0].startswith(LABVIEW_ID):
            return None
        rest = self._raw[0][len(LABVIEW_ID):]
        if len(rest) == 1 and not rest.isalnum():
            return rest
        return None

    def _line(self, pos: int) -> Line:
        cfg = self._stack.current
        if self._cache is not None:
            c_pos, c_delim, c_esc, c_line = self._cache
            if c_pos == pos and c_delim == cfg.delimiter and c_esc == cfg.escapes:
                return c_line
        raw = self._raw[pos]
        fields = split_fields(raw, cfg.delimiter, escapes=cfg.escapes, line=pos + 1)
        line = Line(number=pos + 1, kind=_classify(fields), fields=fields, raw=raw)
        self._cache = (pos, cfg.delimiter, cfg.escapes, line)
        return line

    def peek(self) -> Line | None:
        if self.at_eof:
            return None
        return self._line(self._pos)

    def advance(self) -> Line | None:
        line = self.peek()
        if line is not None:
            self._pos += 1
        return line

    def _raw_kind(self, pos: int) -> LineKind:
        # classification without escape handling, used when skipping lines
        return _classify(tuple(self._raw[pos].split(self._stack.current.delimiter)))

    def scan_to_marker(self) -> str | None:
        """
        Look ahead (without consuming) for the first marker before the next
        blank line; returns its name, or None.
        """
        for pos in range(self._pos, len(self._raw)):
            kind = self._raw_kind(pos)
            if kind is LineKind.BLANK:
                return None
            if kind is LineKind.MARKER:
                return _MARKER_RE.match(self._raw[pos].split(self._stack.current.delimiter)[0].strip()).group("name")
        return None

    def skip_to_boundary(self) -> int:
        """
        Consume lines up to (not including) the next blank line or
        `***Start_of_Header***` marker. Returns the number of lines skipped.
        """
        skipped = 0
        while not self.at_eof:
            kind = self._raw_kind(self._pos)
            if kind is LineKind.BLANK:
                break
            if kind is LineKind.MARKER and START_OF_HEADER in self._raw[self._pos]:
                break
            self._pos += 1
            skipped += 1
        return skipped
