# lvmdata/io/header.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from lvmdata.core.exceptions import MissingRequiredHeaderKey, UnterminatedSection
from lvmdata.core.metadata import Metadata
from lvmdata.core.value import Value
from lvmdata.io.coerce import AUTO, Coercer, TypeHint
from lvmdata.io.config import ConfigStack
from lvmdata.io.lexer import END_OF_HEADER, LABVIEW_ID, START_OF_HEADER, Lexer, LineKind


logger = logging.getLogger(__name__)


# Types of well-known header values; any other key is kept verbatim (Text)
_VERBATIM = TypeHint.text()

KEY_HINTS: dict[str, TypeHint] = {
    "Date": TypeHint.timestamp(),
    "Time": TypeHint.timestamp(),
    "Writer_Version": AUTO,
    "Reader_Version": AUTO,
    "Multi_Headings": TypeHint.boolean(),
    "Separator": TypeHint.text(),
    "Decimal_Separator": TypeHint.text(),
    "X_Columns": TypeHint.text(),
    "Time_Pref": TypeHint.text(),
    "Operator": TypeHint.text(),
    "Description": TypeHint.text(),
    "Project": TypeHint.text(),
    "Notes": TypeHint.text(),
    "Test_Name": TypeHint.text(),
    "Test_Series": TypeHint.text(),
    "Channels": TypeHint.integer(),
    "Samples": TypeHint.integer(),
    "X0": TypeHint.real(),
    "Delta_X": TypeHint.real(),
}


@dataclass(frozen=True, slots=True)
class HeaderEntry:
    """
    One key/value line of a header.

    `fields` are the raw value fields after the key (group headers drop
    trailing empty fields); `value` is the coerced Value.
    """
    key: str
    fields: tuple[str, ...]
    value: Value
    line: int


def entries_to_metadata(entries: Iterable[HeaderEntry]) -> Metadata:
    return Metadata(tuple((e.key, e.value) for e in entries))


class HeaderParser:
    """
    Reads `key<sep>value` lines up to `***End_of_Header***`.

    A document header may also end where the first group starts: at a
    `***Start_of_Header***` line (left unconsumed) or at a blank line that is
    not followed by an End_of_Header marker before the next blank line.
    """

    def __init__(self, lexer: Lexer, coercer: Coercer, config_stack: ConfigStack) -> None:
        self._lexer = lexer
        self._coercer = coercer
        self._stack = config_stack

    def _hint(self, key: str) -> TypeHint:
        return KEY_HINTS.get(key, _VERBATIM)

    def _ends_at_blank(self) -> bool:
        """
        Called after a blank line inside the document header. Skips the rest
        of the blank run; the header continues only if an End_of_Header
        marker follows before the next blank line.
        """
        lexer = self._lexer
        while True:
            nxt = lexer.peek()
            if nxt is None or nxt.kind is not LineKind.BLANK:
                break
            lexer.advance()
        return lexer.scan_to_marker() != END_OF_HEADER

    # ---- document header ----
    def parse_document_header(self, required_keys: Iterable[str] = ()) -> tuple[Metadata, list[HeaderEntry]]:
        lexer = self._lexer
        if lexer.at_eof:
            raise UnterminatedSection("document header", line=None)

        entries: list[HeaderEntry] = []
        keyed = False

        sep = lexer.sniff_delimiter()
        if sep is not None:
            self._stack.apply("Separator", sep, line=1)
        first = lexer.peek()
        if first.kind is LineKind.DATA and first.fields[0].strip() == LABVIEW_ID:
            lexer.advance()
            entries.append(HeaderEntry(LABVIEW_ID, (), Value.null(), first.number))

        while True:
            line = lexer.peek()
            if line is None:
                raise UnterminatedSection("document header", line=lexer.line_number)
            if line.kind is LineKind.BLANK:
                lexer.advance()
                if keyed and self._ends_at_blank():
                    logger.debug("line %d: document header ended by a blank line", line.number)
                    break
                continue
            if line.kind is LineKind.MARKER:
                if line.marker == START_OF_HEADER and keyed:
                    # the first group starts here; its marker is left for the group parser
                    logger.debug("line %d: document header ended by ***%s***", line.number, line.marker)
                    break
                lexer.advance()
                if line.marker == END_OF_HEADER:
                    break
                if line.marker != START_OF_HEADER:
                    logger.debug("line %d: ignoring marker ***%s***", line.number, line.marker)
                continue

            lexer.advance()
            keyed = True
            key = line.fields[0].strip()
            fields = list(line.fields[1:])
            while fields and not fields[-1].strip():
                fields.pop()
            # an all-empty value is the delimiter itself (`Separator<tab><tab>`)
            raw = self._stack.current.delimiter.join(fields or line.fields[1:])
            self._stack.apply(key, raw, line=line.number)
            value = self._coercer.coerce(raw, self._hint(key), line=line.number, column=key)
            entries.append(HeaderEntry(key, tuple(fields), value, line.number))

        header = entries_to_metadata(entries)
        for key in required_keys:
            if key not in header:
                raise MissingRequiredHeaderKey(key, line=line.number)
        return header, entries

    # ---- group header ----
    def parse_group_header(self) -> list[HeaderEntry]:
        """
        Read a group header; the caller has consumed `***Start_of_Header***`
        if the group has one. Multi-column values become SEQ Values.
        """
        lexer = self._lexer
        entries: list[HeaderEntry] = []
        while True:
            line = lexer.advance()
            if line is None:
                raise UnterminatedSection("group header", line=lexer.line_number)
            if line.kind is LineKind.BLANK:
                continue
            if line.kind is LineKind.MARKER:
                if line.marker == END_OF_HEADER:
                    return entries
                if line.marker == START_OF_HEADER:
                    raise UnterminatedSection("group header", line=line.number)
                logger.debug("line %d: ignoring marker ***%s***", line.number, line.marker)
                continue

            key = line.fields[0].strip()
            fields = list(line.fields[1:])
            while fields and not fields[-1].strip():
                fields.pop()

            raw = fields[0] if len(fields) == 1 else self._stack.current.delimiter.join(line.fields[1:])
            self._stack.apply(key, raw, line=line.number)

            hint = self._hint(key)
            if not fields:
                value = Value.null()
            elif len(fields) == 1:
                value = self._coercer.coerce(fields[0], hint, line=line.number, column=key)
            else:
                value = Value.sequence(
                    self._coercer.coerce(f, hint, line=line.number, column=key) for f in fields
                )
            entries.append(HeaderEntry(key, tuple(fields), value, line.number))
