# lvmdata/io/groups.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Protocol

from lvmdata.core.document import GroupFailure
from lvmdata.core.exceptions import RowArityMismatch, UnterminatedSection
from lvmdata.core.group import Group
from lvmdata.core.value import Kind, Value
from lvmdata.io.coerce import Coercer, TypeHint
from lvmdata.io.config import ConfigStack
from lvmdata.io.header import HeaderEntry, HeaderParser, entries_to_metadata
from lvmdata.io.lexer import END_OF_HEADER, START_OF_HEADER, Lexer, Line, LineKind
from lvmdata.io.table import COMMENT_LABEL, TableBuilder


logger = logging.getLogger(__name__)


X_VALUE_LABEL = "X_Value"

# Group header keys written with one column per channel
PER_CHANNEL_KEYS = frozenset({
    "Samples",
    "Date",
    "Time",
    "Y_Unit_Label",
    "Y_Dimension",
    "X_Dimension",
    "X_Unit_Label",
    "X0",
    "Delta_X",
})

# Group header keys declaring units; a row right after the labels is a unit
# row only when it repeats these values
UNIT_LABEL_KEYS = frozenset({"X_Unit_Label", "Y_Unit_Label"})


class State(Enum):
    EXPECT_HEADER_OR_DATA = "expect_header_or_data"
    IN_HEADER = "in_header"
    EXPECT_CHANNEL_NAMES = "expect_channel_names"
    IN_DATA = "in_data"
    END_OF_FILE = "end_of_file"


class GroupSink(Protocol):
    """Receives groups as they complete (see DocumentAssembler)."""

    def add_group(self, group: Group) -> None: ...

    def drop_group(self, failure: GroupFailure) -> None: ...


@dataclass
class _Draft:
    index: int
    start_line: int
    entries: list[HeaderEntry] = field(default_factory=list)
    table: Optional[TableBuilder] = None
    unit_labels: tuple[str, ...] = ()
    coercer_mark: tuple[int, Optional[str]] = (0, None)


class GroupParser:
    """
    Reads the groups following the document header.

    State machine:
      EXPECT_HEADER_OR_DATA -> IN_HEADER -> EXPECT_CHANNEL_NAMES -> IN_DATA
      -> (EXPECT_HEADER_OR_DATA | END_OF_FILE)

    Each group runs with its own ParseConfig (pushed on entry, popped on
    exit). A RowArityMismatch drops only the current group when `recover`
    is True; everything else propagates.
    """

    def __init__(
        self,
        lexer: Lexer,
        coercer: Coercer,
        header_parser: HeaderParser,
        config_stack: ConfigStack,
        *,
        column_hints: Mapping[str, TypeHint] | None = None,
        recover: bool = True,
    ) -> None:
        self._lexer = lexer
        self._coercer = coercer
        self._headers = header_parser
        self._stack = config_stack
        self._hints = dict(column_hints or {})
        self._recover = recover
        self._next_index = 0

    def parse(self, sink: GroupSink) -> None:
        state = State.EXPECT_HEADER_OR_DATA
        draft: Optional[_Draft] = None
        while state is not State.END_OF_FILE:
            if state is State.EXPECT_HEADER_OR_DATA:
                state, draft = self._expect_header_or_data()
            elif state is State.IN_HEADER:
                draft.entries = self._headers.parse_group_header()
                state = State.EXPECT_CHANNEL_NAMES
            elif state is State.EXPECT_CHANNEL_NAMES:
                state = self._expect_channel_names(draft, sink)
            elif state is State.IN_DATA:
                state = self._in_data(draft, sink)

    # ---- states ----
    def _open(self, line: Line) -> _Draft:
        self._stack.push()
        draft = _Draft(
            index=self._next_index,
            start_line=line.number,
            coercer_mark=self._coercer.mark(),
        )
        self._next_index += 1
        return draft

    def _expect_header_or_data(self) -> tuple[State, Optional[_Draft]]:
        lexer = self._lexer
        while True:
            line = lexer.peek()
            if line is None:
                return State.END_OF_FILE, None
            if line.kind is LineKind.BLANK:
                lexer.advance()
                continue
            if line.kind is LineKind.MARKER:
                if line.marker == START_OF_HEADER:
                    lexer.advance()
                    return State.IN_HEADER, self._open(line)
                if line.marker == END_OF_HEADER:
                    raise UnterminatedSection("group header", line=line.number)
                logger.debug("line %d: ignoring marker ***%s***", line.number, line.marker)
                lexer.advance()
                continue

            draft = self._open(line)
            if lexer.scan_to_marker() == END_OF_HEADER:
                # segment header without a start marker (e.g. starts with Channels)
                return State.IN_HEADER, draft
            logger.debug("line %d: group %d has no header", line.number, draft.index)
            return State.EXPECT_CHANNEL_NAMES, draft

    def _expect_channel_names(self, draft: _Draft, sink: GroupSink) -> State:
        lexer = self._lexer
        line = lexer.peek()
        if line is None:
            self._finish(draft, sink)
            return State.END_OF_FILE
        if line.kind is LineKind.BLANK or line.marker == START_OF_HEADER:
            self._finish(draft, sink)
            return State.EXPECT_HEADER_OR_DATA
        if line.kind is LineKind.MARKER:
            raise UnterminatedSection("group", line=line.number)

        lexer.advance()
        labels = line.fields
        skip_leading = (
            self._stack.current.x_columns == "No" and len(labels) > 1 and not labels[0].strip()
        )
        draft.table = TableBuilder(labels, self._coercer, self._hints, skip_leading=skip_leading)

        declared = self._declared_units(draft)
        if declared:
            nxt = lexer.peek()
            if nxt is not None and nxt.kind is LineKind.DATA and self._is_unit_row(nxt, declared):
                lexer.advance()
                fields = nxt.fields[1:] if skip_leading else nxt.fields
                draft.unit_labels = tuple(fields)
        return State.IN_DATA

    def _in_data(self, draft: _Draft, sink: GroupSink) -> State:
        lexer = self._lexer
        while True:
            line = lexer.peek()
            if line is None:
                self._finish(draft, sink)
                return State.END_OF_FILE
            if line.kind is LineKind.BLANK:
                lexer.advance()
                self._finish(draft, sink)
                return State.EXPECT_HEADER_OR_DATA
            if line.kind is LineKind.MARKER:
                if line.marker == START_OF_HEADER:
                    self._finish(draft, sink)
                    return State.EXPECT_HEADER_OR_DATA
                raise UnterminatedSection("group", line=line.number)

            lexer.advance()
            try:
                draft.table.add_row(line)
            except RowArityMismatch as e:
                if not self._recover:
                    raise
                self._drop(draft, e, sink)
                return State.EXPECT_HEADER_OR_DATA

    # ---- helpers ----
    @staticmethod
    def _declared_units(draft: _Draft) -> frozenset[str]:
        return frozenset(
            f.strip() for e in draft.entries if e.key in UNIT_LABEL_KEYS
            for f in e.fields if f.strip()
        )

    @staticmethod
    def _is_unit_row(line: Line, declared: frozenset[str]) -> bool:
        texts = [f.strip() for f in line.fields if f.strip()]
        return bool(texts) and all(t in declared for t in texts)

    def _column_properties(self, draft: _Draft, names: list[str], x_channel: Optional[str]) -> list[list[tuple[str, Value]]]:
        props: list[list[tuple[str, Value]]] = [[] for _ in names]
        y_columns = [
            i for i, name in enumerate(names)
            if name != x_channel and name != COMMENT_LABEL
        ]

        for e in draft.entries:
            if e.key not in PER_CHANNEL_KEYS and len(e.fields) < 2:
                continue
            per_column = e.value.payload if e.value.kind is Kind.SEQ else (e.value,)
            for j, (raw, value) in enumerate(zip(e.fields, per_column)):
                if j < len(y_columns) and raw.strip():
                    props[y_columns[j]].append((e.key, value))

        for i, label in enumerate(draft.unit_labels[:len(names)]):
            if label.strip():
                props[i].append(("Unit", Value.text(label.strip())))
        return props

    def _finish(self, draft: _Draft, sink: GroupSink) -> None:
        start = self._stack.pop().start
        header = entries_to_metadata(draft.entries)
        if draft.table is None:
            group = Group(header=header, channels=(), index=draft.index, start=start)
        else:
            names = draft.table.names
            x_channel = names[0] if names and names[0] == X_VALUE_LABEL else None
            channels = draft.table.build(self._column_properties(draft, names, x_channel))
            group = Group(
                header=header,
                channels=channels,
                index=draft.index,
                x_channel=x_channel,
                start=start,
            )

        logger.debug(
            "group %d (line %d): %d channels x %d rows",
            group.index, draft.start_line, len(group), group.n_rows,
        )
        sink.add_group(group)

    def _drop(self, draft: _Draft, error: RowArityMismatch, sink: GroupSink) -> None:
        skipped = self._lexer.skip_to_boundary()
        self._stack.pop()
        self._coercer.rewind(draft.coercer_mark)
        logger.warning(
            "group %d (line %d) dropped: %s (%d more lines skipped)",
            draft.index, draft.start_line, error, skipped,
        )
        sink.drop_group(GroupFailure(index=draft.index, line=draft.start_line, error=error))
