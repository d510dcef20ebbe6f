# lvmdata/io/table.py
from __future__ import annotations

from typing import Mapping, Sequence

from lvmdata.core.channel import Channel
from lvmdata.core.exceptions import RowArityMismatch
from lvmdata.core.metadata import Metadata
from lvmdata.core.value import Value
from lvmdata.io.coerce import AUTO, Coercer, TypeHint
from lvmdata.io.lexer import Line


COMMENT_LABEL = "Comment"
UNTITLED = "Untitled"


def channel_names(labels: Sequence[str]) -> list[str]:
    """Channel names for a label row; empty labels become Untitled, Untitled 1, ..."""
    names: list[str] = []
    untitled = 0
    for label in labels:
        label = label.strip()
        if not label:
            label = UNTITLED if untitled == 0 else f"{UNTITLED} {untitled}"
            untitled += 1
        names.append(label)
    return names


class TableBuilder:
    """
    Accumulates the data rows of one group, column-major.

    Owns the column-count invariant: every row must have one field per label
    column, except that
    - a trailing Comment column may be omitted (the value is Null)
    - when the label row ends with a delimiter, rows may too
    Anything else raises RowArityMismatch.

    skip_leading drops the first column (the blank x column written with
    X_Columns = No).
    """

    def __init__(
        self,
        labels: Sequence[str],
        coercer: Coercer,
        hints: Mapping[str, TypeHint] | None = None,
        *,
        skip_leading: bool = False,
    ) -> None:
        labels = list(labels)
        self._trailing_sep = len(labels) > 1 and not labels[-1].strip()
        if self._trailing_sep:
            labels.pop()

        self.width = len(labels)
        self._skip_leading = skip_leading and self.width > 0
        kept = labels[1:] if self._skip_leading else labels

        self.names = channel_names(kept)
        self._optional_last = bool(kept) and kept[-1].strip() == COMMENT_LABEL
        self._hints = [(hints or {}).get(name, AUTO) for name in self.names]
        self._columns: list[list[Value]] = [[] for _ in self.names]
        self._coercer = coercer

    @property
    def n_rows(self) -> int:
        return len(self._columns[0]) if self._columns else 0

    def _fit(self, line: Line) -> tuple[str, ...]:
        fields = line.fields
        n = len(fields)
        if n == self.width:
            return fields
        if self._trailing_sep and n == self.width + 1 and not fields[-1].strip():
            return fields[:-1]
        if self._optional_last and n == self.width - 1:
            return fields + ("",)
        raise RowArityMismatch(line=line.number, expected=self.width, actual=n)

    def add_row(self, line: Line) -> None:
        fields = self._fit(line)
        if self._skip_leading:
            fields = fields[1:]
        for col, (name, hint, raw) in enumerate(zip(self.names, self._hints, fields)):
            self._columns[col].append(
                self._coercer.coerce(raw, hint, line=line.number, column=name)
            )

    def build(self, properties: Sequence[Sequence[tuple[str, Value]]] = ()) -> tuple[Channel, ...]:
        """One Channel per column; `properties[i]` are the entries of column i."""
        channels = []
        for col, name in enumerate(self.names):
            props = properties[col] if col < len(properties) else ()
            channels.append(
                Channel(name=name, values=tuple(self._columns[col]), properties=Metadata(tuple(props)))
            )
        return tuple(channels)
