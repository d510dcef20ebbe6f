# lvmdata/core/document.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .exceptions import GroupNotFound, InvalidDocument, ParseError
from .group import Group
from .metadata import Metadata
from .value import Value


@dataclass(frozen=True, slots=True)
class GroupFailure:
    """A group discarded by a recoverable parse error."""
    index: int
    line: int
    error: ParseError


@dataclass(frozen=True, slots=True)
class CoercionFallback:
    """A field that did not match its requested type and was kept as String."""
    line: int | None
    column: str
    raw: str
    hint: str


@dataclass(frozen=True, slots=True)
class Document:
    """
    Document = file header + ordered Groups.

    Design goals:
    - sequence-like access: doc[0], len(doc), iteration over groups
    - immutable once assembled
    - partial parses stay usable: `dropped` lists groups that failed and why,
      `fallbacks` lists values that degraded to String
    """
    header: Metadata = field(default_factory=Metadata, repr=False)
    groups: tuple[Group, ...] = field(default=(), repr=False)
    dropped: tuple[GroupFailure, ...] = field(default=(), repr=False)
    fallbacks: tuple[CoercionFallback, ...] = field(default=(), repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.header, Metadata):
            raise InvalidDocument("Document.header must be a Metadata instance.")

        groups = tuple(self.groups)
        for g in groups:
            if not isinstance(g, Group):
                raise InvalidDocument("Document.groups must contain Group instances.")
        object.__setattr__(self, "groups", groups)
        object.__setattr__(self, "dropped", tuple(self.dropped))
        object.__setattr__(self, "fallbacks", tuple(self.fallbacks))

    # ---- sequence-like API ----
    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[Group]:
        return iter(self.groups)

    def __getitem__(self, index: int) -> Group:
        try:
            return self.groups[index]
        except IndexError as e:
            raise GroupNotFound(index) from e

    @property
    def is_partial(self) -> bool:
        return bool(self.dropped)

    def channel_names(self) -> list[str]:
        """Unique channel names across all groups, in first-seen order."""
        return list(dict.fromkeys(name for g in self.groups for name in g.keys()))

    def to_value(self) -> Value:
        return Value.mapping((
            ("header", self.header.to_value()),
            ("groups", Value.sequence(g.to_value() for g in self.groups)),
        ))
