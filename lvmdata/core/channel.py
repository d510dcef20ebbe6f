# lvmdata/core/channel.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import numpy as np

from .exceptions import InvalidChannel
from .metadata import Metadata
from .value import Kind, Value


# Keys holding a channel's unit, most specific first
UNIT_KEYS = ("Unit", "Y_Unit_Label")

_NUMERIC_KINDS = frozenset({Kind.INTEGER, Kind.FLOAT, Kind.NULL})


@dataclass(frozen=True, slots=True)
class Channel:
    """One named data column of a Group: typed values + per-channel metadata."""

    name: str
    values: tuple[Value, ...] = field(default=(), repr=False)
    properties: Metadata = field(default_factory=Metadata, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidChannel("Channel.name must be a non-empty string.")

        values = tuple(self.values)
        for v in values:
            if not isinstance(v, Value):
                raise InvalidChannel(f"Channel '{self.name}' values must be Value instances.")
        object.__setattr__(self, "values", values)

        if not isinstance(self.properties, Metadata):
            raise InvalidChannel("Channel.properties must be a Metadata instance.")

    # Convenience accessors
    @property
    def n(self) -> int:
        return len(self.values)

    @property
    def unit(self) -> str | None:
        for key in UNIT_KEYS:
            v = self.properties.get(key)
            if v is not None and v.kind is Kind.STRING and v.payload.strip():
                return v.payload
        return None

    def kinds(self) -> set[Kind]:
        return {v.kind for v in self.values}

    @property
    def is_numeric(self) -> bool:
        return self.kinds() <= _NUMERIC_KINDS

    def payloads(self) -> list:
        return [v.payload for v in self.values]

    def to_numpy(self) -> np.ndarray:
        """
        Values as a numpy array.

        Integer/Float/Null channels give float64 (Null -> NaN); any other
        mix gives an object array of the raw payloads.
        """
        if self.is_numeric:
            return np.array(
                [np.nan if v.is_null else float(v.payload) for v in self.values],
                dtype=np.float64,
            )
        return np.array(self.payloads(), dtype=object)

    # Transformations
    def rename(self, name: str) -> "Channel":
        return Channel(name=name, values=self.values, properties=self.properties)

    def with_properties(self, entries: Iterable[tuple[str, Value]]) -> "Channel":
        return Channel(
            name=self.name,
            values=self.values,
            properties=Metadata(self.properties.entries + tuple(entries)),
        )

    def to_value(self) -> Value:
        return Value.mapping((
            ("name", Value.text(self.name)),
            ("properties", self.properties.to_value()),
            ("values", Value.sequence(self.values)),
        ))
