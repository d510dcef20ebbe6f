# lvmdata/core/group.py
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Iterable, Iterator

import numpy as np

from .channel import Channel
from .exceptions import ChannelNotFound, InvalidGroup
from .metadata import Metadata
from .timeseries import TimeSeries
from .value import Kind, Value


def _number(value: Value | None, default: float) -> float:
    if value is None:
        return default
    if value.kind in (Kind.INTEGER, Kind.FLOAT):
        return float(value.payload)
    return default


@dataclass(frozen=True, slots=True)
class Group:
    """
    A Group is one LVM segment: its own header plus Channels sharing one row axis.

    Design goals:
    - easy access: group["Voltage"]
    - safe: every channel has the same number of values
    - predictable: immutable; transformations return new Group

    `x_channel` names the channel holding the x axis when the file stores
    one (X_Columns = One), otherwise it is None.
    `start` is the acquisition start from the Date/Time header keys in
    effect for the group, when the file gives a Date.
    """
    header: Metadata = field(default_factory=Metadata, repr=False)
    channels: tuple[Channel, ...] = field(default=(), repr=False)
    index: int = 0
    x_channel: str | None = None
    start: dt.datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.header, Metadata):
            raise InvalidGroup("Group.header must be a Metadata instance.")

        channels = tuple(self.channels)
        for ch in channels:
            if not isinstance(ch, Channel):
                raise InvalidGroup("Group.channels must contain Channel instances.")

        lengths = {ch.n for ch in channels}
        if len(lengths) > 1:
            detail = ", ".join(f"{ch.name}={ch.n}" for ch in channels)
            raise InvalidGroup(f"Group {self.index} channels differ in length: {detail}")

        if self.x_channel is not None and all(ch.name != self.x_channel for ch in channels):
            raise InvalidGroup(f"x_channel '{self.x_channel}' is not a channel of the group.")

        if self.start is not None and not isinstance(self.start, dt.datetime):
            raise InvalidGroup("Group.start must be a datetime.")

        object.__setattr__(self, "channels", channels)

    # ---- dict-like API ----
    def __len__(self) -> int:
        return len(self.channels)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def keys(self) -> list[str]:
        return [ch.name for ch in self.channels]

    def items(self) -> Iterable[tuple[str, Channel]]:
        return [(ch.name, ch) for ch in self.channels]

    def __contains__(self, name: object) -> bool:
        return any(ch.name == name for ch in self.channels)

    def __getitem__(self, name: str | int) -> Channel:
        if isinstance(name, int):
            try:
                return self.channels[name]
            except IndexError as e:
                raise ChannelNotFound(name) from e
        # Duplicate names are legal in LVM; the first one wins
        for ch in self.channels:
            if ch.name == name:
                return ch
        raise ChannelNotFound(name)

    def get(self, name: str, default: Channel | None = None) -> Channel | None:
        try:
            return self[name]
        except ChannelNotFound:
            return default

    # ---- rows ----
    @property
    def n_rows(self) -> int:
        return self.channels[0].n if self.channels else 0

    def rows(self) -> Iterator[tuple[Value, ...]]:
        """Iterate row-major over the column-major table."""
        return zip(*(ch.values for ch in self.channels))

    # ---- x axis ----
    def x_values(self, name: str) -> np.ndarray:
        """
        The x axis of channel `name`.

        Uses the stored x column when there is one, otherwise X0 + i * Delta_X
        from the channel properties (X0 defaults to 0, Delta_X to 1).
        """
        ch = self[name]
        if self.x_channel is not None and ch.name != self.x_channel:
            return self[self.x_channel].to_numpy().astype(np.float64)

        x0 = _number(ch.properties.get("X0"), 0.0)
        dx = _number(ch.properties.get("Delta_X"), 1.0)
        return x0 + dx * np.arange(ch.n, dtype=np.float64)

    def series(self, name: str) -> TimeSeries:
        ch = self[name]
        values = ch.to_numpy()
        if values.dtype == object:
            raise InvalidGroup(f"Channel '{name}' is not numeric.")
        return TimeSeries(
            time=self.x_values(name),
            values=values,
            unit=ch.unit,
            name=ch.name,
            properties=ch.properties,
        )

    # ---- transformations ----
    def select(self, names: Iterable[str], *, missing: str = "raise") -> "Group":
        """
        Keep only the given channel names (order preserved by `names`).

        missing:
          - "raise": error if any name is missing
          - "ignore": skip missing names
        """
        selected: list[Channel] = []
        for n in names:
            ch = self.get(n)
            if ch is not None:
                selected.append(ch)
            elif missing == "raise":
                raise ChannelNotFound(n)
        x_channel = self.x_channel if any(c.name == self.x_channel for c in selected) else None
        return Group(
            header=self.header,
            channels=tuple(selected),
            index=self.index,
            x_channel=x_channel,
            start=self.start,
        )

    def to_value(self) -> Value:
        return Value.mapping((
            ("header", self.header.to_value()),
            ("channels", Value.sequence(ch.to_value() for ch in self.channels)),
            ("start", Value.null() if self.start is None else Value.timestamp(self.start)),
        ))
