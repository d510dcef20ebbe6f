# lvmdata/core/timeseries.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from .exceptions import InvalidTimeSeries
from .metadata import Metadata
from .value import Kind


_CLOSED_SIDES = {
    # closed -> (searchsorted side for t_min, side for t_max)
    "both": ("left", "right"),
    "left": ("left", "left"),
    "right": ("right", "right"),
    "neither": ("right", "left"),
}


def _vector(label: str, data, dtype=None) -> np.ndarray:
    arr = np.asarray(data, dtype=dtype)
    if arr.ndim != 1:
        raise InvalidTimeSeries(f"`{label}` must be 1D, got shape {arr.shape}")
    return arr


@dataclass(frozen=True, slots=True)
class TimeSeries:
    """
    Numeric view of one channel: x axis (`time`) + values, both 1D.

    `time` is float64, finite and non-decreasing; it is either the group's
    X_Value column or X0 + i * Delta_X.
    """

    time: np.ndarray = field(repr=False)
    values: np.ndarray = field(repr=False)
    unit: str | None = None
    name: str | None = None
    properties: Metadata = field(default_factory=Metadata, repr=False)

    def __post_init__(self) -> None:
        t = _vector("time", self.time, dtype=np.float64)
        v = _vector("values", self.values)
        if t.size != v.size:
            raise InvalidTimeSeries(
                f"`time` and `values` differ in length ({t.size} vs {v.size})"
            )
        if t.size and not np.isfinite(t).all():
            raise InvalidTimeSeries("`time` contains NaN/Inf.")
        if t.size > 1 and (t[1:] < t[:-1]).any():
            raise InvalidTimeSeries("`time` must be non-decreasing.")
        if not isinstance(self.properties, Metadata):
            raise InvalidTimeSeries("`properties` must be a Metadata instance.")

        object.__setattr__(self, "time", t)
        object.__setattr__(self, "values", v)

    @property
    def n(self) -> int:
        return int(self.time.size)

    @property
    def t_start(self) -> float | None:
        return float(self.time[0]) if self.n else None

    @property
    def t_end(self) -> float | None:
        return float(self.time[-1]) if self.n else None

    @property
    def delta_x(self) -> float | None:
        """Sample spacing: the channel's Delta_X entry, else the median step."""
        dx = self.properties.get("Delta_X")
        if dx is not None and dx.kind in (Kind.INTEGER, Kind.FLOAT):
            return float(dx.payload)
        if self.n < 2:
            return None
        return float(np.median(np.diff(self.time)))

    def slice_time(
        self,
        t_min: float | None = None,
        t_max: float | None = None,
        *,
        closed: str = "both",
    ) -> "TimeSeries":
        """Samples with t_min <= t <= t_max (bounds inclusive per `closed`)."""
        if closed not in _CLOSED_SIDES:
            raise ValueError(f"closed must be one of: {', '.join(_CLOSED_SIDES)}")
        if self.n == 0:
            return self

        lo_side, hi_side = _CLOSED_SIDES[closed]
        lo = 0 if t_min is None else int(np.searchsorted(self.time, t_min, side=lo_side))
        hi = self.n if t_max is None else int(np.searchsorted(self.time, t_max, side=hi_side))
        hi = max(lo, hi)

        return TimeSeries(
            time=self.time[lo:hi],
            values=self.values[lo:hi],
            unit=self.unit,
            name=self.name,
            properties=self.properties,
        )

    def _reduce(self, plain: Callable, nan_aware: Callable, skipna: bool, **kw) -> float | None:
        if self.n == 0:
            return None
        fn = nan_aware if skipna else plain
        return float(fn(self.values, **kw))

    def mean(self, *, skipna: bool = True) -> float | None:
        return self._reduce(np.mean, np.nanmean, skipna)

    def std(self, *, ddof: int = 0, skipna: bool = True) -> float | None:
        return self._reduce(np.std, np.nanstd, skipna, ddof=ddof)

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray]:
        if copy:
            return self.time.copy(), self.values.copy()
        return self.time, self.values
