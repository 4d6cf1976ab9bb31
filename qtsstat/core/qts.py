# qtsstat/core/qts.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from . import quaternion as quat
from .exceptions import GridMismatchError, InvalidQTS


@dataclass(frozen=True, slots=True)
class QTS:
    """Immutable quaternion time series: 1D time grid + (M, 4) unit quaternions."""

    time: np.ndarray = field(repr=False)
    values: np.ndarray = field(repr=False)
    name: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        t = np.array(self.time, dtype=float)
        v = np.array(self.values, dtype=float)

        if t.ndim != 1:
            raise InvalidQTS(f"`time` must be 1D, got shape {t.shape}")
        if v.ndim != 2 or v.shape[1] != 4:
            raise InvalidQTS(f"`values` must have shape (M, 4), got {v.shape}")
        if t.size != v.shape[0]:
            raise InvalidQTS(
                f"`time` and `values` must have same length, got {t.size} vs {v.shape[0]}"
            )
        if t.size == 0:
            raise InvalidQTS("a QTS needs at least one time point.")
        if not np.isfinite(t).all():
            raise InvalidQTS("`time` contains non-finite values (NaN/Inf).")
        if not np.isfinite(v).all():
            raise InvalidQTS("`values` contains non-finite values (NaN/Inf).")
        if np.any(np.diff(t) <= 0):
            raise InvalidQTS("`time` must be strictly increasing.")

        if self.attrs is None:
            object.__setattr__(self, "attrs", {})
        elif not isinstance(self.attrs, dict):
            raise InvalidQTS("`attrs` must be a dict.")

        t.flags.writeable = False
        v = quat.normalize(v)
        v.flags.writeable = False
        object.__setattr__(self, "time", t)
        object.__setattr__(self, "values", v)

    @classmethod
    def from_tangent(
        cls,
        time,
        tangent,
        name: str | None = None,
        attrs: dict[str, Any] | None = None,
    ) -> "QTS":
        """Build a QTS from a (M, 3) log representation through the exp map."""
        tangent = np.asarray(tangent, dtype=float)
        if tangent.ndim != 2 or tangent.shape[1] != 3:
            raise InvalidQTS(f"`tangent` must have shape (M, 3), got {tangent.shape}")
        return cls(time=time, values=quat.exp(tangent), name=name, attrs=attrs or {})

    @property
    def n(self) -> int:
        return int(self.time.size)

    def __len__(self) -> int:
        return self.n

    @property
    def t_start(self) -> float:
        return float(self.time[0])

    @property
    def t_end(self) -> float:
        return float(self.time[-1])

    @property
    def w(self) -> np.ndarray:
        return self.values[:, 0]

    @property
    def x(self) -> np.ndarray:
        return self.values[:, 1]

    @property
    def y(self) -> np.ndarray:
        return self.values[:, 2]

    @property
    def z(self) -> np.ndarray:
        return self.values[:, 3]

    def same_grid(self, other: "QTS") -> bool:
        return self.n == other.n and bool(np.array_equal(self.time, other.time))

    def check_grid(self, other: "QTS") -> None:
        if self.n != other.n:
            raise GridMismatchError(
                f"QTS '{self.name}' has {self.n} points but '{other.name}' has {other.n}."
            )
        if not np.array_equal(self.time, other.time):
            idx = int(np.flatnonzero(self.time != other.time)[0])
            raise GridMismatchError(
                f"QTS '{self.name}' and '{other.name}' differ in time at index {idx} "
                f"({self.time[idx]} vs {other.time[idx]})."
            )

    def slice_time(
        self,
        t_min: float | None = None,
        t_max: float | None = None,
        *,
        closed: str = "both",
    ) -> "QTS":
        if closed not in {"both", "left", "right", "neither"}:
            raise ValueError("closed must be one of: both, left, right, neither")

        t = self.time
        mask = np.ones_like(t, dtype=bool)

        if t_min is not None:
            mask &= (t >= t_min) if closed in {"both", "left"} else (t > t_min)
        if t_max is not None:
            mask &= (t <= t_max) if closed in {"both", "right"} else (t < t_max)

        if not mask.any():
            raise InvalidQTS(f"slice [{t_min}, {t_max}] leaves no time point.")

        return QTS(time=t[mask], values=self.values[mask], name=self.name, attrs=self.attrs.copy())

    def log(self) -> np.ndarray:
        """(M, 3) log representation at the identity, sign-continuous in time."""
        return quat.log(quat.enforce_sign_continuity(self.values))

    def inverse(self) -> "QTS":
        return QTS(
            time=self.time,
            values=quat.inverse(self.values),
            name=self.name,
            attrs=self.attrs.copy(),
        )

    def compose(self, other: "QTS") -> "QTS":
        """Pointwise Hamilton product self[i] * other[i] on a shared grid."""
        self.check_grid(other)
        return QTS(
            time=self.time,
            values=quat.multiply(self.values, other.values),
            name=self.name,
            attrs=self.attrs.copy(),
        )

    def resample(self, n_points: int | None = None) -> "QTS":
        """Slerp the series onto `n_points` evenly spaced times over [t_start, t_end]."""
        n_points = self.n if n_points is None else int(n_points)
        if n_points < 1:
            raise ValueError("n_points must be >= 1")
        if self.n == 1:
            if n_points != 1:
                raise InvalidQTS("cannot resample a single-point QTS onto several points.")
            return self

        grid = np.linspace(self.t_start, self.t_end, n_points)
        upper = np.clip(np.searchsorted(self.time, grid, side="right"), 1, self.n - 1)
        out = np.empty((n_points, 4))
        for k, (t, hi) in enumerate(zip(grid, upper)):
            lo = hi - 1
            frac = (t - self.time[lo]) / (self.time[hi] - self.time[lo])
            out[k] = quat.slerp(self.values[lo], self.values[hi], float(np.clip(frac, 0.0, 1.0)))
        return QTS(time=grid, values=out, name=self.name, attrs=self.attrs.copy())

    def rename(self, name: str | None) -> "QTS":
        return QTS(time=self.time, values=self.values, name=name, attrs=self.attrs.copy())

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray]:
        if copy:
            return self.time.copy(), self.values.copy()
        return self.time, self.values
