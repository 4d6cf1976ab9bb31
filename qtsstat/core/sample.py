# qtsstat/core/sample.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

import numpy as np

from .exceptions import GridMismatchError, InvalidSample, QTSNotFound
from .qts import QTS


@dataclass(frozen=True, slots=True)
class QTSSample:
    """
    A QTSSample is an ordered collection of independent QTS.

    Design goals:
    - list-like access: sample[0], sample[1:3], sample[[0, 2]]
    - label lookup: sample.get("subject_07")
    - predictable: immutable; transformations return new samples
    """
    series: Sequence[QTS] = field(repr=False)
    labels: Sequence[str] | None = None

    def __post_init__(self) -> None:
        if isinstance(self.series, QTS):
            items = (self.series,)
        elif isinstance(self.series, (str, bytes)) or not isinstance(self.series, Iterable):
            raise InvalidSample("QTSSample.series must be an iterable of QTS.")
        else:
            items = tuple(self.series)

        if not items:
            raise InvalidSample("QTSSample needs at least one QTS.")
        for idx, item in enumerate(items):
            if not isinstance(item, QTS):
                raise InvalidSample(
                    f"QTSSample.series[{idx}] must be a QTS, got {type(item).__name__}."
                )

        if self.labels is None:
            labels = tuple(str(i + 1) for i in range(len(items)))
        else:
            labels = tuple(str(lab) for lab in self.labels)
            if len(labels) != len(items):
                raise InvalidSample(
                    f"got {len(labels)} labels for a sample of {len(items)} QTS."
                )

        object.__setattr__(self, "series", items)
        object.__setattr__(self, "labels", labels)

    @classmethod
    def from_tangent(
        cls,
        grid,
        tangent,
        labels: Sequence[str] | None = None,
    ) -> "QTSSample":
        """
        Build a sample from an (N, 3, M) log representation.

        `grid` is either one shared (M,) grid or an (N, M) array of grids.
        """
        tangent = np.asarray(tangent, dtype=float)
        if tangent.ndim != 3 or tangent.shape[1] != 3:
            raise InvalidSample(f"`tangent` must have shape (N, 3, M), got {tangent.shape}")
        grid = np.asarray(grid, dtype=float)
        n = tangent.shape[0]
        grids = np.broadcast_to(grid, (n, tangent.shape[2])) if grid.ndim == 1 else grid
        if grids.shape != (n, tangent.shape[2]):
            raise GridMismatchError(
                f"grid shape {grid.shape} does not match tangent shape {tangent.shape}."
            )
        return cls(
            series=[QTS.from_tangent(grids[i], tangent[i].T) for i in range(n)],
            labels=labels,
        )

    # ---- list-like API ----
    def __len__(self) -> int:
        return len(self.series)

    def __iter__(self) -> Iterator[QTS]:
        return iter(self.series)

    def __getitem__(self, key):
        """An integer returns one QTS; a slice or a list of integers returns a sub-sample."""
        if isinstance(key, (int, np.integer)):
            return self.series[key]
        if isinstance(key, slice):
            idx = list(range(len(self)))[key]
        else:
            idx = [int(i) for i in key]
        if not idx:
            raise InvalidSample("sub-sample selection is empty.")
        return QTSSample(
            series=[self.series[i] for i in idx],
            labels=[self.labels[i] for i in idx],
        )

    def __contains__(self, label: object) -> bool:
        return label in self.labels

    def get(self, label: str) -> QTS:
        try:
            return self.series[self.labels.index(label)]
        except ValueError as e:
            raise QTSNotFound(label) from e

    # ---- transformations ----
    def append(self, other: "QTS | QTSSample") -> "QTSSample":
        """Return a new sample with `other` (a QTS or a sample) appended at the end."""
        if isinstance(other, QTS):
            other = QTSSample(series=[other], labels=[str(len(self) + 1)])
        if not isinstance(other, QTSSample):
            raise InvalidSample("append() expects a QTS or a QTSSample.")
        return QTSSample(
            series=list(self.series) + list(other.series),
            labels=list(self.labels) + list(other.labels),
        )

    def map(self, fn) -> "QTSSample":
        return QTSSample(series=[fn(q) for q in self.series], labels=self.labels)

    def relabel(self, labels: Sequence[str]) -> "QTSSample":
        return QTSSample(series=self.series, labels=labels)

    # ---- grid / array views ----
    def grid(self) -> np.ndarray:
        """Shared time grid of all members; raises GridMismatchError otherwise."""
        ref = self.series[0]
        for idx, item in enumerate(self.series[1:], start=1):
            if item.n != ref.n:
                raise GridMismatchError(
                    f"sample member {idx} ('{self.labels[idx]}') has {item.n} points, "
                    f"member 0 has {ref.n}."
                )
            if not np.array_equal(item.time, ref.time):
                pos = int(np.flatnonzero(item.time != ref.time)[0])
                raise GridMismatchError(
                    f"sample member {idx} ('{self.labels[idx]}') differs from member 0 "
                    f"in time at index {pos}."
                )
        return ref.time

    def to_array(self) -> np.ndarray:
        """(N, M, 4) array of quaternions; requires a shared grid."""
        self.grid()
        return np.stack([q.values for q in self.series])

    def to_tangent(self) -> np.ndarray:
        """(N, 3, M) log representation; members must share their length."""
        lengths = {q.n for q in self.series}
        if len(lengths) != 1:
            raise GridMismatchError(f"sample members have different lengths: {sorted(lengths)}")
        return np.stack([q.log().T for q in self.series])

    def time_matrix(self) -> np.ndarray:
        """(N, M) array stacking every member's own time grid."""
        lengths = {q.n for q in self.series}
        if len(lengths) != 1:
            raise GridMismatchError(f"sample members have different lengths: {sorted(lengths)}")
        return np.stack([q.time for q in self.series])
