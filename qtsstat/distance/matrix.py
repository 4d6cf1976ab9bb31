# qtsstat/distance/matrix.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed, effective_n_jobs
from scipy.spatial.distance import pdist, squareform

from ..core.exceptions import (
    CoreError,
    InvalidConfigurationError,
    NonNormalizableStepPatternError,
    PairwiseComputationError,
)
from ..core.options import DissimilarityOptions
from ..core.sample import QTSSample
from .dissimilarity import POINTWISE_METRICS, check_metric, dissimilarity
from .dtw import get_step_pattern

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def linear_index(n: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    1-based (i, j, k) for all pairs i < j of an n-sample, in row-major order.

    k = n(i - 1) - i(i - 1)/2 + j - i runs from 1 to n(n - 1)/2.
    """
    i, j = np.triu_indices(int(n), k=1)
    i = i + 1
    j = j + 1
    k = n * (i - 1) - i * (i - 1) // 2 + j - i
    return i, j, k


@dataclass(frozen=True, slots=True)
class Distance:
    """
    Symmetric dissimilarity structure in linear (condensed) form.

    `values` holds the n(n - 1)/2 entries of pairs i < j in row-major order,
    the same layout as scipy.spatial.distance.pdist. The diagonal is
    implicitly zero.
    """
    values: np.ndarray = field(repr=False)
    size: int
    labels: Sequence[str] | None = None
    attrs: dict = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        v = np.array(self.values, dtype=float).ravel()
        size = int(self.size)
        if size < 1:
            raise InvalidConfigurationError("Distance.size must be >= 1.")
        if v.size != size * (size - 1) // 2:
            raise InvalidConfigurationError(
                f"Distance of size {size} needs {size * (size - 1) // 2} values, got {v.size}."
            )
        if not np.all(v >= 0):
            raise InvalidConfigurationError("Distance values must be non-negative (and not NaN).")

        if self.labels is None:
            labels = tuple(str(i + 1) for i in range(size))
        else:
            labels = tuple(str(lab) for lab in self.labels)
            if len(labels) != size:
                raise InvalidConfigurationError(
                    f"got {len(labels)} labels for a Distance of size {size}."
                )

        v.flags.writeable = False
        object.__setattr__(self, "values", v)
        object.__setattr__(self, "attrs", dict(self.attrs or {}))
        object.__setattr__(self, "size", size)
        object.__setattr__(self, "labels", labels)

    def __getitem__(self, key: tuple[int, int]) -> float:
        i, j = (int(x) for x in key)
        for x in (i, j):
            if not 0 <= x < self.size:
                raise IndexError(f"index {x} out of range for Distance of size {self.size}")
        if i == j:
            return 0.0
        if i > j:
            i, j = j, i
        return float(self.values[self.size * i - i * (i + 1) // 2 + j - i - 1])

    def to_square(self) -> np.ndarray:
        return squareform(self.values)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.to_square(), index=list(self.labels), columns=list(self.labels))


def _pair_distance(
    sample: QTSSample,
    i: int,
    j: int,
    metric: str,
    options: DissimilarityOptions | None,
) -> float:
    try:
        return dissimilarity(sample[i], sample[j], metric=metric, options=options)
    except (CoreError, ValueError, FloatingPointError) as e:
        raise PairwiseComputationError(i + 1, j + 1, f"{type(e).__name__}: {e}") from e


def _chunk_distances(sample, pairs, metric, options) -> np.ndarray:
    return np.array([_pair_distance(sample, i, j, metric, options) for i, j in pairs])


def pairwise_distance(
    sample,
    metric: str = "l2",
    options: DissimilarityOptions | None = None,
    *,
    labels: Sequence[str] | None = None,
    n_jobs: int = 1,
    prefer: str | None = None,
    progress: ProgressCallback | None = None,
) -> Distance:
    """
    Dissimilarities between all pairs of a QTS sample.

    Pairs (i, j), i < j, are enumerated in linear_index() order. With
    n_jobs != 1 they are split into contiguous chunks dispatched through
    joblib; every chunk writes into its own pre-assigned slots, so the result
    does not depend on n_jobs. `progress(done, total)` is called after each
    pair (sequential) or each chunk (parallel). The first failing pair raises
    PairwiseComputationError naming the 1-based (i, j). For "dtw", the step
    pattern of `options` is resolved before any pair runs, so an unknown name
    or a non-normalizable pattern with normalize=True fails up front.

    Labels default to the sample labels.
    """
    check_metric(metric)
    if not isinstance(sample, QTSSample):
        sample = QTSSample(sample)
    n = len(sample)
    if labels is not None and len(labels) != n:
        raise InvalidConfigurationError(
            f"got {len(labels)} labels for a sample of {n} QTS."
        )
    if metric in POINTWISE_METRICS:
        sample.grid()
    elif metric == "dtw":
        opts = options or DissimilarityOptions()
        pattern = get_step_pattern(opts.step_pattern)
        if opts.normalize and not pattern.normalizable:
            raise NonNormalizableStepPatternError(
                f"step pattern '{pattern.name}' is not normalizable; "
                "use a normalizable pattern or normalize=False."
            )

    i, j, _ = linear_index(n)
    pairs = list(zip((i - 1).tolist(), (j - 1).tolist()))
    total = len(pairs)
    values = np.empty(total)

    workers = effective_n_jobs(n_jobs)
    logger.debug("pairwise %s distance: %d QTS, %d pairs, %d workers", metric, n, total, workers)

    if workers == 1 or total <= 1:
        for slot, (a, b) in enumerate(pairs):
            values[slot] = _pair_distance(sample, a, b, metric, options)
            if progress is not None:
                progress(slot + 1, total)
    else:
        chunks = np.array_split(np.arange(total), min(total, 4 * workers))
        parallel = Parallel(n_jobs=n_jobs, prefer=prefer, return_as="generator")
        results = parallel(
            delayed(_chunk_distances)(sample, [pairs[s] for s in chunk], metric, options)
            for chunk in chunks
        )
        done = 0
        for chunk, chunk_values in zip(chunks, results):
            values[chunk] = chunk_values
            done += chunk.size
            if progress is not None:
                progress(done, total)

    return Distance(
        values=values,
        size=n,
        labels=sample.labels if labels is None else labels,
        attrs={"metric": metric},
    )


_DEFAULT_METRICS = {
    "euclidean": "euclidean",
    "maximum": "chebyshev",
    "manhattan": "cityblock",
    "canberra": "canberra",
    "binary": "jaccard",
    "minkowski": "minkowski",
}


def dist_matrix(
    x,
    metric: str = "euclidean",
    *,
    p: float = 2.0,
    labels: Sequence[str] | None = None,
) -> Distance:
    """Row-wise distances of a plain (N, D) numeric matrix, as a Distance."""
    if metric not in _DEFAULT_METRICS:
        raise InvalidConfigurationError(
            f"unknown metric {metric!r}; expected one of {list(_DEFAULT_METRICS)}."
        )
    if isinstance(x, pd.DataFrame):
        if labels is None:
            labels = [str(v) for v in x.index]
        x = x.to_numpy()
    arr = np.asarray(x, dtype=float)
    if arr.ndim != 2:
        raise InvalidConfigurationError(f"expected a 2D matrix, got shape {arr.shape}")

    if metric == "binary":
        values = pdist(arr != 0, metric="jaccard")
    elif metric == "minkowski":
        values = pdist(arr, metric="minkowski", p=p)
    else:
        values = pdist(arr, metric=_DEFAULT_METRICS[metric])
    return Distance(values=values, size=arr.shape[0], labels=labels, attrs={"metric": metric})
