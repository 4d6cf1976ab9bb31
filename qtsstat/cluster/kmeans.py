# qtsstat/cluster/kmeans.py
"""
k-means alignment of a QTS sample around an external clustering primitive.

The joint clustering + alignment search itself is not implemented here. This
module only:
- maps the sample to its (N, 3, M) log representation and (N, M) grids
- runs the primitive once per set of seed indices (random restarts)
- keeps the trial with the lowest total within-cluster dissimilarity
- maps the returned tangent-space centers back to QTS through the exp map
"""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence

import numpy as np
from joblib import Parallel, delayed

from ..core.exceptions import InvalidConfigurationError
from ..core.qts import QTS
from ..core.sample import QTSSample

logger = logging.getLogger(__name__)

CENTROIDS = ("mean", "medoid")
DISSIMILARITIES = ("l2", "pearson")
WARPINGS = ("none", "shift", "dilation", "affine")


@dataclass(frozen=True, slots=True)
class AlignmentResult:
    """
    What the alignment primitive returns for one trial.

    - x_final: (N, M) aligned grids
    - x_centers: (K, M) grids of the cluster centers
    - y_centers: (K, 3, M) tangent-space cluster centers
    - labels: (N,) cluster memberships
    - final_dissimilarity: (N,) dissimilarity of each member to its center
    """
    x_final: np.ndarray = field(repr=False)
    x_centers: np.ndarray = field(repr=False)
    y_centers: np.ndarray = field(repr=False)
    labels: np.ndarray
    final_dissimilarity: np.ndarray = field(repr=False)

    @property
    def n_clusters(self) -> int:
        return int(np.asarray(self.y_centers).shape[0])

    @property
    def total_dissimilarity(self) -> float:
        return float(np.sum(self.final_dissimilarity))


class AlignmentClusterer(Protocol):
    """Structural interface of the external clustering + alignment primitive."""

    def __call__(
        self,
        grid: np.ndarray,
        values: np.ndarray,
        *,
        seeds: Sequence[int],
        n_clusters: int,
        centroid: str,
        warping: str,
        dissimilarity: str,
        iter_max: int,
    ) -> AlignmentResult: ...


@dataclass(frozen=True, slots=True)
class KMeansResult:
    aligned: QTSSample
    centers: list[QTS]
    labels: np.ndarray
    best: AlignmentResult = field(repr=False)


def _check_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise InvalidConfigurationError(
            f"unknown {name} {value!r}; expected one of {list(choices)}."
        )


def initial_seeds(
    n: int,
    k: int,
    nstart: int,
    rng: np.random.Generator,
) -> list[tuple[int, ...]]:
    """All C(n, k) seed sets when nstart exceeds that count, else nstart random draws (0-based)."""
    if nstart > math.comb(n, k):
        return list(itertools.combinations(range(n), k))
    return [tuple(int(s) for s in rng.choice(n, size=k, replace=False)) for _ in range(nstart)]


def _run_trial(clusterer, grid, values, seeds, k, centroid, warping, dissimilarity, iter_max):
    result = clusterer(
        grid,
        values,
        seeds=seeds,
        n_clusters=k,
        centroid=centroid,
        warping=warping,
        dissimilarity=dissimilarity,
        iter_max=iter_max,
    )
    if not isinstance(result, AlignmentResult):
        raise InvalidConfigurationError(
            f"the alignment primitive must return an AlignmentResult, got {type(result).__name__}."
        )
    return result


def kmeans_qts(
    sample,
    clusterer: AlignmentClusterer,
    k: int = 1,
    centroid: str = "mean",
    dissimilarity: str = "l2",
    warping: str = "affine",
    iter_max: int = 20,
    nstart: int = 1000,
    *,
    n_jobs: int = 1,
    prefer: str | None = None,
    seed: int | np.random.Generator | None = None,
    progress: Callable[[int, int], None] | None = None,
) -> KMeansResult:
    """
    Jointly cluster and align a QTS sample with random restarts.

    Every trial calls `clusterer` with a different set of seed indices; the
    trial minimizing the summed final dissimilarity is kept. Aligned members
    keep their quaternions and receive the aligned grid of the best trial.
    """
    _check_choice("centroid", centroid, CENTROIDS)
    _check_choice("dissimilarity", dissimilarity, DISSIMILARITIES)
    _check_choice("warping", warping, WARPINGS)
    if not isinstance(sample, QTSSample):
        sample = QTSSample(sample)
    n = len(sample)
    if not 1 <= int(k) <= n:
        raise InvalidConfigurationError(f"k must be between 1 and {n}, got {k}.")
    if int(nstart) < 1 or int(iter_max) < 1:
        raise InvalidConfigurationError("nstart and iter_max must be >= 1.")

    values = sample.to_tangent()
    grid = sample.time_matrix()
    seeds = initial_seeds(n, int(k), int(nstart), np.random.default_rng(seed))
    logger.debug("k-means alignment: %d QTS, k=%d, %d trials", n, k, len(seeds))

    parallel = Parallel(n_jobs=n_jobs, prefer=prefer, return_as="generator")
    trials = parallel(
        delayed(_run_trial)(clusterer, grid, values, s, int(k), centroid, warping, dissimilarity, int(iter_max))
        for s in seeds
    )
    solutions: list[AlignmentResult] = []
    for done, sol in enumerate(trials, start=1):
        solutions.append(sol)
        if progress is not None:
            progress(done, len(seeds))

    wss = np.array([sol.total_dissimilarity for sol in solutions])
    best = solutions[int(np.argmin(wss))]
    logger.debug("best trial: total dissimilarity %.6g over %d trials", wss.min(), len(wss))

    x_centers = np.asarray(best.x_centers, dtype=float)
    y_centers = np.asarray(best.y_centers, dtype=float)
    centers = [
        QTS.from_tangent(x_centers[c], y_centers[c].T, name=f"center_{c + 1}")
        for c in range(best.n_clusters)
    ]

    x_final = np.asarray(best.x_final, dtype=float)
    aligned = QTSSample(
        series=[
            QTS(time=x_final[i], values=q.values, name=q.name, attrs=q.attrs.copy())
            for i, q in enumerate(sample)
        ],
        labels=sample.labels,
    )
    return KMeansResult(
        aligned=aligned,
        centers=centers,
        labels=np.asarray(best.labels),
        best=best,
    )
