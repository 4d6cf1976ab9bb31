# qtsstat/distance/dtw.py
"""
Dynamic time warping between two quaternion time series.

The local cost of cell (i, j) is the geodesic distance between the i-th
quaternion of the first series and the j-th quaternion of the second. The
cumulative cost follows the step pattern:

    g(0, 0) = cost(0, 0)
    g(i, j) = min over moves (di, dj, w) of g(i - di, j - dj) + w * cost(i, j)

and the DTW distance is g(M1 - 1, M2 - 1). Normalizable patterns also report
that distance divided by their normalization constant (M1 + M2 for
symmetric2, M1 for asymmetric), which makes series of different lengths
comparable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from ..core import quaternion as quat
from ..core.exceptions import InvalidConfigurationError, NonNormalizableStepPatternError
from ..core.qts import QTS

logger = logging.getLogger(__name__)

_NORMS = {"N+M", "N", "M"}


@dataclass(frozen=True, slots=True)
class StepPattern:
    """
    Allowed predecessor moves of the DTW recurrence.

    - moves: (di, dj, weight) triples; the weight multiplies the local cost
      of the cell being entered
    - norm: "N+M", "N", "M" or None when the pattern is not normalizable
    """
    name: str
    moves: tuple[tuple[int, int, float], ...]
    norm: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidConfigurationError("StepPattern.name must be a non-empty string.")
        moves = tuple((int(di), int(dj), float(w)) for di, dj, w in self.moves)
        if not moves:
            raise InvalidConfigurationError("StepPattern.moves must not be empty.")
        for di, dj, w in moves:
            if di < 0 or dj < 0 or (di == 0 and dj == 0):
                raise InvalidConfigurationError(
                    f"StepPattern '{self.name}': invalid move ({di}, {dj})."
                )
            if not w > 0:
                raise InvalidConfigurationError(
                    f"StepPattern '{self.name}': move weights must be positive."
                )
        if self.norm is not None and self.norm not in _NORMS:
            raise InvalidConfigurationError(
                f"StepPattern '{self.name}': norm must be one of {sorted(_NORMS)} or None."
            )
        object.__setattr__(self, "moves", moves)

    @property
    def normalizable(self) -> bool:
        return self.norm is not None

    def normalization(self, n: int, m: int) -> float:
        if self.norm == "N+M":
            return float(n + m)
        if self.norm == "N":
            return float(n)
        if self.norm == "M":
            return float(m)
        raise NonNormalizableStepPatternError(f"step pattern '{self.name}' is not normalizable.")


SYMMETRIC1 = StepPattern("symmetric1", ((1, 1, 1.0), (1, 0, 1.0), (0, 1, 1.0)), norm=None)
SYMMETRIC2 = StepPattern("symmetric2", ((1, 1, 2.0), (1, 0, 1.0), (0, 1, 1.0)), norm="N+M")
ASYMMETRIC = StepPattern("asymmetric", ((1, 0, 1.0), (1, 1, 1.0), (1, 2, 1.0)), norm="N")

STEP_PATTERNS: dict[str, StepPattern] = {
    p.name: p for p in (SYMMETRIC1, SYMMETRIC2, ASYMMETRIC)
}


def get_step_pattern(pattern: str | StepPattern) -> StepPattern:
    if isinstance(pattern, StepPattern):
        return pattern
    try:
        return STEP_PATTERNS[pattern]
    except (KeyError, TypeError) as e:
        raise InvalidConfigurationError(
            f"unknown step pattern {pattern!r}; expected one of {sorted(STEP_PATTERNS)}."
        ) from e


@dataclass(frozen=True, slots=True)
class DTWResult:
    """
    Outcome of a DTW alignment.

    index1 / index2 hold the warping path (0-based, same length) unless the
    alignment was computed with distance_only=True.
    """
    distance: float
    normalized_distance: float
    index1: np.ndarray | None = None
    index2: np.ndarray | None = None


def _quaternions(x) -> np.ndarray:
    if isinstance(x, QTS):
        return x.values
    arr = quat.normalize(np.asarray(x, dtype=float))
    if arr.ndim != 2:
        raise ValueError(f"expected a QTS or a (M, 4) array, got shape {arr.shape}")
    return arr


def cost_matrix(qts_a, qts_b) -> np.ndarray:
    """(M1, M2) matrix of geodesic distances between the two series."""
    a = _quaternions(qts_a)
    b = _quaternions(qts_b)
    return np.atleast_2d(quat.geodesic_distance(a[:, None, :], b[None, :, :]))


def accumulate(cost: np.ndarray, pattern: StepPattern) -> tuple[np.ndarray, np.ndarray]:
    """
    Cumulative cost matrix and, per cell, the index of the move that reached it.

    Unreachable cells hold +inf and move index -1.
    """
    n, m = cost.shape
    g = np.full((n, m), np.inf)
    arg = np.full((n, m), -1, dtype=int)
    vertical = [(k, di, dj, w) for k, (di, dj, w) in enumerate(pattern.moves) if di > 0]
    horizontal = [(k, dj, w) for k, (di, dj, w) in enumerate(pattern.moves) if di == 0]

    for i in range(n):
        row = np.full(m, np.inf)
        row_arg = np.full(m, -1, dtype=int)

        # moves from earlier rows, vectorized over the row
        for k, di, dj, w in vertical:
            if i - di < 0 or dj >= m:
                continue
            cand = np.full(m, np.inf)
            cand[dj:] = g[i - di, : m - dj] + w * cost[i, dj:]
            better = cand < row
            row[better] = cand[better]
            row_arg[better] = k

        if i == 0:
            row[0] = cost[0, 0]
            row_arg[0] = -1

        # moves within the row depend on cells computed just before
        if horizontal:
            for j in range(1, m):
                for k, dj, w in horizontal:
                    if j - dj < 0:
                        continue
                    val = row[j - dj] + w * cost[i, j]
                    if val < row[j]:
                        row[j] = val
                        row_arg[j] = k

        g[i] = row
        arg[i] = row_arg

    return g, arg


def _backtrack(arg: np.ndarray, pattern: StepPattern) -> tuple[np.ndarray, np.ndarray]:
    i, j = arg.shape[0] - 1, arg.shape[1] - 1
    path = [(i, j)]
    while (i, j) != (0, 0):
        di, dj, _ = pattern.moves[arg[i, j]]
        i, j = i - di, j - dj
        path.append((i, j))
    path.reverse()
    idx = np.asarray(path, dtype=int)
    return idx[:, 0], idx[:, 1]


def dtw_align(
    qts_a,
    qts_b,
    step_pattern: str | StepPattern = SYMMETRIC2,
    normalize: bool = True,
    *,
    distance_only: bool = False,
) -> DTWResult:
    """
    Align two QTS (or (M, 4) arrays) by dynamic time warping.

    With `normalize`, the step pattern must be normalizable
    (NonNormalizableStepPatternError otherwise). `normalized_distance` is NaN
    for patterns without a normalization.
    """
    pattern = get_step_pattern(step_pattern)
    if normalize and not pattern.normalizable:
        raise NonNormalizableStepPatternError(
            f"step pattern '{pattern.name}' is not normalizable; "
            "use a normalizable pattern or normalize=False."
        )

    cost = cost_matrix(qts_a, qts_b)
    n, m = cost.shape
    g, arg = accumulate(cost, pattern)
    distance = float(g[-1, -1])
    if not np.isfinite(distance):
        raise InvalidConfigurationError(
            f"step pattern '{pattern.name}' admits no warping path between series "
            f"of lengths {n} and {m}."
        )

    normalized = distance / pattern.normalization(n, m) if pattern.normalizable else float("nan")
    logger.debug("dtw %dx%d (%s): distance=%.6g", n, m, pattern.name, distance)

    if distance_only:
        return DTWResult(distance=distance, normalized_distance=normalized)
    index1, index2 = _backtrack(arg, pattern)
    return DTWResult(
        distance=distance,
        normalized_distance=normalized,
        index1=index1,
        index2=index2,
    )
