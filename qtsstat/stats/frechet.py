# qtsstat/stats/frechet.py
"""
Fréchet mean and median of unit quaternions.

Both statistics are the fixed point of the same iteration:

    1. sign-align every member to the current estimate mu
    2. map members to the tangent space at mu: v_i = log(mu^-1 * q_i)
    3. average the v_i with weights w_i
    4. mu <- mu * exp(average)

and differ only in the weights: uniform for the mean (Karcher mean),
inverse geodesic distance for the median (Weiszfeld iteration, started from
the mean). The loop stops when the averaged tangent vector is shorter than
`tol`, or after `max_iter` iterations, in which case a ConvergenceWarning is
issued and the last estimate is returned with `converged=False`.

Members at nearly maximal angular separation (distance close to pi) make the
tangent map ill-conditioned; the solver does not special-case them.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Callable

import numpy as np

from ..core import quaternion as quat
from ..core.exceptions import ConvergenceWarning
from ..core.options import SolverOptions
from ..core.qts import QTS
from ..core.sample import QTSSample

logger = logging.getLogger(__name__)

Weighting = Callable[[np.ndarray, float], np.ndarray]


@dataclass(frozen=True, slots=True)
class FrechetResult:
    """Result of one Fréchet fixed-point solve."""

    estimate: np.ndarray
    iterations: int
    converged: bool


def uniform_weights(distances: np.ndarray, eps: float) -> np.ndarray:
    return np.full(distances.shape, 1.0 / distances.size)


def inverse_distance_weights(distances: np.ndarray, eps: float) -> np.ndarray:
    w = 1.0 / np.maximum(distances, eps)
    return w / w.sum()


def frechet_fixed_point(
    quats,
    weighting: Weighting,
    options: SolverOptions | None = None,
    initial=None,
) -> FrechetResult:
    """
    Weighted tangent-space fixed point of a (K, 4) set of quaternions.

    The iteration starts from `initial`, or from the first member when it is
    None.
    """
    options = options or SolverOptions()
    qs = quat.normalize(np.asarray(quats, dtype=float))
    if qs.ndim != 2:
        raise ValueError(f"expected a (K, 4) array of quaternions, got shape {qs.shape}")
    if qs.shape[0] == 0:
        raise ValueError("cannot compute a Fréchet statistic of an empty set.")

    if qs.shape[0] == 1:
        return FrechetResult(estimate=qs[0].copy(), iterations=0, converged=True)

    mu = qs[0].copy() if initial is None else quat.normalize(np.asarray(initial, dtype=float))
    for it in range(1, options.max_iter + 1):
        tangents = quat.relative_log(qs, mu, eps=options.eps)
        distances = 2.0 * np.linalg.norm(tangents, axis=-1)
        step = weighting(distances, options.eps) @ tangents
        mu = quat.normalize(quat.multiply(mu, quat.exp(step, eps=options.eps)))
        if np.linalg.norm(step) < options.tol:
            return FrechetResult(estimate=mu, iterations=it, converged=True)

    warnings.warn(
        f"Fréchet iteration stopped at the cap of {options.max_iter} iterations "
        f"(last step norm {np.linalg.norm(step):.3e} > tol {options.tol:.1e}).",
        ConvergenceWarning,
        stacklevel=2,
    )
    return FrechetResult(estimate=mu, iterations=options.max_iter, converged=False)


def geometric_mean(quats, options: SolverOptions | None = None) -> FrechetResult:
    return frechet_fixed_point(quats, uniform_weights, options)


def geometric_median(quats, options: SolverOptions | None = None) -> FrechetResult:
    # Weiszfeld stalls when started on a member, so start from the mean
    start = geometric_mean(quats, options).estimate
    return frechet_fixed_point(quats, inverse_distance_weights, options, initial=start)


def _pointwise(
    sample,
    solve: Callable[..., FrechetResult],
    name: str,
    options: SolverOptions | None,
    return_diagnostics: bool,
):
    if not isinstance(sample, QTSSample):
        sample = QTSSample(sample)
    grid = sample.grid()
    arr = sample.to_array()

    results = [solve(arr[:, i, :], options) for i in range(grid.size)]
    n_failed = sum(not r.converged for r in results)
    logger.debug(
        "pointwise %s over %d QTS x %d points: %d iterations max, %d unconverged",
        name, len(sample), grid.size, max(r.iterations for r in results), n_failed,
    )

    out = QTS(time=grid, values=np.stack([r.estimate for r in results]), name=name)
    if return_diagnostics:
        return out, results
    return out


def frechet_mean(
    sample,
    options: SolverOptions | None = None,
    *,
    return_diagnostics: bool = False,
):
    """
    Pointwise geometric mean of a QTS sample.

    All members must share their time grid (GridMismatchError otherwise). With
    return_diagnostics=True, returns (mean QTS, list of per-index FrechetResult).
    """
    return _pointwise(sample, geometric_mean, "mean", options, return_diagnostics)


def frechet_median(
    sample,
    options: SolverOptions | None = None,
    *,
    return_diagnostics: bool = False,
):
    """Pointwise geometric median of a QTS sample; see frechet_mean()."""
    return _pointwise(sample, geometric_median, "median", options, return_diagnostics)
