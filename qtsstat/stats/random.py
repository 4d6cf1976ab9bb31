# qtsstat/stats/random.py
from __future__ import annotations

import numpy as np

from ..core.exceptions import InvalidConfigurationError
from ..core.qts import QTS
from ..core.sample import QTSSample


def exp_covariance(grid, alpha: float, beta: float) -> np.ndarray:
    """Exponential covariance C(s, t) = alpha * exp(-beta * |s - t|) on a time grid."""
    grid = np.asarray(grid, dtype=float)
    return alpha * np.exp(-beta * np.abs(grid[:, None] - grid[None, :]))


def rnorm_qts(
    n: int,
    mean_qts: QTS,
    alpha: float = 0.01,
    beta: float = 0.001,
    seed: int | np.random.Generator | None = None,
) -> QTSSample:
    """
    Draw `n` QTS around `mean_qts` by adding Gaussian noise to its log.

    Each of the three tangent channels gets independent noise with exponential
    covariance (see exp_covariance); noisy log series are mapped back through
    the exponential map.
    """
    if not isinstance(mean_qts, QTS):
        raise InvalidConfigurationError("`mean_qts` must be a QTS.")
    if int(n) < 1:
        raise InvalidConfigurationError(f"`n` must be >= 1, got {n}.")
    if not alpha > 0 or not beta > 0:
        raise InvalidConfigurationError("`alpha` and `beta` must be positive.")

    rng = np.random.default_rng(seed)
    centerline = mean_qts.log()                                  # (M, 3)
    chol = np.linalg.cholesky(exp_covariance(mean_qts.time, alpha, beta))

    noise = rng.standard_normal((int(n), 3, mean_qts.n))       # (n, 3, M)
    draws = centerline.T[None, :, :] + noise @ chol.T
    return QTSSample(
        series=[QTS.from_tangent(mean_qts.time, draws[i].T) for i in range(int(n))]
    )
