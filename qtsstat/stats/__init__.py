# qtsstat/stats/__init__.py
"""
Sample statistics on quaternion time series.

- frechet: pointwise geometric mean / median (iterative fixed point)
- centering: tangent-space centering and standardization
- random: Gaussian sampling around a mean QTS
"""

from .frechet import (
    FrechetResult,
    frechet_fixed_point,
    geometric_mean,
    geometric_median,
    frechet_mean,
    frechet_median,
    uniform_weights,
    inverse_distance_weights,
)
from .centering import ScaledSample, center_and_scale
from .random import exp_covariance, rnorm_qts


__all__ = [
    "FrechetResult",
    "frechet_fixed_point",
    "geometric_mean",
    "geometric_median",
    "frechet_mean",
    "frechet_median",
    "uniform_weights",
    "inverse_distance_weights",
    "ScaledSample",
    "center_and_scale",
    "exp_covariance",
    "rnorm_qts",
]
