# qtsstat/distance/dissimilarity.py
from __future__ import annotations

import numpy as np

from ..core import quaternion as quat
from ..core.exceptions import InvalidConfigurationError, InvalidQTS
from ..core.options import DissimilarityOptions
from ..core.qts import QTS
from .dtw import dtw_align

METRICS = ("l2", "normalized_l2", "pearson", "dtw")

# metrics that compare the two series index by index
POINTWISE_METRICS = ("l2", "normalized_l2", "pearson")


def check_metric(metric: str) -> str:
    if metric not in METRICS:
        raise InvalidConfigurationError(
            f"unknown metric {metric!r}; expected one of {list(METRICS)}."
        )
    return metric


def _pointwise_distances(a: QTS, b: QTS) -> np.ndarray:
    a.check_grid(b)
    return np.atleast_1d(quat.geodesic_distance(a.values, b.values))


def _channel_correlation(u: np.ndarray, v: np.ndarray, tiny: float = 1e-12) -> float:
    du = u - u.mean()
    dv = v - v.mean()
    su = float(np.linalg.norm(du))
    sv = float(np.linalg.norm(dv))
    if su < tiny and sv < tiny:
        # both constant: perfectly related only if they are the same constant
        return 1.0 if np.allclose(u, v) else 0.0
    if su < tiny or sv < tiny:
        return 0.0
    return float(np.clip(np.dot(du, dv) / (su * sv), -1.0, 1.0))


def pearson_dissimilarity(a: QTS, b: QTS) -> float:
    """1 minus the mean Pearson correlation of the three log-map channels."""
    a.check_grid(b)
    la = a.log()
    lb = b.log()
    corr = np.mean([_channel_correlation(la[:, c], lb[:, c]) for c in range(3)])
    return max(0.0, 1.0 - float(corr))


def dissimilarity(
    qts_a: QTS,
    qts_b: QTS,
    metric: str = "l2",
    options: DissimilarityOptions | None = None,
) -> float:
    """
    Dissimilarity between two QTS.

    - l2: square root of the summed squared geodesic distances at matching
      indices (grids must be equal, GridMismatchError otherwise)
    - normalized_l2: root mean squared geodesic distance at matching indices
    - pearson: 1 - mean correlation of the log-map channels (equal grids)
    - dtw: DTW distance with the step pattern of `options`, normalized by the
      pattern's normalization constant when `options.normalize`
    """
    check_metric(metric)
    if not isinstance(qts_a, QTS) or not isinstance(qts_b, QTS):
        raise InvalidQTS("dissimilarity() expects two QTS.")
    options = options or DissimilarityOptions()

    if metric == "dtw":
        res = dtw_align(
            qts_a,
            qts_b,
            step_pattern=options.step_pattern,
            normalize=options.normalize,
            distance_only=True,
        )
        return res.normalized_distance if options.normalize else res.distance

    if metric == "pearson":
        return pearson_dissimilarity(qts_a, qts_b)

    d = _pointwise_distances(qts_a, qts_b)
    if metric == "l2":
        return float(np.sqrt(np.sum(d ** 2)))
    return float(np.sqrt(np.mean(d ** 2)))
