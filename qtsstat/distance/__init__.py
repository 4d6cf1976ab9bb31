# qtsstat/distance/__init__.py
"""
Pairwise dissimilarities between quaternion time series.

- dtw: step patterns and the DTW dynamic program
- dissimilarity: l2 / normalized_l2 / pearson / dtw between two QTS
- matrix: Distance object and the pairwise orchestrator
"""

from .dtw import (
    StepPattern,
    SYMMETRIC1,
    SYMMETRIC2,
    ASYMMETRIC,
    STEP_PATTERNS,
    DTWResult,
    get_step_pattern,
    cost_matrix,
    dtw_align,
)
from .dissimilarity import METRICS, dissimilarity, pearson_dissimilarity
from .matrix import Distance, linear_index, pairwise_distance, dist_matrix


__all__ = [
    "StepPattern",
    "SYMMETRIC1",
    "SYMMETRIC2",
    "ASYMMETRIC",
    "STEP_PATTERNS",
    "DTWResult",
    "get_step_pattern",
    "cost_matrix",
    "dtw_align",
    "METRICS",
    "dissimilarity",
    "pearson_dissimilarity",
    "Distance",
    "linear_index",
    "pairwise_distance",
    "dist_matrix",
]
