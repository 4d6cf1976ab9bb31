# qtsstat/cluster/__init__.py
from .kmeans import (
    AlignmentClusterer,
    AlignmentResult,
    KMeansResult,
    initial_seeds,
    kmeans_qts,
)


__all__ = [
    "AlignmentClusterer",
    "AlignmentResult",
    "KMeansResult",
    "initial_seeds",
    "kmeans_qts",
]
