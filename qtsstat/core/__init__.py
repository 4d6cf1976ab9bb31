# qtsstat/core/__init__.py
"""
Core domain objects for qtsstat.

This module defines the data model and the manifold primitives:
- quaternion: log/exp maps, geodesic distance, double-cover sign handling
- QTS: validated quaternion time series on a strictly increasing grid
- QTSSample: ordered collection of QTS
- SolverOptions / DissimilarityOptions: validated option bundles

The core layer is independent from I/O and from the statistics built on it.
"""

from . import quaternion
from .qts import QTS
from .sample import QTSSample
from .options import SolverOptions, DissimilarityOptions
from .exceptions import (
    CoreError,
    InvalidQTS,
    InvalidSample,
    DegenerateQuaternionError,
    GridMismatchError,
    NonNormalizableStepPatternError,
    InvalidConfigurationError,
    PairwiseComputationError,
    QTSNotFound,
    ConvergenceWarning,
)


__all__ = [
    # primitives
    "quaternion",

    # domain objects
    "QTS",
    "QTSSample",

    # options
    "SolverOptions",
    "DissimilarityOptions",

    # exceptions
    "CoreError",
    "InvalidQTS",
    "InvalidSample",
    "DegenerateQuaternionError",
    "GridMismatchError",
    "NonNormalizableStepPatternError",
    "InvalidConfigurationError",
    "PairwiseComputationError",
    "QTSNotFound",
    "ConvergenceWarning",
]
