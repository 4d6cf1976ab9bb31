# qtsstat/core/exceptions.py
from __future__ import annotations


class CoreError(Exception):
    """Base error for all qtsstat exceptions."""


# ---- Validation / construction errors ----
class InvalidQTS(CoreError):
    """Raised when a QTS is constructed with invalid inputs."""


class InvalidSample(CoreError):
    """Raised when a QTSSample is constructed with invalid inputs."""


class DegenerateQuaternionError(CoreError, ValueError):
    """Raised when a quaternion has (near-)zero norm and cannot be normalized."""


class GridMismatchError(CoreError):
    """Raised when time grids must be equal but are not."""


class NonNormalizableStepPatternError(CoreError):
    """Raised when DTW normalization is requested with a pattern that has no norm."""


class InvalidConfigurationError(CoreError, ValueError):
    """Raised on unknown option strings or inconsistent option values."""


# ---- Batch errors ----
class PairwiseComputationError(CoreError):
    """Raised when the dissimilarity of one pair of a sample fails."""

    def __init__(self, i: int, j: int, message: str) -> None:
        # keep all args so the error survives pickling across worker processes
        super().__init__(i, j, message)
        self.i = i
        self.j = j
        self.message = message

    def __str__(self) -> str:
        return f"pair ({self.i}, {self.j}): {self.message}"


# ---- Lookup errors (also behave like KeyError for dict-like APIs) ----
class QTSNotFound(CoreError, KeyError):
    """Raised when a requested QTS label is not present in a sample."""


# ---- Warnings ----
class ConvergenceWarning(UserWarning):
    """Issued when an iterative solver stops at its iteration cap."""
