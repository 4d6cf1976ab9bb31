# qtsstat/core/options.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .exceptions import InvalidConfigurationError


@dataclass(frozen=True, slots=True)
class SolverOptions:
    """
    Options of the iterative Fréchet mean / median solver.

    - tol: stop when the norm of the averaged tangent vector falls below it
    - max_iter: iteration cap; hitting it issues a ConvergenceWarning
    - eps: floor of the inverse-distance weights and of the log map
    """
    tol: float = 1e-9
    max_iter: int = 100
    eps: float = 1e-12

    def __post_init__(self) -> None:
        if not self.tol > 0:
            raise InvalidConfigurationError("SolverOptions.tol must be positive.")
        if not isinstance(self.max_iter, int) or self.max_iter < 1:
            raise InvalidConfigurationError("SolverOptions.max_iter must be an integer >= 1.")
        if not self.eps > 0:
            raise InvalidConfigurationError("SolverOptions.eps must be positive.")


@dataclass(frozen=True, slots=True)
class DissimilarityOptions:
    """
    Options of the pairwise dissimilarity engine.

    - step_pattern: DTW step pattern, by name or as a StepPattern instance
    - normalize: report the path-length normalized DTW distance
    """
    step_pattern: Any = "symmetric2"
    normalize: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.normalize, bool):
            raise InvalidConfigurationError("DissimilarityOptions.normalize must be a bool.")
        if isinstance(self.step_pattern, str) and not self.step_pattern.strip():
            raise InvalidConfigurationError("DissimilarityOptions.step_pattern must not be empty.")
