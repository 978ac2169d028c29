"""
Run configuration for lmmfit.

FitConfig gathers the knobs that control an estimation run. It is
immutable and validates itself on construction, so an estimator that
receives a FitConfig can trust every field.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

from lmmfit.core.exceptions import ValidationError

DEFAULT_METHOD = 'REML-FS'
DEFAULT_MAX_ITER = 50
DEFAULT_EPSILON = 1e-5


@dataclass(frozen=True)
class FitConfig:
    """Configuration for a variance-component estimation run.

    Attributes:
        method: Label of the estimation method in the method registry.
        max_iter: Iteration cap per response. Also the only cancellation
            channel: every response terminates after at most max_iter
            iterations.
        epsilon: Convergence tolerance on max |dlogL|. With epsilon = 0
            every response runs exactly max_iter iterations.
        n_jobs: Number of workers for the per-response fan-out. 1 runs
            sequentially; -1 uses all cores (joblib convention).
    """
    method: str = DEFAULT_METHOD
    max_iter: int = DEFAULT_MAX_ITER
    epsilon: float = DEFAULT_EPSILON
    n_jobs: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.method, str) or not self.method:
            raise ValidationError(f"method: expected a non-empty string, got {self.method!r}")

        if (isinstance(self.max_iter, bool)
                or not isinstance(self.max_iter, numbers.Integral)
                or self.max_iter < 1):
            raise ValidationError(
                f"max_iter: expected an integer >= 1, got {self.max_iter!r}"
            )

        if (isinstance(self.epsilon, bool)
                or not isinstance(self.epsilon, numbers.Real)
                or not math.isfinite(self.epsilon)
                or self.epsilon < 0):
            raise ValidationError(
                f"epsilon: expected a finite number >= 0, got {self.epsilon!r}"
            )

        if (isinstance(self.n_jobs, bool)
                or not isinstance(self.n_jobs, numbers.Integral)
                or self.n_jobs == 0):
            raise ValidationError(
                f"n_jobs: expected a non-zero integer, got {self.n_jobs!r}"
            )
