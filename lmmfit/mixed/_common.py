"""
Common data types for many-response LMM fitting.

Contains the frozen parameter payloads that go inside Result[P] envelopes.
Each payload is a pure data container apart from message formatting.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class ConvergenceDiagnostic:
    """Record of one response that hit the iteration cap.

    Attributes:
        index: Zero-based response (column) index.
        name: Response label.
        gradient: Final first derivatives of the REML log-likelihood
            with respect to each variance component, shape (k+1,).
        iterations: Iterations completed: max_iter when the cap was hit,
            or the iteration that produced non-finite values.
        epsilon: Tolerance that max |gradient| failed to reach.
        reason: 'max_iterations' when the cap was hit, 'non_finite' when
            the iteration produced NaN/Inf and the response was skipped.
    """
    index: int
    name: str
    gradient: NDArray
    iterations: int
    epsilon: float
    reason: str = 'max_iterations'

    def message(self) -> str:
        """Human-readable warning text."""
        if self.reason == 'non_finite':
            return (
                f"Fisher scoring for {self.name} produced non-finite values; "
                f"estimates set to NaN"
            )
        values = ', '.join(_format_gradient(g) for g in self.gradient)
        return (
            f"The first derivatives of log likelihood for {self.name}: {values}, "
            f"doesn't reach the zero, epsilon {self.epsilon:g}"
        )


@dataclass(frozen=True)
class ResponseFit:
    """Fisher-scoring outcome for a single response column.

    Attributes:
        theta: Variance components (s1, ..., sk, s_resid), shape (k+1,).
        se: Standard errors of theta, shape (k+1,).
        coef: Fixed-effect estimates, shape (p,).
        cov: Covariance of coef, shape (p, p).
        dlogL: Gradient at the last iteration, shape (k+1,).
        fisher: Fisher information at the last iteration, (k+1, k+1).
        niter: Iterations used.
        converged: Whether max |dlogL| <= epsilon.
    """
    theta: NDArray
    se: NDArray
    coef: NDArray
    cov: NDArray
    dlogL: NDArray
    fisher: NDArray
    niter: int
    converged: bool


@dataclass(frozen=True)
class LMMFitParams:
    """
    Parameter payload for an LMM fitted to every column of Y.

    Column j of every matrix (slice j of the last axis of the arrays)
    belongs to response j.
    """
    # Variance components
    theta: NDArray                     # (k+1, m), residual variance last
    se: NDArray                        # (k+1, m)

    # Fixed effects
    coef: NDArray                      # (p, m)
    cov: NDArray                       # (p, p, m)

    # Iteration diagnostics
    dlogL: NDArray                     # (k+1, m) gradient at the last iteration
    fisher: NDArray                    # (k+1, k+1, m) Fisher information
    niter: NDArray                     # (m,) iterations used
    converged: NDArray                 # (m,) bool
    diagnostics: tuple[ConvergenceDiagnostic, ...]

    # Model
    df: int                            # residual df, n - p
    method: str

    # Labels
    response_names: tuple[str, ...]
    coef_names: tuple[str, ...]
    component_names: tuple[str, ...]   # group names + 'Residual'


def _format_gradient(g: float) -> str:
    if abs(g) > 1e-3:
        return f"{round(float(g), 4)}"
    return f"{g:.2e}"
