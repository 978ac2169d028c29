"""
Exception and warning hierarchy for lmmfit.

All exceptions inherit from LMMFitError to allow catching any
library-specific error. Non-fatal conditions (an individual response
that did not converge) are reported as warnings, never as exceptions.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from __future__ import annotations

import numpy as np


class LMMFitError(Exception):
    """Base exception for all lmmfit errors."""
    pass


class ValidationError(LMMFitError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks. Always
    raised before any matrix work begins.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when the sample counts of Y, X and Z disagree, or when the
    random-effect block widths do not add up to the columns of Z.
    """
    pass


class NumericalError(LMMFitError):
    """
    Numerical computation failed.

    Singular and ill-conditioned matrices are NOT numerical errors here:
    they are handled by pseudo-inversion. This is raised only when a
    decomposition itself cannot be computed (e.g. non-finite entries
    produced mid-iteration).

    Attributes:
        matrix_name: Name/description of the problematic matrix
        iterations: Iterations completed when the failure occurred, if
            raised from an iterative solve
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        iterations: int | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.iterations = iterations


class ConvergenceWarning(RuntimeWarning):
    """
    Fisher scoring hit the iteration cap before the gradient tolerance.

    Emitted once per affected response. The estimate at the cap is still
    returned.

    Attributes:
        index: Zero-based response (column) index
        gradient: Final first derivatives of the log-likelihood, shape (k+1,)
        iterations: Number of iterations completed
        epsilon: The gradient tolerance that was not met
    """

    def __init__(
        self,
        message: str,
        index: int | None = None,
        gradient: np.ndarray | None = None,
        iterations: int | None = None,
        epsilon: float | None = None,
    ):
        super().__init__(message)
        self.index = index
        self.gradient = gradient
        self.iterations = iterations
        self.epsilon = epsilon
