"""
Core infrastructure for lmmfit.

This module provides shared abstractions and utilities used by the
mixed-model reducer and estimators.

Key components:
    protocols: Estimator protocol
    result: Generic Result[P] envelope
    config: FitConfig run configuration
    exceptions: Exception and warning hierarchy
    validation: Input validators
    compute: Timing and linear algebra kernels
"""

from lmmfit.core.protocols import Estimator
from lmmfit.core.result import Result
from lmmfit.core.config import FitConfig
from lmmfit.core.exceptions import (
    LMMFitError,
    ValidationError,
    DimensionError,
    NumericalError,
    ConvergenceWarning,
)

__all__ = [
    # Protocols
    "Estimator",
    # Result
    "Result",
    # Config
    "FitConfig",
    # Exceptions
    "LMMFitError",
    "ValidationError",
    "DimensionError",
    "NumericalError",
    "ConvergenceWarning",
]
