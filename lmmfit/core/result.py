"""
Generic result container for lmmfit computations.

The Result class is the envelope every estimator returns. Estimators
define their own parameter payloads; the envelope carries the shared
metadata: timing, the estimator that produced it, and non-fatal warnings.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (method, convergence counts)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for an estimation run.

    Type Parameters:
        P: The estimator-specific parameter payload type

    Attributes:
        params: Estimator-specific parameters (theta, coefficients, ...)
        info: Structured metadata (method, n_converged, iteration settings)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the estimator that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=LMMFitParams(...),
        ...     info={'method': 'REML-FS', 'n_converged': 998},
        ...     timing={'total_seconds': 0.5, 'fisher_scoring': 0.4},
        ...     backend_name='cpu_reml_fs',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
