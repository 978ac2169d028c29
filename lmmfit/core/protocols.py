"""
Core protocols for lmmfit.

These define the structural interface every estimation method satisfies.
We use Protocol (structural typing) rather than ABC (nominal typing) so
third-party estimators can be registered without inheriting from
anything in this package.

Design Principles:
    - Minimal contracts: prescribe only what's truly universal
    - Type-safe: use generics to preserve type information through pipelines
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from lmmfit.core.config import FitConfig
    from lmmfit.core.result import Result

# Type variables for generic payloads
P = TypeVar('P', covariant=True)  # Parameter payload type
D = TypeVar('D', contravariant=True)  # Design type


@runtime_checkable
class Estimator(Protocol[D, P]):
    """
    Protocol for variance-component estimation methods.

    An estimator takes a reduced design (sufficient statistics) plus the
    run configuration and produces a parameter payload for every response.
    Fisher-scoring REML is the built-in implementation; Newton-Raphson,
    average-information, EM and MINQE are candidate alternatives that
    would plug in through the method registry.

    Estimators are stateless: all configuration arrives through
    ``solve``. This makes them easy to test and swap.

    Type Parameters:
        D: The design type this estimator accepts
        P: The parameter payload type this estimator produces
    """

    @property
    def name(self) -> str:
        """
        Estimator identifier.

        Convention: '{device}_{algorithm}'
        Examples: 'cpu_reml_fs'
        """
        ...

    def solve(
        self,
        design: D,
        config: 'FitConfig',
        sigma2: np.ndarray | None = None,
    ) -> 'Result[P]':
        """
        Estimate variance components and fixed effects for every response.

        Args:
            design: Reduced design holding the sufficient statistics
            config: Validated run configuration
            sigma2: Optional initial variance components, shape (k+1,)

        Returns:
            Result envelope containing parameter payload and metadata
        """
        ...
