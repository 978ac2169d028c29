"""
Linear algebra kernels for lmmfit.

All functions follow these conventions:
    - CPU functions use NumPy/SciPy (LAPACK under the hood)
    - Decompositions return a structured result dataclass
    - Singular inputs are handled, never raised

Submodules:
    pinv: SVD Moore-Penrose pseudo-inverse
"""

from lmmfit.core.compute.linalg.pinv import (
    GINV_TOL,
    PinvResult,
    ginv,
    pinv_svd,
)

__all__ = [
    "GINV_TOL",
    "PinvResult",
    "ginv",
    "pinv_svd",
]
