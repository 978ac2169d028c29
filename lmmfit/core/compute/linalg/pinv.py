"""
Moore-Penrose pseudo-inverse.

Every inversion in lmmfit goes through ``ginv``. The matrices being
inverted (X'X, the scaled Z'RZ + I, the Fisher information) are allowed
to be singular or near-singular: a variance component sitting at zero
makes the Fisher information rank-deficient, and that is an expected
state, not an exceptional one. There is no plain-inverse fast path.

The tolerance matches MASS::ginv in R: singular values below
sqrt(machine eps) * max(singular value) are treated as zero.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import linalg

from lmmfit.core.exceptions import NumericalError

GINV_TOL = float(np.sqrt(np.finfo(np.float64).eps))


@dataclass(frozen=True)
class PinvResult:
    """
    Pseudo-inverse with the numerical rank it was computed at.

    Attributes:
        inverse: Moore-Penrose inverse, shape (n, m) for an (m, n) input
        rank: Number of singular values kept
        singular_values: All singular values, descending
    """
    inverse: NDArray[np.floating[Any]]
    rank: int
    singular_values: NDArray[np.floating[Any]]


def pinv_svd(
    A: NDArray[np.floating[Any]],
    tol: float = GINV_TOL,
) -> PinvResult:
    """
    SVD-based Moore-Penrose inverse.

    Args:
        A: Matrix to invert (m x n)
        tol: Relative singular-value cutoff

    Returns:
        PinvResult with the inverse and its numerical rank

    Raises:
        NumericalError: If A contains NaN or Inf (SVD is undefined)
    """
    A = np.atleast_2d(np.asarray(A, dtype=np.float64))
    m, n = A.shape
    if m == 0 or n == 0:
        return PinvResult(
            inverse=np.zeros((n, m)), rank=0, singular_values=np.zeros(0)
        )

    if not np.all(np.isfinite(A)):
        raise NumericalError(
            f"cannot pseudo-invert a {m}x{n} matrix with non-finite entries",
            matrix_name='A',
        )

    # gesvd is the driver R's La.svd uses; gesdd occasionally fails to
    # converge on the exactly-singular matrices we feed it
    U, d, Vt = linalg.svd(A, full_matrices=False, lapack_driver='gesvd',
                          check_finite=False)

    keep = d > max(tol * d[0], 0.0)
    rank = int(np.sum(keep))
    if rank == 0:
        return PinvResult(inverse=np.zeros((n, m)), rank=0, singular_values=d)

    inverse = (Vt[keep].T / d[keep]) @ U[:, keep].T
    return PinvResult(inverse=inverse, rank=rank, singular_values=d)


def ginv(
    A: NDArray[np.floating[Any]],
    tol: float = GINV_TOL,
) -> NDArray[np.floating[Any]]:
    """Moore-Penrose inverse of A (MASS::ginv semantics)."""
    return pinv_svd(A, tol).inverse
