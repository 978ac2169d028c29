"""
REML Fisher scoring on reduced sufficient statistics.

For one response y_j the model is

    y_j = X beta + Z_1 b_1 + ... + Z_k b_k + e,
    b_i ~ N(0, s_i I),  e ~ N(0, s_e I),

and the variance components s = (s_1, ..., s_k, s_e) are updated by

    s <- s + F(s)^+ dlogL(s)

where dlogL is the gradient of the REML log-likelihood and F the
expected (Fisher) information. Writing S = diag(s_i / s_e) expanded over
the columns of each block, every quantity is a function of the q x q
matrix M = (S Z'RZ + I)^+ and the reduced statistics Z'RZ, Z'Ry_j and
y_j'Ry_j, so an iteration costs O(q^3) regardless of the sample count.

Every inversion is a pseudo-inverse. F is singular whenever a variance
component is weakly identified or sits on the boundary; that is an
expected state of the iteration, not an error.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from lmmfit.core.compute.linalg import ginv
from lmmfit.core.exceptions import NumericalError
from lmmfit.mixed._common import ResponseFit
from lmmfit.mixed.design import SummaryDesign

# Initial gradient; any value above epsilon forces at least one iteration
_GRADIENT_SENTINEL = 100.0


def initial_components(
    design: SummaryDesign,
    j: int,
    sigma2: NDArray | None = None,
) -> NDArray:
    """Starting variance components for response j.

    Without a caller-supplied start, every random-effect variance starts
    at zero and the residual variance at the OLS estimate
    y_j'Ry_j / (n - p).
    """
    if sigma2 is not None:
        return np.array(sigma2, dtype=np.float64, copy=True)
    s = np.zeros(design.k + 1, dtype=np.float64)
    s[-1] = design.yry[j] / design.df
    return s


def score_and_information(
    design: SummaryDesign,
    j: int,
    s: NDArray,
) -> tuple[NDArray, NDArray]:
    """REML gradient and Fisher information at variance components s.

    Args:
        design: Reduced statistics.
        j: Response index.
        s: Current variance components, shape (k+1,).

    Returns:
        (dl, fs): gradient of shape (k+1,) and symmetric Fisher
        information of shape (k+1, k+1).
    """
    k, q = design.k, design.q
    blocks = design.block_slices
    zrz = design.zrz
    zry = design.zry[:, j]
    se2 = s[k]
    se4 = se2 * se2

    sr = (s[:k] / se2)[design.expanded]
    M = ginv(sr[:, None] * zrz + np.eye(q))
    ZRZ = zrz @ M
    ZR2Z = ZRZ @ M
    yRZ = zry @ M

    dl = np.empty(k + 1, dtype=np.float64)
    fs = np.empty((k + 1, k + 1), dtype=np.float64)

    for i, bi in enumerate(blocks):
        dl[i] = (np.sum(yRZ[bi] ** 2) / se4 - np.trace(ZRZ[bi, bi]) / se2) / 2

        for jj in range(i + 1):
            bj = blocks[jj]
            fs[i, jj] = np.sum(ZRZ[bj, bi] ** 2) / se4 / 2
            fs[jj, i] = fs[i, jj]

        fs[i, k] = np.trace(ZR2Z[bi, bi]) / se4 / 2
        fs[k, i] = fs[i, k]

    # Residual component: quadratic form y'R V^-2 R y and trace term
    # reduced through M
    r = design.n - design.p - q
    fs[k, k] = (r + np.sum(M.T * M)) / se4 / 2
    yR2y = design.yry[j] - np.sum(((M.T + np.eye(q)) @ zry) * (M @ (sr * zry)))
    dl[k] = (yR2y / se4 - (r + np.trace(M)) / se2) / 2

    return dl, fs


def fixed_effects(
    design: SummaryDesign,
    j: int,
    s: NDArray,
) -> tuple[NDArray, NDArray]:
    """GLS fixed effects and their covariance at variance components s.

    Uses the generalized-inverse form of (X'V^-1X)^-1 built from X'X,
    Z'X and Z'Z only:

        xvx = XXinv + xxz (I - M Z'X xxz)^+ M xxz'
        M   = (S Z'Z + I)^+ S

    Returns:
        (beta, cov): shapes (p,) and (p, p). cov is symmetrized.
    """
    k, q = design.k, design.q
    sr = (s[:k] / s[k])[design.expanded]

    M = ginv(sr[:, None] * design.ZZ + np.eye(q)) * sr[None, :]
    xxz = design.xxz
    xvx = design.XXinv + xxz @ ginv(np.eye(q) - M @ (design.ZX @ xxz)) @ (M @ xxz.T)
    xvy = design.XY[:, j] - design.ZX.T @ (M @ design.ZY[:, j])

    beta = xvx @ xvy
    cov = (xvx + xvx.T) * (s[k] / 2)
    return beta, cov


def fisher_scoring_reml(
    design: SummaryDesign,
    j: int,
    sigma2: NDArray | None = None,
    max_iter: int = 50,
    epsilon: float = 1e-5,
) -> ResponseFit:
    """Fit response j by REML Fisher scoring.

    Iterates while max |dlogL| > epsilon and fewer than max_iter
    iterations have run, then computes fixed effects at the final
    variance components. Reaching max_iter is not an error: the
    estimate at the cap is returned with converged=False.

    Args:
        design: Reduced statistics.
        j: Response index.
        sigma2: Optional starting variance components, shape (k+1,).
        max_iter: Iteration cap (>= 1).
        epsilon: Gradient tolerance (>= 0).

    Returns:
        ResponseFit for response j.

    Raises:
        NumericalError: If the iteration produces non-finite values;
            ``iterations`` records how many iterations had started.
    """
    k = design.k
    s = initial_components(design, j, sigma2)

    dl = np.full(k + 1, _GRADIENT_SENTINEL)
    fs = np.full((k + 1, k + 1), np.nan)
    fs_inv = fs
    n_iter = 0

    try:
        while np.max(np.abs(dl)) > epsilon and n_iter < max_iter:
            n_iter += 1
            dl, fs = score_and_information(design, j, s)
            fs_inv = ginv(fs)
            s = s + fs_inv @ dl

        beta, cov = fixed_effects(design, j, s)
    except NumericalError as e:
        raise NumericalError(
            str(e), matrix_name=e.matrix_name, iterations=n_iter,
        ) from e

    return ResponseFit(
        theta=s,
        se=np.sqrt(np.maximum(np.diag(fs_inv), 0.0)),
        coef=beta,
        cov=cov,
        dlogL=dl,
        fisher=fs,
        niter=n_iter,
        converged=bool(np.max(np.abs(dl)) <= epsilon),
    )
