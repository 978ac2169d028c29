"""
Solver dispatch for many-response linear mixed models.

Public API:
    lmmfit()          fit an LMM to every column of Y (samples by responses)
    lmmfit_nt()       same, Y laid out responses by samples
    lmmfit_summary()  fit from a prebuilt SummaryDesign
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike

from lmmfit.core.config import (
    DEFAULT_EPSILON, DEFAULT_MAX_ITER, DEFAULT_METHOD, FitConfig,
)
from lmmfit.core.compute.timing import Timer
from lmmfit.core.result import Result
from lmmfit.core.validation import check_block_widths, check_variance_components
from lmmfit.mixed.design import SummaryDesign
from lmmfit.mixed.methods import get_method
from lmmfit.mixed.solution import LMMFitSolution


def lmmfit(
    Y: ArrayLike,
    X: ArrayLike,
    Z: ArrayLike,
    d: Sequence[int],
    sigma2: ArrayLike | None = None,
    *,
    method: str = DEFAULT_METHOD,
    max_iter: int = DEFAULT_MAX_ITER,
    epsilon: float = DEFAULT_EPSILON,
    n_jobs: int = 1,
    response_names: Sequence[str] | None = None,
    coef_names: Sequence[str] | None = None,
    group_names: Sequence[str] | None = None,
) -> LMMFitSolution:
    """Fit a linear mixed model to every column of Y by REML.

    The model for response column y_j is

        y_j = X beta_j + Z_1 b_1j + ... + Z_k b_kj + e_j,

    with b_ij ~ N(0, s_ij I) and e_j ~ N(0, s_(k+1)j I). Y, X and Z are
    reduced once to summary statistics; each response is then fitted
    independently from those statistics, so the per-response cost does
    not depend on the number of samples.

    Args:
        Y: Responses, shape (n, m) (samples by responses, e.g. cells by
            genes). A 1-D Y is a single response.
        X: Fixed-effect design matrix, shape (n, p). Include an intercept
            column if desired.
        Z: Random-effect design matrix [Z_1, ..., Z_k], shape (n, q).
        d: Column counts (m_1, ..., m_k) of the blocks Z_i; sum(d) == q.
        sigma2: Optional starting variance components (s_1, ..., s_k,
            s_resid), shared by all responses. Default: zero random-effect
            variance and the OLS residual variance of each response.
        method: Estimation method label. Default 'REML-FS' (Fisher
            scoring). See lmmfit.mixed.methods for the registry.
        max_iter: Iteration cap per response. Default 50.
        epsilon: Convergence tolerance on max |dlogL|. Default 1e-5.
        n_jobs: Workers for the per-response loop; 1 is sequential, -1
            uses all cores.
        response_names, coef_names, group_names: Optional labels. Default
            to DataFrame columns when Y or X are DataFrames.

    Returns:
        LMMFitSolution with theta, se, coef, cov, dlogL, niter and df.

    Raises:
        ValidationError: Missing values, non-numeric input, bad d, bad
            configuration. Raised before any response is fitted.
        DimensionError: Sample counts of Y, X, Z disagree, or sum(d) != q.

    Warns:
        ConvergenceWarning: Once per response that reaches max_iter.

    Examples:
        # Random intercept per subject, many genes
        >>> Z = pd.get_dummies(subject).to_numpy(float)
        >>> fit = lmmfit(Y, X, Z, d=[Z.shape[1]])
        >>> fit.theta[:, 0]     # variance components of the first gene
    """
    return _fit(
        SummaryDesign.from_arrays,
        Y, X, Z, d, sigma2,
        method=method, max_iter=max_iter, epsilon=epsilon, n_jobs=n_jobs,
        response_names=response_names, coef_names=coef_names,
        group_names=group_names,
    )


def lmmfit_nt(
    Y: ArrayLike,
    X: ArrayLike,
    Z: ArrayLike,
    d: Sequence[int],
    sigma2: ArrayLike | None = None,
    *,
    method: str = DEFAULT_METHOD,
    max_iter: int = DEFAULT_MAX_ITER,
    epsilon: float = DEFAULT_EPSILON,
    n_jobs: int = 1,
    response_names: Sequence[str] | None = None,
    coef_names: Sequence[str] | None = None,
    group_names: Sequence[str] | None = None,
) -> LMMFitSolution:
    """Fit an LMM to every row of Y, with Y laid out responses by samples.

    Identical to lmmfit() except that Y has shape (m, n), the usual
    layout of a genes-by-cells expression matrix. Y is not transposed.
    Response names default to the DataFrame index.
    """
    return _fit(
        SummaryDesign.from_arrays_nt,
        Y, X, Z, d, sigma2,
        method=method, max_iter=max_iter, epsilon=epsilon, n_jobs=n_jobs,
        response_names=response_names, coef_names=coef_names,
        group_names=group_names,
    )


def lmmfit_summary(
    design: SummaryDesign,
    sigma2: ArrayLike | None = None,
    *,
    method: str = DEFAULT_METHOD,
    max_iter: int = DEFAULT_MAX_ITER,
    epsilon: float = DEFAULT_EPSILON,
    n_jobs: int = 1,
) -> LMMFitSolution:
    """Fit from reduced statistics.

    Use with SummaryDesign.from_summary or SummaryDesign.from_chunks when
    the raw data is too large to hold in memory, or to refit the same
    reduction with different settings.

    Args:
        design: Reduced statistics.
        sigma2, method, max_iter, epsilon, n_jobs: As in lmmfit().

    Returns:
        LMMFitSolution
    """
    config = FitConfig(method=method, max_iter=max_iter, epsilon=epsilon, n_jobs=n_jobs)
    estimator = get_method(config.method)
    s0 = _initial(sigma2, design.k)

    timer = Timer()
    timer.start()
    result = estimator.solve(design, config, s0)
    timer.stop()

    return LMMFitSolution(_result=_with_timing(result, timer))


def _fit(
    reducer,
    Y: ArrayLike,
    X: ArrayLike,
    Z: ArrayLike,
    d: Sequence[int],
    sigma2: ArrayLike | None,
    *,
    method: str,
    max_iter: int,
    epsilon: float,
    n_jobs: int,
    response_names: Sequence[str] | None,
    coef_names: Sequence[str] | None,
    group_names: Sequence[str] | None,
) -> LMMFitSolution:
    timer = Timer()
    timer.start()

    # Everything that can be rejected is rejected before the reduction
    config = FitConfig(method=method, max_iter=max_iter, epsilon=epsilon, n_jobs=n_jobs)
    estimator = get_method(config.method)
    s0 = _initial(sigma2, len(check_block_widths(d)))

    with timer.section('reduction'):
        design = reducer(
            Y, X, Z, d,
            response_names=response_names,
            coef_names=coef_names,
            group_names=group_names,
        )

    result = estimator.solve(design, config, s0)

    timer.stop()
    return LMMFitSolution(_result=_with_timing(result, timer))


def _initial(sigma2: ArrayLike | None, k: int) -> np.ndarray | None:
    if sigma2 is None:
        return None
    return check_variance_components(sigma2, k)


def _with_timing(result: Result, timer: Timer) -> Result:
    """Fold the estimator's section timings into the outer timer."""
    timer.merge(result.timing)
    return Result(
        params=result.params,
        info=result.info,
        timing=timer.result(),
        backend_name=result.backend_name,
        warnings=result.warnings,
    )
