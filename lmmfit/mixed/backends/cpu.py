"""
CPU backend for many-response REML Fisher scoring.

The reduction has already happened; this backend only loops over the
response columns. Each response reads its own column of zry, yry, XY
and ZY and writes its own slot of the output arrays, so the loop can
be fanned out across threads without locks.

Parallelism
-----------
When ``n_jobs != 1`` responses are fitted with
``joblib.Parallel(prefer="threads")``. Each iteration is dominated by
a q x q SVD in LAPACK, which releases the GIL, so threads scale without
copying the reduced statistics into worker processes. Results do not
depend on n_jobs.
"""

from __future__ import annotations

import warnings
from typing import Any

import numpy as np
from joblib import Parallel, delayed
from loguru import logger

from lmmfit.core.config import FitConfig
from lmmfit.core.compute.timing import Timer
from lmmfit.core.exceptions import ConvergenceWarning, NumericalError
from lmmfit.core.result import Result
from lmmfit.mixed._common import ConvergenceDiagnostic, LMMFitParams, ResponseFit
from lmmfit.mixed._fisher import fisher_scoring_reml
from lmmfit.mixed.design import SummaryDesign


class CPUFisherScoringBackend:
    """
    REML via Fisher scoring, one independent solve per response.

    Implements the Estimator protocol for SummaryDesign -> LMMFitParams.
    """

    label = 'REML-FS'

    @property
    def name(self) -> str:
        return 'cpu_reml_fs'

    def solve(
        self,
        design: SummaryDesign,
        config: FitConfig,
        sigma2: np.ndarray | None = None,
    ) -> Result[LMMFitParams]:
        """
        Fit every response column of the design.

        Algorithm (per response, see lmmfit.mixed._fisher):
            1. Start from sigma2 or (0, ..., 0, y'Ry / (n - p))
            2. s <- s + F^+ dlogL until max |dlogL| <= epsilon or max_iter
            3. GLS fixed effects and covariance at the final s

        Args:
            design: Reduced statistics
            config: Validated run configuration
            sigma2: Optional common starting variance components, (k+1,)

        Returns:
            Result containing LMMFitParams
        """
        timer = Timer()
        timer.start()

        k, p, m = design.k, design.p, design.m

        theta = np.full((k + 1, m), np.nan)
        se = np.full((k + 1, m), np.nan)
        coef = np.full((p, m), np.nan)
        cov = np.full((p, p, m), np.nan)
        dlogL = np.full((k + 1, m), np.nan)
        fisher = np.full((k + 1, k + 1, m), np.nan)
        niter = np.zeros(m, dtype=np.int64)
        converged = np.zeros(m, dtype=bool)
        diagnostics: list[ConvergenceDiagnostic] = []

        logger.debug(
            "Fisher scoring {} responses (k={}, q={}, n_jobs={})",
            m, k, design.q, config.n_jobs,
        )

        with timer.section('fisher_scoring'):
            fits = self._fit_all(design, config, sigma2)

        # Disjoint slots: response j only ever writes column j
        for j, (fit, failure) in enumerate(fits):
            if failure is not None:
                failed_at = failure.iterations if failure.iterations is not None else 0
                niter[j] = failed_at
                diagnostics.append(ConvergenceDiagnostic(
                    index=j,
                    name=design.response_names[j],
                    gradient=np.full(k + 1, np.nan),
                    iterations=failed_at,
                    epsilon=config.epsilon,
                    reason='non_finite',
                ))
                continue

            theta[:, j] = fit.theta
            se[:, j] = fit.se
            coef[:, j] = fit.coef
            cov[:, :, j] = fit.cov
            dlogL[:, j] = fit.dlogL
            fisher[:, :, j] = fit.fisher
            niter[j] = fit.niter
            converged[j] = fit.converged

            if not fit.converged:
                diagnostics.append(ConvergenceDiagnostic(
                    index=j,
                    name=design.response_names[j],
                    gradient=fit.dlogL.copy(),
                    iterations=fit.niter,
                    epsilon=config.epsilon,
                    reason='max_iterations',
                ))

        # Warnings are raised here, in the calling thread, in response order
        for diag in diagnostics:
            warnings.warn(
                ConvergenceWarning(
                    diag.message(),
                    index=diag.index,
                    gradient=diag.gradient,
                    iterations=diag.iterations,
                    epsilon=diag.epsilon,
                ),
                stacklevel=2,
            )

        n_converged = int(np.sum(converged))
        logger.info(
            "Fisher scoring converged for {}/{} responses", n_converged, m,
        )

        timer.stop()

        params = LMMFitParams(
            theta=theta,
            se=se,
            coef=coef,
            cov=cov,
            dlogL=dlogL,
            fisher=fisher,
            niter=niter,
            converged=converged,
            diagnostics=tuple(diagnostics),
            df=design.df,
            method=self.label,
            response_names=design.response_names,
            coef_names=design.coef_names,
            component_names=design.group_names + ('Residual',),
        )

        info: dict[str, Any] = {
            'method': self.label,
            'max_iter': config.max_iter,
            'epsilon': config.epsilon,
            'n_jobs': config.n_jobs,
            'n_converged': n_converged,
            'n_responses': m,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(diag.message() for diag in diagnostics),
        )

    def _fit_all(
        self,
        design: SummaryDesign,
        config: FitConfig,
        sigma2: np.ndarray | None,
    ) -> list[tuple[ResponseFit | None, NumericalError | None]]:
        """Run the per-response solves, sequentially or across threads."""

        def _fit_one(j: int) -> tuple[ResponseFit | None, NumericalError | None]:
            # A zero residual variance yields 0/0 before the pseudo-inverse
            # rejects it; the failure is reported as a diagnostic instead
            try:
                with np.errstate(divide='ignore', invalid='ignore'):
                    fit = fisher_scoring_reml(
                        design, j, sigma2,
                        max_iter=config.max_iter,
                        epsilon=config.epsilon,
                    )
            except NumericalError as e:
                # A degenerate response (e.g. zero residual variance)
                # must not abort the other responses
                logger.debug("Response {} failed: {}", design.response_names[j], e)
                return None, e
            logger.trace(
                "Response {}: {} iterations, max|dlogL|={:.3g}",
                design.response_names[j], fit.niter, float(np.max(np.abs(fit.dlogL))),
            )
            return fit, None

        # Sequential path, used when n_jobs=1 (default) to avoid
        # joblib overhead for small m.
        if config.n_jobs == 1:
            return [_fit_one(j) for j in range(design.m)]

        return Parallel(n_jobs=config.n_jobs, prefer="threads")(
            delayed(_fit_one)(j) for j in range(design.m)
        )
