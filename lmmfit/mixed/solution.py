"""
Solution wrapper for many-response LMM fits.

LMMFitSolution wraps Result[LMMFitParams] and provides property
accessors for the per-response estimates, a per-response view, pandas
frames labelled by response and coefficient names, and a text summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from lmmfit.core.result import Result
from lmmfit.mixed._common import ConvergenceDiagnostic, LMMFitParams

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class ResponseSummary:
    """Estimates for a single response, sliced out of an LMMFitSolution."""
    name: str
    theta: NDArray
    se: NDArray
    coef: NDArray
    cov: NDArray
    dlogL: NDArray
    niter: int
    converged: bool


class LMMFitSolution:
    """Solution wrapper for an LMM fitted to every column of Y.

    Array layout follows the responses: column j (or slice j of the last
    axis) of theta, se, coef, cov, dlogL and fisher belongs to response j.
    """

    def __init__(self, _result: Result[LMMFitParams]):
        self._result = _result

    @property
    def params(self) -> LMMFitParams:
        return self._result.params

    # --- Variance components ---

    @property
    def theta(self) -> NDArray:
        """Variance components, (k+1, m). Last row is the residual variance."""
        return self.params.theta

    @property
    def se(self) -> NDArray:
        """Standard errors of theta from the inverse Fisher information, (k+1, m)."""
        return self.params.se

    # --- Fixed effects ---

    @property
    def coef(self) -> NDArray:
        """Fixed-effect estimates, (p, m)."""
        return self.params.coef

    @property
    def cov(self) -> NDArray:
        """Covariance matrices of coef, (p, p, m)."""
        return self.params.cov

    @property
    def df(self) -> int:
        """Residual degrees of freedom, n - p."""
        return self.params.df

    # --- Diagnostics ---

    @property
    def dlogL(self) -> NDArray:
        """REML gradient at the last iteration, (k+1, m)."""
        return self.params.dlogL

    @property
    def fisher(self) -> NDArray:
        """Fisher information at the last iteration, (k+1, k+1, m)."""
        return self.params.fisher

    @property
    def niter(self) -> NDArray:
        """Iterations used per response, (m,)."""
        return self.params.niter

    @property
    def converged(self) -> NDArray:
        """Per-response convergence flags, (m,)."""
        return self.params.converged

    @property
    def diagnostics(self) -> tuple[ConvergenceDiagnostic, ...]:
        """Responses that did not converge, in response order."""
        return self.params.diagnostics

    @property
    def method(self) -> str:
        return self.params.method

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    @property
    def info(self) -> dict:
        return self._result.info

    # --- Labels ---

    @property
    def response_names(self) -> tuple[str, ...]:
        return self.params.response_names

    @property
    def coef_names(self) -> tuple[str, ...]:
        return self.params.coef_names

    @property
    def component_names(self) -> tuple[str, ...]:
        return self.params.component_names

    # --- Per-response access ---

    def response(self, key: int | str) -> ResponseSummary:
        """Estimates for one response, by index or by name.

        Raises:
            KeyError: If a name is not among the response names.
            IndexError: If an index is out of range.
        """
        if isinstance(key, str):
            try:
                j = self.response_names.index(key)
            except ValueError:
                raise KeyError(
                    f"No response named {key!r}"
                ) from None
        else:
            j = int(key)
            if not -len(self.response_names) <= j < len(self.response_names):
                raise IndexError(
                    f"response index {key} out of range for {len(self.response_names)} responses"
                )

        p = self.params
        return ResponseSummary(
            name=p.response_names[j],
            theta=p.theta[:, j],
            se=p.se[:, j],
            coef=p.coef[:, j],
            cov=p.cov[:, :, j],
            dlogL=p.dlogL[:, j],
            niter=int(p.niter[j]),
            converged=bool(p.converged[j]),
        )

    def to_frames(self) -> dict[str, 'pd.DataFrame']:
        """Matrix outputs as labelled pandas DataFrames.

        Returns:
            Dict with keys 'theta', 'se', 'coef', 'dlogL' (rows are
            components or coefficients, columns are responses) and
            'fit' (one row per response: niter, converged).
        """
        import pandas as pd

        p = self.params
        columns = list(p.response_names)
        return {
            'theta': pd.DataFrame(p.theta, index=list(p.component_names), columns=columns),
            'se': pd.DataFrame(p.se, index=list(p.component_names), columns=columns),
            'coef': pd.DataFrame(p.coef, index=list(p.coef_names), columns=columns),
            'dlogL': pd.DataFrame(p.dlogL, index=list(p.component_names), columns=columns),
            'fit': pd.DataFrame(
                {'niter': p.niter, 'converged': p.converged},
                index=columns,
            ),
        }

    # --- Summary ---

    def summary(self, max_responses: int = 10) -> str:
        """Text overview: model dimensions, convergence, first responses."""
        p = self.params
        m = len(p.response_names)

        lines = []
        lines.append(f"Linear mixed model fit by {p.method}")
        lines.append(
            f"Responses: {m}, fixed effects: {len(p.coef_names)}, "
            f"variance components: {len(p.component_names)}, df: {p.df}"
        )
        n_conv = int(np.sum(p.converged))
        lines.append(
            f"Converged: {n_conv}/{m}, iterations: "
            f"{_range_text(p.niter)}"
        )
        lines.append("")

        shown = min(m, max_responses)
        lines.append("Variance components:")
        header = f" {'Response':<15s}" + ''.join(f" {c:>12s}" for c in p.component_names)
        lines.append(header)
        for j in range(shown):
            row = ''.join(f" {p.theta[i, j]:12.4g}" for i in range(len(p.component_names)))
            lines.append(f" {p.response_names[j]:<15s}{row}")
        lines.append("")

        lines.append("Fixed effects:")
        header = f" {'Response':<15s}" + ''.join(f" {c:>12s}" for c in p.coef_names)
        lines.append(header)
        for j in range(shown):
            row = ''.join(f" {p.coef[i, j]:12.4g}" for i in range(len(p.coef_names)))
            lines.append(f" {p.response_names[j]:<15s}{row}")

        if shown < m:
            lines.append(f" ... {m - shown} more responses")

        if p.diagnostics:
            lines.append("")
            lines.append(f"WARNING: {len(p.diagnostics)} response(s) did not converge")

        return '\n'.join(lines)

    def __repr__(self) -> str:
        p = self.params
        return (
            f"LMMFitSolution({p.method}, "
            f"responses={len(p.response_names)}, "
            f"fixed={len(p.coef_names)}, "
            f"components={len(p.component_names)}, "
            f"converged={int(np.sum(p.converged))})"
        )


def _range_text(values: NDArray) -> str:
    if len(values) == 0:
        return '-'
    lo, hi = int(np.min(values)), int(np.max(values))
    return str(lo) if lo == hi else f"{lo}-{hi}"
