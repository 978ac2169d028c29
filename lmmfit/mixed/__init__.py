"""
Mixed models: REML fits of one LMM design to many responses.

Public API:
    lmmfit()          fit every column of Y (samples by responses)
    lmmfit_nt()       fit every row of Y (responses by samples)
    lmmfit_summary()  fit from precomputed summary statistics
    SummaryDesign     the one-pass reduction of (Y, X, Z)
    LMMFitSolution    result wrapper
"""

from lmmfit.mixed.design import SummaryDesign
from lmmfit.mixed.solvers import lmmfit, lmmfit_nt, lmmfit_summary
from lmmfit.mixed.solution import LMMFitSolution, ResponseSummary
from lmmfit.mixed._common import ConvergenceDiagnostic, LMMFitParams
from lmmfit.mixed.methods import (
    available_methods, get_method, register_method, unregister_method,
)

__all__ = [
    "lmmfit",
    "lmmfit_nt",
    "lmmfit_summary",
    "SummaryDesign",
    "LMMFitSolution",
    "ResponseSummary",
    "LMMFitParams",
    "ConvergenceDiagnostic",
    "available_methods",
    "get_method",
    "register_method",
    "unregister_method",
]
