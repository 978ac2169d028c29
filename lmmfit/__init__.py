"""
lmmfit: fast linear mixed models for many responses.

Fits one linear mixed-effects model design to thousands of response
vectors (e.g. every gene of a single-cell expression matrix) by REML.
The raw data is reduced once to summary statistics whose size depends
on the number of fixed and random effects only; each response is then
fitted by Fisher scoring from those statistics.

Submodules:
    mixed: Reduction, estimation and results
    core: Exceptions, validation, configuration, numeric kernels

Logging goes through loguru and is disabled by default; enable it with
``logger.enable("lmmfit")``.
"""

from loguru import logger

__version__ = "0.1.0"

# Libraries stay silent unless the application opts in
logger.disable("lmmfit")

from lmmfit.core.config import FitConfig  # noqa: E402
from lmmfit.core.exceptions import (  # noqa: E402
    LMMFitError,
    ValidationError,
    DimensionError,
    NumericalError,
    ConvergenceWarning,
)
from lmmfit.mixed import (  # noqa: E402
    lmmfit,
    lmmfit_nt,
    lmmfit_summary,
    SummaryDesign,
    LMMFitSolution,
    available_methods,
    register_method,
)

__all__ = [
    "__version__",
    "lmmfit",
    "lmmfit_nt",
    "lmmfit_summary",
    "SummaryDesign",
    "LMMFitSolution",
    "FitConfig",
    "available_methods",
    "register_method",
    "LMMFitError",
    "ValidationError",
    "DimensionError",
    "NumericalError",
    "ConvergenceWarning",
]
