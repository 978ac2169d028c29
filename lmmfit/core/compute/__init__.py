"""
Shared compute infrastructure for lmmfit.

This module provides timing utilities and the linear algebra kernels
shared by the reducer and the estimators.

IMPORTANT: This is NOT where estimators live. Those go in
mixed/backends/. This module contains shared NUMERIC infrastructure.

Submodules:
    timing: Execution timing utilities
    linalg: Linear algebra kernels (pseudo-inverse)
"""

from lmmfit.core.compute.timing import Timer

__all__ = [
    "Timer",
]
