"""
Variance-component estimation backends.

Available backends:
    CPUFisherScoringBackend: REML by Fisher scoring ('REML-FS')
"""

from lmmfit.mixed.backends.cpu import CPUFisherScoringBackend

__all__ = [
    "CPUFisherScoringBackend",
]
