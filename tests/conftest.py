"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def collinear_X(rng):
    """Fixed-effect design with perfect collinearity (X'X singular)."""
    n = 40
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    return np.column_stack([np.ones(n), x1, x2, x1 + x2])
