"""
Shared fixtures for mixed model tests.

Provides small designs with closed-form REML answers and larger
simulated many-response datasets with known variance components.
"""

import numpy as np
import pytest


def indicators(labels):
    """One-hot columns for an integer label vector."""
    labels = np.asarray(labels)
    levels = np.unique(labels)
    return (labels[:, None] == levels[None, :]).astype(float)


@pytest.fixture
def two_subjects():
    """Six observations on two subjects, random intercept per subject.

    Balanced one-way layout, so REML equals the ANOVA estimators:
        MSB = 1.601667, MSW = 0.023333
        s_subject = (MSB - MSW) / 3 = 0.526111
        Var(intercept) = MSB / 6 = 0.266944
    """
    y = np.array([1.0, 1.2, 0.9, 2.1, 1.9, 2.2])
    X = np.ones((6, 1))
    Z = indicators([0, 0, 0, 1, 1, 1])
    return {
        'Y': y.reshape(-1, 1),
        'X': X,
        'Z': Z,
        'd': [2],
        'theta': np.array([0.526111111, 0.023333333]),
        'coef': 1.55,
        'var_coef': 1.601666667 / 6,
    }


@pytest.fixture
def many_genes(rng):
    """Random intercept model fitted to many responses at once.

    200 groups of 10 observations, one covariate, 20 responses all
    drawn with s_group = 2.0 and s_resid = 1.0.
    """
    n_groups, per_group, m = 200, 10, 20
    n = n_groups * per_group
    group = np.repeat(np.arange(n_groups), per_group)

    x = rng.standard_normal(n)
    X = np.column_stack([np.ones(n), x])
    Z = indicators(group)
    beta = np.array([3.0, -1.0])

    b = rng.normal(0.0, np.sqrt(2.0), size=(n_groups, m))
    e = rng.normal(0.0, 1.0, size=(n, m))
    Y = (X @ beta)[:, None] + b[group] + e
    return {
        'Y': Y, 'X': X, 'Z': Z, 'd': [n_groups],
        'beta': beta, 's_group': 2.0, 's_resid': 1.0,
    }


@pytest.fixture
def crossed_balanced(rng):
    """Balanced crossed design: 3 levels of A by 3 levels of B, 4 replicates.

    The level effects are fixed numbers large enough that both ANOVA
    variance estimates are positive, so REML lands in the interior.
    """
    reps = 4
    a = np.repeat(np.arange(3), 3 * reps)
    b = np.tile(np.repeat(np.arange(3), reps), 3)
    n = a.size

    alpha = np.array([-2.0, 0.0, 2.5])
    gamma = np.array([1.0, -1.5, 0.5])
    y = 10.0 + alpha[a] + gamma[b] + rng.normal(0.0, 0.5, size=n)

    return {
        'y': y,
        'a': a,
        'b': b,
        'reps': reps,
        'X': np.ones((n, 1)),
        'ZA': indicators(a),
        'ZB': indicators(b),
    }
