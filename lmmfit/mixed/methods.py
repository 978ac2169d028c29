"""
Registry of variance-component estimation methods.

REML admits several iterative solvers: gradient methods (Newton-Raphson,
Fisher scoring, average information), EM, and iterated MINQE. Only
Fisher scoring ('REML-FS') ships with lmmfit. Other solvers plug in by
registering a factory that returns an object satisfying
lmmfit.core.protocols.Estimator:

    >>> from lmmfit.mixed.methods import register_method
    >>> register_method('REML-AI', AverageInformationBackend)
    >>> lmmfit(Y, X, Z, d, method='REML-AI')
"""

from __future__ import annotations

from typing import Callable

from lmmfit.core.exceptions import ValidationError
from lmmfit.core.protocols import Estimator
from lmmfit.mixed.backends.cpu import CPUFisherScoringBackend

EstimatorFactory = Callable[[], Estimator]

_REGISTRY: dict[str, EstimatorFactory] = {
    CPUFisherScoringBackend.label: CPUFisherScoringBackend,
}


def register_method(label: str, factory: EstimatorFactory, *, replace: bool = False) -> None:
    """Register an estimation method under a label.

    Args:
        label: Method label passed as ``method=`` to the fit functions.
        factory: Zero-argument callable returning an Estimator.
        replace: Allow overwriting an existing label.

    Raises:
        ValidationError: If the label is taken and replace is False, or
            factory is not callable.
    """
    if not isinstance(label, str) or not label:
        raise ValidationError(f"label: expected a non-empty string, got {label!r}")
    if not callable(factory):
        raise ValidationError(f"factory for {label!r} is not callable")
    if label in _REGISTRY and not replace:
        raise ValidationError(
            f"method {label!r} is already registered; pass replace=True to override"
        )
    _REGISTRY[label] = factory


def unregister_method(label: str) -> None:
    """Remove a registered method. The built-in 'REML-FS' cannot be removed."""
    if label == CPUFisherScoringBackend.label:
        raise ValidationError(f"cannot unregister the built-in method {label!r}")
    if label not in _REGISTRY:
        raise ValidationError(f"method {label!r} is not registered")
    del _REGISTRY[label]


def available_methods() -> tuple[str, ...]:
    """Labels of all registered methods, in registration order."""
    return tuple(_REGISTRY)


def get_method(label: str) -> Estimator:
    """Instantiate the estimator registered under label.

    Raises:
        ValidationError: If no method is registered under label, or the
            factory returns something that is not an Estimator.
    """
    try:
        factory = _REGISTRY[label]
    except KeyError:
        raise ValidationError(
            f"Unknown method {label!r}. Available: {list(_REGISTRY)}"
        ) from None

    estimator = factory()
    if not isinstance(estimator, Estimator):
        raise ValidationError(
            f"factory for {label!r} returned {type(estimator).__name__}, "
            f"which does not implement the Estimator protocol"
        )
    return estimator
