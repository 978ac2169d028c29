"""
Input validation utilities for lmmfit.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent. All of them run before any
matrix work begins.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - No default handling of edge cases
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

from __future__ import annotations

import numbers

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any, Sequence

from lmmfit.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 numpy array.

    Accepts any array-like (including pandas objects) and converts to a
    numpy array. Rejects inputs that result in object dtype (indicating
    mixed types or non-numeric data).

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with float64 dtype

    Raises:
        ValidationError: If input cannot be converted to numeric array
    """
    if array is None:
        raise ValidationError(f"{name}: is required, got None")

    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    # Reject non-numeric dtypes (strings, bytes, datetime, etc.)
    if not np.issubdtype(result.dtype, np.number) and result.dtype != np.bool_:
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    return result.astype(np.float64, copy=False)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no missing (NaN) or infinite values.

    Args:
        array: Array to check
        name: Parameter name for error messages

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains missing or non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_ndim(array: NDArray[np.floating[Any]], ndim: int, name: str) -> None:
    """
    Verify array has exactly the specified number of dimensions.

    Raises:
        DimensionError: If array has wrong number of dimensions
    """
    if array.ndim != ndim:
        raise DimensionError(
            f"{name}: expected {ndim}D array, got {array.ndim}D with shape {array.shape}"
        )


def check_2d(array: NDArray[np.floating[Any]], name: str) -> None:
    """Verify array is 2-dimensional."""
    check_ndim(array, 2, name)


def check_consistent_length(
    *arrays: NDArray[np.floating[Any]],
    names: tuple[str, ...]
) -> None:
    """
    Verify all arrays have the same length (first dimension).

    Args:
        *arrays: Arrays to check
        names: Parameter names for error messages (must match number of arrays)

    Raises:
        ValueError: If number of names doesn't match number of arrays
        DimensionError: If arrays have inconsistent lengths
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"Number of arrays ({len(arrays)}) must match number of names ({len(names)})"
        )

    if len(arrays) < 2:
        return

    lengths = [arr.shape[0] for arr in arrays]
    if len(set(lengths)) > 1:
        details = ", ".join(f"{name}={length}" for name, length in zip(names, lengths))
        raise DimensionError(f"Inconsistent number of samples: {details}")


def check_min_samples(n: int, p: int, name: str) -> None:
    """
    Verify there are more samples than fixed-effect columns.

    REML needs at least one residual degree of freedom (n - p > 0).

    Raises:
        ValidationError: If n <= p
    """
    if n <= p:
        raise ValidationError(
            f"{name}: requires more samples than fixed effects "
            f"(n={n}, p={p}); residual df n - p must be positive"
        )


def check_block_widths(d: Sequence[int] | ArrayLike, name: str = 'd') -> tuple[int, ...]:
    """
    Validate random-effect block widths on their own.

    Args:
        d: Block widths (m1, ..., mk)
        name: Parameter name for error messages

    Returns:
        Block widths as a tuple of Python ints

    Raises:
        ValidationError: If d is not a flat non-empty sequence, or
            contains non-integer or non-positive widths
    """
    if d is None:
        raise ValidationError(f"{name}: is required, got None")

    try:
        widths = np.atleast_1d(np.asarray(d))
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if widths.dtype == object or widths.ndim != 1 or widths.size == 0:
        raise ValidationError(f"{name}: expected a non-empty flat sequence of block widths")

    out = []
    for i, w in enumerate(widths.tolist()):
        if (isinstance(w, bool) or not isinstance(w, numbers.Real)
                or not np.isfinite(w) or w != int(w)):
            raise ValidationError(f"{name}[{i}]: block width must be an integer, got {w!r}")
        if w <= 0:
            raise ValidationError(f"{name}[{i}]: block width must be positive, got {w}")
        out.append(int(w))
    return tuple(out)


def check_block_sizes(d: Sequence[int] | ArrayLike, q: int, name: str = 'd') -> tuple[int, ...]:
    """
    Validate random-effect block widths against the columns of Z.

    Args:
        d: Block widths (m1, ..., mk)
        q: Number of columns in Z
        name: Parameter name for error messages

    Returns:
        Block widths as a tuple of Python ints

    Raises:
        ValidationError: As check_block_widths
        DimensionError: If sum(d) != q
    """
    out = check_block_widths(d, name)
    if sum(out) != q:
        raise DimensionError(
            f"{name}: block widths sum to {sum(out)}, but Z has {q} columns"
        )
    return out


def check_variance_components(
    sigma2: ArrayLike,
    k: int,
    name: str = 'sigma2',
) -> NDArray[np.floating[Any]]:
    """
    Validate an initial variance-component vector (s1, ..., sk, s_resid).

    Raises:
        DimensionError: If length is not k + 1
        ValidationError: If values are non-finite or the residual
            component is not positive
    """
    s = check_array(sigma2, name).ravel()
    if s.shape[0] != k + 1:
        raise DimensionError(
            f"{name}: expected {k + 1} variance components (k={k} random + residual), "
            f"got {s.shape[0]}"
        )
    check_finite(s, name)
    if s[-1] <= 0:
        raise ValidationError(
            f"{name}: residual variance component must be positive, got {s[-1]}"
        )
    return s


def check_names(names: Sequence[str] | None, expected: int, name: str) -> tuple[str, ...] | None:
    """
    Validate an optional label sequence against the expected length.

    Raises:
        DimensionError: If the number of labels is wrong
    """
    if names is None:
        return None
    labels = tuple(str(x) for x in names)
    if len(labels) != expected:
        raise DimensionError(
            f"{name}: expected {expected} labels, got {len(labels)}"
        )
    return labels
