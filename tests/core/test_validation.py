"""
Tests for input validation utilities.

Validates every function in core/validation.py:
    - check_array: conversion, dtype coercion, object rejection
    - check_finite: missing / infinite value detection
    - check_ndim / check_2d: dimensionality checks
    - check_consistent_length: multi-array sample-count matching
    - check_min_samples: positive residual df
    - check_block_widths / check_block_sizes: random-effect block widths
    - check_variance_components: initial sigma2 vector
    - check_names: label sequences
"""

import numpy as np
import pandas as pd
import pytest

from lmmfit.core.exceptions import DimensionError, ValidationError
from lmmfit.core.validation import (
    check_2d,
    check_array,
    check_block_sizes,
    check_block_widths,
    check_consistent_length,
    check_finite,
    check_min_samples,
    check_names,
    check_ndim,
    check_variance_components,
)


# =====================================================================
# check_array
# =====================================================================


class TestCheckArray:

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "X")
        assert isinstance(result, np.ndarray)
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_bool_indicator_promoted_to_float(self):
        result = check_array(np.array([[True, False], [False, True]]), "Z")
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, np.eye(2))

    def test_dataframe_accepted(self):
        df = pd.DataFrame({"a": [1, 2], "b": [3.0, 4.0]})
        result = check_array(df, "X")
        assert result.shape == (2, 2)

    def test_none_rejected(self):
        with pytest.raises(ValidationError, match="Y: is required"):
            check_array(None, "Y")

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="non-numeric"):
            check_array(np.array(["a", "b"]), "X")

    def test_mixed_types_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array(np.array([1, "a", None], dtype=object), "X")


# =====================================================================
# check_finite
# =====================================================================


class TestCheckFinite:

    def test_finite_passes(self):
        check_finite(np.ones((3, 2)), "X")

    def test_nan_rejected_with_count(self):
        arr = np.array([1.0, np.nan, np.nan])
        with pytest.raises(ValidationError, match="2 NaN, 0 Inf"):
            check_finite(arr, "Y")

    def test_inf_rejected(self):
        with pytest.raises(ValidationError, match="Z"):
            check_finite(np.array([np.inf, 1.0]), "Z")


# =====================================================================
# Dimensionality
# =====================================================================


class TestDimensionality:

    def test_check_ndim_passes(self):
        check_ndim(np.zeros((2, 2, 2)), 3, "cov")

    def test_check_ndim_rejects_wrong_rank(self):
        with pytest.raises(DimensionError, match="expected 1D"):
            check_ndim(np.zeros((2, 2)), 1, "sigma2")

    def test_check_2d_rejects_3d(self):
        with pytest.raises(DimensionError, match="expected 2D"):
            check_2d(np.zeros((2, 2, 2)), "X")

    def test_dimension_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            check_2d(np.zeros(3), "X")


class TestConsistentLength:

    def test_matching_lengths(self):
        check_consistent_length(
            np.zeros((5, 2)), np.zeros((5, 1)), np.zeros((5, 4)),
            names=("Y", "X", "Z"),
        )

    def test_mismatch_reports_all(self):
        with pytest.raises(DimensionError, match="Y=5, X=4, Z=5"):
            check_consistent_length(
                np.zeros((5, 2)), np.zeros((4, 1)), np.zeros((5, 4)),
                names=("Y", "X", "Z"),
            )

    def test_names_must_match_arrays(self):
        with pytest.raises(ValueError):
            check_consistent_length(np.zeros(3), names=("a", "b"))


class TestMinSamples:

    def test_positive_df_passes(self):
        check_min_samples(6, 1, "X")

    def test_zero_df_rejected(self):
        with pytest.raises(ValidationError, match="n=3, p=3"):
            check_min_samples(3, 3, "X")


# =====================================================================
# Block widths
# =====================================================================


class TestBlockWidths:

    def test_valid_widths(self):
        assert check_block_widths([3, 2]) == (3, 2)

    def test_ragged_rejected(self):
        with pytest.raises(ValidationError, match="d: cannot convert"):
            check_block_widths([[1], [1, 2]])

    def test_none_rejected(self):
        with pytest.raises(ValidationError, match="d: is required"):
            check_block_widths(None)

    def test_nested_rejected(self):
        with pytest.raises(ValidationError, match="flat sequence"):
            check_block_widths([[2]])

    def test_nan_rejected(self):
        with pytest.raises(ValidationError, match=r"d\[0\]: block width must be an integer"):
            check_block_widths([np.nan])

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="d"):
            check_block_widths(['a'])


class TestBlockSizes:

    def test_valid_widths(self):
        assert check_block_sizes([3, 2], 5) == (3, 2)

    def test_numpy_widths(self):
        assert check_block_sizes(np.array([4]), 4) == (4,)

    def test_scalar_width(self):
        assert check_block_sizes(2, 2) == (2,)

    def test_integral_floats_accepted(self):
        assert check_block_sizes([2.0, 3.0], 5) == (2, 3)

    def test_sum_mismatch(self):
        with pytest.raises(DimensionError, match="sum to 4, but Z has 5 columns"):
            check_block_sizes([2, 2], 5)

    def test_zero_width_rejected(self):
        with pytest.raises(ValidationError, match="positive"):
            check_block_sizes([0, 5], 5)

    def test_fractional_width_rejected(self):
        with pytest.raises(ValidationError, match="integer"):
            check_block_sizes([2.5, 2.5], 5)

    def test_empty_rejected(self):
        with pytest.raises(ValidationError, match="non-empty"):
            check_block_sizes([], 0)


# =====================================================================
# check_variance_components
# =====================================================================


class TestVarianceComponents:

    def test_valid(self):
        s = check_variance_components([0.5, 0.0, 1.0], k=2)
        np.testing.assert_array_equal(s, [0.5, 0.0, 1.0])

    def test_wrong_length(self):
        with pytest.raises(DimensionError, match="expected 3"):
            check_variance_components([1.0, 1.0], k=2)

    def test_missing_value(self):
        with pytest.raises(ValidationError):
            check_variance_components([np.nan, 1.0], k=1)

    def test_nonpositive_residual(self):
        with pytest.raises(ValidationError, match="residual"):
            check_variance_components([1.0, 0.0], k=1)


class TestNames:

    def test_none_passthrough(self):
        assert check_names(None, 3, "response_names") is None

    def test_converted_to_str_tuple(self):
        assert check_names([1, 2], 2, "coef_names") == ("1", "2")

    def test_wrong_count(self):
        with pytest.raises(DimensionError, match="expected 3 labels, got 2"):
            check_names(["a", "b"], 3, "response_names")
