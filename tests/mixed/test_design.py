"""
Tests for the summary reduction (SummaryDesign).

Validates:
    - Reduced statistics match their definitions on the raw data
    - Invariance to a shared row permutation of (Y, X, Z)
    - from_chunks, from_summary and from_arrays_nt agree with from_arrays
    - Label defaults and DataFrame label extraction
    - Malformed input rejected with the right exception
"""

import numpy as np
import pandas as pd
import pytest

from lmmfit.core.exceptions import DimensionError, ValidationError
from lmmfit.mixed.design import SummaryDesign

STATS = ('XXinv', 'XY', 'Ynorm', 'ZX', 'ZY', 'ZZ', 'xxz', 'zrz', 'zry', 'yry')


def assert_same_statistics(a, b, rtol=1e-10, atol=1e-8):
    for name in STATS:
        np.testing.assert_allclose(
            getattr(a, name), getattr(b, name), rtol=rtol, atol=atol, err_msg=name
        )
    assert a.n == b.n
    assert a.p == b.p
    assert a.d == b.d


@pytest.fixture
def small(rng):
    n, m = 30, 4
    X = np.column_stack([np.ones(n), rng.standard_normal(n)])
    Z = np.column_stack([
        (rng.integers(0, 3, n)[:, None] == np.arange(3)).astype(float),
        rng.standard_normal((n, 2)),
    ])
    Y = rng.standard_normal((n, m))
    return Y, X, Z, [3, 2]


class TestReduction:

    def test_statistics_match_definitions(self, small):
        Y, X, Z, d = small
        design = SummaryDesign.from_arrays(Y, X, Z, d)

        R = np.eye(X.shape[0]) - X @ np.linalg.pinv(X.T @ X) @ X.T
        np.testing.assert_allclose(design.zrz, Z.T @ R @ Z, atol=1e-10)
        np.testing.assert_allclose(design.zry, Z.T @ R @ Y, atol=1e-10)
        np.testing.assert_allclose(design.yry, np.sum(Y * (R @ Y), axis=0), atol=1e-10)
        np.testing.assert_allclose(design.Ynorm, np.sum(Y ** 2, axis=0))

    def test_dimensions(self, small):
        Y, X, Z, d = small
        design = SummaryDesign.from_arrays(Y, X, Z, d)
        assert (design.n, design.p, design.q, design.k, design.m) == (30, 2, 5, 2, 4)
        assert design.df == 28
        assert design.block_slices == (slice(0, 3), slice(3, 5))
        np.testing.assert_array_equal(design.expanded, [0, 0, 0, 1, 1])

    def test_row_permutation_invariance(self, small, rng):
        Y, X, Z, d = small
        perm = rng.permutation(Y.shape[0])
        a = SummaryDesign.from_arrays(Y, X, Z, d)
        b = SummaryDesign.from_arrays(Y[perm], X[perm], Z[perm], d)
        assert_same_statistics(a, b)

    def test_rank_deficient_X(self, collinear_X, rng):
        n = collinear_X.shape[0]
        Y = rng.standard_normal((n, 2))
        Z = (rng.integers(0, 4, n)[:, None] == np.arange(4)).astype(float)
        design = SummaryDesign.from_arrays(Y, collinear_X, Z, [4])

        # Projection onto col(X) is unaffected by the redundant column
        X_full = collinear_X[:, :3]
        reference = SummaryDesign.from_arrays(Y, X_full, Z, [4])
        np.testing.assert_allclose(design.zrz, reference.zrz, atol=1e-8)
        np.testing.assert_allclose(design.yry, reference.yry, atol=1e-8)

    def test_one_dimensional_response(self, small):
        Y, X, Z, d = small
        design = SummaryDesign.from_arrays(Y[:, 0], X, Z, d)
        assert design.m == 1


class TestAlternativeInputs:

    def test_chunks_match_arrays(self, small):
        Y, X, Z, d = small
        chunks = [(Y[i:i + 7], X[i:i + 7], Z[i:i + 7]) for i in range(0, 30, 7)]
        a = SummaryDesign.from_arrays(Y, X, Z, d)
        b = SummaryDesign.from_chunks(iter(chunks), d)
        assert_same_statistics(a, b)

    def test_summary_matches_arrays(self, small):
        Y, X, Z, d = small
        a = SummaryDesign.from_arrays(Y, X, Z, d)
        b = SummaryDesign.from_summary(
            XX=X.T @ X, XY=X.T @ Y, ZX=Z.T @ X, ZY=Z.T @ Y, ZZ=Z.T @ Z,
            Ynorm=np.sum(Y ** 2, axis=0), n=30, d=d,
        )
        assert_same_statistics(a, b)

    def test_nt_matches_transposed(self, small):
        Y, X, Z, d = small
        a = SummaryDesign.from_arrays(Y, X, Z, d)
        b = SummaryDesign.from_arrays_nt(np.ascontiguousarray(Y.T), X, Z, d)
        assert_same_statistics(a, b)


class TestLabels:

    def test_default_labels(self, small):
        Y, X, Z, d = small
        design = SummaryDesign.from_arrays(Y, X, Z, d)
        assert design.response_names == ('Y1', 'Y2', 'Y3', 'Y4')
        assert design.coef_names == ('X1', 'X2')
        assert design.group_names == ('Z1', 'Z2')

    def test_dataframe_labels(self, small):
        Y, X, Z, d = small
        Y_df = pd.DataFrame(Y, columns=['g1', 'g2', 'g3', 'g4'])
        X_df = pd.DataFrame(X, columns=['(Intercept)', 'age'])
        design = SummaryDesign.from_arrays(Y_df, X_df, Z, d, group_names=['batch', 'pcs'])
        assert design.response_names == ('g1', 'g2', 'g3', 'g4')
        assert design.coef_names == ('(Intercept)', 'age')
        assert design.group_names == ('batch', 'pcs')

    def test_nt_labels_from_index(self, small):
        Y, X, Z, d = small
        Y_df = pd.DataFrame(Y.T, index=['a', 'b', 'c', 'd'])
        design = SummaryDesign.from_arrays_nt(Y_df, X, Z, d)
        assert design.response_names == ('a', 'b', 'c', 'd')

    def test_wrong_label_count(self, small):
        Y, X, Z, d = small
        with pytest.raises(DimensionError, match="response_names"):
            SummaryDesign.from_arrays(Y, X, Z, d, response_names=['only_one'])


class TestInvalidInput:

    def test_missing_value_in_Y(self, small):
        Y, X, Z, d = small
        Y = Y.copy()
        Y[3, 1] = np.nan
        with pytest.raises(ValidationError, match="Y: contains missing"):
            SummaryDesign.from_arrays(Y, X, Z, d)

    @pytest.mark.parametrize("target", ['Y', 'X', 'Z'])
    @pytest.mark.parametrize("bad", [np.nan, np.inf])
    def test_non_finite_in_any_input(self, small, target, bad):
        Y, X, Z, d = small
        arrays = {'Y': Y.copy(), 'X': X.copy(), 'Z': Z.copy()}
        arrays[target][5, 1] = bad
        with pytest.raises(ValidationError, match=f"{target}: contains missing"):
            SummaryDesign.from_arrays(arrays['Y'], arrays['X'], arrays['Z'], d)

    @pytest.mark.parametrize("target", ['Y', 'X', 'Z'])
    def test_non_finite_in_any_input_nt(self, small, target):
        Y, X, Z, d = small
        arrays = {'Y': np.ascontiguousarray(Y.T), 'X': X.copy(), 'Z': Z.copy()}
        arrays[target][1, 1] = np.nan
        with pytest.raises(ValidationError, match=f"{target}: contains missing"):
            SummaryDesign.from_arrays_nt(arrays['Y'], arrays['X'], arrays['Z'], d)

    @pytest.mark.parametrize("position", [0, 1, 2])
    def test_non_finite_in_any_chunk(self, small, position):
        Y, X, Z, d = small
        Y = Y.copy()
        Y[10 * position + 3, 0] = np.nan
        chunks = [(Y[i:i + 10], X[i:i + 10], Z[i:i + 10]) for i in (0, 10, 20)]
        with pytest.raises(ValidationError, match=f"chunk\\[{position}\\]\\.Y: contains missing"):
            SummaryDesign.from_chunks(iter(chunks), d)

    @pytest.mark.parametrize("target", ['X', 'Z'])
    def test_non_finite_in_chunk_design(self, small, target):
        Y, X, Z, d = small
        arrays = {'X': X.copy(), 'Z': Z.copy()}
        arrays[target][25, 0] = np.nan
        chunks = [(Y[i:i + 15], arrays['X'][i:i + 15], arrays['Z'][i:i + 15])
                  for i in (0, 15)]
        with pytest.raises(ValidationError, match=f"chunk\\[1\\]\\.{target}: contains missing"):
            SummaryDesign.from_chunks(chunks, d)

    def test_row_mismatch(self, small):
        Y, X, Z, d = small
        with pytest.raises(DimensionError, match="Inconsistent number of samples"):
            SummaryDesign.from_arrays(Y[:-1], X, Z, d)

    def test_nt_row_mismatch(self, small):
        Y, X, Z, d = small
        with pytest.raises(DimensionError, match="Inconsistent number of samples"):
            SummaryDesign.from_arrays_nt(Y, X, Z, d)

    def test_block_widths_do_not_sum_to_q(self, small):
        Y, X, Z, d = small
        with pytest.raises(DimensionError, match="sum to 4"):
            SummaryDesign.from_arrays(Y, X, Z, [2, 2])

    def test_too_few_samples(self, rng):
        X = rng.standard_normal((3, 3))
        with pytest.raises(ValidationError, match="residual df"):
            SummaryDesign.from_arrays(np.ones(3), X, np.eye(3), [3])

    def test_no_chunks(self):
        with pytest.raises(ValidationError, match="at least one"):
            SummaryDesign.from_chunks([], [2])

    def test_chunks_disagree(self, small):
        Y, X, Z, d = small
        chunks = [(Y[:10], X[:10], Z[:10]), (Y[10:, :2], X[10:], Z[10:])]
        with pytest.raises(DimensionError, match="chunk\\[1\\]"):
            SummaryDesign.from_chunks(chunks, d)

    def test_summary_shape_mismatch(self, small):
        Y, X, Z, d = small
        with pytest.raises(DimensionError, match="ZX"):
            SummaryDesign.from_summary(
                XX=X.T @ X, XY=X.T @ Y, ZX=(Z.T @ X)[:, :1], ZY=Z.T @ Y, ZZ=Z.T @ Z,
                Ynorm=np.sum(Y ** 2, axis=0), n=30, d=d,
            )

    def test_summary_non_integer_n(self, small):
        Y, X, Z, d = small
        with pytest.raises(ValidationError, match="n: expected an integer"):
            SummaryDesign.from_summary(
                XX=X.T @ X, XY=X.T @ Y, ZX=Z.T @ X, ZY=Z.T @ Y, ZZ=Z.T @ Z,
                Ynorm=np.sum(Y ** 2, axis=0), n=30.0, d=d,
            )
