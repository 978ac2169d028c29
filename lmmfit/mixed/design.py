"""
Summary reduction for many-response linear mixed models.

SummaryDesign reduces the raw response matrix Y, the fixed-effect design
X and the partitioned random-effect design Z to a fixed set of
cross-product matrices whose size depends only on p, q and the number
of responses m, never on the sample count n. Every estimator works from
these statistics alone; the n-sized data is touched exactly once, here.

Reduced statistics (m responses, p fixed effects, q random effects):
    XXinv  (p, p)  pseudo-inverse of X'X
    XY     (p, m)  X'Y
    Ynorm  (m,)    squared norm of each response column
    ZX     (q, p)  Z'X
    ZY     (q, m)  Z'Y
    ZZ     (q, q)  Z'Z
    xxz    (p, q)  XXinv X'Z
    zrz    (q, q)  Z'RZ,  R = I - X XXinv X'
    zry    (q, m)  Z'RY
    yry    (m,)    y_j'R y_j for each response
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray
from loguru import logger

from lmmfit.core.compute.linalg import ginv
from lmmfit.core.exceptions import DimensionError, ValidationError
from lmmfit.core.validation import (
    check_array,
    check_block_sizes,
    check_consistent_length,
    check_finite,
    check_min_samples,
    check_names,
    check_2d,
)


@dataclass(frozen=True)
class SummaryDesign:
    """Sufficient statistics for fitting an LMM to every column of Y.

    Construct via the factory classmethods, not directly.

    Attributes:
        XXinv, XY, Ynorm, ZX, ZY, ZZ: Raw cross-products (see module doc).
        xxz, zrz, zry, yry: Forms residualized against the column space of X.
        n: Number of samples.
        p: Number of fixed-effect columns.
        d: Widths of the k random-effect blocks of Z.
        response_names: Labels for the m responses.
        coef_names: Labels for the p fixed effects.
        group_names: Labels for the k random-effect blocks.
    """
    XXinv: NDArray
    XY: NDArray
    Ynorm: NDArray
    ZX: NDArray
    ZY: NDArray
    ZZ: NDArray
    xxz: NDArray
    zrz: NDArray
    zry: NDArray
    yry: NDArray
    n: int
    p: int
    d: tuple[int, ...]
    response_names: tuple[str, ...]
    coef_names: tuple[str, ...]
    group_names: tuple[str, ...]

    # === Dimensions ===

    @property
    def q(self) -> int:
        """Number of random-effect columns (sum of d)."""
        return sum(self.d)

    @property
    def k(self) -> int:
        """Number of random-effect blocks."""
        return len(self.d)

    @property
    def m(self) -> int:
        """Number of responses."""
        return self.XY.shape[1]

    @property
    def df(self) -> int:
        """Residual degrees of freedom, n - p."""
        return self.n - self.p

    @property
    def block_slices(self) -> tuple[slice, ...]:
        """Column slices of Z for each random-effect block."""
        edges = np.concatenate([[0], np.cumsum(self.d)])
        return tuple(slice(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]))

    @property
    def expanded(self) -> NDArray:
        """Block index of every column of Z, shape (q,)."""
        return np.repeat(np.arange(self.k), self.d)

    # === Factory Methods ===

    @classmethod
    def from_arrays(
        cls,
        Y: ArrayLike,
        X: ArrayLike,
        Z: ArrayLike,
        d: Sequence[int],
        *,
        response_names: Sequence[str] | None = None,
        coef_names: Sequence[str] | None = None,
        group_names: Sequence[str] | None = None,
    ) -> SummaryDesign:
        """Reduce raw data with Y laid out samples by responses.

        Args:
            Y: Responses, shape (n, m). A 1-D Y is a single response.
            X: Fixed-effect design, shape (n, p).
            Z: Random-effect design, shape (n, q), blocks laid out per d.
            d: Block widths (m1, ..., mk), sum(d) == q.
            response_names: Optional labels for the m columns of Y.
                Defaults to DataFrame columns when Y is a DataFrame.
            coef_names: Optional labels for the columns of X.
            group_names: Optional labels for the k blocks of Z.

        Returns:
            SummaryDesign

        Raises:
            ValidationError: Missing values, non-numeric input, bad widths.
            DimensionError: Sample-count mismatch or sum(d) != q.
        """
        if response_names is None:
            response_names = _labels(Y, 'columns')
        if coef_names is None:
            coef_names = _labels(X, 'columns')

        Y_arr = _as_matrix(Y, 'Y')
        X_arr = _as_matrix(X, 'X')
        Z_arr = _as_matrix(Z, 'Z')
        check_consistent_length(Y_arr, X_arr, Z_arr, names=('Y', 'X', 'Z'))
        widths = check_block_sizes(d, Z_arr.shape[1])
        check_min_samples(X_arr.shape[0], X_arr.shape[1], 'X')

        return cls._reduce(
            XX=X_arr.T @ X_arr,
            XY=X_arr.T @ Y_arr,
            ZX=Z_arr.T @ X_arr,
            ZY=Z_arr.T @ Y_arr,
            ZZ=Z_arr.T @ Z_arr,
            Ynorm=np.sum(Y_arr * Y_arr, axis=0),
            n=X_arr.shape[0],
            d=widths,
            response_names=response_names,
            coef_names=coef_names,
            group_names=group_names,
        )

    @classmethod
    def from_arrays_nt(
        cls,
        Y: ArrayLike,
        X: ArrayLike,
        Z: ArrayLike,
        d: Sequence[int],
        *,
        response_names: Sequence[str] | None = None,
        coef_names: Sequence[str] | None = None,
        group_names: Sequence[str] | None = None,
    ) -> SummaryDesign:
        """Reduce raw data with Y laid out responses by samples.

        This is the natural layout of expression matrices (genes by
        cells). Y is never transposed in memory; the cross-products are
        formed as (Y X)' and (Y Z)'.

        Args:
            Y: Responses, shape (m, n). A 1-D Y is a single response.
            X, Z, d: As in from_arrays.
            response_names: Defaults to the DataFrame index when Y is a
                DataFrame.

        Returns:
            SummaryDesign
        """
        if response_names is None:
            response_names = _labels(Y, 'index')
        if coef_names is None:
            coef_names = _labels(X, 'columns')

        Y_arr = check_array(Y, 'Y')
        if Y_arr.ndim == 1:
            Y_arr = Y_arr.reshape(1, -1)
        check_2d(Y_arr, 'Y')
        check_finite(Y_arr, 'Y')
        X_arr = _as_matrix(X, 'X')
        Z_arr = _as_matrix(Z, 'Z')
        if Y_arr.shape[1] != X_arr.shape[0] or Y_arr.shape[1] != Z_arr.shape[0]:
            raise DimensionError(
                f"Inconsistent number of samples: Y columns={Y_arr.shape[1]}, "
                f"X rows={X_arr.shape[0]}, Z rows={Z_arr.shape[0]}"
            )
        widths = check_block_sizes(d, Z_arr.shape[1])
        check_min_samples(X_arr.shape[0], X_arr.shape[1], 'X')

        return cls._reduce(
            XX=X_arr.T @ X_arr,
            XY=(Y_arr @ X_arr).T,
            ZX=Z_arr.T @ X_arr,
            ZY=(Y_arr @ Z_arr).T,
            ZZ=Z_arr.T @ Z_arr,
            Ynorm=np.sum(Y_arr * Y_arr, axis=1),
            n=X_arr.shape[0],
            d=widths,
            response_names=response_names,
            coef_names=coef_names,
            group_names=group_names,
        )

    @classmethod
    def from_summary(
        cls,
        XX: ArrayLike,
        XY: ArrayLike,
        ZX: ArrayLike,
        ZY: ArrayLike,
        ZZ: ArrayLike,
        Ynorm: ArrayLike,
        n: int,
        d: Sequence[int],
        *,
        response_names: Sequence[str] | None = None,
        coef_names: Sequence[str] | None = None,
        group_names: Sequence[str] | None = None,
    ) -> SummaryDesign:
        """Build from precomputed cross-products.

        Lets callers reduce the raw data elsewhere (out of core, in a
        database, on another machine) and ship only the p- and q-sized
        matrices.

        Args:
            XX: X'X, shape (p, p).
            XY: X'Y, shape (p, m).
            ZX: Z'X, shape (q, p).
            ZY: Z'Y, shape (q, m).
            ZZ: Z'Z, shape (q, q).
            Ynorm: Squared norm of each response, shape (m,).
            n: Number of samples the cross-products were summed over.
            d: Block widths, sum(d) == q.

        Raises:
            ValidationError / DimensionError on malformed input.
        """
        mats = {}
        for name, value in (('XX', XX), ('XY', XY), ('ZX', ZX), ('ZY', ZY), ('ZZ', ZZ)):
            arr = check_array(value, name)
            if arr.ndim == 1:
                arr = arr.reshape(-1, 1)
            check_2d(arr, name)
            check_finite(arr, name)
            mats[name] = arr
        Ynorm_arr = np.atleast_1d(check_array(Ynorm, 'Ynorm')).ravel()
        check_finite(Ynorm_arr, 'Ynorm')

        p = mats['XX'].shape[0]
        q = mats['ZZ'].shape[0]
        m = mats['XY'].shape[1]
        expected = {
            'XX': (p, p), 'XY': (p, m), 'ZX': (q, p), 'ZY': (q, m), 'ZZ': (q, q),
        }
        for name, shape in expected.items():
            if mats[name].shape != shape:
                raise DimensionError(
                    f"{name}: expected shape {shape}, got {mats[name].shape}"
                )
        if Ynorm_arr.shape[0] != m:
            raise DimensionError(f"Ynorm: expected {m} entries, got {Ynorm_arr.shape[0]}")

        if isinstance(n, bool) or not isinstance(n, numbers.Integral):
            raise ValidationError(f"n: expected an integer sample count, got {n!r}")
        widths = check_block_sizes(d, q)
        check_min_samples(int(n), p, 'n')

        return cls._reduce(
            XX=mats['XX'], XY=mats['XY'], ZX=mats['ZX'], ZY=mats['ZY'],
            ZZ=mats['ZZ'], Ynorm=Ynorm_arr, n=int(n), d=widths,
            response_names=response_names,
            coef_names=coef_names,
            group_names=group_names,
        )

    @classmethod
    def from_chunks(
        cls,
        chunks: Iterable[tuple[ArrayLike, ArrayLike, ArrayLike]],
        d: Sequence[int],
        *,
        response_names: Sequence[str] | None = None,
        coef_names: Sequence[str] | None = None,
        group_names: Sequence[str] | None = None,
    ) -> SummaryDesign:
        """Accumulate the cross-products over batches of samples.

        Each chunk is a (Y_rows, X_rows, Z_rows) triple covering a
        disjoint subset of samples, with Y laid out samples by responses.
        Cross-products are additive over samples, so the result equals
        from_arrays on the stacked rows up to summation order. Only one
        chunk is held in memory at a time.

        Raises:
            ValidationError: If chunks is empty or any chunk is invalid.
            DimensionError: If chunks disagree on column counts.
        """
        totals: dict[str, NDArray] | None = None
        n = 0
        for i, (Y_c, X_c, Z_c) in enumerate(chunks):
            Y_arr = _as_matrix(Y_c, f'chunk[{i}].Y')
            X_arr = _as_matrix(X_c, f'chunk[{i}].X')
            Z_arr = _as_matrix(Z_c, f'chunk[{i}].Z')
            check_consistent_length(
                Y_arr, X_arr, Z_arr,
                names=(f'chunk[{i}].Y', f'chunk[{i}].X', f'chunk[{i}].Z'),
            )
            parts = {
                'XX': X_arr.T @ X_arr,
                'XY': X_arr.T @ Y_arr,
                'ZX': Z_arr.T @ X_arr,
                'ZY': Z_arr.T @ Y_arr,
                'ZZ': Z_arr.T @ Z_arr,
                'Ynorm': np.sum(Y_arr * Y_arr, axis=0),
            }
            if totals is None:
                totals = parts
            else:
                for name, value in parts.items():
                    if value.shape != totals[name].shape:
                        raise DimensionError(
                            f"chunk[{i}]: {name} has shape {value.shape}, "
                            f"earlier chunks gave {totals[name].shape}"
                        )
                    totals[name] = totals[name] + value
            n += X_arr.shape[0]

        if totals is None:
            raise ValidationError("chunks: expected at least one (Y, X, Z) chunk, got none")

        widths = check_block_sizes(d, totals['ZZ'].shape[0])
        check_min_samples(n, totals['XX'].shape[0], 'X')
        logger.debug("Accumulated {} samples from sample chunks", n)

        return cls._reduce(
            n=n, d=widths,
            response_names=response_names,
            coef_names=coef_names,
            group_names=group_names,
            **totals,
        )

    @classmethod
    def _reduce(
        cls,
        *,
        XX: NDArray,
        XY: NDArray,
        ZX: NDArray,
        ZY: NDArray,
        ZZ: NDArray,
        Ynorm: NDArray,
        n: int,
        d: tuple[int, ...],
        response_names: Sequence[str] | None,
        coef_names: Sequence[str] | None,
        group_names: Sequence[str] | None,
    ) -> SummaryDesign:
        """Project the fixed-effect subspace out of the cross-products."""
        p = XX.shape[0]
        m = XY.shape[1]
        k = len(d)

        response_names = check_names(response_names, m, 'response_names') or \
            tuple(f'Y{j + 1}' for j in range(m))
        coef_names = check_names(coef_names, p, 'coef_names') or \
            tuple(f'X{i + 1}' for i in range(p))
        group_names = check_names(group_names, k, 'group_names') or \
            tuple(f'Z{i + 1}' for i in range(k))

        # X'X may be rank-deficient; the pseudo-inverse still gives the
        # orthogonal projector onto col(X)
        XXinv = ginv(XX)
        XXinv_XY = XXinv @ XY

        xxz = XXinv @ ZX.T
        zrz = ZZ - ZX @ xxz
        zry = ZY - ZX @ XXinv_XY
        yry = Ynorm - np.sum(XY * XXinv_XY, axis=0)

        logger.debug(
            "Reduced n={} samples to summary statistics (p={}, q={}, k={}, m={})",
            n, p, sum(d), k, m,
        )

        return cls(
            XXinv=XXinv,
            XY=XY,
            Ynorm=Ynorm,
            ZX=ZX,
            ZY=ZY,
            ZZ=ZZ,
            xxz=xxz,
            zrz=zrz,
            zry=zry,
            yry=yry,
            n=n,
            p=p,
            d=d,
            response_names=response_names,
            coef_names=coef_names,
            group_names=group_names,
        )


def _as_matrix(value: ArrayLike, name: str) -> NDArray[np.floating[Any]]:
    """Validate a samples-by-columns input; 1-D input is one column."""
    arr = check_array(value, name)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    check_2d(arr, name)
    check_finite(arr, name)
    return arr


def _labels(value: Any, attr: str) -> tuple[str, ...] | None:
    """Pull labels off a pandas object (DataFrame columns/index), if any."""
    labels = getattr(value, attr, None)
    if labels is None or getattr(value, 'ndim', 0) != 2:
        return None
    return tuple(str(x) for x in labels)
