from typing import Tuple

import numpy as np
from loguru import logger
from numba import njit

from .errors import InvalidInput

UNBOUNDED = (-np.inf, np.inf)


@njit
def _minmax_bins_numba(
    x: np.ndarray, y: np.ndarray, lo: float, hi: float, n_bins: int
) -> np.ndarray:
    """
    Numba-optimized single pass min/max binning.

    Parameters
    ----------
    x : np.ndarray
        Input x array (float64, contiguous).
    y : np.ndarray
        Input y array (float64, contiguous).
    lo : float
        Left edge of the first bin.
    hi : float
        Right edge of the last bin (inclusive).
    n_bins : int
        Number of equal-width bins.

    Returns
    -------
    np.ndarray
        Indices of the retained samples in output order. A bin holding only
        NaN values contributes the index of its first NaN sample.
    """
    n = len(x)
    min_idx = np.full(n_bins, -1, dtype=np.int64)
    max_idx = np.full(n_bins, -1, dtype=np.int64)
    gap_idx = np.full(n_bins, -1, dtype=np.int64)

    before_idx = -1
    after_idx = -1
    first_in = -1
    last_in = -1

    span = hi - lo
    scale = n_bins / span if span > 0.0 else 0.0

    for i in range(n):
        xi = x[i]
        if np.isnan(xi):
            continue

        # Nearest neighbours outside the range
        if xi < lo:
            if before_idx == -1 or xi >= x[before_idx]:
                before_idx = i
            continue
        if xi > hi:
            if after_idx == -1 or xi < x[after_idx]:
                after_idx = i
            continue

        if first_in == -1:
            first_in = i
        last_in = i

        b = int((xi - lo) * scale)
        if b >= n_bins:
            b = n_bins - 1

        yi = y[i]
        if np.isnan(yi):
            if gap_idx[b] == -1:
                gap_idx[b] = i
            continue

        if min_idx[b] == -1:
            min_idx[b] = i
            max_idx[b] = i
        else:
            if yi < y[min_idx[b]]:
                min_idx[b] = i
            if yi > y[max_idx[b]]:
                max_idx[b] = i

    # Slot 0 is reserved for the left edge sample
    out = np.empty(2 * n_bins + 2, dtype=np.int64)
    count = 1

    for b in range(n_bins):
        i_lo = min_idx[b]
        if i_lo != -1:
            i_hi = max_idx[b]
            if i_lo > i_hi:
                i_lo, i_hi = i_hi, i_lo
            out[count] = i_lo
            count += 1
            if i_hi != i_lo:
                out[count] = i_hi
                count += 1
        elif gap_idx[b] != -1:
            out[count] = gap_idx[b]
            count += 1

    start = 1
    left = before_idx
    if (
        left == -1
        and first_in != -1
        and not np.isnan(y[first_in])
        and (count == 1 or out[1] != first_in)
    ):
        left = first_in
    if left != -1:
        out[0] = left
        start = 0

    right = after_idx
    if (
        right == -1
        and last_in != -1
        and not np.isnan(y[last_in])
        and (count == 1 or out[count - 1] != last_in)
    ):
        right = last_in
    if right != -1:
        out[count] = right
        count += 1

    return out[start:count]


def _validate_inputs(x: np.ndarray, y: np.ndarray, pixel_width: int) -> None:
    """Raise InvalidInput for arrays or widths the binning cannot handle."""
    if x.ndim != 1 or y.ndim != 1:
        raise InvalidInput(
            f"x and y must be one-dimensional. Got x.ndim={x.ndim}, y.ndim={y.ndim}"
        )
    if len(x) != len(y):
        raise InvalidInput(
            f"x and y must have the same length. Got x={len(x)}, y={len(y)}"
        )
    if isinstance(pixel_width, (bool, np.bool_)) or not isinstance(
        pixel_width, (int, np.integer)
    ):
        raise InvalidInput(f"Pixel width must be an integer. Got {pixel_width!r}")
    if pixel_width <= 0:
        raise InvalidInput(f"Pixel width must be positive. Got {pixel_width}")


def resolve_range(
    x: np.ndarray, x_range: Tuple[float, float] = UNBOUNDED
) -> Tuple[float, float]:
    """
    Resolve a possibly unbounded x-range against the data extent.

    Infinite (or NaN) ends are replaced by the data extent and finite ends
    are clamped into it. When the requested range misses the data entirely
    the returned ``lo`` is greater than ``hi``.

    Parameters
    ----------
    x : np.ndarray
        Data x array.
    x_range : Tuple[float, float], default=(-inf, inf)
        Requested range.

    Returns
    -------
    Tuple[float, float]
        Effective ``(lo, hi)``.

    Raises
    ------
    InvalidInput
        If x holds no finite value.
    """
    finite = x[np.isfinite(x)]
    if finite.size == 0:
        raise InvalidInput("x holds no finite values, cannot resolve a range")

    data_min = float(np.min(finite))
    data_max = float(np.max(finite))

    req_lo, req_hi = float(x_range[0]), float(x_range[1])
    if req_lo > req_hi:
        logger.warning(f"x range out of order: {x_range}. Swapping.")
        req_lo, req_hi = req_hi, req_lo

    lo = data_min if not np.isfinite(req_lo) else max(req_lo, data_min)
    hi = data_max if not np.isfinite(req_hi) else min(req_hi, data_max)
    return lo, hi


def reduce_to_width(
    x: np.ndarray,
    y: np.ndarray,
    pixel_width: int,
    x_range: Tuple[float, float] = UNBOUNDED,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reduce a line to at most two points per pixel column.

    For each of ``pixel_width`` equal-width bins over the effective range,
    the minimum and maximum y samples are kept in their original order. A bin
    holding only NaN values keeps a single NaN marker so the gap stays
    visible. One edge sample is kept on each side: the nearest sample
    outside the range where there is one, otherwise the first/last in-range
    sample.

    Parameters
    ----------
    x : np.ndarray
        x values, expected non-decreasing.
    y : np.ndarray
        y values, same length as x.
    pixel_width : int
        Number of pixel columns (bins).
    x_range : Tuple[float, float], default=(-inf, inf)
        Visible x-range. Infinite ends mean the full data extent.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        Reduced x and y arrays. They never share memory with the inputs.

    Raises
    ------
    InvalidInput
        If lengths differ, inputs are not 1-D, or pixel_width is not a
        positive integer.
    """
    x = np.asarray(x)
    y = np.asarray(y)
    _validate_inputs(x, y, pixel_width)

    # Below this size binning cannot reduce anything
    if len(x) <= 2 * pixel_width:
        return x.copy(), y.copy()

    try:
        lo, hi = resolve_range(x, x_range)
    except InvalidInput:
        logger.warning("No finite x values to reduce. Returning empty arrays.")
        return x[:0].copy(), y[:0].copy()

    x_contiguous = np.ascontiguousarray(x, dtype=np.float64)
    y_contiguous = np.ascontiguousarray(y, dtype=np.float64)

    indices = _minmax_bins_numba(
        x_contiguous, y_contiguous, lo, hi, int(pixel_width)
    )

    # Fancy indexing copies, so the result never aliases the originals
    return x[indices], y[indices]


class DecimationEngine:
    """
    Stateless min/max decimation for line series.

    Wraps :func:`reduce_to_width` with logging. Holds no per-series state,
    so a single engine can serve any number of series and views.
    """

    def reduce(
        self,
        x: np.ndarray,
        y: np.ndarray,
        pixel_width: int,
        x_range: Tuple[float, float] = UNBOUNDED,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Reduce one series for the given pixel width and x-range.

        Parameters
        ----------
        x : np.ndarray
            x values.
        y : np.ndarray
            y values.
        pixel_width : int
            Number of pixel columns.
        x_range : Tuple[float, float], default=(-inf, inf)
            Visible x-range.

        Returns
        -------
        Tuple[np.ndarray, np.ndarray]
            Reduced x and y arrays.
        """
        logger.debug(
            f"Reducing {len(x)} samples to width {pixel_width} over range {x_range}"
        )
        x_r, y_r = reduce_to_width(x, y, pixel_width, x_range)
        logger.debug(f"Reduced to {len(x_r)} points")
        return x_r, y_r

    def reduce_for_view(self, x: np.ndarray, y: np.ndarray, view) -> Tuple[
        np.ndarray, np.ndarray
    ]:
        """Reduce one series for a :class:`ViewState`."""
        return self.reduce(x, y, view.pixel_width, view.x_range)
