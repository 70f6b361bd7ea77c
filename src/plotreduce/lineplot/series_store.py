from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .errors import InvalidInput


@dataclass(frozen=True)
class Series:
    """A registered y-series and the index of the x buffer it uses."""

    series_id: int
    x_index: int
    y: np.ndarray
    style: Any = None


def _read_only(arr: Any, what: str) -> np.ndarray:
    """Copy input into an owned, non-writeable float64 array."""
    owned = np.array(arr, dtype=np.float64)
    if owned.ndim != 1:
        raise InvalidInput(f"{what} must be one-dimensional. Got shape {owned.shape}")
    owned.flags.writeable = False
    return owned


class SeriesStore:
    """
    Owns the full-resolution x/y buffers of every managed line.

    Each series references an x buffer by index, so several y-series can
    share one x buffer ("one x, many y") without copies. Buffers are copied
    once on registration and kept read-only; consumers get views.
    """

    def __init__(self):
        self._x_buffers: List[np.ndarray] = []
        self._series: Dict[int, Series] = {}
        self._next_id = 0

    def add_x_buffer(self, x: Sequence[float]) -> int:
        """
        Register an x buffer.

        Parameters
        ----------
        x : Sequence[float]
            x values.

        Returns
        -------
        int
            Index of the new buffer.
        """
        x_arr = _read_only(x, "x")
        self._check_monotonic(x_arr, len(self._x_buffers))
        self._x_buffers.append(x_arr)
        return len(self._x_buffers) - 1

    def add_to_buffer(self, x_index: int, y: Sequence[float], style: Any = None) -> int:
        """
        Register a y-series against an existing x buffer.

        Parameters
        ----------
        x_index : int
            Index returned by :meth:`add_x_buffer`.
        y : Sequence[float]
            y values, same length as the buffer.
        style : Any, default=None
            Opaque style tag carried along with the series.

        Returns
        -------
        int
            The new series id.

        Raises
        ------
        InvalidInput
            If the buffer does not exist or lengths differ.
        """
        if x_index < 0 or x_index >= len(self._x_buffers):
            raise InvalidInput(
                f"Invalid x buffer index: {x_index}. Must be between 0 and {len(self._x_buffers) - 1}."
            )
        y_arr = _read_only(y, "y")
        x_arr = self._x_buffers[x_index]
        if len(x_arr) != len(y_arr):
            raise InvalidInput(
                f"x and y must have the same length. Got x={len(x_arr)}, y={len(y_arr)}"
            )
        if len(y_arr) == 0:
            logger.warning(f"Registering series {self._next_id} with empty arrays.")

        series_id = self._next_id
        self._next_id += 1
        self._series[series_id] = Series(series_id, x_index, y_arr, style)
        return series_id

    def add_series(self, x: Sequence[float], y: Sequence[float], style: Any = None) -> int:
        """Register a series with its own x buffer and return its id."""
        if len(x) != len(y):
            raise InvalidInput(
                f"x and y must have the same length. Got x={len(x)}, y={len(y)}"
            )
        return self.add_to_buffer(self.add_x_buffer(x), y, style)

    def add_shared(
        self,
        x: Sequence[float],
        ys: Sequence[Sequence[float]],
        styles: Optional[Sequence[Any]] = None,
    ) -> List[int]:
        """
        Register several y-series sharing one x buffer.

        Parameters
        ----------
        x : Sequence[float]
            Shared x values.
        ys : Sequence[Sequence[float]]
            One y array per series.
        styles : Optional[Sequence[Any]], default=None
            One style tag per series.

        Returns
        -------
        List[int]
            The new series ids, in the order of ``ys``.
        """
        if styles is not None and len(styles) != len(ys):
            raise InvalidInput(
                f"Number of styles ({len(styles)}) must match number of series ({len(ys)})"
            )
        # Validate every y before registering anything
        for i, y in enumerate(ys):
            if len(y) != len(x):
                raise InvalidInput(
                    f"Series {i} length {len(y)} does not match shared x length {len(x)}"
                )
        x_index = self.add_x_buffer(x)
        return [
            self.add_to_buffer(x_index, y, styles[i] if styles is not None else None)
            for i, y in enumerate(ys)
        ]

    def _get(self, series_id: int) -> Series:
        try:
            return self._series[series_id]
        except KeyError:
            raise InvalidInput(f"Unknown series id: {series_id}") from None

    def lookup(self, series_id: int) -> Tuple[np.ndarray, np.ndarray]:
        """Return read-only views of a series' x and y buffers."""
        series = self._get(series_id)
        return self._x_buffers[series.x_index].view(), series.y.view()

    def get_series(self, series_id: int) -> Series:
        return self._get(series_id)

    def get_style(self, series_id: int) -> Any:
        return self._get(series_id).style

    def x_buffer_index(self, series_id: int) -> int:
        return self._get(series_id).x_index

    def shares_x(self, first: int, second: int) -> bool:
        """Check whether two series reference the same x buffer."""
        return self._get(first).x_index == self._get(second).x_index

    @property
    def series_ids(self) -> List[int]:
        return list(self._series)

    @property
    def num_series(self) -> int:
        return len(self._series)

    @property
    def num_x_buffers(self) -> int:
        return len(self._x_buffers)

    def __len__(self) -> int:
        return len(self._series)

    def __contains__(self, series_id: object) -> bool:
        return series_id in self._series

    def __iter__(self) -> Iterator[int]:
        return iter(self._series)

    def get_x_extent(self) -> Tuple[float, float]:
        """
        Get the x extent across all buffers.

        Returns
        -------
        Tuple[float, float]
            Global min and max of the finite x values, or (0.0, 0.0) if
            there are none.
        """
        lows, highs = [], []
        for x_arr in self._x_buffers:
            finite = x_arr[np.isfinite(x_arr)]
            if finite.size > 0:
                lows.append(finite.min())
                highs.append(finite.max())
        if not lows:
            return 0.0, 0.0
        return float(min(lows)), float(max(highs))

    def _check_monotonic(self, x: np.ndarray, x_index: int) -> None:
        """Warn if an x buffer is not non-decreasing."""
        if len(x) < 2:
            return
        diffs = np.diff(x)
        decreasing = diffs < 0
        if np.any(decreasing):
            logger.warning(
                f"x buffer {x_index} is not monotonic non-decreasing "
                f"({np.count_nonzero(decreasing)} decreasing steps, first at index "
                f"{int(np.argmax(decreasing))}). Reduced lines may zig-zag."
            )
