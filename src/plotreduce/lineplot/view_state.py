import enum
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from .errors import InvalidInput


class RefreshState(enum.Enum):
    IDLE = "idle"
    BUSY = "busy"


def _normalize_range(x_range: Optional[Tuple[float, float]]) -> Tuple[float, float]:
    """Turn None or NaN bounds into infinities and order the pair."""
    if x_range is None:
        return (-np.inf, np.inf)

    lo, hi = float(x_range[0]), float(x_range[1])
    if np.isnan(lo):
        lo = -np.inf
    if np.isnan(hi):
        hi = np.inf
    if lo > hi:
        logger.debug(f"View range out of order: {x_range}. Swapping.")
        lo, hi = hi, lo
    return lo, hi


class ViewState:
    """
    Visible x-range and pixel width of an axes group.

    Linked axes (e.g. a dual y-axis plot) share a single instance. The
    refresh state lives here too, so every view has its own Idle/Busy
    guard rather than a process-wide flag.
    """

    def __init__(
        self,
        x_range: Optional[Tuple[float, float]] = None,
        pixel_width: int = 1,
    ):
        """
        Initialise the view state.

        Parameters
        ----------
        x_range : Optional[Tuple[float, float]], default=None
            Visible x-range. None or infinite ends mean the full data extent.
        pixel_width : int, default=1
            Width of the primary axes in pixels.
        """
        self.x_min, self.x_max = _normalize_range(x_range)
        self.pixel_width = self._check_width(pixel_width)
        self.refresh_state = RefreshState.IDLE

    @staticmethod
    def _check_width(pixel_width: int) -> int:
        if isinstance(pixel_width, (bool, np.bool_)) or not isinstance(
            pixel_width, (int, np.integer)
        ):
            raise InvalidInput(f"Pixel width must be an integer. Got {pixel_width!r}")
        if pixel_width <= 0:
            raise InvalidInput(f"Pixel width must be positive. Got {pixel_width}")
        return int(pixel_width)

    @property
    def x_range(self) -> Tuple[float, float]:
        return (self.x_min, self.x_max)

    @property
    def is_unbounded(self) -> bool:
        return np.isinf(self.x_min) and np.isinf(self.x_max)

    def update(
        self, x_range: Optional[Tuple[float, float]], pixel_width: int
    ) -> bool:
        """
        Update range and width.

        Returns
        -------
        bool
            True if anything changed, False otherwise.
        """
        new_range = _normalize_range(x_range)
        new_width = self._check_width(pixel_width)

        changed = new_range != self.x_range or new_width != self.pixel_width
        if changed:
            logger.debug(
                f"View changed: range {self.x_range} -> {new_range}, width {self.pixel_width} -> {new_width}"
            )
            self.x_min, self.x_max = new_range
            self.pixel_width = new_width
        return changed

    def set_busy(self, value: bool = True) -> None:
        """Set the refresh state to prevent recursion."""
        self.refresh_state = RefreshState.BUSY if value else RefreshState.IDLE

    def is_busy(self) -> bool:
        return self.refresh_state is RefreshState.BUSY

    def __repr__(self) -> str:
        return (
            f"ViewState(x_range={self.x_range}, pixel_width={self.pixel_width}, "
            f"state={self.refresh_state.value})"
        )
