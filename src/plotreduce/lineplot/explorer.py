"""Scroll-wheel zoom and click-drag pan for figures with huge line data."""

import enum
from typing import Any, List, Optional, Tuple

from loguru import logger


class _Mode(enum.Enum):
    IDLE = "idle"
    PAN = "pan"


class LinePlotExplorer:
    """
    Mouse-driven x-axis zoom and pan for every axes of a figure.

    Scrolling zooms about the cursor, left-dragging pans. Both are clamped to
    the optional ``x_min``/``x_max`` bounds. Only x-limits are changed, so a
    :class:`LinePlotReducer` on the same axes refreshes on its own.
    """

    # Fraction of the current span kept per scroll step when zooming in
    ZOOM_FACTOR = 0.8

    def __init__(self, fig, x_min: Optional[float] = None, x_max: Optional[float] = None):
        """
        Attach to a figure.

        Parameters
        ----------
        fig : matplotlib.figure.Figure
            Figure whose axes should be explorable.
        x_min : Optional[float], default=None
            Left bound for panning and zooming out.
        x_max : Optional[float], default=None
            Right bound for panning and zooming out.
        """
        if x_min is not None and x_max is not None and x_min >= x_max:
            raise ValueError(f"x_min ({x_min}) must be less than x_max ({x_max})")

        self._fig = fig
        self.x_min = x_min
        self.x_max = x_max
        self._mode = _Mode.IDLE

        # State captured on button press
        self._press_ax: Optional[Any] = None
        self._press_px: Optional[float] = None  # pixel x
        self._press_xlim: Optional[Tuple[float, float]] = None

        canvas = fig.canvas
        self._cids: List[int] = [
            canvas.mpl_connect("scroll_event", self._on_scroll),
            canvas.mpl_connect("button_press_event", self._on_press),
            canvas.mpl_connect("motion_notify_event", self._on_motion),
            canvas.mpl_connect("button_release_event", self._on_release),
        ]

        # Canvas callbacks hold bound methods weakly; the figure keeps us alive
        explorers = getattr(fig, "_plotexplorers", None)
        if explorers is None:
            explorers = []
            fig._plotexplorers = explorers
        explorers.append(self)

    # -- Limits -------------------------------------------------------------

    def _clamp(self, lo: float, hi: float) -> Tuple[float, float]:
        """Shift, then trim, a span so it stays inside the bounds."""
        span = hi - lo
        if self.x_min is not None and lo < self.x_min:
            lo, hi = self.x_min, self.x_min + span
        if self.x_max is not None and hi > self.x_max:
            lo, hi = self.x_max - span, self.x_max
        if self.x_min is not None and lo < self.x_min:
            lo = self.x_min
        return lo, hi

    def zoom(self, ax, center: float, steps: float) -> None:
        """Zoom ``ax`` about ``center``; positive steps zoom in."""
        lo, hi = ax.get_xlim()
        factor = self.ZOOM_FACTOR**steps
        new_lo = center - (center - lo) * factor
        new_hi = center + (hi - center) * factor
        ax.set_xlim(*self._clamp(new_lo, new_hi))
        self._fig.canvas.draw_idle()

    # -- Event handlers -----------------------------------------------------

    def _on_scroll(self, event) -> None:
        if event.inaxes is None or event.xdata is None:
            return
        self.zoom(event.inaxes, event.xdata, event.step)

    def _on_press(self, event) -> None:
        if event.inaxes is None or event.button != 1:
            return
        self._mode = _Mode.PAN
        self._press_ax = event.inaxes
        self._press_px = event.x
        self._press_xlim = event.inaxes.get_xlim()

    def _on_motion(self, event) -> None:
        if self._mode != _Mode.PAN or self._press_px is None or event.x is None:
            return
        ax = self._press_ax
        lo, hi = self._press_xlim
        width_px = ax.get_window_extent().width
        if width_px <= 0:
            return
        dx = (event.x - self._press_px) * (hi - lo) / width_px
        ax.set_xlim(*self._clamp(lo - dx, hi - dx))
        self._fig.canvas.draw_idle()

    def _on_release(self, event) -> None:
        self._mode = _Mode.IDLE
        self._press_ax = None
        self._press_px = None
        self._press_xlim = None

    # -- Teardown -----------------------------------------------------------

    def detach(self) -> None:
        canvas = self._fig.canvas
        for cid in self._cids:
            canvas.mpl_disconnect(cid)
        self._cids.clear()
        explorers = getattr(self._fig, "_plotexplorers", None)
        if explorers is not None and self in explorers:
            explorers.remove(self)
        logger.debug("Line plot explorer detached")
