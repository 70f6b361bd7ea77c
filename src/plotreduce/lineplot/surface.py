"""Rendering surface protocol and its matplotlib implementation."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Protocol, Tuple

import numpy as np
from loguru import logger

from .errors import UpstreamRenderingFailure

RangeCallback = Callable[[Tuple[float, float]], None]
SizeCallback = Callable[[int], None]


@dataclass
class Subscription:
    """Handle returned by :meth:`RenderingSurface.subscribe`."""

    axes: Any
    axes_cids: List[int] = field(default_factory=list)
    canvas: Any = None
    active: bool = True


@dataclass
class _CanvasLink:
    """One resize connection on a canvas, shared by its subscriptions."""

    canvas: Any
    cid: int
    users: int = 1


class RenderingSurface(Protocol):  # pragma: no cover - structural only
    """What the refresh controller needs from a drawing layer."""

    def get_pixel_width(self, axes: Any) -> int:
        ...

    def get_visible_range(self, axes: Any) -> Tuple[float, float]:
        ...

    def set_series_data(self, series_id: Hashable, x: np.ndarray, y: np.ndarray) -> None:
        ...

    def subscribe(
        self, axes: Any, on_range_changed: RangeCallback, on_size_changed: SizeCallback
    ) -> Subscription:
        ...

    def unsubscribe(self, subscription: Subscription) -> None:
        ...

    def request_redraw(self) -> None:
        ...


class MatplotlibSurface:
    """
    Drives matplotlib ``Line2D`` objects on one or more axes.

    Lines are bound to series ids with :meth:`register_line`. Range changes
    arrive through the axes ``xlim_changed`` callback, size changes through
    the canvas ``resize_event``, connected once per canvas however many of
    its axes are subscribed. A surface serves a single controller.
    """

    # Used when the axes has no usable window extent yet
    DEFAULT_PIXEL_WIDTH = 800

    def __init__(self, default_pixel_width: int = DEFAULT_PIXEL_WIDTH):
        self.default_pixel_width = default_pixel_width
        self._lines: Dict[Hashable, Any] = {}
        self._canvas_links: Dict[int, _CanvasLink] = {}

    def register_line(self, series_id: Hashable, line) -> None:
        self._lines[series_id] = line

    def get_line(self, series_id: Hashable):
        try:
            return self._lines[series_id]
        except KeyError:
            raise UpstreamRenderingFailure(
                f"No line registered for series {series_id}"
            ) from None

    @property
    def lines(self) -> List[Any]:
        return list(self._lines.values())

    def get_pixel_width(self, axes) -> int:
        try:
            bbox = axes.get_window_extent()
        except Exception as e:
            raise UpstreamRenderingFailure(f"Could not read axes extent: {e}") from e

        width = bbox.width
        if not np.isfinite(width) or width < 1:
            logger.debug(
                f"Degenerate axes width {width}, using default {self.default_pixel_width}"
            )
            return self.default_pixel_width
        return int(width)

    def get_visible_range(self, axes) -> Tuple[float, float]:
        try:
            lo, hi = axes.get_xlim()
        except Exception as e:
            raise UpstreamRenderingFailure(f"Could not read axes limits: {e}") from e
        return float(lo), float(hi)

    def set_series_data(self, series_id: Hashable, x: np.ndarray, y: np.ndarray) -> None:
        line = self.get_line(series_id)
        if len(x) != len(y):
            raise UpstreamRenderingFailure(
                f"Refusing to draw series {series_id} with x={len(x)}, y={len(y)}"
            )
        try:
            line.set_data(x, y)
        except Exception as e:
            raise UpstreamRenderingFailure(
                f"Could not update line for series {series_id}: {e}"
            ) from e

    def subscribe(
        self, axes, on_range_changed: RangeCallback, on_size_changed: SizeCallback
    ) -> Subscription:
        """Connect xlim and resize notifications of ``axes``."""

        def _xlim_changed(ax_obj) -> None:
            on_range_changed(ax_obj.get_xlim())

        def _resized(event) -> None:
            on_size_changed(self.get_pixel_width(axes))

        subscription = Subscription(axes)
        subscription.axes_cids.append(
            axes.callbacks.connect("xlim_changed", _xlim_changed)
        )
        canvas = axes.figure.canvas
        subscription.canvas = canvas
        link = self._canvas_links.get(id(canvas))
        if link is None:
            self._canvas_links[id(canvas)] = _CanvasLink(
                canvas, canvas.mpl_connect("resize_event", _resized)
            )
        else:
            link.users += 1
        logger.debug(f"Subscribed to axes {id(axes):#x}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if not subscription.active:
            return
        axes = subscription.axes
        for cid in subscription.axes_cids:
            axes.callbacks.disconnect(cid)
        link = self._canvas_links.get(id(subscription.canvas))
        if link is not None:
            link.users -= 1
            if link.users == 0:
                link.canvas.mpl_disconnect(link.cid)
                del self._canvas_links[id(subscription.canvas)]
        subscription.axes_cids.clear()
        subscription.canvas = None
        subscription.active = False
        logger.debug(f"Unsubscribed from axes {id(axes):#x}")

    def request_redraw(self) -> None:
        canvases = {}
        for line in self.lines:
            if line.figure is not None:
                canvases[id(line.figure.canvas)] = line.figure.canvas
        for canvas in canvases.values():
            try:
                canvas.draw_idle()
            except Exception as e:
                raise UpstreamRenderingFailure(f"Redraw failed: {e}") from e
