from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from loguru import logger

from plotreduce.plotspec.parser import PlotSpec, PlotSpecParser

from .decimation import reduce_to_width
from .errors import InvalidInput, UnsupportedConfiguration, UpstreamRenderingFailure
from .refresh import RefreshController
from .series_store import SeriesStore
from .surface import MatplotlibSurface


class LinePlotReducer:
    """
    Plots huge line data with only as many points as the axes can show.

    Accepts the same kind of arguments as ``Axes.plot``::

        LinePlotReducer(t, x)
        LinePlotReducer(t, x, "r:", t, y, "b", linewidth=3)

    For each pixel column only the minimum and maximum of the samples in
    that column are drawn. Zooming, panning or resizing re-derives the
    reduced lines automatically.
    """

    # Plot kinds
    KIND_LINE = "line"
    KIND_STEP = "step"
    KIND_DUAL = "dual"  # two series on linked y axes

    DEFAULT_KIND = KIND_LINE
    DEFAULT_PIXEL_WIDTH = MatplotlibSurface.DEFAULT_PIXEL_WIDTH

    def __init__(
        self,
        *args: Any,
        ax=None,
        kind: str = DEFAULT_KIND,
        default_pixel_width: int = DEFAULT_PIXEL_WIDTH,
        **options: Any,
    ):
        """
        Parse the arguments, draw reduced lines and start tracking the view.

        Parameters
        ----------
        *args : Any
            Data and format strings, as for ``Axes.plot``.
        ax : matplotlib.axes.Axes, optional
            Target axes. Uses ``plt.gca()`` if None.
        kind : str, default="line"
            "line", "step" (single series only) or "dual" (exactly two
            series, the second drawn on a twin y axis).
        default_pixel_width : int, default=800
            Width used while the axes has no usable window extent.
        **options : Any
            Passed to the matplotlib plotting function.

        Raises
        ------
        InvalidInput
            If the plot arguments are malformed.
        UnsupportedConfiguration
            If ``kind`` cannot be used with the given number of series.
        """
        spec = PlotSpecParser().parse(*args, **options)
        if spec.num_series == 0:
            raise InvalidInput("No data to plot.")
        self._check_kind(kind, spec.num_series)
        self.kind = kind

        if ax is None:
            import matplotlib.pyplot as plt

            ax = plt.gca()

        axes = [ax, ax.twinx()] if kind == self.KIND_DUAL else [ax]
        store, series_ids = self._build_store(spec)
        surface = MatplotlibSurface(default_pixel_width)
        lines = self._plot(spec, store, series_ids, axes, surface)
        self._attach(store, series_ids, surface, axes, lines)

    @classmethod
    def from_lines(
        cls,
        lines: Sequence[Any],
        *args: Any,
        default_pixel_width: int = DEFAULT_PIXEL_WIDTH,
    ) -> "LinePlotReducer":
        """
        Manage lines that have already been drawn.

        Lines may sit on several axes; those axes get their x-axis linked
        to the axes of the first line.

        Parameters
        ----------
        lines : Sequence[matplotlib.lines.Line2D]
            Existing line handles.
        *args : Any
            Optional full-resolution data for the lines, in plot argument
            form. If omitted, the data the lines currently hold is used.
        default_pixel_width : int, default=800
            Width used while the axes has no usable window extent.

        Returns
        -------
        LinePlotReducer
            A reducer managing ``lines``.

        Raises
        ------
        InvalidInput
            If no lines are given, a line has no axes, or the data does not
            match the number of lines.
        UnsupportedConfiguration
            If the lines' axes cannot be linked.
        """
        lines = list(lines)
        if not lines:
            raise InvalidInput("At least one line handle is required.")

        if args:
            spec = PlotSpecParser().parse(*args)
            if spec.num_series != len(lines):
                raise InvalidInput(
                    f"Got data for {spec.num_series} series but {len(lines)} line handles."
                )
            store, series_ids = cls._build_store(spec)
        else:
            store = SeriesStore()
            series_ids = [
                store.add_series(
                    np.asarray(line.get_xdata(orig=True), dtype=np.float64),
                    np.asarray(line.get_ydata(orig=True), dtype=np.float64),
                )
                for line in lines
            ]

        axes: List[Any] = []
        for line in lines:
            if line.axes is None:
                raise InvalidInput("Line handles must belong to an axes.")
            if line.axes not in axes:
                axes.append(line.axes)
        cls._link_x(axes)

        obj = cls.__new__(cls)
        obj.kind = cls.KIND_LINE
        obj._attach(store, series_ids, MatplotlibSurface(default_pixel_width), axes, lines)
        return obj

    @staticmethod
    def _link_x(axes: List[Any]) -> None:
        """
        Share the x-axis of every axes with the first one.

        One view drives all managed lines, so their axes must show the same
        x-range. Axes already sharing x with the first (e.g. twins) are left
        alone.

        Raises
        ------
        UnsupportedConfiguration
            If an axes already shares its x-axis with a different axes.
        """
        primary = axes[0]
        for ax in axes[1:]:
            if primary.get_shared_x_axes().joined(primary, ax):
                continue
            try:
                ax.sharex(primary)
            except ValueError as e:
                raise UnsupportedConfiguration(
                    f"Cannot link the x-axis of the given lines' axes: {e}"
                ) from e
            logger.debug(f"Linked x-axis of axes {id(ax):#x} to {id(primary):#x}")

    @classmethod
    def _check_kind(cls, kind: str, num_series: int) -> None:
        if kind not in (cls.KIND_LINE, cls.KIND_STEP, cls.KIND_DUAL):
            raise UnsupportedConfiguration(
                f"Unknown plot kind '{kind}'. Use 'line', 'step' or 'dual'."
            )
        if kind == cls.KIND_STEP and num_series > 1:
            raise UnsupportedConfiguration(
                "Step plots cannot show several lines at once. "
                "Create one reducer per line on the same axes instead."
            )
        if kind == cls.KIND_DUAL and num_series != 2:
            raise UnsupportedConfiguration(
                f"Dual axis plots need exactly two series. Got {num_series}."
            )

    @staticmethod
    def _build_store(spec: PlotSpec):
        """Register parsed series, keeping shared x buffers shared."""
        store = SeriesStore()
        series_ids: List[Optional[int]] = [None] * spec.num_series
        for positions in spec.x_groups().values():
            group = [spec.series[p] for p in positions]
            if len(group) == 1:
                ids = [store.add_series(group[0].x, group[0].y, group[0].style)]
            else:
                ids = store.add_shared(
                    group[0].x, [s.y for s in group], [s.style for s in group]
                )
            for pos, series_id in zip(positions, ids):
                series_ids[pos] = series_id
        return store, series_ids

    def _plot(
        self,
        spec: PlotSpec,
        store: SeriesStore,
        series_ids: List[int],
        axes: List[Any],
        surface: MatplotlibSurface,
    ) -> List[Any]:
        """Draw every series from a full-extent reduction."""
        width = surface.get_pixel_width(axes[0])
        lines = []
        for pos, series_id in enumerate(series_ids):
            target = axes[pos] if self.kind == self.KIND_DUAL else axes[0]
            plot_fn = target.step if self.kind == self.KIND_STEP else target.plot

            x, y = store.lookup(series_id)
            x_r, y_r = reduce_to_width(x, y, width)
            plot_args: List[Any] = [x_r, y_r]
            style = store.get_style(series_id)
            if style:
                plot_args.append(style)

            try:
                (line,) = plot_fn(*plot_args, **spec.options)
            except Exception as e:
                logger.error(
                    f"Could not plot series {series_id} with '{plot_fn.__name__}'. "
                    f"Perhaps the options are incorrect: {spec.options}"
                )
                raise UpstreamRenderingFailure(str(e)) from e
            lines.append(line)
        return lines

    def _attach(
        self,
        store: SeriesStore,
        series_ids: List[int],
        surface: MatplotlibSurface,
        axes: List[Any],
        lines: List[Any],
    ) -> None:
        """Bind lines to series and start the refresh controller."""
        self.store = store
        self.surface = surface
        self.axes = axes
        self.lines = lines
        self.series_ids = list(series_ids)
        for series_id, line in zip(series_ids, lines):
            surface.register_line(series_id, line)

        self.controller = RefreshController(store, surface, axes)

        # Keep the reducer alive for as long as its axes
        reducers = getattr(axes[0], "_plotreducers", None)
        if reducers is None:
            reducers = []
            axes[0]._plotreducers = reducers
        reducers.append(self)

        logger.info(
            f"Managing {len(lines)} line(s) on {len(axes)} axes, "
            f"first pass reduced to width {self.controller.view.pixel_width}"
        )

    @property
    def figure(self):
        return self.axes[0].figure

    @property
    def view(self):
        return self.controller.view

    def point_counts(self) -> Dict[int, int]:
        """Number of points currently drawn for each series."""
        return {
            series_id: len(line.get_xdata())
            for series_id, line in zip(self.series_ids, self.lines)
        }

    def refresh(self, raise_on_failure: bool = False):
        """Force a refresh of all managed lines."""
        return self.controller.refresh(raise_on_failure=raise_on_failure)

    def detach(self) -> None:
        """Stop managing the lines. They keep their current data."""
        self.controller.detach()
        reducers = getattr(self.axes[0], "_plotreducers", None)
        if reducers is not None and self in reducers:
            reducers.remove(self)
        logger.info("Line plot reducer detached")


def reduce_plot(*args: Any, **kwargs: Any) -> List[Any]:
    """
    Plot with :class:`LinePlotReducer` and return the line handles.

    Takes exactly the same arguments as :class:`LinePlotReducer`.
    """
    return LinePlotReducer(*args, **kwargs).lines
