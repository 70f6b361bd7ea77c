"""
Min/max line reduction for matplotlib plots.

This package contains the decimation engine, the series store, the view
state and the refresh controller that keeps reduced lines in sync with the
visible range of the axes.
"""

from plotreduce.lineplot.decimation import DecimationEngine, reduce_to_width
from plotreduce.lineplot.errors import (
    InvalidInput,
    ReducerError,
    RefreshError,
    RefreshReport,
    SeriesFailure,
    UnsupportedConfiguration,
    UpstreamRenderingFailure,
)
from plotreduce.lineplot.explorer import LinePlotExplorer
from plotreduce.lineplot.reducer import LinePlotReducer, reduce_plot
from plotreduce.lineplot.refresh import RefreshController
from plotreduce.lineplot.series_store import Series, SeriesStore
from plotreduce.lineplot.surface import MatplotlibSurface, RenderingSurface, Subscription
from plotreduce.lineplot.view_state import RefreshState, ViewState

__all__ = [
    "LinePlotReducer",
    "reduce_plot",
    "LinePlotExplorer",
    "RefreshController",
    "DecimationEngine",
    "reduce_to_width",
    "SeriesStore",
    "Series",
    "ViewState",
    "RefreshState",
    "RenderingSurface",
    "MatplotlibSurface",
    "Subscription",
    "ReducerError",
    "InvalidInput",
    "UpstreamRenderingFailure",
    "UnsupportedConfiguration",
    "RefreshError",
    "RefreshReport",
    "SeriesFailure",
]
