"""
plotreduce: responsive matplotlib line plots for huge datasets

Draws only the minimum and maximum of the samples in each pixel column and
re-derives the reduced lines whenever the view is zoomed, panned or resized.
"""

from plotreduce.lineplot.decimation import DecimationEngine, reduce_to_width
from plotreduce.lineplot.errors import (
    InvalidInput,
    RefreshError,
    UnsupportedConfiguration,
    UpstreamRenderingFailure,
)
from plotreduce.lineplot.explorer import LinePlotExplorer
from plotreduce.lineplot.reducer import LinePlotReducer, reduce_plot
from plotreduce.lineplot.refresh import RefreshController
from plotreduce.lineplot.series_store import SeriesStore
from plotreduce.lineplot.view_state import ViewState
from plotreduce.log_config import configure_logging
from plotreduce.plotspec.parser import PlotSpecParser, parse_plot_args

__all__ = [
    # Plotting
    "LinePlotReducer",
    "reduce_plot",
    "LinePlotExplorer",
    # Core components
    "RefreshController",
    "DecimationEngine",
    "reduce_to_width",
    "SeriesStore",
    "ViewState",
    "PlotSpecParser",
    "parse_plot_args",
    # Errors
    "InvalidInput",
    "UpstreamRenderingFailure",
    "UnsupportedConfiguration",
    "RefreshError",
    "configure_logging",
]
