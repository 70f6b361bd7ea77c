"""
Parsing of plot-style positional arguments into series and options.
"""

from plotreduce.plotspec.parser import (
    NumericSeries,
    Option,
    PlotSpec,
    PlotSpecParser,
    SeriesSpec,
    StyleSpec,
    is_style_string,
    parse_plot_args,
)

__all__ = [
    "PlotSpecParser",
    "parse_plot_args",
    "is_style_string",
    "PlotSpec",
    "SeriesSpec",
    "NumericSeries",
    "StyleSpec",
    "Option",
]
