"""
Typed parser for plot-style positional arguments.

Turns a call such as ``(t, x, "r:", t, y, "b", linewidth=3)`` into a
:class:`PlotSpec`. Arguments are first tokenized into tagged variants
(:class:`NumericSeries`, :class:`StyleSpec`, :class:`Option`) and then
matched against a small grammar::

    call   := group* option*
    group  := NumericSeries [NumericSeries] [StyleSpec]
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
from loguru import logger

from plotreduce.lineplot.errors import InvalidInput

# matplotlib format strings: colours, markers and line styles in any order
_STYLE_PATTERN = re.compile(
    r"^(?:C\d|[bgrcmykw]|--|-\.|[-:]|[.,ov^<>1-4spP*hH+xXDd|_])+$"
)


@dataclass(frozen=True, eq=False)
class NumericSeries:
    data: np.ndarray


@dataclass(frozen=True)
class StyleSpec:
    fmt: str


@dataclass(frozen=True)
class Option:
    name: str
    value: Any


Token = Union[NumericSeries, StyleSpec, Option]


@dataclass(eq=False)
class SeriesSpec:
    """One line to plot. Series with the same ``x_group`` share their x."""

    x: np.ndarray
    y: np.ndarray
    style: Optional[str]
    x_group: int


@dataclass
class PlotSpec:
    series: List[SeriesSpec] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def num_series(self) -> int:
        return len(self.series)

    def x_groups(self) -> Dict[int, List[int]]:
        """Map each x group to the positions of the series using it."""
        groups: Dict[int, List[int]] = {}
        for pos, spec in enumerate(self.series):
            groups.setdefault(spec.x_group, []).append(pos)
        return groups


def is_style_string(value: Any) -> bool:
    """Check whether ``value`` is a matplotlib line format string."""
    return isinstance(value, str) and bool(_STYLE_PATTERN.match(value))


def _as_numeric(value: Any) -> Optional[np.ndarray]:
    """Return ``value`` as a numeric array, or None if it is not numeric data."""
    if isinstance(value, (str, bytes, dict)) or value is None:
        return None
    if not isinstance(value, (np.ndarray, list, tuple, range)) and not hasattr(
        value, "__array__"
    ):
        return None
    arr = np.asarray(value)
    if arr.dtype.kind not in "biuf":
        return None
    return arr


class PlotSpecParser:
    """Parses flexible positional plot arguments into series and options."""

    def tokenize(self, args: Sequence[Any], kwargs: Optional[Dict[str, Any]] = None) -> List[Token]:
        """
        Convert positional and keyword arguments into tokens.

        Parameters
        ----------
        args : Sequence[Any]
            Positional arguments.
        kwargs : Optional[Dict[str, Any]], default=None
            Keyword arguments, each becoming an :class:`Option`.

        Returns
        -------
        List[Token]
            Tokens in call order.

        Raises
        ------
        InvalidInput
            For arguments that are neither numeric nor strings, or an
            incomplete name/value tail.
        """
        tokens: List[Token] = []
        i = 0
        while i < len(args):
            arg = args[i]
            numeric = _as_numeric(arg)
            if numeric is not None:
                tokens.append(NumericSeries(numeric))
                i += 1
            elif is_style_string(arg) and not self._starts_option_pair(args, i):
                tokens.append(StyleSpec(arg))
                i += 1
            elif isinstance(arg, str):
                # Everything from here on is name/value pairs
                tail = args[i:]
                if len(tail) % 2:
                    raise InvalidInput(
                        f"Option '{tail[-1]}' has no value. Options must come in name/value pairs."
                    )
                for name, value in zip(tail[0::2], tail[1::2]):
                    if not isinstance(name, str):
                        raise InvalidInput(f"Option name must be a string. Got {name!r}")
                    tokens.append(Option(name, value))
                break
            else:
                raise InvalidInput(
                    f"Unrecognized plot argument at position {i}: {type(arg).__name__}"
                )

        for name, value in (kwargs or {}).items():
            tokens.append(Option(name, value))
        return tokens

    @staticmethod
    def _starts_option_pair(args: Sequence[Any], i: int) -> bool:
        """
        Check whether a format-looking string is really an option name.

        Short property names such as ``"ms"`` or ``"ds"`` also read as format
        strings. The string is taken as a name when it is followed by a value
        that is not plot data and the arguments from it on pair up evenly.
        """
        rest = len(args) - i
        if rest < 2 or rest % 2:
            return False
        return _as_numeric(args[i + 1]) is None

    def parse(self, *args: Any, **kwargs: Any) -> PlotSpec:
        """
        Parse plot arguments.

        One numeric argument is y with an implied x of ``0..n-1``; two in a
        row are x and y. A 2-D y gives one series per column, all sharing the
        group's x. An optional format string follows each group.

        Returns
        -------
        PlotSpec
            Parsed series and pass-through options.

        Raises
        ------
        InvalidInput
            On mismatched lengths or unrecognized argument shapes.
        """
        tokens = self.tokenize(args, kwargs)
        spec = PlotSpec()
        next_group = 0
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if isinstance(token, NumericSeries):
                if i + 1 < len(tokens) and isinstance(tokens[i + 1], NumericSeries):
                    x, y = token.data, tokens[i + 1].data
                    i += 2
                else:
                    x, y = None, token.data
                    i += 1
                style = None
                if i < len(tokens) and isinstance(tokens[i], StyleSpec):
                    style = tokens[i].fmt
                    i += 1
                group_series = self._expand_group(x, y, style, next_group)
                next_group = max(s.x_group for s in group_series) + 1
                spec.series.extend(group_series)
            elif isinstance(token, StyleSpec):
                raise InvalidInput(f"Format string '{token.fmt}' is not preceded by data.")
            else:
                spec.options[token.name] = token.value
                i += 1

        logger.debug(
            f"Parsed {spec.num_series} series in {len(spec.x_groups())} x groups, options={list(spec.options)}"
        )
        return spec

    def _expand_group(
        self, x: Optional[np.ndarray], y: np.ndarray, style: Optional[str], group: int
    ) -> List[SeriesSpec]:
        """Split one x/y group into series."""
        if y.ndim == 0 or y.ndim > 2:
            raise InvalidInput(f"y must be 1-D or 2-D. Got shape {y.shape}")

        if x is None:
            x = np.arange(y.shape[0])

        if x.ndim == 2 and 1 in x.shape:
            x = x.ravel()

        if x.ndim == 1:
            if y.ndim == 1:
                if len(x) != len(y):
                    raise InvalidInput(
                        f"x and y must have the same length. Got x={len(x)}, y={len(y)}"
                    )
                return [SeriesSpec(x, y, style, group)]

            # Series given as rows are turned into columns
            if y.shape[0] != len(x) and y.shape[1] == len(x):
                y = y.T
            if y.shape[0] != len(x):
                raise InvalidInput(
                    f"y of shape {y.shape} does not match x of length {len(x)}"
                )
            return [SeriesSpec(x, y[:, c], style, group) for c in range(y.shape[1])]

        if x.ndim == 2 and y.ndim == 2 and x.shape == y.shape:
            return [
                SeriesSpec(x[:, c], y[:, c], style, group + c) for c in range(y.shape[1])
            ]

        raise InvalidInput(f"Cannot pair x of shape {x.shape} with y of shape {y.shape}")


def parse_plot_args(*args: Any, **kwargs: Any) -> PlotSpec:
    """Parse plot arguments with a default :class:`PlotSpecParser`."""
    return PlotSpecParser().parse(*args, **kwargs)
