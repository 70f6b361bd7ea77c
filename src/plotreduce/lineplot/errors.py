"""Exception types raised by the line plot reducer."""

from dataclasses import dataclass, field
from typing import Hashable, List, Optional


class ReducerError(Exception):
    """Base class for all reducer errors."""


class InvalidInput(ReducerError, ValueError):
    """Raised for mismatched lengths, bad pixel widths or malformed plot arguments."""


class UpstreamRenderingFailure(ReducerError, RuntimeError):
    """Raised when a rendering surface call fails."""


class UnsupportedConfiguration(ReducerError, ValueError):
    """Raised for a plotting mode that cannot be combined with decimation."""


@dataclass(frozen=True)
class SeriesFailure:
    series_id: Hashable
    error: Exception


@dataclass
class RefreshReport:
    """Outcome of a single refresh pass."""

    pixel_width: int
    x_range: tuple
    updated: List[Hashable] = field(default_factory=list)
    failures: List[SeriesFailure] = field(default_factory=list)
    redraw_error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return not self.failures and self.redraw_error is None


class RefreshError(ReducerError):
    """Raised on request when a refresh pass had per-series failures."""

    def __init__(self, report: RefreshReport):
        self.report = report
        failed = ", ".join(str(f.series_id) for f in report.failures)
        message = f"Refresh failed for {len(report.failures)} series: {failed}"
        if report.redraw_error is not None:
            message += f" (redraw failed: {report.redraw_error})"
        super().__init__(message)
