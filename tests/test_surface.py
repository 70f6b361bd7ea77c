"""Tests for MatplotlibSurface on the Agg backend."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest
from unittest.mock import MagicMock
from matplotlib.backend_bases import ResizeEvent
from matplotlib.transforms import Bbox

from plotreduce.lineplot.errors import UpstreamRenderingFailure
from plotreduce.lineplot.surface import MatplotlibSurface


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _surface_with_line():
    fig, ax = plt.subplots()
    (line,) = ax.plot([], [])
    surface = MatplotlibSurface()
    surface.register_line(0, line)
    return fig, ax, line, surface


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class TestGeometry:
    def test_pixel_width_matches_window_extent(self):
        fig, ax, _, surface = _surface_with_line()
        width = surface.get_pixel_width(ax)
        assert isinstance(width, int)
        assert width == int(ax.get_window_extent().width)
        assert width > 0
        plt.close(fig)

    def test_degenerate_width_falls_back_to_default(self):
        ax = MagicMock()
        ax.get_window_extent.return_value = Bbox([[0, 0], [0, 0]])
        surface = MatplotlibSurface(default_pixel_width=321)
        assert surface.get_pixel_width(ax) == 321

    def test_extent_error_is_wrapped(self):
        ax = MagicMock()
        ax.get_window_extent.side_effect = RuntimeError("no renderer")
        with pytest.raises(UpstreamRenderingFailure):
            MatplotlibSurface().get_pixel_width(ax)

    def test_visible_range(self):
        fig, ax, _, surface = _surface_with_line()
        ax.set_xlim(2, 5)
        assert surface.get_visible_range(ax) == (2.0, 5.0)
        plt.close(fig)


# ---------------------------------------------------------------------------
# Line updates
# ---------------------------------------------------------------------------


class TestSetSeriesData:
    def test_updates_the_line(self):
        fig, _, line, surface = _surface_with_line()
        surface.set_series_data(0, np.array([0.0, 1.0, 2.0]), np.array([5.0, 6.0, 7.0]))
        np.testing.assert_array_equal(line.get_xdata(), [0.0, 1.0, 2.0])
        np.testing.assert_array_equal(line.get_ydata(), [5.0, 6.0, 7.0])
        plt.close(fig)

    def test_unknown_series(self):
        with pytest.raises(UpstreamRenderingFailure):
            MatplotlibSurface().set_series_data(3, np.zeros(2), np.zeros(2))

    def test_length_mismatch(self):
        fig, _, _, surface = _surface_with_line()
        with pytest.raises(UpstreamRenderingFailure):
            surface.set_series_data(0, np.zeros(3), np.zeros(2))
        plt.close(fig)

    def test_lines_property(self):
        fig, _, line, surface = _surface_with_line()
        assert surface.lines == [line]
        assert surface.get_line(0) is line
        plt.close(fig)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class TestSubscriptions:
    def test_xlim_change_notifies(self):
        fig, ax, _, surface = _surface_with_line()
        ranges = []
        surface.subscribe(ax, ranges.append, lambda width: None)
        ax.set_xlim(10, 20)
        assert ranges[-1] == (10.0, 20.0)
        plt.close(fig)

    def test_resize_notifies_with_width(self):
        fig, ax, _, surface = _surface_with_line()
        widths = []
        surface.subscribe(ax, lambda r: None, widths.append)
        fig.canvas.callbacks.process("resize_event", ResizeEvent("resize_event", fig.canvas))
        assert widths == [surface.get_pixel_width(ax)]
        plt.close(fig)

    def test_axes_on_one_canvas_share_a_resize_connection(self):
        fig, (left, right) = plt.subplots(1, 2)
        surface = MatplotlibSurface()
        widths = []
        sub_left = surface.subscribe(left, lambda r: None, widths.append)
        sub_right = surface.subscribe(right, lambda r: None, widths.append)

        def resize():
            fig.canvas.callbacks.process(
                "resize_event", ResizeEvent("resize_event", fig.canvas)
            )

        resize()
        assert len(widths) == 1

        surface.unsubscribe(sub_left)
        resize()
        assert len(widths) == 2

        surface.unsubscribe(sub_right)
        resize()
        assert len(widths) == 2
        plt.close(fig)

    def test_unsubscribe_stops_notifications(self):
        fig, ax, _, surface = _surface_with_line()
        ranges = []
        sub = surface.subscribe(ax, ranges.append, lambda width: None)
        surface.unsubscribe(sub)
        ax.set_xlim(1, 2)
        assert ranges == []
        assert not sub.active
        # A second unsubscribe is a no-op
        surface.unsubscribe(sub)
        plt.close(fig)

    def test_request_redraw_once_per_canvas(self):
        fig, ax, line, surface = _surface_with_line()
        (other,) = ax.plot([0, 1], [0, 1])
        surface.register_line(1, other)
        fig.canvas.draw_idle = MagicMock()
        surface.request_redraw()
        fig.canvas.draw_idle.assert_called_once()
        plt.close(fig)
