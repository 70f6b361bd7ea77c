"""Tests for RefreshController: reentrancy guard, failure isolation, reports."""

import numpy as np
import pytest

from plotreduce.lineplot.decimation import DecimationEngine
from plotreduce.lineplot.errors import (
    RefreshError,
    UpstreamRenderingFailure,
)
from plotreduce.lineplot.refresh import RefreshController
from plotreduce.lineplot.series_store import SeriesStore
from plotreduce.lineplot.surface import Subscription
from plotreduce.lineplot.view_state import RefreshState, ViewState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeSurface:
    """In-memory rendering surface recording every call."""

    def __init__(self, width=100, x_range=(-np.inf, np.inf)):
        self.width = width
        self.x_range = x_range
        self.data = {}
        self.events = []
        self.width_queries = []
        self.subscribed = []
        self.redraws = 0
        self.fail_for = set()
        self.fail_redraw = False
        self.fail_width = False
        self.on_set = None

    def get_pixel_width(self, axes):
        if self.fail_width:
            raise UpstreamRenderingFailure("no extent")
        self.width_queries.append(axes)
        return self.width

    def get_visible_range(self, axes):
        return self.x_range

    def set_series_data(self, series_id, x, y):
        if series_id in self.fail_for:
            raise UpstreamRenderingFailure(f"cannot draw {series_id}")
        self.events.append(("set", series_id))
        self.data[series_id] = (x, y)
        if self.on_set is not None:
            self.on_set(series_id)

    def subscribe(self, axes, on_range_changed, on_size_changed):
        self.events.append(("subscribe", axes))
        sub = Subscription(axes)
        self.subscribed.append((sub, on_range_changed, on_size_changed))
        return sub

    def unsubscribe(self, subscription):
        subscription.active = False

    def request_redraw(self):
        if self.fail_redraw:
            raise UpstreamRenderingFailure("canvas gone")
        self.redraws += 1


class FailingEngine(DecimationEngine):
    def __init__(self, bad_id_length):
        self.bad_id_length = bad_id_length

    def reduce(self, x, y, pixel_width, x_range=(-np.inf, np.inf)):
        if len(x) == self.bad_id_length:
            raise RuntimeError("kernel exploded")
        return super().reduce(x, y, pixel_width, x_range)


def _store(n_series=3, n=10_000):
    store = SeriesStore()
    x = np.arange(n, dtype=float)
    rng = np.random.default_rng(n_series)
    store.add_shared(x, [rng.standard_normal(n) for _ in range(n_series)])
    return store


# ---------------------------------------------------------------------------
# First pass and subscription
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_first_pass_populates_every_series(self):
        surface = FakeSurface(width=50)
        controller = RefreshController(_store(), surface, "ax")
        assert set(surface.data) == {0, 1, 2}
        for x, _ in surface.data.values():
            assert len(x) <= 2 * 50 + 2
        assert controller.last_report.ok
        assert controller.last_report.updated == [0, 1, 2]
        assert controller.state is RefreshState.IDLE

    def test_first_pass_happens_before_subscribing(self):
        surface = FakeSurface()
        RefreshController(_store(1), surface, ["primary", "twin"])
        assert surface.events == [
            ("set", 0),
            ("subscribe", "primary"),
            ("subscribe", "twin"),
        ]

    def test_width_and_range_sampled_from_primary_axes(self):
        surface = FakeSurface()
        controller = RefreshController(_store(1), surface, ["primary", "twin"])
        controller.refresh()
        assert surface.width_queries == ["primary", "primary"]
        assert controller.primary_axes == "primary"

    def test_shared_view_state(self):
        view = ViewState()
        controller = RefreshController(_store(1), FakeSurface(width=77), "ax", view=view)
        assert controller.view is view
        assert view.pixel_width == 77

    def test_stale_busy_state_is_reset(self):
        view = ViewState()
        view.set_busy(True)
        RefreshController(_store(1), FakeSurface(), "ax", view=view)
        assert not view.is_busy()

    def test_requires_an_axes(self):
        with pytest.raises(ValueError):
            RefreshController(_store(1), FakeSurface(), [])


# ---------------------------------------------------------------------------
# Reentrancy
# ---------------------------------------------------------------------------


class TestReentrancy:
    def test_nested_notifications_are_dropped(self):
        surface = FakeSurface(width=100)
        controller = RefreshController(_store(2), surface, "ax")
        nested = []
        surface.on_set = lambda sid: nested.append(controller.on_view_changed(width=50))

        report = controller.on_view_changed(width=200)

        assert report is not None
        assert nested == [None, None]
        assert controller.dropped_events == 2
        assert controller.view.pixel_width == 200
        assert controller.state is RefreshState.IDLE

    def test_next_notification_after_drop_is_processed(self):
        surface = FakeSurface(width=100)
        controller = RefreshController(_store(2), surface, "ax")
        surface.on_set = lambda sid: controller.on_view_changed(width=50)
        controller.on_view_changed(width=200)

        surface.on_set = None
        report = controller.on_view_changed(width=300)
        assert report.pixel_width == 300
        assert controller.view.pixel_width == 300

    def test_busy_released_after_exception(self):
        surface = FakeSurface()
        controller = RefreshController(_store(1), surface, "ax")
        surface.fail_width = True
        with pytest.raises(UpstreamRenderingFailure):
            controller.on_view_changed()
        assert controller.state is RefreshState.IDLE

        surface.fail_width = False
        assert controller.on_view_changed() is not None

    def test_notification_errors_are_contained(self):
        surface = FakeSurface()
        controller = RefreshController(_store(1), surface, "ax")
        surface.fail_width = True
        _, on_range, on_size = surface.subscribed[0]
        on_range((0.0, 1.0))
        on_size(10)
        assert controller.state is RefreshState.IDLE


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestFailures:
    def test_failed_series_keeps_previous_data(self):
        surface = FakeSurface(width=100)
        controller = RefreshController(_store(3), surface, "ax")
        before = surface.data[1]

        surface.fail_for = {1}
        report = controller.on_view_changed(width=20)

        assert report.updated == [0, 2]
        assert [f.series_id for f in report.failures] == [1]
        assert isinstance(report.failures[0].error, UpstreamRenderingFailure)
        assert not report.ok
        assert surface.data[1] is before
        assert len(surface.data[0][0]) <= 42
        assert surface.redraws == 2

    def test_engine_failure_is_isolated(self):
        store = SeriesStore()
        store.add_series(np.arange(5000.0), np.sin(np.arange(5000.0)))
        store.add_series(np.arange(3000.0), np.cos(np.arange(3000.0)))
        surface = FakeSurface(width=10)
        controller = RefreshController(
            store, surface, "ax", engine=FailingEngine(bad_id_length=3000)
        )
        report = controller.last_report
        assert report.updated == [0]
        assert isinstance(report.failures[0].error, RuntimeError)
        assert controller.state is RefreshState.IDLE

    def test_redraw_failure_is_reported(self):
        surface = FakeSurface()
        controller = RefreshController(_store(1), surface, "ax")
        surface.fail_redraw = True
        report = controller.on_view_changed()
        assert report.updated == [0]
        assert isinstance(report.redraw_error, UpstreamRenderingFailure)
        assert not report.ok

    def test_refresh_can_raise(self):
        surface = FakeSurface()
        controller = RefreshController(_store(2), surface, "ax")
        surface.fail_for = {0}
        assert controller.refresh() is not None
        with pytest.raises(RefreshError) as excinfo:
            controller.refresh(raise_on_failure=True)
        assert excinfo.value.report.failures[0].series_id == 0
        assert "0" in str(excinfo.value)


# ---------------------------------------------------------------------------
# Notifications and teardown
# ---------------------------------------------------------------------------


class TestNotifications:
    def test_range_notification_triggers_refresh(self):
        surface = FakeSurface(width=100)
        controller = RefreshController(_store(1), surface, "ax")
        _, on_range, _ = surface.subscribed[0]
        on_range((1000.0, 2000.0))
        assert controller.view.x_range == (1000.0, 2000.0)
        x, _ = surface.data[0]
        assert x.min() >= 999.0
        assert x.max() <= 2001.0

    def test_linked_axes_range_wins_over_stale_primary(self):
        surface = FakeSurface(width=100, x_range=(0.0, 9999.0))
        controller = RefreshController(_store(1), surface, ["primary", "twin"])
        # The twin reports its new limits before the primary is updated
        _, on_range, _ = surface.subscribed[1]
        on_range((3000.0, 4000.0))
        assert controller.view.x_range == (3000.0, 4000.0)
        assert surface.width_queries[-1] == "primary"

    def test_size_notification_triggers_refresh(self):
        surface = FakeSurface(width=100)
        controller = RefreshController(_store(1), surface, "ax")
        surface.width = 10
        _, _, on_size = surface.subscribed[0]
        on_size(10)
        assert controller.last_report.pixel_width == 10
        assert len(surface.data[0][0]) <= 22

    def test_detach_unsubscribes_everything(self):
        surface = FakeSurface()
        controller = RefreshController(_store(1), surface, ["a", "b"])
        subs = controller.subscriptions
        controller.detach()
        assert all(not s.active for s in subs)
        assert controller.subscriptions == []
