from typing import Any, List, Optional, Tuple

from loguru import logger

from .decimation import DecimationEngine
from .errors import RefreshError, RefreshReport, SeriesFailure
from .series_store import SeriesStore
from .surface import RenderingSurface, Subscription
from .view_state import RefreshState, ViewState


class RefreshController:
    """
    Recomputes reduced lines whenever the view of its axes changes.

    A two-state machine (Idle/Busy) held on the :class:`ViewState`. Pushing
    data to the surface can synchronously raise further view-change
    notifications; those arrive while Busy and are dropped, not queued.
    The first pass runs synchronously in the constructor.
    """

    def __init__(
        self,
        store: SeriesStore,
        surface: RenderingSurface,
        axes: Any,
        view: Optional[ViewState] = None,
        engine: Optional[DecimationEngine] = None,
    ):
        """
        Initialise the controller and run the first refresh pass.

        Parameters
        ----------
        store : SeriesStore
            Source of the full-resolution series.
        surface : RenderingSurface
            Drawing layer receiving the reduced data.
        axes : Any or Sequence[Any]
            Axes handle, or several axes sharing one x-axis. The first one
            is the primary axes from which pixel width is sampled, and the
            range too unless a range notification supplies it.
        view : Optional[ViewState], default=None
            Shared view state. A new one is created if None.
        engine : Optional[DecimationEngine], default=None
            Decimation engine. A new one is created if None.
        """
        self.store = store
        self.surface = surface
        self.axes: List[Any] = (
            list(axes) if isinstance(axes, (list, tuple)) else [axes]
        )
        if not self.axes:
            raise ValueError("At least one axes handle is required.")
        self.view = view if view is not None else ViewState()
        self.engine = engine if engine is not None else DecimationEngine()

        self.dropped_events = 0
        self.last_report: Optional[RefreshReport] = None
        self._subscriptions: List[Subscription] = []

        # Populate the first reduced view before anything is drawn
        self.view.set_busy(False)
        self.on_view_changed()

        for ax in self.axes:
            self._subscriptions.append(
                self.surface.subscribe(ax, self._on_range_changed, self._on_size_changed)
            )

    @property
    def primary_axes(self) -> Any:
        return self.axes[0]

    @property
    def state(self) -> RefreshState:
        return self.view.refresh_state

    def is_busy(self) -> bool:
        return self.view.is_busy()

    def on_view_changed(
        self,
        width: Optional[int] = None,
        x_range: Optional[Tuple[float, float]] = None,
    ) -> Optional[RefreshReport]:
        """
        Handle a view change.

        Parameters
        ----------
        width : Optional[int], default=None
            New pixel width. Sampled from the primary axes if None.
        x_range : Optional[Tuple[float, float]], default=None
            New visible range. Sampled from the primary axes if None.

        Returns
        -------
        Optional[RefreshReport]
            Report of the pass, or None if the event was dropped because a
            refresh was already in progress.
        """
        if self.view.is_busy():
            self.dropped_events += 1
            logger.debug(
                f"Refresh in progress, dropping view change (dropped={self.dropped_events})"
            )
            return None

        self.view.set_busy(True)
        try:
            report = self._refresh_pass(width, x_range)
        finally:
            self.view.set_busy(False)

        self.last_report = report
        if not report.ok:
            logger.warning(
                f"Refresh finished with {len(report.failures)} failed series "
                f"out of {self.store.num_series}"
            )
        return report

    def refresh(self, raise_on_failure: bool = False) -> Optional[RefreshReport]:
        """
        Force a refresh using the current axes state.

        Parameters
        ----------
        raise_on_failure : bool, default=False
            Raise :class:`RefreshError` if any series failed.
        """
        report = self.on_view_changed()
        if raise_on_failure and report is not None and not report.ok:
            raise RefreshError(report)
        return report

    def _refresh_pass(
        self, width: Optional[int], x_range: Optional[Tuple[float, float]]
    ) -> RefreshReport:
        """Reduce every series for the current view and push the results."""
        if width is None:
            width = self.surface.get_pixel_width(self.primary_axes)
        if x_range is None:
            x_range = self.surface.get_visible_range(self.primary_axes)
        self.view.update(x_range, width)

        report = RefreshReport(self.view.pixel_width, self.view.x_range)
        logger.debug(f"=== Refresh pass: {self.view} ===")

        for series_id in self.store.series_ids:
            try:
                x, y = self.store.lookup(series_id)
                x_r, y_r = self.engine.reduce_for_view(x, y, self.view)
                self.surface.set_series_data(series_id, x_r, y_r)
            except Exception as e:
                # Leave this series as it was and carry on with the rest
                logger.exception(f"Error refreshing series {series_id}: {e}")
                report.failures.append(SeriesFailure(series_id, e))
            else:
                report.updated.append(series_id)

        try:
            self.surface.request_redraw()
        except Exception as e:
            logger.exception(f"Error requesting redraw: {e}")
            report.redraw_error = e

        return report

    def _on_range_changed(self, x_range: Tuple[float, float]) -> None:
        # Siblings of a linked axes are updated after its callback fires
        self._handle_notification(x_range=x_range)

    def _on_size_changed(self, width: int) -> None:
        self._handle_notification()

    def _handle_notification(
        self, x_range: Optional[Tuple[float, float]] = None
    ) -> None:
        try:
            self.on_view_changed(x_range=x_range)
        except Exception as e:
            logger.exception(f"Error handling view change: {e}")

    def detach(self) -> None:
        """Stop listening to view changes."""
        for subscription in self._subscriptions:
            self.surface.unsubscribe(subscription)
        self._subscriptions.clear()
        logger.debug("Refresh controller detached")

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)
