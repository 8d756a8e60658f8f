"""Dashboard instance wiring the scheduler, display state and renderer."""
from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Callable, List, Optional, Sequence

from .charts import MetricSeriesConfig, RenderedChart, render_panels
from .client import MetricsClient
from .panels import DEFAULT_PANELS
from .scheduler import IntervalPolicy, PollingScheduler, poll_interval
from .schemas import SystemMetric, TimeSpan
from .state import DisplayState, Event, FetchCompleted, FetchTicket, SpanSelected, initial_state, is_stale, reduce

LOGGER = logging.getLogger(__name__)

StateListener = Callable[[DisplayState], None]


class Dashboard:
    """One mounted dashboard: exclusive owner of its state and timer."""

    def __init__(
        self,
        client: MetricsClient,
        *,
        panels: Sequence[MetricSeriesConfig] = DEFAULT_PANELS,
        initial_span: TimeSpan | str = TimeSpan.REALTIME,
        interval_policy: IntervalPolicy = poll_interval,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.client = client
        self.panels = tuple(panels)
        self.tz = tz
        self._initial_span = TimeSpan(initial_span)
        self._state = initial_state(self._initial_span)
        self._mounted = False
        self._listeners: List[StateListener] = []
        self._scheduler = PollingScheduler(
            client.fetch_history_async,
            self._on_fetch_completed,
            interval_policy=interval_policy,
        )

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def scheduler(self) -> PollingScheduler:
        return self._scheduler

    @property
    def mounted(self) -> bool:
        return self._mounted

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def mount(self) -> None:
        if self._mounted:
            return
        self._state = initial_state(self._initial_span)
        try:
            self._scheduler.start(self._state.span)
        except Exception:
            self._scheduler.stop()
            raise
        self._mounted = True
        LOGGER.info("Dashboard mounted (span %s)", self._state.span.value)
        self._notify()

    def select_span(self, span: TimeSpan | str) -> None:
        span = TimeSpan(span)
        if not self._mounted:
            raise RuntimeError("Dashboard is not mounted")
        if span == self._state.span:
            return
        LOGGER.info("Span changed %s -> %s", self._state.span.value, span.value)
        self._dispatch(SpanSelected(span, since_seq=self._scheduler.issued))
        self._scheduler.on_span_change(span)

    def unmount(self) -> None:
        self._scheduler.stop()
        if self._mounted:
            LOGGER.info("Dashboard unmounted")
        self._mounted = False

    def render(self) -> List[RenderedChart]:
        return render_panels(self._state.samples, self.panels, span=self._state.span, tz=self.tz)

    def _on_fetch_completed(self, ticket: FetchTicket, samples: List[SystemMetric]) -> None:
        if not self._mounted:
            LOGGER.debug("Discarding fetch #%d after unmount", ticket.seq)
            return
        if is_stale(self._state, ticket):
            LOGGER.debug(
                "Discarding stale fetch #%d for span %s (current %s, applied #%d)",
                ticket.seq,
                ticket.span.value,
                self._state.span.value,
                self._state.applied_seq,
            )
            return
        self._dispatch(FetchCompleted(samples, ticket))

    def _dispatch(self, event: Event) -> None:
        new_state = reduce(self._state, event)
        if new_state is self._state:
            return
        self._state = new_state
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Dashboard listener failed")

    async def __aenter__(self) -> "Dashboard":
        self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.unmount()
