"""Adaptive polling of the history endpoint on the asyncio event loop."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from .schemas import SystemMetric, TimeSpan
from .state import FetchTicket

LOGGER = logging.getLogger(__name__)

FetchFn = Callable[[TimeSpan], Awaitable[Sequence[SystemMetric]]]
CompletionFn = Callable[[FetchTicket, List[SystemMetric]], None]
IntervalPolicy = Callable[[TimeSpan], float]

REALTIME_INTERVAL_S = 1.0
HOUR_INTERVAL_S = 10.0
DEFAULT_INTERVAL_S = 60.0


def poll_interval(span: TimeSpan | str) -> float:
    """Seconds between polls; wider windows tolerate staler data."""
    span = TimeSpan(span)
    if span is TimeSpan.REALTIME:
        return REALTIME_INTERVAL_S
    if span is TimeSpan.ONE_HOUR:
        return HOUR_INTERVAL_S
    return DEFAULT_INTERVAL_S


class SchedulerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


class PollingScheduler:
    """Owns the single repeating timer of a dashboard instance.

    ``start``/``on_span_change`` cancel the previous timer before fetching
    immediately and arming a new one, so at most one timer exists at any
    time. Fetches are not serialised: a slow request may still be running
    when the next tick fires. Each fetch carries a :class:`FetchTicket` so
    the receiver can discard superseded results.
    """

    def __init__(
        self,
        fetch: FetchFn,
        on_complete: CompletionFn,
        *,
        interval_policy: IntervalPolicy = poll_interval,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._fetch = fetch
        self._on_complete = on_complete
        self._interval_policy = interval_policy
        self._loop = loop
        self._state = SchedulerState.IDLE
        self._span: Optional[TimeSpan] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._seq = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def span(self) -> Optional[TimeSpan]:
        return self._span

    @property
    def active_timers(self) -> int:
        if self._timer is None or self._timer.cancelled():
            return 0
        return 1

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def issued(self) -> int:
        return self._seq

    def start(self, span: TimeSpan | str) -> None:
        span = TimeSpan(span)
        self._get_loop()
        self._cancel_timer()
        self._state = SchedulerState.POLLING
        self._span = span
        interval = self._interval_policy(span)
        LOGGER.info("Polling span %s every %.1fs", span.value, interval)
        self._issue_fetch()
        self._arm(interval)

    def on_span_change(self, span: TimeSpan | str) -> None:
        self.start(span)

    def stop(self) -> None:
        self._cancel_timer()
        if self._state is SchedulerState.POLLING:
            LOGGER.info("Polling stopped (span %s)", self._span.value if self._span else "-")
        self._state = SchedulerState.IDLE
        self._span = None
        for task in list(self._tasks):
            task.cancel()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self, interval: float) -> None:
        self._timer = self._get_loop().call_later(interval, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if self._state is not SchedulerState.POLLING or self._span is None:
            return
        self._issue_fetch()
        self._arm(self._interval_policy(self._span))

    def _issue_fetch(self) -> None:
        assert self._span is not None
        self._seq += 1
        ticket = FetchTicket(span=self._span, seq=self._seq)
        task = self._get_loop().create_task(self._run(ticket))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, ticket: FetchTicket) -> None:
        try:
            samples = list(await self._fetch(ticket.span))
        except asyncio.CancelledError:
            LOGGER.debug("Fetch #%d for span %s cancelled", ticket.seq, ticket.span.value)
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Fetch #%d for span %s failed: %s", ticket.seq, ticket.span.value, exc)
            samples = []
        if self._state is not SchedulerState.POLLING:
            LOGGER.debug("Discarding fetch #%d completed after stop", ticket.seq)
            return
        self._on_complete(ticket, samples)
