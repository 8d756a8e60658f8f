"""Display state for one dashboard instance and its pure reducer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple, Union

from .schemas import SystemMetric, TimeSpan


@dataclass(frozen=True)
class FetchTicket:
    """Tag attached to every issued fetch: the span it was issued for and its order."""

    span: TimeSpan
    seq: int


@dataclass(frozen=True)
class DisplayState:
    span: TimeSpan = TimeSpan.REALTIME
    samples: Tuple[SystemMetric, ...] = field(default_factory=tuple)
    is_loading: bool = True
    applied_seq: int = 0


@dataclass(frozen=True)
class SpanSelected:
    """User picked a new span. Fetches numbered up to ``since_seq`` predate it."""

    span: TimeSpan
    since_seq: int = 0


@dataclass(frozen=True)
class FetchCompleted:
    samples: Sequence[SystemMetric]
    ticket: Optional[FetchTicket] = None


Event = Union[SpanSelected, FetchCompleted]


def initial_state(span: TimeSpan = TimeSpan.REALTIME) -> DisplayState:
    return DisplayState(span=TimeSpan(span))


def is_stale(state: DisplayState, ticket: Optional[FetchTicket]) -> bool:
    """Return True when a completion tagged with ``ticket`` must be discarded.

    A result is stale when its span is no longer selected. Otherwise its
    sequence number must exceed ``applied_seq``, which a span switch raises
    to the last fetch issued before it. Untagged completions are never stale.
    """
    if ticket is None:
        return False
    if ticket.span != state.span:
        return True
    return ticket.seq <= state.applied_seq


def reduce(state: DisplayState, event: Event) -> DisplayState:
    if isinstance(event, SpanSelected):
        return replace(
            state,
            span=TimeSpan(event.span),
            is_loading=True,
            applied_seq=max(state.applied_seq, event.since_seq),
        )
    if isinstance(event, FetchCompleted):
        if is_stale(state, event.ticket):
            return state
        applied_seq = event.ticket.seq if event.ticket is not None else state.applied_seq
        return replace(
            state,
            samples=tuple(event.samples),
            is_loading=False,
            applied_seq=applied_seq,
        )
    raise TypeError(f"Unsupported display event: {event!r}")


def reduce_all(state: DisplayState, events: Sequence[Event]) -> DisplayState:
    for event in events:
        state = reduce(state, event)
    return state
