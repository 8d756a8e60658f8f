"""Metrics client tests: request shape and the fail-soft contract."""

from __future__ import annotations

import asyncio

import requests

from monitor.client import MetricsClient
from monitor.schemas import SystemMetric, TimeSpan
from tests.conftest import get_test_logger
from tests.helpers import FakeHttpResponse, FakeSession

logger = get_test_logger(__name__)
logger.info("Starting tests for metrics client")


def test_fetch_history_requests_span_and_decodes(history_session, fake_metrics) -> None:
    client = MetricsClient("http://edge.test/api/", session=history_session, timeout_s=2.5)

    samples = client.fetch_history(TimeSpan.ONE_HOUR)

    assert history_session.calls == [
        {"url": "http://edge.test/api/history", "params": {"span": "1h"}, "timeout": 2.5}
    ]
    assert len(samples) == len(fake_metrics)
    assert all(isinstance(sample, SystemMetric) for sample in samples)
    assert samples[0].timestamp == fake_metrics[0]["timestamp"]
    assert [s.timestamp for s in samples] == sorted(s.timestamp for s in samples)


def test_fetch_history_missing_metric_fields_default_to_zero() -> None:
    session = FakeSession(FakeHttpResponse([{"timestamp": 10, "cpu": 12.5}]))
    samples = MetricsClient(session=session).fetch_history("realtime")

    assert len(samples) == 1
    assert samples[0].cpu == 12.5
    assert samples[0].net_rx == 0.0
    assert samples[0].disk_write == 0.0


def test_fetch_history_network_failure_returns_empty(caplog) -> None:
    session = FakeSession(error=requests.ConnectionError("connection refused"))
    client = MetricsClient(session=session)

    with caplog.at_level("WARNING", logger="monitor.client"):
        result = client.fetch_history(TimeSpan.REALTIME)

    assert result == []
    assert "connection refused" in caplog.text


def test_fetch_history_http_error_returns_empty() -> None:
    session = FakeSession(FakeHttpResponse({"detail": "boom"}, status_code=500))
    assert MetricsClient(session=session).fetch_history("1d") == []


def test_fetch_history_malformed_bodies_return_empty() -> None:
    bodies = [
        FakeHttpResponse(text="<html>not json</html>"),
        FakeHttpResponse({"samples": []}),
        FakeHttpResponse([{"cpu": 1.0}]),
        FakeHttpResponse([{"timestamp": "soon"}]),
    ]
    for body in bodies:
        assert MetricsClient(session=FakeSession(body)).fetch_history("7d") == []


def test_fetch_history_empty_array() -> None:
    assert MetricsClient(session=FakeSession(FakeHttpResponse([]))).fetch_history("30d") == []


def test_fetch_history_async_runs_in_executor(history_session, fake_metrics) -> None:
    client = MetricsClient(session=history_session)

    async def scenario():
        return await asyncio.gather(
            client.fetch_history_async(TimeSpan.REALTIME),
            client.fetch_history_async(TimeSpan.ONE_DAY),
        )

    realtime, day = asyncio.run(scenario())
    assert len(realtime) == len(day) == len(fake_metrics)
    assert sorted(call["params"]["span"] for call in history_session.calls) == ["1d", "realtime"]


def test_close_releases_session(history_session) -> None:
    MetricsClient(session=history_session).close()
    assert history_session.closed
