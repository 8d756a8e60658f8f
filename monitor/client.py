"""HTTP client for the backend history endpoint."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import requests

from .schemas import SYSTEM_METRIC_LIST, SystemMetric, TimeSpan

LOGGER = logging.getLogger(__name__)


class MetricsClient:
    """Fail-soft reader for ``GET /api/history?span=<span>``.

    Every call is one independent request: no retry, no cache. Failures of
    any kind are logged and reported as an empty sample list so callers can
    keep rendering.
    """

    def __init__(
        self,
        base_url: str = "/api",
        *,
        session: Optional[requests.Session] = None,
        timeout_s: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    @property
    def history_url(self) -> str:
        return f"{self.base_url}/history"

    def fetch_history(self, span: TimeSpan | str) -> List[SystemMetric]:
        span_value = TimeSpan(span).value
        try:
            response = self.session.get(
                self.history_url,
                params={"span": span_value},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            payload = response.json()
            samples = SYSTEM_METRIC_LIST.validate_python(payload)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to fetch history for span %s: %s", span_value, exc)
            return []
        LOGGER.debug("Fetched %d samples for span %s", len(samples), span_value)
        return samples

    async def fetch_history_async(self, span: TimeSpan | str) -> List[SystemMetric]:
        """Run :meth:`fetch_history` off the event loop thread."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.fetch_history, span)

    def close(self) -> None:
        self.session.close()
