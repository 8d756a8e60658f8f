"""Pydantic models and enums shared by the dashboard pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter


class TimeSpan(str, Enum):
    """Observation windows understood by the backend history endpoint."""

    REALTIME = "realtime"
    ONE_MINUTE = "1m"
    ONE_HOUR = "1h"
    ONE_DAY = "1d"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"

    def __str__(self) -> str:
        return self.value


# "1m" is accepted by the backend but not offered by the selector.
UI_SPANS: Tuple[TimeSpan, ...] = (
    TimeSpan.REALTIME,
    TimeSpan.ONE_HOUR,
    TimeSpan.ONE_DAY,
    TimeSpan.SEVEN_DAYS,
    TimeSpan.THIRTY_DAYS,
)


@dataclass(frozen=True)
class SpanWindow:
    window_s: int
    bucket_s: int


SPAN_WINDOWS: Dict[TimeSpan, SpanWindow] = {
    TimeSpan.REALTIME: SpanWindow(window_s=60, bucket_s=1),
    TimeSpan.ONE_MINUTE: SpanWindow(window_s=60, bucket_s=1),
    TimeSpan.ONE_HOUR: SpanWindow(window_s=3600, bucket_s=60),
    TimeSpan.ONE_DAY: SpanWindow(window_s=86400, bucket_s=300),
    TimeSpan.SEVEN_DAYS: SpanWindow(window_s=7 * 86400, bucket_s=3600),
    TimeSpan.THIRTY_DAYS: SpanWindow(window_s=30 * 86400, bucket_s=4 * 3600),
}


class SystemMetric(BaseModel):
    timestamp: int = Field(..., description="Unix timestamp in seconds")
    cpu: float = Field(0.0, description="CPU usage percent")
    memory: float = Field(0.0, description="Memory usage percent")
    net_rx: float = Field(0.0, description="Received bytes per second")
    net_tx: float = Field(0.0, description="Transmitted bytes per second")
    disk_read: float = Field(0.0, description="Sectors read per second")
    disk_write: float = Field(0.0, description="Sectors written per second")


SampleLike = Union[SystemMetric, Mapping[str, Any]]

SYSTEM_METRIC_LIST = TypeAdapter(List[SystemMetric])


class MetricField(str, Enum):
    """Selector over the value fields of :class:`SystemMetric`."""

    CPU = "cpu"
    MEMORY = "memory"
    NET_RX = "net_rx"
    NET_TX = "net_tx"
    DISK_READ = "disk_read"
    DISK_WRITE = "disk_write"

    def value_of(self, sample: SampleLike) -> float:
        """Read this field from a sample; missing or non-numeric values read as 0."""
        if isinstance(sample, SystemMetric):
            raw = getattr(sample, self.value)
        else:
            raw = sample.get(self.value)
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return 0.0
        return value if math.isfinite(value) else 0.0


__all__ = [
    "MetricField",
    "SPAN_WINDOWS",
    "SYSTEM_METRIC_LIST",
    "SampleLike",
    "SpanWindow",
    "SystemMetric",
    "TimeSpan",
    "UI_SPANS",
]
