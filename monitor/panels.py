"""Panel catalog rendered by the dashboard."""

from __future__ import annotations

from typing import Tuple

from .charts import MetricSeriesConfig, format_bytes, format_sectors
from .schemas import MetricField

CPU_PANEL = MetricSeriesConfig(
    title="CPU Usage",
    primary_key=MetricField.CPU,
    primary_color="#818cf8",
    unit="%",
    primary_label="CPU",
)

MEMORY_PANEL = MetricSeriesConfig(
    title="Memory Usage",
    primary_key=MetricField.MEMORY,
    primary_color="#34d399",
    unit="%",
    primary_label="Memory",
)

NETWORK_PANEL = MetricSeriesConfig(
    title="Network Traffic",
    primary_key=MetricField.NET_RX,
    secondary_key=MetricField.NET_TX,
    primary_color="#f472b6",
    secondary_color="#60a5fa",
    unit="B/s",
    value_formatter=format_bytes,
    primary_label="RX",
    secondary_label="TX",
)

# The backend reports per-second deltas of /proc/diskstats sector counters.
DISK_PANEL = MetricSeriesConfig(
    title="Disk I/O",
    primary_key=MetricField.DISK_READ,
    secondary_key=MetricField.DISK_WRITE,
    primary_color="#fbbf24",
    secondary_color="#f87171",
    unit=" sectors/s",
    value_formatter=format_sectors,
    primary_label="Read",
    secondary_label="Write",
    integer_ticks=True,
)

DEFAULT_PANELS: Tuple[MetricSeriesConfig, ...] = (CPU_PANEL, MEMORY_PANEL, NETWORK_PANEL, DISK_PANEL)

__all__ = ["CPU_PANEL", "DEFAULT_PANELS", "DISK_PANEL", "MEMORY_PANEL", "NETWORK_PANEL"]
