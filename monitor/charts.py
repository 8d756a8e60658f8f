"""Time-series chart rendering for dashboard panels."""
from __future__ import annotations

import base64
import io
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

import matplotlib
import numpy as np
import pandas as pd
from matplotlib import colors as mcolors
from matplotlib.patches import Polygon
from matplotlib.ticker import FuncFormatter, MaxNLocator

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from .schemas import SPAN_WINDOWS, MetricField, SampleLike, SystemMetric, TimeSpan  # noqa: E402

ValueFormatter = Callable[[float], str]

BYTE_UNITS: Tuple[str, ...] = ("B/s", "KB/s", "MB/s", "GB/s")
BYTE_BASE = 1024

FILL_ALPHA = 0.3
FIGSIZE = (6.4, 2.6)
DPI = 100
BACKGROUND = "#18181b"
GRID_COLOR = "#333333"
AXIS_COLOR = "#666666"
VALUE_COLUMNS = [member.value for member in MetricField]


def format_bytes(value: float) -> str:
    """Format a byte rate with base-1024 units and two decimals."""
    if value == 0:
        return "0 B/s"
    if not math.isfinite(value):
        return "n/a"
    magnitude = abs(value)
    index = int(math.floor(math.log(magnitude, BYTE_BASE)))
    # log() is inexact at exact powers of the base
    while index + 1 < len(BYTE_UNITS) and magnitude >= BYTE_BASE ** (index + 1):
        index += 1
    while index > 0 and magnitude < BYTE_BASE ** index:
        index -= 1
    index = max(0, min(index, len(BYTE_UNITS) - 1))
    return f"{value / BYTE_BASE ** index:.2f} {BYTE_UNITS[index]}"


def format_sectors(value: float) -> str:
    return f"{value:.0f} sectors/s"


@dataclass(frozen=True)
class MetricSeriesConfig:
    """Static rendering configuration of one chart panel."""

    title: str
    primary_key: MetricField
    primary_color: str
    unit: str = ""
    secondary_key: Optional[MetricField] = None
    secondary_color: Optional[str] = None
    value_formatter: Optional[ValueFormatter] = None
    primary_label: Optional[str] = None
    secondary_label: Optional[str] = None
    integer_ticks: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "primary_key", MetricField(self.primary_key))
        if self.secondary_key is not None:
            object.__setattr__(self, "secondary_key", MetricField(self.secondary_key))
            if not self.secondary_color:
                raise ValueError(f"Panel {self.title!r}: secondary_key requires secondary_color")
        for color in (self.primary_color, self.secondary_color):
            if color is not None and not mcolors.is_color_like(color):
                raise ValueError(f"Panel {self.title!r}: invalid color {color!r}")

    def series(self) -> List[Tuple[MetricField, str, str]]:
        """Return ``(field, color, label)`` for every plotted series."""
        items = [(self.primary_key, self.primary_color, self.primary_label or self.primary_key.value)]
        if self.secondary_key is not None and self.secondary_color is not None:
            items.append(
                (self.secondary_key, self.secondary_color, self.secondary_label or self.secondary_key.value)
            )
        return items


def format_value(value: float, config: MetricSeriesConfig) -> str:
    if config.value_formatter is not None:
        return config.value_formatter(value)
    return f"{value:.2f}{config.unit}"


def _to_datetime(timestamp: float, tz: Optional[tzinfo]) -> Optional[datetime]:
    try:
        if tz is None:
            return datetime.fromtimestamp(float(timestamp))
        return datetime.fromtimestamp(float(timestamp), tz=tz)
    except (OverflowError, OSError, ValueError):
        return None


def format_time_tick(timestamp: float, tz: Optional[tzinfo] = None) -> str:
    moment = _to_datetime(timestamp, tz)
    return moment.strftime("%H:%M") if moment else ""


def format_time_label(timestamp: float, tz: Optional[tzinfo] = None) -> str:
    moment = _to_datetime(timestamp, tz)
    return moment.strftime("%Y-%m-%d %H:%M:%S") if moment else ""


def samples_frame(samples: Iterable[SampleLike]) -> pd.DataFrame:
    """Tabulate samples; missing or non-numeric values read as 0."""
    rows = []
    for sample in samples:
        if isinstance(sample, SystemMetric):
            timestamp = sample.timestamp
        elif isinstance(sample, Mapping):
            timestamp = sample.get("timestamp")
        else:
            continue
        row = {"timestamp": timestamp}
        row.update({metric.value: metric.value_of(sample) for metric in MetricField})
        rows.append(row)
    frame = pd.DataFrame(rows, columns=["timestamp", *VALUE_COLUMNS])
    frame["timestamp"] = pd.to_numeric(frame["timestamp"], errors="coerce")
    frame = frame.dropna(subset=["timestamp"])
    for column in VALUE_COLUMNS:
        frame[column] = frame[column].astype(float).fillna(0.0)
    return frame.sort_values("timestamp", kind="stable").reset_index(drop=True)


@dataclass
class TooltipRegion:
    label: str
    values: List[Tuple[str, str]]
    box: Tuple[int, int, int, int]

    @property
    def text(self) -> str:
        lines = [self.label] + [f"{name}: {value}" for name, value in self.values]
        return "\n".join(lines)


@dataclass
class RenderedChart:
    title: str
    image: str
    width: int
    height: int
    tooltips: List[TooltipRegion] = field(default_factory=list)
    latest: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.tooltips


def _gradient_area(ax: plt.Axes, x: np.ndarray, y: np.ndarray, color: str, zorder: int) -> None:
    ax.plot(x, y, color=color, linewidth=2, zorder=zorder + 1)
    if len(x) < 2:
        return
    gradient = np.empty((100, 1, 4), dtype=float)
    gradient[:, :, :3] = mcolors.to_rgb(color)
    gradient[:, :, -1] = np.linspace(0.0, FILL_ALPHA, 100)[:, None]

    xmin, xmax = float(x.min()), float(x.max())
    ymin = 0.0
    ymax = float(y.max()) if float(y.max()) > ymin else 1.0
    image = ax.imshow(
        gradient,
        aspect="auto",
        extent=[xmin, xmax, ymin, ymax],
        origin="lower",
        zorder=zorder,
    )
    outline = np.vstack([[xmin, ymin], np.column_stack([x, y]), [xmax, ymin], [xmin, ymin]])
    clip = Polygon(outline, facecolor="none", edgecolor="none", closed=True)
    ax.add_patch(clip)
    image.set_clip_path(clip)


def _style_axes(fig: plt.Figure, ax: plt.Axes) -> None:
    fig.patch.set_facecolor(BACKGROUND)
    ax.set_facecolor(BACKGROUND)
    ax.grid(True, axis="y", linestyle="--", color=GRID_COLOR, linewidth=0.8)
    ax.set_axisbelow(True)
    for spine in ax.spines.values():
        spine.set_visible(False)
    ax.tick_params(axis="both", colors=AXIS_COLOR, labelsize=8, length=0)


def build_figure(
    samples: Sequence[SampleLike],
    config: MetricSeriesConfig,
    *,
    span: TimeSpan | str | None = None,
    tz: Optional[tzinfo] = None,
    now: Optional[float] = None,
) -> Tuple[plt.Figure, plt.Axes, pd.DataFrame]:
    """Draw one panel. Empty input yields formatted axes without traces."""
    frame = samples_frame(samples)
    fig, ax = plt.subplots(figsize=FIGSIZE, dpi=DPI)
    _style_axes(fig, ax)

    ax.xaxis.set_major_locator(MaxNLocator(nbins=6))
    ax.xaxis.set_major_formatter(FuncFormatter(lambda value, _pos: format_time_tick(value, tz)))
    ax.yaxis.set_major_locator(MaxNLocator(nbins=5, integer=config.integer_ticks))
    ax.yaxis.set_major_formatter(FuncFormatter(lambda value, _pos: format_value(value, config)))

    if frame.empty:
        window = SPAN_WINDOWS[TimeSpan(span or TimeSpan.REALTIME)].window_s
        end = time.time() if now is None else now
        ax.set_xlim(end - window, end)
        ax.set_ylim(0.0, 1.0)
        fig.tight_layout()
        return fig, ax, frame

    x = frame["timestamp"].to_numpy(dtype=float)
    ymin, ymax = 0.0, 0.0
    for order, (metric, color, label) in enumerate(config.series()):
        y = frame[metric.value].to_numpy(dtype=float)
        _gradient_area(ax, x, y, color, zorder=2 + 2 * order)
        ax.lines[-1].set_label(label)
        ymin = min(ymin, float(y.min()))
        ymax = max(ymax, float(y.max()))

    if x[0] == x[-1]:
        ax.set_xlim(x[0] - 0.5, x[-1] + 0.5)
    else:
        ax.set_xlim(x[0], x[-1])
    ax.set_ylim(ymin, ymax * 1.1 if ymax > 0 else 1.0)
    if config.secondary_key is not None:
        legend = ax.legend(loc="upper left", fontsize=7, frameon=False)
        for text in legend.get_texts():
            text.set_color(AXIS_COLOR)
    fig.tight_layout()
    return fig, ax, frame


def _tooltip_regions(
    fig: plt.Figure,
    ax: plt.Axes,
    frame: pd.DataFrame,
    config: MetricSeriesConfig,
    tz: Optional[tzinfo],
) -> List[TooltipRegion]:
    if frame.empty:
        return []
    fig.canvas.draw()
    height = fig.bbox.height
    bbox = ax.get_window_extent()
    x = frame["timestamp"].to_numpy(dtype=float)
    xs = ax.transData.transform(np.column_stack([x, np.zeros_like(x)]))[:, 0]
    edges = np.concatenate([[bbox.x0], (xs[:-1] + xs[1:]) / 2.0, [bbox.x1]])
    top = int(round(height - bbox.y1))
    bottom = int(round(height - bbox.y0))

    regions: List[TooltipRegion] = []
    series = config.series()
    for idx, row in enumerate(frame.itertuples(index=False)):
        values = [
            (label, format_value(float(getattr(row, metric.value)), config))
            for metric, _color, label in series
        ]
        left = int(round(max(edges[idx], bbox.x0)))
        right = int(round(min(edges[idx + 1], bbox.x1)))
        regions.append(
            TooltipRegion(
                label=format_time_label(row.timestamp, tz),
                values=values,
                box=(left, top, max(right, left + 1), bottom),
            )
        )
    return regions


def _figure_to_data_uri(fig: plt.Figure) -> str:
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=fig.dpi, facecolor=fig.get_facecolor())
    buffer.seek(0)
    encoded = base64.b64encode(buffer.read()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def latest_readings(samples: Sequence[SampleLike], config: MetricSeriesConfig) -> List[Tuple[str, str]]:
    frame = samples_frame(samples)
    if frame.empty:
        return []
    last = frame.iloc[-1]
    return [(label, format_value(float(last[metric.value]), config)) for metric, _color, label in config.series()]


def render_chart(
    samples: Sequence[SampleLike],
    config: MetricSeriesConfig,
    *,
    span: TimeSpan | str | None = None,
    tz: Optional[tzinfo] = None,
    now: Optional[float] = None,
) -> RenderedChart:
    """Render a panel to a static PNG plus hover regions. No animation."""
    fig, ax, frame = build_figure(samples, config, span=span, tz=tz, now=now)
    try:
        tooltips = _tooltip_regions(fig, ax, frame, config, tz)
        width, height = int(fig.bbox.width), int(fig.bbox.height)
        image = _figure_to_data_uri(fig)
    finally:
        plt.close(fig)
    return RenderedChart(
        title=config.title,
        image=image,
        width=width,
        height=height,
        tooltips=tooltips,
        latest=latest_readings(samples, config),
    )


def render_panels(
    samples: Sequence[SampleLike],
    panels: Sequence[MetricSeriesConfig],
    *,
    span: TimeSpan | str | None = None,
    tz: Optional[tzinfo] = None,
) -> List[RenderedChart]:
    """Render every panel from the same sample sequence."""
    now = time.time()
    return [render_chart(samples, panel, span=span, tz=tz, now=now) for panel in panels]
