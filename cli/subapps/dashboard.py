from __future__ import annotations

import asyncio
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from monitor.bundle import write_bundle
from monitor.charts import render_panels
from monitor.client import MetricsClient
from monitor.dashboard import Dashboard
from monitor.i18n import t
from monitor.panels import DEFAULT_PANELS
from monitor.schemas import UI_SPANS, TimeSpan
from monitor.settings import Settings
from monitor.state import DisplayState, FetchCompleted, initial_state, reduce

from ..common import console, ensure_dir

dashboard_app = typer.Typer(help="Poll the backend and compile the dashboard page")

UI_SPAN_VALUES = [span.value for span in UI_SPANS]


def _validate_span(value: str) -> str:
    if value not in UI_SPAN_VALUES:
        raise typer.BadParameter(f"choose one of {', '.join(UI_SPAN_VALUES)}")
    return value


def _print_status(state: DisplayState) -> None:
    console().print(
        t(
            "status.update",
            time=datetime.now().strftime("%H:%M:%S"),
            span=state.span.value,
            count=len(state.samples),
            loading=state.is_loading,
        )
    )


def _stdin_reader(loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[Optional[str]]") -> None:
    for line in sys.stdin:
        loop.call_soon_threadsafe(queue.put_nowait, line.strip())
    loop.call_soon_threadsafe(queue.put_nowait, None)


async def _read_spans(dashboard: Dashboard, duration: Optional[float]) -> None:
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
    threading.Thread(target=_stdin_reader, args=(loop, queue), name="stdin-spans", daemon=True).start()
    console().print(t("msgs.prompt_span", spans=", ".join(UI_SPAN_VALUES)))

    deadline = loop.time() + duration if duration else None
    stdin_open = True
    while True:
        timeout = None if deadline is None else max(0.0, deadline - loop.time())
        if not stdin_open:
            if timeout is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(timeout)
            return
        try:
            line = await asyncio.wait_for(queue.get(), timeout)
        except asyncio.TimeoutError:
            return
        if line is None:
            stdin_open = False
            continue
        if not line:
            continue
        if line not in UI_SPAN_VALUES:
            console().print(t("msgs.error", error=t("msgs.unknown_span", span=line)))
            continue
        dashboard.select_span(line)


async def _watch(settings: Settings, span: str, out: Path, duration: Optional[float], interactive: bool) -> None:
    client = MetricsClient(settings.dashboard.api_base_url, timeout_s=settings.dashboard.timeout_s)
    dashboard = Dashboard(client, initial_span=span, tz=settings.dashboard.tzinfo())

    def _on_state(state: DisplayState) -> None:
        write_bundle(state, dashboard.render(), out, lang=settings.dashboard.lang)
        _print_status(state)

    dashboard.subscribe(_on_state)
    try:
        async with dashboard:
            if interactive:
                await _read_spans(dashboard, duration)
            elif duration:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
    finally:
        client.close()


@dashboard_app.command("watch")
def watch(
    ctx: typer.Context,
    span: str = typer.Option(TimeSpan.REALTIME.value, "--span", "-s", callback=_validate_span),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Bundle output directory"),
    api: Optional[str] = typer.Option(None, "--api", help="History API base URL"),
    duration: Optional[float] = typer.Option(None, "--duration", help="Stop after N seconds"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Read span switches from stdin"),
) -> None:
    """Poll continuously, recompiling the page on every update."""
    settings: Settings = ctx.obj
    if api:
        settings.dashboard.api_base_url = api
    target = ensure_dir(out or settings.dashboard.output_dir)
    console().print(t("msgs.starting", task=f"dashboard ({span})"))
    try:
        asyncio.run(_watch(settings, span, target, duration, interactive))
    except KeyboardInterrupt:
        console().print(t("msgs.shutdown"))


@dashboard_app.command("snapshot")
def snapshot(
    ctx: typer.Context,
    span: str = typer.Option(TimeSpan.REALTIME.value, "--span", "-s", callback=_validate_span),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Bundle output directory"),
    api: Optional[str] = typer.Option(None, "--api", help="History API base URL"),
) -> None:
    """Fetch once, compile the page and exit."""
    settings: Settings = ctx.obj
    client = MetricsClient(api or settings.dashboard.api_base_url, timeout_s=settings.dashboard.timeout_s)
    try:
        samples = client.fetch_history(span)
    finally:
        client.close()
    state = reduce(initial_state(TimeSpan(span)), FetchCompleted(samples))
    charts = render_panels(state.samples, DEFAULT_PANELS, span=state.span, tz=settings.dashboard.tzinfo())
    paths = write_bundle(state, charts, ensure_dir(out or settings.dashboard.output_dir), lang=settings.dashboard.lang)
    console().print(t("msgs.bundle_written", path=paths["html"]))
