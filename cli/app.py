from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from monitor.i18n import SUPPORTED_LANGS, set_lang, t
from monitor.scheduler import poll_interval
from monitor.schemas import SPAN_WINDOWS, UI_SPANS
from monitor.settings import ConfigurationError, Settings, load_settings, setup_logging

from .common import configure_logging, console
from .subapps.dashboard import dashboard_app

app = typer.Typer(help="hostpulse live system-metrics dashboard")
app.add_typer(dashboard_app, name="dashboard")


def _human_seconds(seconds: float) -> str:
    seconds = int(seconds)
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size and seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML/JSON settings file"),
) -> None:
    try:
        settings = load_settings(config)
    except ConfigurationError as exc:
        console().print(t("msgs.error", error=exc))
        raise typer.Exit(code=1) from exc
    configure_logging("cli", settings.log_level)
    ctx.obj = settings


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", "-h"),
    port: Optional[int] = typer.Option(None, "--port", "-p"),
    backend: Optional[str] = typer.Option(None, "--backend", help="Backend origin for /api requests"),
    static_dir: Optional[Path] = typer.Option(None, "--static-dir", help="Compiled dashboard directory"),
) -> None:
    """Run the edge server (API proxy + dashboard page)."""
    from edge.server import start_edge

    settings: Settings = ctx.obj
    edge = settings.edge
    setup_logging(settings.log_level)
    console().print(t("msgs.starting", task="edge server"))
    try:
        start_edge(
            host or edge.host,
            port or edge.port,
            backend or edge.backend_url,
            static_dir or edge.static_dir,
        )
    except KeyboardInterrupt:
        console().print(t("msgs.shutdown"))


@app.command("spans")
def spans() -> None:
    """List the selectable observation windows."""
    table = Table(title=t("table.spans"))
    table.add_column(t("table.span"), style="cyan", no_wrap=True)
    table.add_column(t("table.label"), style="green")
    table.add_column(t("table.interval"), justify="right")
    table.add_column(t("table.window"), justify="right")
    table.add_column(t("table.bucket"), justify="right")
    for span in UI_SPANS:
        window = SPAN_WINDOWS[span]
        table.add_row(
            span.value,
            t(f"span.{span.value}"),
            _human_seconds(poll_interval(span)),
            _human_seconds(window.window_s),
            _human_seconds(window.bucket_s),
        )
    console().print(table)


@app.command("lang")
def lang(code: str = typer.Argument(..., help=f"One of: {', '.join(SUPPORTED_LANGS)}")) -> None:
    """Persist the dashboard language."""
    try:
        set_lang(code)
    except ValueError as exc:
        console().print(t("msgs.error", error=exc))
        raise typer.Exit(code=2) from exc
    console().print(t("msgs.lang_set", lang=code))


if __name__ == "__main__":
    app()
