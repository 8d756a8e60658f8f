"""Compile the dashboard page served by the edge router."""
from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from . import TEMPLATES_DIR
from .charts import RenderedChart
from .i18n import get_lang, t
from .scheduler import poll_interval
from .schemas import UI_SPANS
from .state import DisplayState

LOGGER = logging.getLogger(__name__)

ENTRY_DOCUMENT = "index.html"
STATE_DOCUMENT = "state.json"

jinja_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)


def render_page(
    state: DisplayState,
    charts: Sequence[RenderedChart],
    *,
    lang: Optional[str] = None,
) -> str:
    lang = lang or get_lang()

    def _t(key: str, **fmt) -> str:
        return t(key, lang=lang, **fmt)

    spans = [
        {"value": span.value, "label": _t(f"span.{span.value}"), "active": span == state.span}
        for span in UI_SPANS
    ]
    template = jinja_env.get_template(ENTRY_DOCUMENT)
    return template.render(
        t=_t,
        lang=lang,
        state=state,
        spans=spans,
        charts=charts,
        refresh_s=max(1, int(poll_interval(state.span))),
        generated_at=datetime.now(timezone.utc).astimezone().strftime("%Y-%m-%d %H:%M:%S"),
    )


def state_payload(state: DisplayState) -> Dict[str, object]:
    return {
        "span": state.span.value,
        "samples": len(state.samples),
        "is_loading": state.is_loading,
        "applied_seq": state.applied_seq,
        "generated_at": time.time(),
    }


def write_bundle(
    state: DisplayState,
    charts: Sequence[RenderedChart],
    output_dir: Path,
    *,
    lang: Optional[str] = None,
) -> Dict[str, Path]:
    """Write the entry document and a state summary into ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    html_path = output_dir / ENTRY_DOCUMENT
    json_path = output_dir / STATE_DOCUMENT

    # The edge server may be reading index.html concurrently.
    tmp_html = html_path.with_suffix(".html.tmp")
    tmp_html.write_text(render_page(state, charts, lang=lang), encoding="utf-8")
    tmp_html.replace(html_path)
    with json_path.open("w", encoding="utf-8") as handle:
        json.dump(state_payload(state), handle, indent=2)

    LOGGER.debug("Bundle written to %s (%d samples)", output_dir, len(state.samples))
    return {"html": html_path, "json": json_path}
