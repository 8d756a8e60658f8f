"""Dashboard page compilation tests."""

from __future__ import annotations

import json

from monitor import i18n
from monitor.bundle import ENTRY_DOCUMENT, STATE_DOCUMENT, render_page, write_bundle
from monitor.charts import render_panels
from monitor.panels import CPU_PANEL, DEFAULT_PANELS
from monitor.schemas import TimeSpan
from monitor.state import FetchCompleted, SpanSelected, initial_state, reduce_all
from tests.conftest import get_test_logger

logger = get_test_logger(__name__)
logger.info("Starting tests for bundle writer")


def test_write_bundle_emits_page_and_state(tmp_path, fake_samples) -> None:
    state = reduce_all(initial_state(), [SpanSelected(TimeSpan.ONE_HOUR), FetchCompleted(fake_samples)])
    charts = render_panels(state.samples, DEFAULT_PANELS, span=state.span)

    paths = write_bundle(state, charts, tmp_path / "dist", lang="en")

    assert paths["html"] == tmp_path / "dist" / ENTRY_DOCUMENT
    html = paths["html"].read_text(encoding="utf-8")
    assert '<span class="active" data-span="1h">1 Hour</span>' in html
    assert 'data-span="1m"' not in html
    assert '<meta http-equiv="refresh" content="10">' in html
    assert html.count('<area shape="rect"') == len(fake_samples) * len(DEFAULT_PANELS)
    for panel in DEFAULT_PANELS:
        assert panel.title in html
    assert not list((tmp_path / "dist").glob("*.tmp"))

    payload = json.loads((tmp_path / "dist" / STATE_DOCUMENT).read_text(encoding="utf-8"))
    assert payload["span"] == "1h"
    assert payload["samples"] == len(fake_samples)
    assert payload["is_loading"] is False


def test_loading_and_empty_panels_show_status() -> None:
    loading = initial_state(TimeSpan.REALTIME)
    charts = render_panels([], [CPU_PANEL], span=loading.span)
    assert "Loading..." in render_page(loading, charts, lang="en")

    settled = reduce_all(loading, [FetchCompleted([])])
    assert "No data" in render_page(settled, charts, lang="en")


def test_page_uses_persisted_language(fake_samples) -> None:
    i18n.set_lang("zh")
    state = reduce_all(initial_state(), [FetchCompleted(fake_samples)])

    html = render_page(state, render_panels(state.samples, [CPU_PANEL]))

    assert '<html lang="zh">' in html
    assert "服务器监控" in html
    assert '<span class="active" data-span="realtime">实时</span>' in html
