"""Shared pytest configuration and fixtures for hostpulse."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List

import pytest

from tests.helpers import FakeHttpResponse, FakeSession, build_fake_metrics, build_fake_samples

LOGS_ROOT = Path(__file__).resolve().parents[1] / "logs" / "tests"
SESSION_LOG = LOGS_ROOT / "pytest.session.log"
_MODULE_HANDLERS: Dict[str, logging.Handler] = {}


def _initialise_logging() -> None:
    LOGS_ROOT.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(SESSION_LOG, mode="w", encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)


def get_test_logger(module_name: str) -> logging.Logger:
    """Return a logger writing into ``logs/tests/<module>.log``."""
    LOGS_ROOT.mkdir(parents=True, exist_ok=True)
    normalised = module_name.replace("tests.", "")
    logger = logging.getLogger(f"tests.{normalised}")
    logger.setLevel(logging.INFO)
    if normalised not in _MODULE_HANDLERS:
        log_path = LOGS_ROOT / f"{normalised}.log"
        handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(handler)
        _MODULE_HANDLERS[normalised] = handler
    return logger


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:  # noqa: D401 - pytest hook
    _initialise_logging()


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo[None]) -> Iterable[pytest.TestReport]:
    outcome = yield
    report = outcome.get_result()
    if report.outcome != "failed":
        return
    module = getattr(item, "module", None)
    module_name = getattr(module, "__name__", "tests")
    target = LOGS_ROOT / f"{module_name.split('.')[-1]}.log"
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write("\n=== TEST FAILURE ===\n")
        handle.write(f"nodeid: {item.nodeid}\n")
        handle.write(f"phase: {report.when}\n")
        handle.write(str(report.longrepr))
        handle.write("\n")


@pytest.fixture(scope="session")
def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


@pytest.fixture
def fake_metrics() -> List[Dict[str, float]]:
    return build_fake_metrics(periods=30)


@pytest.fixture
def fake_samples():
    return build_fake_samples(periods=30)


@pytest.fixture
def history_session(fake_metrics) -> FakeSession:
    return FakeSession(FakeHttpResponse(fake_metrics))


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    path = tmp_path / "dist"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def isolate_lang(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    from monitor import i18n

    monkeypatch.setattr(i18n, "RC_FILE", tmp_path / ".hostpulserc")
    monkeypatch.setattr(i18n, "_LANG", None)


@pytest.fixture(autouse=True)
def clear_hostpulse_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "HOSTPULSE_CONFIG",
        "HOSTPULSE_BACKEND_URL",
        "HOSTPULSE_API_URL",
        "HOSTPULSE_PORT",
        "HOSTPULSE_TIMEZONE",
        "HOSTPULSE_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


__all__ = [
    "get_test_logger",
]
