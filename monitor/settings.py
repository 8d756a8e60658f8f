"""Central settings for the hostpulse dashboard and edge server."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv

from . import APP_ROOT, DIST_DIR

LOG_DIR = APP_ROOT / "logs"
LOG_FILE = LOG_DIR / "hostpulse.log"
DEFAULT_CONFIG = Path("config/hostpulse.yaml")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class ConfigurationError(RuntimeError):
    """Raised when the configuration file or environment is invalid."""


@dataclass(slots=True)
class EdgeConfig:
    host: str = "0.0.0.0"
    port: int = 23334
    backend_url: str = "http://localhost:8080"
    static_dir: Path = DIST_DIR


@dataclass(slots=True)
class DashboardConfig:
    api_base_url: str = "http://127.0.0.1:23334/api"
    timeout_s: float = 5.0
    timezone: Optional[str] = None
    output_dir: Path = DIST_DIR
    lang: Optional[str] = None

    def tzinfo(self) -> Optional[ZoneInfo]:
        if not self.timezone:
            return None
        return ZoneInfo(self.timezone)


@dataclass(slots=True)
class Settings:
    edge: EdgeConfig = field(default_factory=EdgeConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    log_level: str = "INFO"


def _load_file(path: Path) -> Dict[str, object]:
    text = path.read_text(encoding="utf-8")
    try:
        suffix = path.suffix.lower()
        if suffix in {".yaml", ".yml"}:
            return yaml.safe_load(text) or {}
        if suffix == ".json":
            return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Invalid configuration format in {path}: {exc}") from exc
    raise ConfigurationError("Unsupported configuration format; use YAML or JSON")


def _apply_env(raw: Dict[str, Dict[str, object]]) -> None:
    edge = raw.setdefault("edge", {})
    dashboard = raw.setdefault("dashboard", {})
    overrides = (
        ("HOSTPULSE_BACKEND_URL", edge, "backend_url"),
        ("HOSTPULSE_PORT", edge, "port"),
        ("HOSTPULSE_API_URL", dashboard, "api_base_url"),
        ("HOSTPULSE_TIMEZONE", dashboard, "timezone"),
    )
    for env_name, section, key in overrides:
        value = os.getenv(env_name)
        if value:
            section[key] = value
    level = os.getenv("HOSTPULSE_LOG_LEVEL")
    if level:
        raw["log_level"] = level


def load_settings(path: Optional[Path | str] = None) -> Settings:
    """Build :class:`Settings` from an optional config file plus environment."""
    load_dotenv()

    candidate_paths: List[Path] = []
    if path:
        explicit = Path(path)
        if not explicit.exists():
            raise ConfigurationError(f"Configuration file {explicit} does not exist")
        candidate_paths.append(explicit)
    env_path = os.getenv("HOSTPULSE_CONFIG")
    if env_path:
        candidate_paths.append(Path(env_path))
    candidate_paths.append(DEFAULT_CONFIG)

    raw: Dict[str, object] = {}
    for candidate in candidate_paths:
        if candidate.exists():
            raw = _load_file(candidate)
            break
    if not isinstance(raw, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    _apply_env(raw)  # type: ignore[arg-type]

    try:
        edge_data = dict(raw.get("edge") or {})
        if edge_data.get("static_dir"):
            edge_data["static_dir"] = Path(edge_data["static_dir"])
        if "port" in edge_data:
            edge_data["port"] = int(edge_data["port"])
        edge = EdgeConfig(**edge_data)

        dash_data = dict(raw.get("dashboard") or {})
        if dash_data.get("output_dir"):
            dash_data["output_dir"] = Path(dash_data["output_dir"])
        if "timeout_s" in dash_data:
            dash_data["timeout_s"] = float(dash_data["timeout_s"])
        dashboard = DashboardConfig(**dash_data)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration value: {exc}") from exc

    if edge.port <= 0:
        raise ConfigurationError("Edge port must be positive")
    if dashboard.timeout_s <= 0:
        raise ConfigurationError("Dashboard timeout_s must be positive")
    try:
        dashboard.tzinfo()
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown timezone {dashboard.timezone!r}") from exc

    return Settings(edge=edge, dashboard=dashboard, log_level=str(raw.get("log_level", "INFO")).upper())


def setup_logging(level: int | str = logging.INFO, log_file: Path = LOG_FILE) -> None:
    """Configure a rotating file logger plus console echo."""
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_file,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[handler, console_handler],
        force=True,
    )
