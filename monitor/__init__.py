"""Core package for the hostpulse live metrics dashboard."""

from __future__ import annotations

from pathlib import Path

APP_ROOT = Path(__file__).resolve().parents[1]
DIST_DIR = APP_ROOT / "dist"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

__all__ = ["APP_ROOT", "DIST_DIR", "TEMPLATES_DIR"]
