"""Shared helper utilities for the hostpulse test-suite."""

from .data import build_fake_metrics, build_fake_samples
from .mocks import FakeHttpResponse, FakeMetricsClient, FakeSession, drain

__all__ = [
    "build_fake_metrics",
    "build_fake_samples",
    "FakeHttpResponse",
    "FakeMetricsClient",
    "FakeSession",
    "drain",
]
