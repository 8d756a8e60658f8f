"""Edge server package: reverse proxy for the backend plus SPA hosting."""

from __future__ import annotations

__all__ = ["server"]
