"""FastAPI edge server: API reverse proxy plus the compiled dashboard page."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional, Tuple

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, Response
from uvicorn import Config, Server

from monitor.bundle import ENTRY_DOCUMENT
from monitor.settings import EdgeConfig

LOGGER = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

PLACEHOLDER_PAGE = (
    "<!DOCTYPE html><html><head><meta charset='utf-8'><meta http-equiv='refresh' content='2'>"
    "<title>hostpulse</title></head><body><p>Dashboard bundle not compiled yet.</p></body></html>"
)


def _forward_headers(request: Request) -> dict:
    headers = {
        key: value
        for key, value in request.headers.items()
        if key.lower() not in HOP_BY_HOP_HEADERS and key.lower() not in {"host", "content-length"}
    }
    return headers


def _relay_headers(response: httpx.Response) -> List[Tuple[str, str]]:
    # httpx has already decoded the body, so length and encoding no longer apply.
    skipped = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}
    return [(key, value) for key, value in response.headers.multi_items() if key.lower() not in skipped]


def _resolve_static(static_dir: Path, path: str) -> Optional[Path]:
    if not path:
        return None
    root = static_dir.resolve()
    candidate = (root / path).resolve()
    if root not in candidate.parents:
        return None
    if candidate.is_file():
        return candidate
    return None


def create_app(
    backend_url: str = EdgeConfig().backend_url,
    static_dir: Path = EdgeConfig().static_dir,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the edge application.

    ``/api/*`` is forwarded to ``backend_url`` keeping method, path, query,
    body and headers (``Host`` becomes the target). Existing files under
    ``static_dir`` are served directly and any other GET falls back to the
    entry document so deep links keep working.
    """
    static_dir = Path(static_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with httpx.AsyncClient(base_url=backend_url, transport=transport, timeout=30.0) as client:
            app.state.http = client
            LOGGER.info("Proxying API requests to %s", backend_url)
            yield

    app = FastAPI(title="hostpulse edge", lifespan=lifespan)

    @app.api_route("/api/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy_api(request: Request, path: str) -> Response:
        client: httpx.AsyncClient = request.app.state.http
        target = httpx.URL(f"/api/{path}")
        raw_query = request.scope.get("query_string", b"")
        if raw_query:
            target = target.copy_with(query=raw_query)
        upstream = client.build_request(
            request.method,
            target,
            headers=_forward_headers(request),
            content=await request.body(),
        )
        try:
            response = await client.send(upstream)
        except httpx.HTTPError as exc:
            LOGGER.warning("Upstream %s %s failed: %s", request.method, upstream.url, exc)
            return JSONResponse({"detail": f"Upstream unavailable: {exc}"}, status_code=502)
        relayed = Response(content=response.content, status_code=response.status_code)
        for key, value in _relay_headers(response):
            relayed.headers.append(key, value)
        return relayed

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa(full_path: str) -> Response:
        asset = _resolve_static(static_dir, full_path)
        if asset is not None:
            return FileResponse(asset)
        entry = static_dir / ENTRY_DOCUMENT
        if entry.is_file():
            return FileResponse(entry, media_type="text/html")
        return HTMLResponse(PLACEHOLDER_PAGE)

    return app


def start_edge(host: str, port: int, backend_url: str, static_dir: Path) -> None:
    """Start the edge server via uvicorn."""

    config = Config(app=create_app(backend_url, static_dir), host=host, port=port, log_level="info")
    server = Server(config=config)
    LOGGER.info("Edge server listening on http://%s:%d", host, port)
    server.run()
