"""Edge router tests: API forwarding, static assets and history fallback."""

from __future__ import annotations

import json

import httpx
from fastapi.testclient import TestClient

from edge.server import PLACEHOLDER_PAGE, create_app
from tests.conftest import get_test_logger

logger = get_test_logger(__name__)
logger.info("Starting tests for edge server")

BACKEND = "http://backend.test:8080"


def _recording_transport(captured: list) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            201,
            json={"echo": request.content.decode("utf-8")},
            headers={"X-Upstream": "yes", "Connection": "keep-alive"},
        )

    return httpx.MockTransport(handler)


def test_api_requests_are_forwarded_verbatim(static_dir) -> None:
    captured: list = []
    app = create_app(BACKEND, static_dir, transport=_recording_transport(captured))

    with TestClient(app) as client:
        response = client.post(
            "/api/anything?x=1&y=two",
            content=b'{"hello": "world"}',
            headers={"Content-Type": "application/json", "X-Trace": "abc"},
        )

    assert response.status_code == 201
    assert response.json() == {"echo": '{"hello": "world"}'}
    assert response.headers["x-upstream"] == "yes"

    assert len(captured) == 1
    upstream = captured[0]
    assert upstream.method == "POST"
    assert upstream.url.path == "/api/anything"
    assert upstream.url.params["x"] == "1"
    assert upstream.url.params["y"] == "two"
    assert upstream.content == b'{"hello": "world"}'
    assert upstream.headers["host"] == "backend.test:8080"
    assert upstream.headers["x-trace"] == "abc"


def test_history_query_reaches_backend(static_dir) -> None:
    captured: list = []
    app = create_app(BACKEND, static_dir, transport=_recording_transport(captured))

    with TestClient(app) as client:
        client.get("/api/history?span=1h")

    assert str(captured[0].url) == f"{BACKEND}/api/history?span=1h"
    assert captured[0].method == "GET"


def test_unreachable_backend_maps_to_bad_gateway(static_dir) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    app = create_app(BACKEND, static_dir, transport=httpx.MockTransport(handler))

    with TestClient(app) as client:
        response = client.get("/api/history?span=realtime")

    assert response.status_code == 502
    assert "Upstream unavailable" in response.json()["detail"]


def test_unknown_routes_fall_back_to_entry_document(static_dir) -> None:
    (static_dir / "index.html").write_text("<html>dashboard</html>", encoding="utf-8")
    app = create_app(BACKEND, static_dir, transport=_recording_transport([]))

    with TestClient(app) as client:
        deep = client.get("/unknown/route")
        root = client.get("/")

    assert deep.status_code == 200
    assert deep.text == "<html>dashboard</html>"
    assert deep.headers["content-type"].startswith("text/html")
    assert root.text == "<html>dashboard</html>"


def test_existing_assets_are_served_directly(static_dir) -> None:
    (static_dir / "index.html").write_text("<html>dashboard</html>", encoding="utf-8")
    (static_dir / "state.json").write_text(json.dumps({"span": "1d"}), encoding="utf-8")
    app = create_app(BACKEND, static_dir, transport=_recording_transport([]))

    with TestClient(app) as client:
        asset = client.get("/state.json")
        escape = client.get("/..%2F..%2Fetc%2Fpasswd")

    assert asset.json() == {"span": "1d"}
    assert escape.status_code == 200
    assert escape.text == "<html>dashboard</html>"


def test_placeholder_before_first_bundle(static_dir) -> None:
    app = create_app(BACKEND, static_dir, transport=_recording_transport([]))

    with TestClient(app) as client:
        response = client.get("/anything")

    assert response.status_code == 200
    assert response.text == PLACEHOLDER_PAGE


def test_query_string_is_forwarded_byte_for_byte(static_dir) -> None:
    captured: list = []
    app = create_app(BACKEND, static_dir, transport=_recording_transport(captured))

    with TestClient(app) as client:
        client.get("/api/history?span=1h&flag&a=%7E")

    assert captured[0].url.query == b"span=1h&flag&a=%7E"
    assert captured[0].url.path == "/api/history"


def test_repeated_response_headers_stay_separate(static_dir) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[],
            headers=[
                ("Set-Cookie", "a=1; Path=/"),
                ("Set-Cookie", "b=2; Path=/"),
            ],
        )

    app = create_app(BACKEND, static_dir, transport=httpx.MockTransport(handler))

    with TestClient(app) as client:
        response = client.get("/api/history?span=realtime")

    assert response.status_code == 200
    assert response.headers.get_list("set-cookie") == ["a=1; Path=/", "b=2; Path=/"]
    assert response.json() == []
