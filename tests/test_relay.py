"""Tests for the /api/luma relay."""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from moodreel.controllers.dependencies import get_relay
from moodreel.main import app
from moodreel.services.relay import LumaRelay

UPSTREAM = "https://upstream.test"


@pytest.fixture
def upstream_requests():
    return []


@pytest.fixture
def use_upstream(upstream_requests):
    """Install a relay whose upstream is answered by ``handler``."""

    def _install(handler, api_key: str | None = "server-key"):
        def recording_handler(request: httpx.Request) -> httpx.Response:
            upstream_requests.append(request)
            return handler(request)

        async def override():
            transport = httpx.MockTransport(recording_handler)
            async with httpx.AsyncClient(transport=transport) as http_client:
                yield LumaRelay(http_client, upstream=UPSTREAM, api_key=api_key)

        app.dependency_overrides[get_relay] = override

    yield _install
    app.dependency_overrides.clear()


def test_post_is_forwarded_with_server_credential(use_upstream, upstream_requests):
    use_upstream(lambda request: httpx.Response(201, json={"id": "gen-9", "state": "queued"}))
    client = TestClient(app)

    response = client.post(
        "/api/luma",
        json={"prompt": "a lighthouse", "model": "ray-2"},
        headers={"Authorization": "Bearer client-supplied"},
    )

    assert response.status_code == 201
    assert response.json() == {"id": "gen-9", "state": "queued"}
    forwarded = upstream_requests[0]
    assert forwarded.method == "POST"
    assert str(forwarded.url) == f"{UPSTREAM}/dream-machine/v1/generations"
    assert forwarded.headers["Authorization"] == "Bearer server-key"
    assert forwarded.headers["Content-Type"] == "application/json"
    assert json.loads(forwarded.content) == {"prompt": "a lighthouse", "model": "ray-2"}


def test_status_query_is_rewritten_onto_generation_id(use_upstream, upstream_requests):
    use_upstream(lambda request: httpx.Response(200, json={"id": "abc", "state": "dreaming"}))
    client = TestClient(app)

    response = client.get("/api/luma/abc")

    assert response.status_code == 200
    assert response.json()["state"] == "dreaming"
    assert str(upstream_requests[0].url) == f"{UPSTREAM}/dream-machine/v1/generations/abc"


def test_upstream_rejection_is_passed_through(use_upstream):
    use_upstream(lambda request: httpx.Response(402, json={"detail": "Insufficient credits"}))
    client = TestClient(app)

    response = client.post("/api/luma", json={"prompt": "x"})

    assert response.status_code == 402
    assert response.json() == {"detail": "Insufficient credits"}


def test_unreachable_upstream_returns_error_body(use_upstream):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("name resolution failed", request=request)

    use_upstream(handler)
    client = TestClient(app)

    response = client.post("/api/luma", json={"prompt": "x"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] is True
    assert "name resolution failed" in body["message"]
    assert body["code"] == "ConnectError"


def test_missing_key_forwards_without_authorization(use_upstream, upstream_requests):
    use_upstream(lambda request: httpx.Response(401, json={"detail": "Unauthorized"}), api_key=None)
    client = TestClient(app)

    response = client.post("/api/luma", json={"prompt": "x"}, headers={"Authorization": "Bearer leaked"})

    assert response.status_code == 401
    assert "Authorization" not in upstream_requests[0].headers


def test_cors_preflight_is_allowed():
    client = TestClient(app)

    response = client.options(
        "/api/luma",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers
