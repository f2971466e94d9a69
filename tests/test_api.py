"""Tests for the HTTP API."""

from __future__ import annotations

import httpx
import pytest
from conftest import LONG_TEXT, FakeBackend, FakeRenderer, article_html, make_result
from fastapi.testclient import TestClient

from webharvest.api.app import create_app
from webharvest.service import WebHarvestService


class ClosingSpy(WebHarvestService):
    closed = 0

    async def aclose(self) -> None:
        type(self).closed += 1
        await super().aclose()


def fake_service(settings) -> WebHarvestService:
    page = article_html(LONG_TEXT, title="Async Python")
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text=page, headers={"content-type": "text/html"})
        )
    )
    results = [make_result("Python asyncio guide", "https://docs.example/asyncio", "python asyncio basics")]
    return ClosingSpy(
        settings,
        client=client,
        renderer=FakeRenderer(default=page),
        backends=[FakeBackend("bing", results)],
    )


@pytest.fixture
def client(settings):
    ClosingSpy.closed = 0
    app = create_app(settings, service_factory=fake_service)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_tools(client: TestClient) -> None:
    response = client.get("/tools")
    assert response.status_code == 200
    names = [tool["name"] for tool in response.json()]
    assert names == ["full-web-search", "get-web-search-summaries", "get-single-web-page-content"]


def test_call_tool(client: TestClient) -> None:
    response = client.post(
        "/tools/get-web-search-summaries",
        json={"arguments": {"query": "python asyncio", "limit": 1}, "request_id": "req-1"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "https://docs.example/asyncio" in body["content"]
    assert body["metadata"]["engine"] == "bing"


def test_invalid_arguments_are_a_failed_result_not_an_http_error(client: TestClient) -> None:
    response = client.post("/tools/full-web-search", json={"arguments": {"limit": 3}})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("Invalid arguments:")


def test_unknown_tool_is_404(client: TestClient) -> None:
    response = client.post("/tools/nope", json={"arguments": {}})
    assert response.status_code == 404


def test_service_closed_on_shutdown(settings) -> None:
    ClosingSpy.closed = 0
    with TestClient(create_app(settings, service_factory=fake_service)):
        assert ClosingSpy.closed == 0
    assert ClosingSpy.closed == 1
