"""Tests for the search backend implementations."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from conftest import FakeRenderer

from webharvest.core.concurrency import RequestGovernor
from webharvest.search.backends import (
    BingBackend,
    BotChallengeError,
    BraveBackend,
    DuckDuckGoBackend,
    SearchBackendError,
)
from webharvest.search.orchestrator import SearchOrchestrator

BING_PAGE = """
<html><body><ol id="b_results">
  <li class="b_algo"><h2><a href="https://docs.python.org/3/library/asyncio.html">asyncio - Asynchronous I/O</a></h2>
    <div class="b_caption"><p>asyncio is a library to write concurrent code using async/await.</p></div></li>
  <li class="b_algo"><h2><a href="https://realpython.com/async-io-python/">Async IO in Python</a></h2>
    <div class="b_caption"><p>A complete walkthrough of python asyncio.</p></div></li>
</ol></body></html>
"""

DDG_PAGE = """
<html><body>
  <div class="result results_links web-result">
    <h2 class="result__title">
      <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fdocs.python.org%2F3%2Flibrary%2Fasyncio.html">asyncio docs</a>
    </h2>
    <a class="result__snippet">Python asyncio reference.</a>
  </div>
  <div class="result results_links web-result">
    <h2 class="result__title"><a class="result__a" href="https://superfastpython.com/python-asyncio/">Python Asyncio guide</a></h2>
  </div>
</body></html>
"""

CHALLENGE_PAGE = "<html><body><h1>Our systems have detected unusual traffic</h1></body></html>"


@pytest.mark.asyncio
async def test_bing_backend_renders_and_parses() -> None:
    renderer = FakeRenderer(default=BING_PAGE)
    backend = BingBackend(renderer)

    results = await backend.search("python asyncio", 5, 2.0)

    assert [r.url for r in results] == [
        "https://docs.python.org/3/library/asyncio.html",
        "https://realpython.com/async-io-python/",
    ]
    url, options = renderer.calls[0]
    parts = urlsplit(url)
    assert parts.netloc == "www.bing.com"
    assert parse_qs(parts.query)["q"] == ["python asyncio"]
    assert parse_qs(parts.query)["count"] == ["5"]
    assert options.timeout_s == 2.0
    assert options.wait_selector == "#b_results"


@pytest.mark.asyncio
async def test_brave_backend_builds_search_url() -> None:
    renderer = FakeRenderer(default="<html><body></body></html>")
    backend = BraveBackend(renderer)

    assert await backend.search("rust ownership", 3, 1.0) == []
    url, _ = renderer.calls[0]
    assert url.startswith("https://search.brave.com/search?")
    assert parse_qs(urlsplit(url).query)["source"] == ["web"]


@pytest.mark.asyncio
async def test_rendered_backend_detects_bot_challenge() -> None:
    backend = BingBackend(FakeRenderer(default=CHALLENGE_PAGE))
    with pytest.raises(BotChallengeError):
        await backend.search("python", 5, 1.0)


@pytest.mark.asyncio
async def test_duckduckgo_backend_over_http() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=DDG_PAGE, headers={"content-type": "text/html"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        results = await DuckDuckGoBackend(client).search("python asyncio", 5, 2.0)

    assert [r.url for r in results] == [
        "https://docs.python.org/3/library/asyncio.html",
        "https://superfastpython.com/python-asyncio/",
    ]
    assert seen[0].url.host == "html.duckduckgo.com"
    assert seen[0].url.params["q"] == "python asyncio"


@pytest.mark.asyncio
async def test_duckduckgo_backend_http_error() -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(502))) as client:
        with pytest.raises(SearchBackendError):
            await DuckDuckGoBackend(client).search("python", 5, 1.0)


@pytest.mark.asyncio
async def test_orchestrator_over_real_backends_uses_direct_http_fallback(settings) -> None:
    empty = FakeRenderer(default="<html><body><p>nothing here</p></body></html>")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=DDG_PAGE, headers={"content-type": "text/html"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        orchestrator = SearchOrchestrator(
            settings,
            [BingBackend(empty), BraveBackend(empty), DuckDuckGoBackend(client)],
            RequestGovernor(10, 5),
        )
        outcome = await orchestrator.search("python asyncio", 5)

    assert outcome.engine == "duckduckgo"
    assert len(outcome.results) == 2
    assert len(empty.calls) == 2
