"""Search backends.

Each backend fetches one engine's result page (rendered or over plain HTTP) and hands the
markup to the matching parser in :mod:`webharvest.search.parsers`.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlencode

import httpx

from webharvest.browser.renderer import USER_AGENTS, PageRenderer, RenderOptions
from webharvest.logging import get_logger
from webharvest.models.search import SearchResult
from webharvest.search.parsers import (
    looks_like_bot_challenge,
    parse_bing,
    parse_brave,
    parse_duckduckgo,
)

logger = get_logger(__name__)

Parser = Callable[[str, int], list[SearchResult]]


class SearchBackend(Protocol):
    """Search backend interface."""

    name: str

    async def search(self, query: str, num_results: int, timeout_s: float) -> list[SearchResult]:
        """Return parsed results for ``query``; raise on failure."""


class SearchBackendError(RuntimeError):
    pass


class BotChallengeError(SearchBackendError):
    """The engine answered with an anti-bot page instead of results."""


def _parse_or_raise(name: str, html: str, num_results: int, parser: Parser) -> list[SearchResult]:
    results = parser(html, num_results)
    if not results and looks_like_bot_challenge(html):
        raise BotChallengeError(f"{name} returned a bot challenge page")
    return results


@dataclass(frozen=True)
class RenderedSearchBackend:
    """Backend that loads the result page in a real browser."""

    name: str
    renderer: PageRenderer
    search_url: str
    params: tuple[tuple[str, str], ...]
    parser: Parser
    wait_selector: str | None = None

    def build_url(self, query: str, num_results: int) -> str:
        return f"{self.search_url}?{urlencode([('q', query), *self.params])}"

    async def search(self, query: str, num_results: int, timeout_s: float) -> list[SearchResult]:
        started = time.monotonic()
        html = await self.renderer.open_page(
            self.build_url(query, num_results),
            RenderOptions(timeout_s=timeout_s, wait_selector=self.wait_selector),
        )
        results = _parse_or_raise(self.name, html, num_results, self.parser)
        logger.info(
            "Search backend ok",
            extra={
                "provider": self.name,
                "query_len": len(query),
                "result_count": len(results),
                "latency_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return results


class BingBackend(RenderedSearchBackend):
    def __init__(self, renderer: PageRenderer) -> None:
        super().__init__(
            name="bing",
            renderer=renderer,
            search_url="https://www.bing.com/search",
            params=(("form", "QBLH"),),
            parser=parse_bing,
            wait_selector="#b_results",
        )

    def build_url(self, query: str, num_results: int) -> str:
        return f"{self.search_url}?{urlencode([('q', query), ('count', str(num_results)), *self.params])}"


class BraveBackend(RenderedSearchBackend):
    def __init__(self, renderer: PageRenderer) -> None:
        super().__init__(
            name="brave",
            renderer=renderer,
            search_url="https://search.brave.com/search",
            params=(("source", "web"),),
            parser=parse_brave,
            wait_selector="#results",
        )


@dataclass(frozen=True)
class DuckDuckGoBackend:
    """DuckDuckGo's script-free HTML endpoint over plain HTTP."""

    client: httpx.AsyncClient
    name: str = "duckduckgo"
    search_url: str = "https://html.duckduckgo.com/html/"

    async def search(self, query: str, num_results: int, timeout_s: float) -> list[SearchResult]:
        started = time.monotonic()
        headers = {
            "User-Agent": random.choice(USER_AGENTS),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "DNT": "1",
            "Upgrade-Insecure-Requests": "1",
        }
        resp = await self.client.get(
            self.search_url,
            params={"q": query},
            headers=headers,
            timeout=httpx.Timeout(timeout_s),
            follow_redirects=True,
        )
        if resp.status_code >= 400:
            raise SearchBackendError(f"{self.name} returned HTTP {resp.status_code}")

        results = _parse_or_raise(self.name, resp.text, num_results, parse_duckduckgo)
        logger.info(
            "Search backend ok",
            extra={
                "provider": self.name,
                "query_len": len(query),
                "status_code": resp.status_code,
                "result_count": len(results),
                "latency_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return results
