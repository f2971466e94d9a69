"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from webharvest.browser.renderer import RenderOptions
from webharvest.config import Settings
from webharvest.models.search import SearchResult


class FakeRenderer:
    """PageRenderer stub: returns canned markup per URL, or raises."""

    def __init__(self, pages: dict[str, str] | None = None, *, default: str | None = None,
                 error: Exception | None = None) -> None:
        self.pages = pages or {}
        self.default = default
        self.error = error
        self.calls: list[tuple[str, RenderOptions]] = []

    async def open_page(self, url: str, options: RenderOptions) -> str:
        self.calls.append((url, options))
        if self.error is not None:
            raise self.error
        if url in self.pages:
            return self.pages[url]
        if self.default is not None:
            return self.default
        raise RuntimeError(f"no page for {url}")


class FakeBackend:
    """SearchBackend stub with a fixed answer."""

    def __init__(self, name: str, results: list[SearchResult] | None = None,
                 error: Exception | None = None, delay_s: float = 0.0) -> None:
        self.name = name
        self.results = results or []
        self.error = error
        self.delay_s = delay_s
        self.calls = 0

    async def search(self, query: str, num_results: int, timeout_s: float) -> list[SearchResult]:
        import asyncio

        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.results[:num_results]


def make_result(title: str, url: str, description: str = "") -> SearchResult:
    return SearchResult(title=title, url=url, description=description)


def article_html(body: str, *, title: str = "Test Page") -> str:
    return f"""
    <html>
      <head><title>{title}</title></head>
      <body>
        <nav>Home | About | Contact</nav>
        <article><h1>{title}</h1><p>{body}</p></article>
        <footer>Copyright 2024 Example Corp</footer>
      </body>
    </html>
    """


LONG_TEXT = (
    "Asynchronous programming in Python lets a single thread interleave many network operations. "
    "The event loop schedules coroutines and resumes them when their awaited results are ready. "
    "This article walks through tasks, futures and structured concurrency with practical examples."
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        rate_limit_per_minute=100,
        max_concurrent_requests=5,
        search_timeout_s=3.0,
        attempt_timeout_cap_s=1.0,
        default_timeout_s=1.0,
        extraction_item_timeout_s=2.0,
        browser_probe_idle_s=0.0,
    )


@pytest.fixture
def result_factory() -> Callable[..., SearchResult]:
    return make_result
