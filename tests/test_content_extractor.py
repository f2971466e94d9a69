"""Tests for the two-tier content extractor."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx
import pytest
from conftest import LONG_TEXT, FakeRenderer, article_html, make_result

from webharvest.tools.content_extractor import ContentExtractor, ExtractionError, InvalidUrlError
from webharvest.tools.page_fetcher import (
    ContentTooLargeError,
    FetchError,
    PageFetcher,
    UnsupportedContentError,
    describe_fetch_error,
)
from webharvest.tools.page_parser import PageParser

GOOD_PAGE = article_html(LONG_TEXT, title="Async Python")
RENDERED_PAGE = article_html("Rendered: " + LONG_TEXT, title="Rendered page")


def html_response(body: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text=body, headers={"content-type": "text/html; charset=utf-8"})


def page(body: str, status: int = 200) -> Callable[[], httpx.Response]:
    return lambda: html_response(body, status)


class Recorder:
    """MockTransport handler that answers from a per-path table and records requests.

    Table values are response factories so every request gets a fresh response object.
    """

    def __init__(
        self,
        routes: dict[str, Callable[[], httpx.Response]] | None = None,
        default: Callable[[], httpx.Response] | None = None,
    ):
        self.routes = routes or {}
        self.default = default or page(GOOD_PAGE)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes.get(request.url.path, self.default)()


def build(settings, handler, renderer=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    extractor = ContentExtractor(settings, PageFetcher(settings, client), PageParser(), renderer)
    return extractor, client


@pytest.mark.asyncio
async def test_fast_path_success(settings) -> None:
    handler = Recorder()
    renderer = FakeRenderer(default=RENDERED_PAGE)
    extractor, client = build(settings, handler, renderer)
    async with client:
        text = await extractor.extract_content("https://example.com/post")

    assert "event loop schedules coroutines" in text
    assert not text.startswith("Rendered")
    assert renderer.calls == []


@pytest.mark.asyncio
async def test_403_retries_with_alternate_headers_then_renders(settings) -> None:
    handler = Recorder(default=page("Forbidden", 403))
    renderer = FakeRenderer(default=RENDERED_PAGE)
    extractor, client = build(settings, handler, renderer)
    async with client:
        text = await extractor.extract_content("https://blocked.example/article")

    assert len(handler.requests) == 2
    first_ua = handler.requests[0].headers["user-agent"]
    second = handler.requests[1].headers
    assert "Chrome" in first_ua
    assert second["user-agent"] != first_ua
    assert second["referer"] == "https://www.google.com/"

    assert len(renderer.calls) == 1
    url, options = renderer.calls[0]
    assert url == "https://blocked.example/article"
    assert options.humanize is True
    assert "article" in (options.wait_selector or "")
    assert "Rendered:" in text


@pytest.mark.asyncio
async def test_both_tiers_failing_reports_fast_path_error(settings) -> None:
    handler = Recorder(default=page("Forbidden", 403))
    renderer = FakeRenderer(error=RuntimeError("navigation failed"))
    extractor, client = build(settings, handler, renderer)
    async with client:
        with pytest.raises(ExtractionError) as exc_info:
            await extractor.extract_content("https://blocked.example/")

    assert describe_fetch_error(exc_info.value) == "403 Forbidden - Access denied"


@pytest.mark.asyncio
async def test_404_does_not_render(settings) -> None:
    handler = Recorder(default=page("missing", 404))
    renderer = FakeRenderer(default=RENDERED_PAGE)
    extractor, client = build(settings, handler, renderer)
    async with client:
        with pytest.raises(FetchError) as exc_info:
            await extractor.extract_content("https://example.com/missing")

    assert exc_info.value.status_code == 404
    assert describe_fetch_error(exc_info.value) == "404 Not found"
    assert renderer.calls == []


@pytest.mark.asyncio
async def test_low_quality_page_is_rendered(settings) -> None:
    challenge = "<html><body><p>Please enable JavaScript and cookies to continue</p></body></html>"
    handler = Recorder(default=page(challenge))
    renderer = FakeRenderer(default=RENDERED_PAGE)
    extractor, client = build(settings, handler, renderer)
    async with client:
        text = await extractor.extract_content("https://spa.example/")

    assert "Rendered:" in text
    assert len(renderer.calls) == 1


@pytest.mark.asyncio
async def test_js_heavy_host_skips_fast_path(settings) -> None:
    handler = Recorder()
    renderer = FakeRenderer(default=RENDERED_PAGE)
    extractor, client = build(settings, handler, renderer)
    async with client:
        await extractor.extract_content("https://www.reddit.com/r/python/")

    assert handler.requests == []
    assert len(renderer.calls) == 1


@pytest.mark.asyncio
async def test_repeat_offender_host_goes_straight_to_browser(settings) -> None:
    strict = settings.model_copy(update={"browser_fallback_threshold": 2})
    handler = Recorder(default=page("busy", 503))
    renderer = FakeRenderer(default=RENDERED_PAGE)
    extractor, client = build(strict, handler, renderer)
    async with client:
        for _ in range(3):
            await extractor.extract_content("https://flaky.example/page")

    assert len(handler.requests) == 2
    assert len(renderer.calls) == 3


@pytest.mark.asyncio
async def test_failure_tracking_is_bounded_to_recent_hosts(settings) -> None:
    small = settings.model_copy(update={"max_tracked_failure_hosts": 2})
    extractor, client = build(small, Recorder(default=page("missing", 404)))
    async with client:
        for host in ("a.example", "b.example", "c.example", "b.example", "d.example"):
            with pytest.raises(FetchError):
                await extractor.extract_content(f"https://{host}/page")

    assert extractor.failure_count("a.example") == 0
    assert extractor.failure_count("c.example") == 0
    assert extractor.failure_count("b.example") == 2
    assert extractor.failure_count("d.example") == 1


@pytest.mark.asyncio
async def test_oversized_and_non_html_bodies_are_rejected(settings) -> None:
    small = settings.model_copy(update={"max_download_bytes": 1024})
    handler = Recorder(
        routes={
            "/big": page("<p>" + "x" * 5000 + "</p>"),
            "/doc": lambda: httpx.Response(
                200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"}
            ),
        }
    )
    extractor, client = build(small, handler)
    async with client:
        with pytest.raises(ContentTooLargeError) as too_large:
            await extractor.extract_content("https://example.com/big")
        with pytest.raises(UnsupportedContentError):
            await extractor.extract_content("https://example.com/doc")

    assert describe_fetch_error(too_large.value) == "Content too long"


@pytest.mark.asyncio
async def test_invalid_url_is_rejected_before_fetching(settings) -> None:
    handler = Recorder()
    extractor, client = build(settings, handler)
    async with client:
        with pytest.raises(InvalidUrlError):
            await extractor.extract_content("ftp://example.com/file")
    assert handler.requests == []


@pytest.mark.asyncio
async def test_max_content_length_truncates(settings) -> None:
    extractor, client = build(settings, Recorder())
    async with client:
        text = await extractor.extract_content("https://example.com/post", max_content_length=40)
        unlimited = await extractor.extract_content("https://example.com/post", max_content_length=0)

    assert len(text) <= 40
    assert len(unlimited) > 200


@pytest.mark.asyncio
async def test_extract_page_includes_title_and_word_count(settings) -> None:
    extractor, client = build(settings, Recorder())
    async with client:
        extracted = await extractor.extract_page("https://example.com/post")

    assert extracted.title == "Async Python"
    assert extracted.word_count == len(extracted.content.split())
    assert extracted.url == "https://example.com/post"


@pytest.mark.asyncio
async def test_batch_excludes_pdfs_and_respects_target(settings) -> None:
    handler = Recorder(routes={"/b": page("gone", 404)})
    extractor, client = build(settings, handler)
    results = [
        make_result("A", "https://example.com/a"),
        make_result("B", "https://example.com/b"),
        make_result("Paper", "https://example.com/paper.pdf"),
        make_result("C", "https://example.com/c"),
        make_result("D", "https://example.com/d"),
    ]
    async with client:
        enriched = await extractor.extract_content_for_results(results, 2)

    assert [r.url for r in enriched] == ["https://example.com/a", "https://example.com/c"]
    assert all(r.fetch_status == "success" for r in enriched)
    assert all(r.word_count > 0 and r.content_preview for r in enriched)
    assert not any(r.url.endswith(".pdf") for r in enriched)
    assert not any(req.url.path.endswith(".pdf") for req in handler.requests)


@pytest.mark.asyncio
async def test_batch_backfills_with_failures(settings) -> None:
    handler = Recorder(
        routes={
            "/missing1": page("gone", 404),
            "/missing2": page("gone", 404),
            "/missing3": page("gone", 404),
        }
    )
    extractor, client = build(settings, handler)
    results = [
        make_result("M1", "https://example.com/missing1"),
        make_result("OK", "https://example.com/ok"),
        make_result("M2", "https://example.com/missing2"),
        make_result("M3", "https://example.com/missing3"),
    ]
    async with client:
        enriched = await extractor.extract_content_for_results(results, 3)

    assert len(enriched) == 3
    assert enriched[0].url == "https://example.com/ok"
    assert enriched[0].fetch_status == "success"
    for failed in enriched[1:]:
        assert failed.fetch_status == "error"
        assert failed.error == "404 Not found"
        assert failed.full_content == ""
        # discovery fields survive an extraction failure
        assert failed.title.startswith("M")


@pytest.mark.asyncio
async def test_batch_outer_timeout_marks_item(settings) -> None:
    quick = settings.model_copy(update={"extraction_item_timeout_s": 0.1})

    async def slow(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/slow":
            await asyncio.sleep(2)
        return html_response(GOOD_PAGE)

    extractor, client = build(quick, slow)
    results = [make_result("Slow", "https://example.com/slow"), make_result("Fast", "https://example.com/fast")]
    async with client:
        enriched = await extractor.extract_content_for_results(results, 2)

    assert [r.url for r in enriched] == ["https://example.com/fast", "https://example.com/slow"]
    assert enriched[1].fetch_status == "timeout"
    assert enriched[1].error == "Content extraction timeout"


@pytest.mark.asyncio
async def test_batch_with_zero_target_is_empty(settings) -> None:
    extractor, client = build(settings, Recorder())
    async with client:
        assert await extractor.extract_content_for_results([make_result("A", "https://example.com/a")], 0) == []
