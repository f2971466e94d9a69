"""Two-tier page content extraction.

The fast path is a plain HTTP GET. The slow path renders the page in a browser and is used when
the fast path is blocked, times out or returns a challenge page, for hosts known to need
JavaScript, and for hosts whose fast path keeps failing.
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from collections.abc import Sequence

import httpx

from webharvest.browser.renderer import PageRenderer, RenderOptions
from webharvest.config import Settings
from webharvest.core.concurrency import ConcurrencyLimiter
from webharvest.logging import get_logger
from webharvest.models.document import ExtractedPage
from webharvest.models.search import SearchResult
from webharvest.tools.page_fetcher import (
    FetchError,
    LowQualityContentError,
    PageFetcher,
    describe_fetch_error,
)
from webharvest.tools.page_parser import PageParser
from webharvest.utils.text import (
    clean_text,
    generate_timestamp,
    get_content_preview,
    get_word_count,
    host_of,
    is_pdf_url,
    validate_url,
)

logger = get_logger(__name__)

JS_HEAVY_HOSTS = (
    "twitter.com",
    "x.com",
    "facebook.com",
    "instagram.com",
    "linkedin.com",
    "reddit.com",
    "medium.com",
)
RENDER_ON_STATUS = frozenset({403, 429, 503})
CONTENT_WAIT_SELECTOR = "article, main, .content, .post-content, .entry-content"


class InvalidUrlError(ValueError):
    pass


class ExtractionError(RuntimeError):
    """Both tiers failed; ``fast_error`` keeps the fast-path failure for error reporting."""

    def __init__(self, message: str, *, fast_error: BaseException | None = None) -> None:
        super().__init__(message)
        self.fast_error = fast_error


def is_js_heavy(url: str) -> bool:
    host = host_of(url)
    return any(host == domain or host.endswith("." + domain) for domain in JS_HEAVY_HOSTS)


def should_render(exc: BaseException) -> bool:
    """Whether a fast-path failure is worth a rendered retry."""

    if isinstance(exc, LowQualityContentError):
        return True
    if isinstance(exc, FetchError):
        return exc.status_code in RENDER_ON_STATUS
    return isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError))


class ContentExtractor:
    """Fetch pages and return their cleaned main content."""

    def __init__(
        self,
        settings: Settings,
        fetcher: PageFetcher,
        parser: PageParser,
        renderer: PageRenderer | None = None,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._parser = parser
        self._renderer = renderer
        # host -> consecutive fast-path failures, least recently failed first
        self._fast_failures: OrderedDict[str, int] = OrderedDict()

    def _limit(self, max_content_length: int | None) -> int:
        if max_content_length is None:
            return self._settings.max_content_length
        return max(0, max_content_length)

    def _prefers_browser(self, url: str) -> bool:
        if is_js_heavy(url):
            return True
        return self.failure_count(host_of(url)) >= self._settings.browser_fallback_threshold

    def failure_count(self, host: str) -> int:
        return self._fast_failures.get(host, 0)

    def _record_failure(self, host: str) -> None:
        self._fast_failures[host] = self._fast_failures.get(host, 0) + 1
        self._fast_failures.move_to_end(host)
        while len(self._fast_failures) > self._settings.max_tracked_failure_hosts:
            self._fast_failures.popitem(last=False)

    async def extract_content(
        self,
        url: str,
        timeout_s: float | None = None,
        max_content_length: int | None = None,
    ) -> str:
        """Cleaned main text of ``url``, truncated to ``max_content_length``.

        ``None`` uses the configured ``max_content_length``; ``0`` disables truncation.
        """

        _, text = await self._extract(url, timeout_s, max_content_length)
        return text

    async def extract_page(
        self,
        url: str,
        timeout_s: float | None = None,
        max_content_length: int | None = None,
    ) -> ExtractedPage:
        html, text = await self._extract(url, timeout_s, max_content_length)
        return ExtractedPage(
            url=url,
            title=self._parser.extract_title(html),
            content=text,
            word_count=get_word_count(text),
        )

    async def _extract(
        self,
        url: str,
        timeout_s: float | None,
        max_content_length: int | None,
    ) -> tuple[str, str]:
        if not validate_url(url):
            raise InvalidUrlError(f"Invalid URL: {url}")

        timeout = timeout_s or self._settings.default_timeout_s
        limit = self._limit(max_content_length)
        host = host_of(url)
        started = time.monotonic()
        fast_error: BaseException | None = None

        if self._renderer is not None and self._prefers_browser(url):
            logger.info("Skipping fast path", extra={"url": url, "host": host})
        else:
            try:
                page = await self._fetcher.fetch_html(url, timeout)
                text = self._parser.extract_text(page.html)
                if self._parser.is_low_quality(text):
                    raise LowQualityContentError("Low quality content detected - likely bot detection")
            except (FetchError, httpx.HTTPError, asyncio.TimeoutError) as e:
                self._record_failure(host)
                fast_error = e
                if self._renderer is None or not should_render(e):
                    raise
                logger.info(
                    "Fast path failed, falling back to browser",
                    extra={"url": url, "error": describe_fetch_error(e)},
                )
            else:
                self._fast_failures.pop(host, None)
                logger.debug(
                    "Extracted via fast path",
                    extra={"url": url, "chars": len(text), "latency_ms": int((time.monotonic() - started) * 1000)},
                )
                return page.html, clean_text(text, limit)

        try:
            html = await self._renderer.open_page(
                url,
                RenderOptions(timeout_s=timeout, humanize=True, wait_selector=CONTENT_WAIT_SELECTOR),
            )
        except Exception as e:
            raise ExtractionError(
                f"Both direct and rendered extraction failed for {url}", fast_error=fast_error
            ) from e

        text = self._parser.extract_text(html, limit)
        logger.debug(
            "Extracted via browser",
            extra={"url": url, "chars": len(text), "latency_ms": int((time.monotonic() - started) * 1000)},
        )
        return html, text

    async def extract_content_for_results(
        self,
        results: Sequence[SearchResult],
        target_count: int | None = None,
        *,
        max_content_length: int | None = None,
    ) -> list[SearchResult]:
        """Fill in content fields for up to ``target_count`` results.

        PDF links are skipped. Extra candidates are tried to absorb failures; successes come
        first and failures only backfill a shortfall, so the output is not in input order.
        """

        target = len(results) if target_count is None else target_count
        if target <= 0:
            return []

        candidates = [r for r in results if not is_pdf_url(r.url)]
        candidates = candidates[: min(target * 2, self._settings.extraction_max_batch)]
        limiter = ConcurrencyLimiter(self._settings.extraction_concurrency)
        item_timeout = self._settings.extraction_item_timeout_s

        async def enrich(result: SearchResult) -> SearchResult:
            async with limiter:
                try:
                    content = await asyncio.wait_for(
                        self.extract_content(
                            result.url,
                            timeout_s=self._settings.default_timeout_s,
                            max_content_length=max_content_length,
                        ),
                        timeout=item_timeout,
                    )
                except asyncio.TimeoutError:
                    logger.info("Content extraction timeout", extra={"url": result.url})
                    return _failed(result, "timeout", "Content extraction timeout")
                except Exception as e:
                    logger.info("Failed to extract", extra={"url": result.url, "error": str(e)})
                    return _failed(result, "error", describe_fetch_error(e))
            return result.model_copy(
                update={
                    "full_content": content,
                    "content_preview": get_content_preview(content, self._settings.content_preview_length),
                    "word_count": get_word_count(content),
                    "fetch_status": "success",
                    "error": None,
                    "timestamp": generate_timestamp(),
                }
            )

        enriched = await asyncio.gather(*(enrich(r) for r in candidates))
        succeeded = [r for r in enriched if r.succeeded]
        failed = [r for r in enriched if not r.succeeded]
        logger.info(
            "Batch extraction finished",
            extra={"processed": len(candidates), "succeeded": len(succeeded), "failed": len(failed)},
        )
        return (succeeded[:target] + failed[: max(0, target - len(succeeded))])[:target]


def _failed(result: SearchResult, status: str, error: str) -> SearchResult:
    return result.model_copy(
        update={
            "full_content": "",
            "content_preview": "",
            "word_count": 0,
            "fetch_status": status,
            "error": error,
            "timestamp": generate_timestamp(),
        }
    )
