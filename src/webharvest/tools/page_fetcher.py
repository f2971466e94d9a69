"""Page fetching utilities."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass

import httpx

from webharvest.config import Settings
from webharvest.logging import get_logger

logger = get_logger(__name__)

_BROWSER_PROFILES = (
    {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/121.0.0.0 Safari/537.36",
        "sec-ch-ua": '"Not A(Brand";v="99", "Google Chrome";v="121", "Chromium";v="121"',
        "sec-ch-ua-platform": '"Windows"',
    },
    {
        "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/121.0.0.0 Safari/537.36",
        "sec-ch-ua": '"Not A(Brand";v="99", "Google Chrome";v="121", "Chromium";v="121"',
        "sec-ch-ua-platform": '"macOS"',
    },
    {
        "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/121.0.0.0 Safari/537.36",
        "sec-ch-ua": '"Not A(Brand";v="99", "Google Chrome";v="121", "Chromium";v="121"',
        "sec-ch-ua-platform": '"Linux"',
    },
)

_ALTERNATE_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.2 Safari/605.1.15",
)

_HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain", "application/xml", "text/xml")


class FetchError(RuntimeError):
    """HTTP-level failure of the fast path."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ContentTooLargeError(FetchError):
    pass


class UnsupportedContentError(FetchError):
    pass


class LowQualityContentError(FetchError):
    """The page looks like a bot challenge or an empty shell."""


@dataclass(frozen=True)
class FetchedPage:
    """Fetched page payload."""

    url: str
    html: str
    status_code: int
    content_type: str | None


def random_headers() -> dict[str, str]:
    """A realistic Chrome request header set with a random platform."""

    return {
        **random.choice(_BROWSER_PROFILES),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,"
        "image/apng,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "DNT": "1",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Cache-Control": "max-age=0",
        "sec-ch-ua-mobile": "?0",
    }


def alternate_headers() -> dict[str, str]:
    """A non-Chromium header set used for the single retry after a 403."""

    return {
        "User-Agent": random.choice(_ALTERNATE_USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate",
        "Referer": "https://www.google.com/",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }


def describe_fetch_error(exc: BaseException) -> str:
    """Human-readable classification stored on a result's ``error`` field."""

    cause = getattr(exc, "fast_error", None)
    if cause is not None:
        return describe_fetch_error(cause)
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return "Request timeout"
    if isinstance(exc, ContentTooLargeError):
        return "Content too long"
    if isinstance(exc, FetchError) and exc.status_code is not None:
        if exc.status_code == 403:
            return "403 Forbidden - Access denied"
        if exc.status_code == 404:
            return "404 Not found"
        return f"HTTP {exc.status_code}: {exc}"
    if isinstance(exc, httpx.HTTPError):
        return f"Network error: {exc}"
    return str(exc) or "Unknown error"


class PageFetcher:
    """Fetch pages over HTTP (the extractor's fast path)."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._client = client

    async def fetch_html(self, url: str, timeout_s: float | None = None) -> FetchedPage:
        """Fetch ``url`` with randomized headers, retrying a 403 once with alternate headers.

        Raises:
            FetchError: Status >= 400 (after the retry for 403).
            ContentTooLargeError: Body exceeds ``max_download_bytes``.
            UnsupportedContentError: Non-HTML content type.
            httpx.HTTPError: Transport failures and timeouts.
        """

        timeout = timeout_s or self._settings.default_timeout_s
        try:
            return await self._get(url, random_headers(), timeout)
        except FetchError as e:
            if e.status_code != 403:
                raise
            logger.info("Got 403, retrying with alternate headers", extra={"url": url})
        return await self._get(url, alternate_headers(), timeout)

    async def _get(self, url: str, headers: dict[str, str], timeout_s: float) -> FetchedPage:
        limit = self._settings.max_download_bytes
        async with self._client.stream(
            "GET",
            url,
            headers=headers,
            timeout=httpx.Timeout(timeout_s),
            follow_redirects=True,
        ) as resp:
            if resp.status_code >= 400:
                raise FetchError(
                    f"Request failed with status code {resp.status_code}",
                    status_code=resp.status_code,
                )

            content_type = resp.headers.get("content-type")
            if content_type and not content_type.lower().startswith(_HTML_CONTENT_TYPES):
                raise UnsupportedContentError(
                    f"Unsupported content type: {content_type}", status_code=resp.status_code
                )

            declared = resp.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > limit:
                raise ContentTooLargeError(f"maxContentLength of {limit} exceeded")

            chunks: list[bytes] = []
            size = 0
            async for chunk in resp.aiter_bytes():
                size += len(chunk)
                if size > limit:
                    raise ContentTooLargeError(f"maxContentLength of {limit} exceeded")
                chunks.append(chunk)

            body = b"".join(chunks)
            html = body.decode(resp.encoding or "utf-8", errors="replace")
            logger.debug(
                "Fetched page",
                extra={"url": url, "status_code": resp.status_code, "bytes": size},
            )
            return FetchedPage(
                url=str(resp.url),
                html=html,
                status_code=resp.status_code,
                content_type=content_type,
            )
