"""Rendered-page capability.

The extraction and search code only sees :class:`PageRenderer`; the Playwright implementation
below is the production one and tests substitute a stub.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from webharvest.browser.pool import PooledBrowser, RenderPool, is_browser_closed_error
from webharvest.config import Settings
from webharvest.logging import get_logger

logger = get_logger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:122.0) Gecko/20100101 Firefox/122.0",
)

VIEWPORTS = (
    {"width": 1920, "height": 1080},
    {"width": 1366, "height": 768},
    {"width": 1440, "height": 900},
    {"width": 1536, "height": 864},
    {"width": 1280, "height": 720},
)

TIMEZONES = (
    "America/New_York",
    "America/Los_Angeles",
    "America/Chicago",
    "Europe/London",
    "Europe/Berlin",
    "Asia/Tokyo",
)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "media"})

# Masks the most common automation markers before any page script runs.
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
if (window.navigator.permissions && window.navigator.permissions.query) {
  const originalQuery = window.navigator.permissions.query;
  window.navigator.permissions.query = (parameters) => (
    parameters.name === 'notifications'
      ? Promise.resolve({ state: 'default' })
      : originalQuery(parameters)
  );
}
if (window.chrome) {
  delete window.chrome.app;
  delete window.chrome.runtime;
}
"""

_PROTOCOL_ERROR_MARKERS = (
    "err_http2_protocol_error",
    "http2",
    "err_quic_protocol_error",
    "ns_error_net_interrupt",
)

_MAX_NAVIGATION_TIMEOUT_S = 8.0


class RenderError(RuntimeError):
    """Raised when a page cannot be rendered."""


@dataclass(frozen=True)
class RenderOptions:
    """Per-call rendering options."""

    timeout_s: float = 8.0
    family: str | None = None
    block_resources: bool = True
    humanize: bool = False
    wait_selector: str | None = None
    wait_selector_timeout_s: float = 2.0


class PageRenderer(Protocol):
    """Anything that can turn a URL into rendered HTML."""

    async def open_page(self, url: str, options: RenderOptions) -> str:
        """Navigate to ``url`` and return the rendered markup."""


def is_protocol_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _PROTOCOL_ERROR_MARKERS)


def random_context_options(family: str) -> dict[str, Any]:
    """Randomized but realistic browser-context options."""

    options: dict[str, Any] = {
        "user_agent": random.choice(USER_AGENTS),
        "viewport": dict(random.choice(VIEWPORTS)),
        "locale": "en-US",
        "timezone_id": random.choice(TIMEZONES),
        "device_scale_factor": 1 if random.random() > 0.5 else 2,
        "has_touch": random.random() > 0.7,
    }
    # firefox rejects is_mobile
    if family != "firefox":
        options["is_mobile"] = False
    return options


async def _block_heavy_resources(route: Any) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class PlaywrightRenderer:
    """:class:`PageRenderer` backed by the shared :class:`RenderPool`."""

    def __init__(self, pool: RenderPool, settings: Settings) -> None:
        self._pool = pool
        self._settings = settings

    async def open_page(self, url: str, options: RenderOptions) -> str:
        entry = await self._pool.acquire(options.family)
        try:
            return await self._render(entry, url, options)
        except PlaywrightError as e:
            if is_browser_closed_error(e):
                await self._pool.discard(entry)
                raise RenderError(f"browser session died while rendering {url}: {e}") from e
            if not is_protocol_error(e):
                raise RenderError(f"failed to render {url}: {e}") from e

        logger.info("Protocol error, retrying over HTTP/1.1", extra={"url": url})
        http1_entry = await self._pool.acquire(http1=True)
        try:
            return await self._render(http1_entry, url, options, extra_headers=True)
        except PlaywrightError as e:
            raise RenderError(f"failed to render {url} over HTTP/1.1: {e}") from e

    async def _render(
        self,
        entry: PooledBrowser,
        url: str,
        options: RenderOptions,
        *,
        extra_headers: bool = False,
    ) -> str:
        context_options = random_context_options(entry.family)
        if extra_headers:
            context_options["extra_http_headers"] = {
                "Connection": "keep-alive",
                "Upgrade-Insecure-Requests": "1",
            }

        context = await entry.browser.new_context(**context_options)
        try:
            await context.add_init_script(STEALTH_SCRIPT)
            page = await context.new_page()
            if options.block_resources:
                await page.route("**/*", _block_heavy_resources)

            timeout_ms = int(min(options.timeout_s, _MAX_NAVIGATION_TIMEOUT_S) * 1000)
            logger.debug("Navigating", extra={"url": url, "browser": entry.key})
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

            if options.humanize:
                await page.mouse.move(random.random() * 100, random.random() * 100)
                await page.wait_for_timeout(500 + random.random() * 1000)

            if options.wait_selector:
                try:
                    await page.wait_for_selector(
                        options.wait_selector,
                        timeout=int(options.wait_selector_timeout_s * 1000),
                    )
                except PlaywrightTimeoutError:
                    logger.debug("Wait selector not found, proceeding", extra={"url": url})

            return await page.content()
        finally:
            try:
                await asyncio.shield(context.close())
            except Exception as e:
                logger.debug("Context close failed: %s", e)
