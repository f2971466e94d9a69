"""Pool of long-lived Playwright browser processes, one per browser family."""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import async_playwright

from webharvest.config import Settings
from webharvest.logging import get_logger

logger = get_logger(__name__)

_CHROMIUM_ARGS = (
    "--no-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-default-apps",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
)

_CLOSED_MARKERS = (
    "target page, context or browser has been closed",
    "browser has been closed",
    "browser has disconnected",
    "target closed",
    "connection closed",
)


def is_browser_closed_error(exc: BaseException) -> bool:
    """Return True when ``exc`` says the underlying browser session died."""

    message = str(exc).lower()
    return any(marker in message for marker in _CLOSED_MARKERS)


@dataclass
class PooledBrowser:
    """A browser process owned by the pool.

    Callers may open contexts on ``browser`` for the duration of one fetch; they must never
    close it or keep it around.
    """

    family: str
    browser: Any
    http1: bool = False
    launched_at: float = field(default_factory=time.monotonic)
    last_used: float = field(default_factory=time.monotonic)

    @property
    def key(self) -> str:
        return f"{self.family}-http1" if self.http1 else self.family


class RenderPool:
    """Lazily launched, health-checked browser processes keyed by family."""

    def __init__(
        self,
        settings: Settings,
        *,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self._settings = settings
        self._playwright_factory = playwright_factory
        self._playwright: Any | None = None
        self._browsers: dict[str, PooledBrowser] = {}
        self._rotation = itertools.cycle(settings.browser_types)
        self._lock = asyncio.Lock()
        logger.info(
            "Render pool configured",
            extra={
                "max_browsers": settings.max_browsers,
                "headless": settings.browser_headless,
                "families": ",".join(settings.browser_types),
            },
        )

    @property
    def size(self) -> int:
        return len(self._browsers)

    async def acquire(self, family: str | None = None, *, http1: bool = False) -> PooledBrowser:
        """Return a healthy browser for ``family``, launching or replacing it as needed.

        Args:
            family: Browser family; ``None`` rotates through the configured families.
            http1: Use a separate chromium process with HTTP/2 disabled.
        """

        if http1:
            family = "chromium"
        family = (family or next(self._rotation)).lower()
        key = f"{family}-http1" if http1 else family

        async with self._lock:
            entry = self._browsers.get(key)
            if entry is not None:
                if await self._is_healthy(entry):
                    entry.last_used = time.monotonic()
                    return entry
                logger.info("Browser unhealthy, relaunching", extra={"browser": key})
                self._browsers.pop(key, None)
                await self._close_quietly(entry)

            entry = await self._launch(family, http1=http1)
            self._browsers[key] = entry
            await self._evict_overflow()
            return entry

    async def discard(self, entry: PooledBrowser) -> None:
        """Drop ``entry`` from the pool and close it."""

        async with self._lock:
            if self._browsers.get(entry.key) is entry:
                self._browsers.pop(entry.key, None)
        await self._close_quietly(entry)

    async def release_all(self) -> None:
        """Close every browser and stop Playwright. The pool is empty afterwards."""

        async with self._lock:
            entries = list(self._browsers.values())
            self._browsers.clear()
            playwright, self._playwright = self._playwright, None

        logger.info("Closing browsers", extra={"count": len(entries)})
        try:
            await asyncio.gather(*(self._close_quietly(e) for e in entries))
        finally:
            if playwright is not None:
                try:
                    await asyncio.wait_for(
                        playwright.stop(), timeout=self._settings.browser_close_timeout_s
                    )
                except Exception as e:
                    logger.warning("Failed to stop playwright: %s", e)

    async def _ensure_playwright(self) -> Any:
        if self._playwright is None:
            self._playwright = await self._playwright_factory().start()
            logger.info("Playwright started")
        return self._playwright

    async def _launch(self, family: str, *, http1: bool) -> PooledBrowser:
        playwright = await self._ensure_playwright()
        browser_type = getattr(playwright, family, None) or playwright.chromium

        launch_kwargs: dict[str, Any] = {"headless": self._settings.browser_headless}
        if browser_type is playwright.chromium:
            args = list(_CHROMIUM_ARGS)
            if http1:
                args.append("--disable-http2")
            launch_kwargs["args"] = args

        started = time.monotonic()
        try:
            browser = await browser_type.launch(**launch_kwargs)
        except Exception:
            logger.exception("Failed to launch browser", extra={"browser": family})
            raise
        logger.info(
            "Browser launched",
            extra={
                "browser": family,
                "http1": http1,
                "latency_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return PooledBrowser(family=family, browser=browser, http1=http1)

    async def _is_healthy(self, entry: PooledBrowser) -> bool:
        try:
            if not entry.browser.is_connected():
                return False
            idle_s = time.monotonic() - entry.last_used
            if self._settings.browser_health_probe and idle_s >= self._settings.browser_probe_idle_s:
                context = await entry.browser.new_context()
                await context.close()
            return True
        except Exception as e:
            logger.info("Browser health check failed", extra={"browser": entry.key, "error": str(e)})
            return False

    async def _evict_overflow(self) -> None:
        while len(self._browsers) > self._settings.max_browsers:
            oldest_key = next(iter(self._browsers))
            oldest = self._browsers.pop(oldest_key)
            logger.info("Evicting oldest browser", extra={"browser": oldest_key})
            await self._close_quietly(oldest)

    async def _close_quietly(self, entry: PooledBrowser) -> None:
        try:
            await asyncio.wait_for(
                entry.browser.close(), timeout=self._settings.browser_close_timeout_s
            )
        except Exception as e:
            logger.warning("Error closing browser %s: %s", entry.key, e)
