"""Composition root: builds every component from one :class:`Settings` object."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from webharvest.browser.pool import RenderPool
from webharvest.browser.renderer import PageRenderer, PlaywrightRenderer
from webharvest.config import Settings, load_settings
from webharvest.core.concurrency import RequestGovernor
from webharvest.logging import get_logger
from webharvest.search.backends import BingBackend, BraveBackend, DuckDuckGoBackend, SearchBackend
from webharvest.search.orchestrator import SearchOrchestrator
from webharvest.tools.content_extractor import ContentExtractor
from webharvest.tools.page_fetcher import PageFetcher
from webharvest.tools.page_parser import PageParser
from webharvest.tools.registry import ToolRegistry, ToolResult
from webharvest.tools.web_tools import register_web_tools

logger = get_logger(__name__)


class WebHarvestService:
    """Owns the HTTP client and the render pool, and exposes the tool registry.

    Use as an async context manager so the browsers are closed on exit::

        async with WebHarvestService(settings) as service:
            result = await service.call("full-web-search", {"query": "python asyncio"})

    ``renderer``, ``backends`` and ``client`` can be injected for tests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        pool: RenderPool | None = None,
        renderer: PageRenderer | None = None,
        backends: Sequence[SearchBackend] | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(follow_redirects=True)
        self.pool = pool if pool is not None or renderer is not None else RenderPool(self.settings)
        self.renderer = renderer or PlaywrightRenderer(self.pool, self.settings)
        self.governor = RequestGovernor(
            self.settings.rate_limit_per_minute,
            self.settings.max_concurrent_requests,
        )
        self.backends = list(backends) if backends is not None else [
            BingBackend(self.renderer),
            BraveBackend(self.renderer),
            DuckDuckGoBackend(self.client),
        ]
        self.orchestrator = SearchOrchestrator(self.settings, self.backends, self.governor, self.pool)
        self.extractor = ContentExtractor(
            self.settings,
            PageFetcher(self.settings, self.client),
            PageParser(min_content_chars=self.settings.min_content_chars),
            self.renderer,
        )
        self.registry = register_web_tools(ToolRegistry(), self.orchestrator, self.extractor)

    async def call(self, tool_name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        return await self.registry.execute(tool_name, arguments)

    async def aclose(self) -> None:
        """Close every browser and the HTTP client."""

        try:
            if self.pool is not None:
                await self.pool.release_all()
        finally:
            if self._owns_client:
                await self.client.aclose()
        logger.info("Service closed")

    async def __aenter__(self) -> WebHarvestService:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
