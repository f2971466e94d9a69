"""Page fetching, content extraction and the agent tool surface."""

from __future__ import annotations

from webharvest.tools.content_extractor import ContentExtractor, ExtractionError, InvalidUrlError
from webharvest.tools.page_fetcher import (
    ContentTooLargeError,
    FetchError,
    LowQualityContentError,
    PageFetcher,
    UnsupportedContentError,
    describe_fetch_error,
)
from webharvest.tools.page_parser import PageParser
from webharvest.tools.registry import Tool, ToolRegistry, ToolResult
from webharvest.tools.web_tools import (
    FULL_WEB_SEARCH,
    SINGLE_PAGE_CONTENT,
    WEB_SEARCH_SUMMARIES,
    register_web_tools,
)

__all__ = [
    "FULL_WEB_SEARCH",
    "SINGLE_PAGE_CONTENT",
    "WEB_SEARCH_SUMMARIES",
    "ContentExtractor",
    "ContentTooLargeError",
    "ExtractionError",
    "FetchError",
    "InvalidUrlError",
    "LowQualityContentError",
    "PageFetcher",
    "PageParser",
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "UnsupportedContentError",
    "describe_fetch_error",
    "register_web_tools",
]
