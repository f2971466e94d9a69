"""Agent-facing web tools.

Three tools share the search orchestrator and the content extractor:

- ``full-web-search``: search, then extract the content of the top results.
- ``get-web-search-summaries``: search only; titles and descriptions are compacted.
- ``get-single-web-page-content``: extract one page.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from webharvest.logging import get_logger
from webharvest.models.document import ExtractedPage
from webharvest.models.search import SearchResult
from webharvest.search.orchestrator import SearchOrchestrator
from webharvest.tools.content_extractor import ContentExtractor
from webharvest.tools.registry import Tool, ToolRegistry, ToolResult
from webharvest.utils.text import remove_stop_words, validate_url

logger = get_logger(__name__)

FULL_WEB_SEARCH = "full-web-search"
WEB_SEARCH_SUMMARIES = "get-web-search-summaries"
SINGLE_PAGE_CONTENT = "get-single-web-page-content"

# Content limit applied for clients that ask for compact output without giving their own.
COMPACT_CONTENT_LIMIT = 2000

ClientHint = Literal["compact", "full"]


class _ToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _QueryArgs(_ToolArgs):
    query: str = Field(description="Search query to execute")
    limit: int = Field(default=5, ge=1, le=10, description="Number of results to return (1-10)")

    @field_validator("query")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("query is required and must be a non-empty string")
        return value


class FullWebSearchArgs(_QueryArgs):
    include_content: bool = Field(
        default=True,
        alias="includeContent",
        description="Whether to fetch full page content",
    )
    max_content_length: int | None = Field(
        default=None,
        ge=0,
        alias="maxContentLength",
        description="Maximum characters per result content (0 = no limit)",
    )
    client_hint: ClientHint | None = Field(
        default=None,
        alias="clientHint",
        description="'compact' applies a short default content limit",
    )


class SearchSummariesArgs(_QueryArgs):
    pass


class SinglePageArgs(_ToolArgs):
    url: str = Field(description="URL of the page to extract (http/https)")
    max_content_length: int | None = Field(default=None, ge=0, alias="maxContentLength")
    client_hint: ClientHint | None = Field(default=None, alias="clientHint")

    @field_validator("url")
    @classmethod
    def _valid_url(cls, value: str) -> str:
        value = value.strip()
        if not validate_url(value):
            raise ValueError("must be a valid http or https URL")
        return value


def effective_limit(max_content_length: int | None, client_hint: ClientHint | None) -> int | None:
    if max_content_length is None and client_hint == "compact":
        return COMPACT_CONTENT_LIMIT
    return max_content_length


def _extractor_limit(limit: int | None) -> int | None:
    # truncation with a visible marker happens at formatting time; 0 still means unlimited
    return 0 if limit == 0 else None


def truncate_with_marker(content: str, limit: int | None) -> str:
    if limit and len(content) > limit:
        return content[:limit] + f"\n\n[Content truncated at {limit} characters]"
    return content


def format_search_results(query: str, results: list[SearchResult], limit: int | None) -> str:
    lines = [f'Search completed for "{query}" with {len(results)} results:\n\n']
    for index, result in enumerate(results, start=1):
        lines.append(f"**{index}. {result.title}**\n")
        lines.append(f"URL: {result.url}\n")
        lines.append(f"Description: {result.description}\n")
        if result.full_content.strip():
            lines.append(f"\n**Full Content:**\n{truncate_with_marker(result.full_content, limit)}\n")
        elif result.content_preview.strip():
            lines.append(f"\n**Content Preview:**\n{truncate_with_marker(result.content_preview, limit)}\n")
        elif result.fetch_status != "success":
            lines.append(f"\n**Content Extraction Failed:** {result.error}\n")
        lines.append("\n---\n\n")
    return "".join(lines)


def format_summaries(query: str, results: list[SearchResult]) -> str:
    lines = [f'Search summaries for "{query}" with {len(results)} results:\n\n']
    for index, result in enumerate(results, start=1):
        title = remove_stop_words(result.title) or result.title
        description = remove_stop_words(result.description) or result.description
        lines.append(f"**{index}. {title}**\n")
        lines.append(f"URL: {result.url}\n")
        lines.append(f"Description: {description}\n")
        lines.append("\n---\n\n")
    return "".join(lines)


def format_page(page: ExtractedPage, limit: int | None) -> str:
    return (
        f"**Page Content from: {page.url}**\n\n"
        f"**Title:** {page.title or 'No title'}\n"
        f"**Word Count:** {page.word_count}\n"
        f"**Content Length:** {len(page.content)} characters\n\n"
        f"**Content:**\n{truncate_with_marker(page.content, limit)}\n"
    )


class FullWebSearchTool(Tool):
    def __init__(self, orchestrator: SearchOrchestrator, extractor: ContentExtractor) -> None:
        self._orchestrator = orchestrator
        self._extractor = extractor

    @property
    def name(self) -> str:
        return FULL_WEB_SEARCH

    @property
    def description(self) -> str:
        return "Search the web and fetch complete page content from the top results."

    def get_schema(self) -> dict[str, Any]:
        return FullWebSearchArgs.model_json_schema(by_alias=True)

    async def execute(self, **kwargs: Any) -> ToolResult:
        args = FullWebSearchArgs.model_validate(kwargs)
        limit = effective_limit(args.max_content_length, args.client_hint)

        outcome = await self._orchestrator.search(args.query, args.limit)
        results = outcome.results
        if args.include_content and results:
            results = await self._extractor.extract_content_for_results(
                results, args.limit, max_content_length=_extractor_limit(limit)
            )

        return ToolResult(
            content=format_search_results(args.query, results, limit),
            metadata={
                "engine": outcome.engine,
                "total_results": len(results),
                "relevance": outcome.relevance,
            },
        )


class SearchSummariesTool(Tool):
    def __init__(self, orchestrator: SearchOrchestrator) -> None:
        self._orchestrator = orchestrator

    @property
    def name(self) -> str:
        return WEB_SEARCH_SUMMARIES

    @property
    def description(self) -> str:
        return "Search the web and return result titles, URLs and descriptions without page content."

    def get_schema(self) -> dict[str, Any]:
        return SearchSummariesArgs.model_json_schema(by_alias=True)

    async def execute(self, **kwargs: Any) -> ToolResult:
        args = SearchSummariesArgs.model_validate(kwargs)
        outcome = await self._orchestrator.search(args.query, args.limit)
        return ToolResult(
            content=format_summaries(args.query, outcome.results),
            metadata={"engine": outcome.engine, "total_results": len(outcome.results)},
        )


class SinglePageContentTool(Tool):
    def __init__(self, extractor: ContentExtractor) -> None:
        self._extractor = extractor

    @property
    def name(self) -> str:
        return SINGLE_PAGE_CONTENT

    @property
    def description(self) -> str:
        return "Fetch one web page and return its cleaned main text."

    def get_schema(self) -> dict[str, Any]:
        return SinglePageArgs.model_json_schema(by_alias=True)

    async def execute(self, **kwargs: Any) -> ToolResult:
        args = SinglePageArgs.model_validate(kwargs)
        limit = effective_limit(args.max_content_length, args.client_hint)
        page = await self._extractor.extract_page(args.url, max_content_length=_extractor_limit(limit))
        return ToolResult(
            content=format_page(page, limit),
            metadata={"word_count": page.word_count, "title": page.title},
        )


def register_web_tools(
    registry: ToolRegistry,
    orchestrator: SearchOrchestrator,
    extractor: ContentExtractor,
) -> ToolRegistry:
    registry.register(FullWebSearchTool(orchestrator, extractor))
    registry.register(SearchSummariesTool(orchestrator))
    registry.register(SinglePageContentTool(extractor))
    return registry
