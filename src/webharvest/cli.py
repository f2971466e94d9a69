"""CLI entrypoints for webharvest."""

from __future__ import annotations

import asyncio
from typing import Any

import typer

from webharvest.config import load_settings
from webharvest.logging import configure_logging, get_logger
from webharvest.service import WebHarvestService
from webharvest.tools.web_tools import FULL_WEB_SEARCH, SINGLE_PAGE_CONTENT, WEB_SEARCH_SUMMARIES

app = typer.Typer(add_completion=False, help="webharvest multi-engine web search and page extraction")
logger = get_logger(__name__)


def _run_tool(tool_name: str, arguments: dict[str, Any]) -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("CLI tool requested", extra={"tool_name": tool_name})

    async def _call():
        async with WebHarvestService(settings) as service:
            return await service.call(tool_name, arguments)

    result = asyncio.run(_call())
    if not result.success:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(result.content)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(5, "--limit", "-n", min=1, max=10, help="Number of results (1-10)"),
    content: bool = typer.Option(True, "--content/--no-content", help="Fetch full page content"),
    max_content_length: int | None = typer.Option(
        None, "--max-content-length", min=0, help="Maximum characters per result (0 = no limit)"
    ),
) -> None:
    """Search the web and print results with their page content."""

    arguments: dict[str, Any] = {"query": query, "limit": limit, "includeContent": content}
    if max_content_length is not None:
        arguments["maxContentLength"] = max_content_length
    _run_tool(FULL_WEB_SEARCH, arguments)


@app.command()
def summaries(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(5, "--limit", "-n", min=1, max=10, help="Number of results (1-10)"),
) -> None:
    """Search the web and print titles, URLs and descriptions only."""

    _run_tool(WEB_SEARCH_SUMMARIES, {"query": query, "limit": limit})


@app.command()
def page(
    url: str = typer.Argument(..., help="Page URL (http/https)"),
    max_content_length: int | None = typer.Option(
        None, "--max-content-length", min=0, help="Maximum characters (0 = no limit)"
    ),
) -> None:
    """Extract the main text of a single page."""

    arguments: dict[str, Any] = {"url": url}
    if max_content_length is not None:
        arguments["maxContentLength"] = max_content_length
    _run_tool(SINGLE_PAGE_CONTENT, arguments)


@app.command()
def tools() -> None:
    """List the available tools."""

    settings = load_settings()
    service = WebHarvestService(settings)
    try:
        for tool in service.registry.list_tools():
            typer.echo(f"{tool['name']}: {tool['description']}")
    finally:
        asyncio.run(service.aclose())


if __name__ == "__main__":
    app()
