"""FastAPI app exposing the web tools over HTTP."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from webharvest.config import Settings, load_settings
from webharvest.logging import configure_logging, get_logger
from webharvest.service import WebHarvestService
from webharvest.tools.registry import ToolResult


class ToolCallRequest(BaseModel):
    """Tool call request."""

    arguments: dict[str, Any] = Field(default_factory=dict)
    request_id: str | None = None


def create_app(
    settings: Settings | None = None,
    *,
    service_factory: Callable[[Settings], WebHarvestService] | None = None,
) -> FastAPI:
    """Create FastAPI app.

    The service (and with it the browser pool) lives for the lifetime of the app and is closed
    on shutdown.
    """

    settings = settings or load_settings()
    configure_logging(settings.log_level)
    logger = get_logger(__name__)
    factory = service_factory or WebHarvestService

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        service = factory(settings)
        app.state.service = service
        logger.info("Service started", extra={"tools": ",".join(service.registry.names())})
        try:
            yield
        finally:
            await service.aclose()

    app = FastAPI(title="webharvest", version="0.1.0", lifespan=lifespan)

    def _service(request: Request) -> WebHarvestService:
        return request.app.state.service

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/tools")
    def list_tools(request: Request) -> list[dict[str, Any]]:
        return _service(request).registry.list_tools()

    @app.post("/tools/{name}")
    async def call_tool(name: str, req: ToolCallRequest, request: Request) -> ToolResult:
        registry = _service(request).registry
        if registry.get(name) is None:
            raise HTTPException(status_code=404, detail=f"tool not found: {name}")
        logger.info("API tool call", extra={"tool_name": name})
        return await registry.execute(name, req.arguments, request_id=req.request_id)

    return app
