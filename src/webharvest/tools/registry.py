"""Tool registry and execution framework.

Tools are registered by name and invoked with a JSON-like argument mapping. Every execution
runs inside a logging context carrying the request id and tool name, and failures come back as
a ``ToolResult`` with ``success=False`` instead of an exception.
"""

from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from webharvest.logging import get_logger, request_context

logger = get_logger(__name__)


class ToolResult(BaseModel):
    """Result from a tool execution."""

    success: bool = True
    content: str | dict | list | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Tool(ABC):
    """Base class for tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Tool description for the calling agent."""

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """Execute the tool.

        Args:
            **kwargs: Tool arguments.

        Returns:
            ToolResult with execution result.
        """

    def get_schema(self) -> dict[str, Any]:
        """Get JSON schema for tool arguments."""
        return {
            "type": "object",
            "properties": {},
            "required": [],
        }


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "Invalid arguments: " + "; ".join(parts)


class ToolRegistry:
    """Registry for managing tools."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool.

        Args:
            tool: Tool instance to register.
        """
        self._tools[tool.name] = tool
        logger.info("Tool registered", extra={"tool_name": tool.name})

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def list_tools(self) -> list[dict[str, Any]]:
        """List all registered tools with their schemas."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "schema": tool.get_schema(),
            }
            for tool in self._tools.values()
        ]

    async def execute(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        *,
        request_id: str | None = None,
    ) -> ToolResult:
        """Execute a tool.

        Args:
            tool_name: Name of the tool to execute.
            arguments: Tool arguments.
            request_id: Correlation id for log records; generated when omitted.

        Returns:
            ToolResult with execution result.
        """
        tool = self.get(tool_name)
        if tool is None:
            return ToolResult(
                success=False,
                error=f"Tool '{tool_name}' not found. Available tools: {', '.join(self._tools.keys())}",
            )

        with request_context(request_id=request_id or uuid.uuid4().hex[:12], tool=tool_name):
            started = time.monotonic()
            try:
                result = await tool.execute(**(arguments or {}))
            except ValidationError as e:
                logger.info("Tool arguments rejected", extra={"error": str(e)})
                result = ToolResult(success=False, error=format_validation_error(e))
            except Exception as e:
                logger.exception("Tool execution failed")
                result = ToolResult(success=False, error=str(e))
            result.metadata.setdefault("latency_ms", int((time.monotonic() - started) * 1000))
            logger.info("Tool finished", extra={"success": result.success})
            return result
