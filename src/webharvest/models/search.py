"""Search-related models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from webharvest.utils.text import NO_DESCRIPTION, generate_timestamp, validate_url

FetchStatus = Literal["success", "error", "timeout"]

NO_ENGINE = "none"


class SearchResult(BaseModel):
    """A single web search result, optionally enriched with page content.

    ``fetch_status``/``error`` describe content extraction only; a result that was found but
    whose page could not be fetched keeps its title, url and description.
    """

    title: str
    url: str
    description: str = NO_DESCRIPTION
    full_content: str = ""
    content_preview: str = ""
    word_count: int = Field(default=0, ge=0)
    fetch_status: FetchStatus = "success"
    error: str | None = None
    timestamp: str = Field(default_factory=generate_timestamp)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        if not validate_url(value):
            raise ValueError(f"not an http(s) url: {value!r}")
        return value

    @field_validator("description")
    @classmethod
    def _default_description(cls, value: str) -> str:
        return value.strip() or NO_DESCRIPTION

    @property
    def succeeded(self) -> bool:
        return self.fetch_status == "success"


class SearchOutcome(BaseModel):
    """Result of one orchestrator run."""

    results: list[SearchResult] = Field(default_factory=list)
    engine: str = NO_ENGINE
    relevance: float | None = None

    @classmethod
    def empty(cls) -> SearchOutcome:
        return cls(results=[], engine=NO_ENGINE)
