"""Extracted page models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from webharvest.utils.text import generate_timestamp


class ExtractedPage(BaseModel):
    """A cleaned, readable representation of a single fetched web page."""

    url: str
    title: str | None = None
    content: str
    word_count: int = 0
    timestamp: str = Field(default_factory=generate_timestamp)
