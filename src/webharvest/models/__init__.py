"""Pydantic models used across the project."""

from __future__ import annotations

from webharvest.models.document import ExtractedPage
from webharvest.models.search import NO_ENGINE, FetchStatus, SearchOutcome, SearchResult

__all__ = [
    "ExtractedPage",
    "FetchStatus",
    "NO_ENGINE",
    "SearchOutcome",
    "SearchResult",
]
