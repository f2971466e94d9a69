"""Search engines, result parsing and orchestration."""

from __future__ import annotations

from webharvest.search.backends import (
    BingBackend,
    BotChallengeError,
    BraveBackend,
    DuckDuckGoBackend,
    SearchBackend,
    SearchBackendError,
)
from webharvest.search.orchestrator import InvalidInputError, SearchOrchestrator
from webharvest.search.relevance import RelevanceConfig, score_results

__all__ = [
    "BingBackend",
    "BotChallengeError",
    "BraveBackend",
    "DuckDuckGoBackend",
    "InvalidInputError",
    "RelevanceConfig",
    "SearchBackend",
    "SearchBackendError",
    "SearchOrchestrator",
    "score_results",
]
