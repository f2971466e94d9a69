"""Multi-engine search orchestration."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from webharvest.browser.pool import RenderPool, is_browser_closed_error
from webharvest.config import Settings
from webharvest.core.concurrency import RequestGovernor
from webharvest.logging import get_logger
from webharvest.models.search import SearchOutcome, SearchResult
from webharvest.search.backends import SearchBackend
from webharvest.search.relevance import RelevanceConfig, score_results
from webharvest.utils.text import sanitize_query

logger = get_logger(__name__)


class InvalidInputError(ValueError):
    """Raised for arguments rejected before any network activity."""


def _session_died(exc: BaseException) -> bool:
    return is_browser_closed_error(exc) or (
        exc.__cause__ is not None and is_browser_closed_error(exc.__cause__)
    )


class SearchOrchestrator:
    """Try the configured backends in order until one returns relevant results.

    Backends are attempted strictly one after another. Each attempt gets an equal slice of the
    total timeout, capped by ``attempt_timeout_cap_s``. The first backend is held to the
    high-confidence threshold; later ones are accepted at the minimum threshold. When nothing is
    accepted the best-scoring non-empty set is returned, and an empty outcome (engine ``"none"``)
    only when every backend came back empty or failed.
    """

    def __init__(
        self,
        settings: Settings,
        backends: Sequence[SearchBackend],
        governor: RequestGovernor,
        pool: RenderPool | None = None,
        *,
        relevance: RelevanceConfig | None = None,
    ) -> None:
        if not backends:
            raise ValueError("at least one search backend is required")
        self._settings = settings
        self._backends = list(backends)
        self._governor = governor
        self._pool = pool
        self._relevance = relevance or RelevanceConfig()

    @property
    def backends(self) -> list[SearchBackend]:
        return list(self._backends)

    async def search(
        self,
        query: str,
        num_results: int = 5,
        timeout_s: float | None = None,
    ) -> SearchOutcome:
        """Run one search.

        Raises:
            InvalidInputError: Empty query or non-positive ``num_results``.
            RateLimitExceededError: The governor rejected the call.
        """

        cleaned = sanitize_query(query or "", self._settings.max_query_length)
        if not cleaned:
            raise InvalidInputError("Search query cannot be empty")
        if num_results < 1:
            raise InvalidInputError("num_results must be >= 1")

        total_s = timeout_s if timeout_s and timeout_s > 0 else self._settings.search_timeout_s
        return await self._governor.execute(lambda: self._run(cleaned, num_results, total_s))

    def attempt_timeout(self, total_s: float) -> float:
        return min(total_s / len(self._backends), self._settings.attempt_timeout_cap_s)

    async def _run(self, query: str, num_results: int, total_s: float) -> SearchOutcome:
        started = time.monotonic()
        attempt_s = self.attempt_timeout(total_s)
        checking = self._settings.enable_relevance_checking
        force_all = self._settings.force_multi_engine_search
        best: SearchOutcome | None = None

        for index, backend in enumerate(self._backends):
            results = await self._attempt(backend, query, num_results, attempt_s)
            if not results:
                continue

            score = score_results(query, results, self._relevance)
            candidate = SearchOutcome(results=results, engine=backend.name, relevance=score)
            logger.info(
                "Backend scored",
                extra={"provider": backend.name, "result_count": len(results), "relevance": round(score, 3)},
            )
            if best is None or score > (best.relevance or 0.0):
                best = candidate
            if force_all:
                continue

            if not checking or score >= self._settings.high_confidence_threshold:
                return self._done(candidate, started)
            if index > 0 and score >= self._settings.relevance_threshold:
                return self._done(candidate, started)

        if best is None:
            logger.warning("All search backends failed", extra={"query_len": len(query)})
            return SearchOutcome.empty()

        if checking and (best.relevance or 0.0) < self._settings.relevance_threshold:
            logger.info(
                "Returning best results below relevance threshold",
                extra={"provider": best.engine, "relevance": round(best.relevance or 0.0, 3)},
            )
        return self._done(best, started)

    async def _attempt(
        self,
        backend: SearchBackend,
        query: str,
        num_results: int,
        timeout_s: float,
    ) -> list[SearchResult]:
        try:
            results = await asyncio.wait_for(
                backend.search(query, num_results, timeout_s), timeout=timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning("Search backend timed out", extra={"provider": backend.name, "timeout_s": timeout_s})
            return []
        except Exception as e:
            logger.warning(
                "Search backend failed",
                extra={"provider": backend.name, "error_type": type(e).__name__, "error": str(e)},
            )
            if self._pool is not None and _session_died(e):
                logger.info("Browser session died, flushing render pool")
                await self._pool.release_all()
            return []
        return results[:num_results]

    @staticmethod
    def _done(outcome: SearchOutcome, started: float) -> SearchOutcome:
        logger.info(
            "Search completed",
            extra={
                "provider": outcome.engine,
                "result_count": len(outcome.results),
                "latency_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return outcome
