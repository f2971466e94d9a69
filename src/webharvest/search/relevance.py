"""Heuristic query/result relevance score.

The score gates whether the orchestrator keeps trying engines. It is a tuning aid, not a
classifier: the category patterns and weights below were picked by hand against a small set
of queries and are exposed through :class:`RelevanceConfig` and the thresholds in ``Settings``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from webharvest.models.search import SearchResult
from webharvest.utils.text import QUERY_STOP_WORDS, extract_content_words, tokenize

_NON_WORD_RE = re.compile(r"[^a-z0-9]+")

OFF_TOPIC_CATEGORIES: dict[str, re.Pattern[str]] = {
    "shopping": re.compile(r"\b(?:buy|shop|shopping|price|prices|deal|deals|discount|coupon|cart|sale)\b"),
    "weather": re.compile(r"\b(?:weather|forecast|temperature|humidity|rainfall)\b"),
    "entertainment": re.compile(r"\b(?:celebrity|celebrities|gossip|movie|movies|trailer|box office|tv show)\b"),
    "travel": re.compile(r"\b(?:hotel|hotels|flight|flights|vacation|resort|airfare|booking)\b"),
    "sports": re.compile(r"\b(?:nba|nfl|fifa|league|playoffs|tournament|scores)\b"),
    "dating": re.compile(r"\b(?:dating|singles|hookup)\b"),
    "games": re.compile(r"\b(?:casino|slots|poker|betting|jackpot)\b"),
}


@dataclass(frozen=True)
class RelevanceConfig:
    """Weights of the per-result score."""

    phrase_bonus: float = 0.1
    max_phrase_bonus: float = 0.2
    off_topic_penalty: float = 0.15
    max_off_topic_penalty: float = 0.3


def _normalize(text: str) -> str:
    return _NON_WORD_RE.sub(" ", text.lower()).strip()


def query_phrases(query: str) -> list[str]:
    """Contiguous 2 and 3 word phrases of the query that contain a content word."""

    words = [_normalize(w) for w in tokenize(query)]
    words = [w for w in words if w]
    phrases: list[str] = []
    for size in (2, 3):
        for start in range(len(words) - size + 1):
            window = words[start : start + size]
            if all(w in QUERY_STOP_WORDS for w in window):
                continue
            phrase = " ".join(window)
            if phrase not in phrases:
                phrases.append(phrase)
    return phrases


def off_topic_categories(text: str) -> set[str]:
    lowered = text.lower()
    return {name for name, pattern in OFF_TOPIC_CATEGORIES.items() if pattern.search(lowered)}


def score_result(
    query: str,
    result: SearchResult,
    config: RelevanceConfig | None = None,
    *,
    content_words: Sequence[str] | None = None,
) -> float:
    """Score one result against ``query``; always in [0, 1]."""

    config = config or RelevanceConfig()
    words = list(content_words) if content_words is not None else extract_content_words(query)
    if not words:
        return 1.0

    haystack = f"{result.title} {result.description} {result.url}".lower()
    coverage = sum(1 for word in words if word in haystack) / len(words)

    normalized = f" {_normalize(haystack)} "
    phrase_hits = sum(1 for phrase in query_phrases(query) if f" {phrase} " in normalized)
    bonus = min(phrase_hits * config.phrase_bonus, config.max_phrase_bonus)

    unrelated = off_topic_categories(haystack) - off_topic_categories(query)
    penalty = min(len(unrelated) * config.off_topic_penalty, config.max_off_topic_penalty)

    return max(0.0, min(1.0, coverage + bonus - penalty))


def score_results(
    query: str,
    results: Sequence[SearchResult],
    config: RelevanceConfig | None = None,
) -> float:
    """Average per-result score of a result set.

    An empty set scores ``0.0``; a query without content words scores ``1.0`` since there is
    nothing to measure against.
    """

    if not results:
        return 0.0
    words = extract_content_words(query)
    if not words:
        return 1.0
    scores = [score_result(query, r, config, content_words=words) for r in results]
    return sum(scores) / len(scores)
