"""CSS selector fallback chains for each search engine's result page.

Engines change class names without notice. Each field lists candidates in priority order; the
parsers take the first one that matches, so a single renamed class degrades one candidate
instead of the whole engine. Update these tables, not the parsing code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineSelectors:
    """Ordered candidate selectors per semantic field."""

    containers: tuple[str, ...]
    titles: tuple[str, ...]
    snippets: tuple[str, ...]
    # Headings scanned when no container selector produced a result.
    loose_titles: tuple[str, ...] = ("h2", "h3")


BING = EngineSelectors(
    containers=(
        "li.b_algo",
        "div.b_algo",
        "#b_results > li",
        "ol#b_results li",
    ),
    titles=(
        "h2 a",
        "h2",
        ".b_title a",
        "h3 a",
        "a.tilk",
    ),
    snippets=(
        ".b_caption p",
        ".b_lineclamp4",
        ".b_lineclamp3",
        ".b_lineclamp2",
        ".b_paractl",
        ".b_dList",
        "p",
    ),
)

BRAVE = EngineSelectors(
    containers=(
        'div.snippet[data-type="web"]',
        '[data-type="web"]',
        "div[data-pos]",
        ".result",
        ".fdb",
    ),
    titles=(
        "a .title",
        ".title a",
        "h2 a",
        ".result-title a",
        ".title",
        "a[data-testid]",
        "h3 a",
    ),
    snippets=(
        ".snippet-description",
        ".snippet-content",
        ".generic-snippet .content",
        ".description",
        ".snippet",
        "p",
    ),
)

DUCKDUCKGO = EngineSelectors(
    containers=(
        ".result.results_links",
        ".result",
        ".web-result",
        '[data-testid="result"]',
        ".results_links",
    ),
    titles=(
        ".result__title a",
        "a.result__a",
        'a[data-testid="result-title-a"]',
        "h2 a",
        "h3 a",
    ),
    snippets=(
        ".result__snippet",
        '[data-result="snippet"]',
        ".snippet",
    ),
)
