"""Search engine result-page parsers.

Every parser is a pure function ``(html, max_results) -> list[SearchResult]``. The selector
tables live in :mod:`webharvest.search.selectors`; this module only knows how to walk them and
how to turn each engine's tracking links back into the real destination.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable, Iterable
from urllib.parse import parse_qs, urljoin, urlsplit

from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from webharvest.logging import get_logger
from webharvest.models.search import SearchResult
from webharvest.search import selectors as sel
from webharvest.utils.text import NO_DESCRIPTION, clean_text, generate_timestamp, host_of, validate_url

logger = get_logger(__name__)

UrlCleaner = Callable[[str], str]

_CHALLENGE_MARKERS = (
    "unusual traffic",
    "captcha",
    "enablejs",
    "are you a robot",
    "verify you are human",
    "anomaly-modal",
    "please click here if you are not redirected",
)


def looks_like_bot_challenge(html: str) -> bool:
    """Return True when a result page looks like an anti-bot interstitial."""

    lowered = html.lower()
    return any(marker in lowered for marker in _CHALLENGE_MARKERS)


def _absolutize(url: str, base: str) -> str:
    url = url.strip()
    if url.startswith("//"):
        return "https:" + url
    if url.startswith("/") or url.startswith("?"):
        return urljoin(base, url)
    return url


def _is_host(url: str, domain: str) -> bool:
    host = host_of(url)
    return host == domain or host.endswith("." + domain)


def clean_bing_url(url: str) -> str:
    """Unwrap Bing ``/ck/a`` click-tracking links.

    The destination sits in the ``u`` parameter as ``a1`` + unpadded base64url. Links that stay
    on bing.com (related searches, internal pages) come back as ``""``.
    """

    url = _absolutize(url, "https://www.bing.com")
    if not _is_host(url, "bing.com"):
        return url

    parts = urlsplit(url)
    if parts.path.startswith("/ck/a"):
        encoded = parse_qs(parts.query).get("u", [""])[0]
        if encoded.startswith("a1"):
            encoded = encoded[2:]
        try:
            decoded = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)).decode("utf-8")
        except (binascii.Error, ValueError, UnicodeDecodeError):
            logger.debug("Failed to decode Bing redirect url: %s", url)
            return ""
        decoded = _absolutize(decoded, "https://www.bing.com")
        if validate_url(decoded) and not _is_host(decoded, "bing.com"):
            return decoded
    return ""


def clean_duckduckgo_url(url: str) -> str:
    """Unwrap DuckDuckGo ``/l/?uddg=`` redirects; ad (``/y.js``) and internal links become ``""``."""

    url = _absolutize(url, "https://duckduckgo.com")
    if not _is_host(url, "duckduckgo.com"):
        return url

    parts = urlsplit(url)
    if parts.path.startswith("/l/"):
        # parse_qs percent-decodes the destination
        target = parse_qs(parts.query).get("uddg", [""])[0]
        if target:
            return _absolutize(target, "https://duckduckgo.com")
    return ""


def clean_brave_url(url: str) -> str:
    """Brave links point straight at the destination; drop links back into Brave itself."""

    url = _absolutize(url, "https://search.brave.com")
    if _is_host(url, "search.brave.com"):
        return ""
    return url


def _first_match(block: Tag, candidates: Iterable[str]) -> Tag | None:
    for css in candidates:
        found = block.select_one(css)
        if found is not None and found.get_text(strip=True):
            return found
    return None


def _element_text(element: Tag) -> str:
    return clean_text(element.get_text(" ", strip=True))


def _resolve_href(title_el: Tag, block: Tag | None) -> str:
    if title_el.name == "a" and title_el.get("href"):
        return str(title_el["href"])
    inner = title_el.select_one("a[href]")
    if inner is not None:
        return str(inner["href"])
    parent = title_el.find_parent("a", href=True)
    if parent is not None:
        return str(parent["href"])
    if block is not None:
        any_link = block.select_one("a[href]")
        if any_link is not None:
            return str(any_link["href"])
    return ""


def _build_result(title: str, href: str, snippet: str, clean_url: UrlCleaner, timestamp: str) -> SearchResult | None:
    if not title or not href:
        return None
    url = clean_url(href)
    if not validate_url(url):
        return None
    try:
        return SearchResult(title=title, url=url, description=snippet or NO_DESCRIPTION, timestamp=timestamp)
    except ValidationError:
        return None


def _collect(
    blocks: list[Tag],
    max_results: int,
    engine: sel.EngineSelectors,
    clean_url: UrlCleaner,
    timestamp: str,
) -> list[SearchResult]:
    results: list[SearchResult] = []
    seen: set[str] = set()
    for block in blocks:
        if len(results) >= max_results:
            break
        title_el = _first_match(block, engine.titles)
        if title_el is None:
            continue
        title = _element_text(title_el)
        snippet_el = _first_match(block, engine.snippets)
        snippet = _element_text(snippet_el) if snippet_el is not None else ""
        if snippet == title:
            snippet = ""
        result = _build_result(title, _resolve_href(title_el, block), snippet, clean_url, timestamp)
        if result is None or result.url in seen:
            continue
        seen.add(result.url)
        results.append(result)
    return results


def _collect_loose(
    soup: BeautifulSoup,
    max_results: int,
    engine: sel.EngineSelectors,
    clean_url: UrlCleaner,
    timestamp: str,
) -> list[SearchResult]:
    results: list[SearchResult] = []
    seen: set[str] = set()
    for css in engine.loose_titles:
        for heading in soup.select(css):
            if len(results) >= max_results:
                return results
            link = heading.find_parent("a", href=True) or heading.select_one("a[href]")
            if link is None:
                continue
            result = _build_result(_element_text(heading), str(link["href"]), "", clean_url, timestamp)
            if result is None or result.url in seen:
                continue
            seen.add(result.url)
            results.append(result)
    return results


def parse_results(
    html: str,
    max_results: int,
    engine: sel.EngineSelectors,
    clean_url: UrlCleaner,
    *,
    engine_name: str = "",
) -> list[SearchResult]:
    """Parse a result page using ``engine``'s selector chains.

    Container selectors are tried in order and the first one that yields at least one valid
    result wins. Records whose URL is not http(s) after cleaning are dropped.
    """

    if max_results <= 0 or not html:
        return []

    soup = BeautifulSoup(html, "lxml")
    timestamp = generate_timestamp()

    for css in engine.containers:
        blocks = soup.select(css)
        if not blocks:
            continue
        results = _collect(blocks, max_results, engine, clean_url, timestamp)
        if results:
            logger.debug(
                "Parsed results",
                extra={"engine": engine_name, "selector": css, "blocks": len(blocks), "results": len(results)},
            )
            return results

    results = _collect_loose(soup, max_results, engine, clean_url, timestamp)
    logger.debug("Loose heading scan", extra={"engine": engine_name, "results": len(results)})
    return results


def parse_bing(html: str, max_results: int) -> list[SearchResult]:
    return parse_results(html, max_results, sel.BING, clean_bing_url, engine_name="bing")


def parse_brave(html: str, max_results: int) -> list[SearchResult]:
    return parse_results(html, max_results, sel.BRAVE, clean_brave_url, engine_name="brave")


def parse_duckduckgo(html: str, max_results: int) -> list[SearchResult]:
    return parse_results(html, max_results, sel.DUCKDUCKGO, clean_duckduckgo_url, engine_name="duckduckgo")
