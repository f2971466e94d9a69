"""Text and URL helpers shared by the parsers, the scorer and the extractor.

Everything here is a pure function.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from urllib.parse import urlsplit

NO_DESCRIPTION = "No description available"

_WHITESPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[a-z0-9][a-z0-9'+#.-]*")

STOP_WORDS: frozenset[str] = frozenset(
    """
    a about above after again against all am an and any are as at be because been before
    being below between both but by can could did do does doing down during each few for
    from further had has have having he her here hers herself him himself his how i if in
    into is it its itself just me more most my myself no nor not now of off on once only or
    other our ours ourselves out over own same she should so some such than that the their
    theirs them themselves then there these they this those through to too under until up
    very was we were what when where which while who whom why will with would you your
    yours yourself yourselves
    """.split()
)

# Smaller list used for query content words; keeps words such as "how" or "not"
# out of the list because they often carry intent in a search query.
QUERY_STOP_WORDS: frozenset[str] = frozenset(
    """
    a an and are as at be by for from in into is it of on or the this that to was were
    with what which who
    """.split()
)

_BOILERPLATE_PHRASES_RE = re.compile(
    r"\b(?:click to enlarge|click for full size|view larger|download image|"
    r"all rights reserved|accept (?:all )?cookies|skip to (?:main )?content|"
    r"advertisement|sponsored content)\b",
    re.IGNORECASE,
)


def sanitize_query(query: str, max_length: int = 1000) -> str:
    """Trim a query and bound its length."""

    return query.strip()[:max_length].strip()


def clean_text(text: str, max_length: int | None = 0) -> str:
    """Collapse whitespace, trim and optionally truncate.

    ``max_length`` of ``0`` or ``None`` disables truncation. The function is idempotent.
    """

    cleaned = _WHITESPACE_RE.sub(" ", text).strip()
    if max_length and len(cleaned) > max_length:
        cleaned = cleaned[:max_length].rstrip()
    return cleaned


def get_word_count(text: str) -> int:
    return len(text.split())


def get_content_preview(text: str, max_length: int = 500) -> str:
    """Return a bounded prefix of ``text``, marking a cut with ``...``."""

    cleaned = clean_text(text)
    if len(cleaned) <= max_length:
        return cleaned
    return cleaned[:max_length].rstrip() + "..."


def generate_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def validate_url(url: str | None) -> bool:
    """Return True for absolute http/https URLs with a host."""

    if not url or any(ch.isspace() for ch in url.strip()):
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def host_of(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def is_pdf_url(url: str) -> bool:
    try:
        path = urlsplit(url).path
    except ValueError:
        # fall back to the raw string
        return url.lower().endswith(".pdf")
    return path.lower().endswith(".pdf")


def remove_stop_words(text: str) -> str:
    """Drop common English function words, keeping the original word order."""

    kept = [
        word
        for word in text.split()
        if word.lower().strip(".,;:!?\"'()[]") not in STOP_WORDS
    ]
    return " ".join(kept)


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens."""

    return _WORD_RE.findall(text.lower())


def extract_content_words(query: str) -> list[str]:
    """Query words minus the query stop list, de-duplicated in first-seen order."""

    seen: dict[str, None] = {}
    for word in tokenize(query):
        word = word.rstrip(".-")
        if len(word) < 2 or word in QUERY_STOP_WORDS:
            continue
        seen.setdefault(word, None)
    return list(seen)


def strip_boilerplate_phrases(text: str) -> str:
    """Remove residual boilerplate phrases until nothing more matches."""

    current = clean_text(text)
    while True:
        stripped = clean_text(_BOILERPLATE_PHRASES_RE.sub(" ", current))
        if stripped == current:
            return stripped
        current = stripped
