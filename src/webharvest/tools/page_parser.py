"""Page parsing utilities.

Turns raw page markup into the main textual content: strip non-content elements, pick the
longest content block, fall back to paragraphs and finally to the page's whole text.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag
from readability import Document

from webharvest.logging import get_logger
from webharvest.utils.text import clean_text, strip_boilerplate_phrases

logger = get_logger(__name__)

STRIP_TAGS = (
    "script, style, noscript, template, iframe, img, picture, source, video, audio, canvas, svg, "
    "object, embed, applet, form, input, textarea, select, button, label, fieldset, legend, "
    "optgroup, option, figure, figcaption"
)
STRUCTURAL_TAGS = "nav, header, footer, aside"

CONTENT_SELECTORS = (
    "article",
    "main",
    '[role="main"]',
    ".post-content",
    ".entry-content",
    ".article-content",
    ".story-content",
    ".news-content",
    ".main-content",
    ".page-content",
    ".content",
    ".text-content",
    ".body-content",
    ".copy",
    ".text",
)

# Whole class/id tokens that mark non-content blocks.
DENY_TOKENS = frozenset(
    """
    ad ads adsbygoogle advert advertisement affiliate analytics banner beacon breadcrumb
    breadcrumbs carousel comment-section comments cookie-banner cookie-notice footer gallery
    header menu modal navigation navbar newsletter newsletter-signup overlay pagination photo
    pixel popup promo recommendations related-posts ribbon share-buttons sidebar slideshow
    social-share sponsored toolbar tooltip tracking
    """.split()
)
# Fragments matched inside a token, so "top-ad-slot" or "sponsored-links" are caught too.
DENY_TOKEN_PARTS = frozenset({"ad", "ads", "advert", "sponsor", "sponsored", "popup", "promo"})
DENY_SUBSTRINGS = ("advertisement", "newsletter", "social-share", "share-button", "cookie-consent")

PROTECTED_TAGS = frozenset({"html", "body", "main", "article"})

_TOKEN_SPLIT_RE = re.compile(r"[-_]")
_PARAGRAPH_BOILERPLATE_RE = re.compile(r"^(?:copyright|©|privacy|terms|cookie|disclaimer)", re.IGNORECASE)
_BASE64_IMAGE_RE = re.compile(r"data:image/[^;\s]+;base64,[A-Za-z0-9+/=]+")
_IMAGE_URL_RE = re.compile(r"https?://\S+?\.(?:jpe?g|png|gif|webp|svg|ico|bmp|tiff)(?:\?\S*)?(?=\s|$)", re.IGNORECASE)

LOW_QUALITY_MIN_CHARS = 100
CHALLENGE_MARKERS = (
    "please enable javascript",
    "captcha",
    "unusual traffic",
    "access denied",
    "403 forbidden",
    "are you a robot",
    "verify you are human",
    "checking your browser",
)


def _attr_tokens(tag: Tag) -> list[str]:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    tokens = [c.lower() for c in classes]
    tag_id = tag.get("id")
    if isinstance(tag_id, str) and tag_id:
        tokens.append(tag_id.lower())
    return tokens


def _is_denied(tag: Tag) -> bool:
    if tag.name in PROTECTED_TAGS or (tag.get("role") or "").lower() == "main":
        return False
    for token in _attr_tokens(tag):
        if token in DENY_TOKENS or any(s in token for s in DENY_SUBSTRINGS):
            return True
        if any(part in DENY_TOKEN_PARTS for part in _TOKEN_SPLIT_RE.split(token)):
            return True
    style = (tag.get("style") or "").lower()
    return "background-image" in style


def _remove(tags: list[Tag]) -> None:
    for tag in tags:
        if not tag.decomposed:
            tag.decompose()


def _strip_fragments(text: str) -> str:
    text = _BASE64_IMAGE_RE.sub(" ", text)
    text = _IMAGE_URL_RE.sub(" ", text)
    return strip_boilerplate_phrases(text)


def clean_content(text: str, max_length: int | None = 0) -> str:
    """Text-level cleanup applied to the selected content; idempotent.

    A truncation cut can complete an image URL or a boilerplate phrase at the new end of the
    text, so stripping and truncating repeat until the text stops changing. Each round only
    shortens the text.
    """

    previous = None
    while text != previous:
        previous = text
        text = clean_text(_strip_fragments(text), max_length)
    return text


class PageParser:
    """Parse fetched HTML pages into cleaned text."""

    def __init__(self, *, min_content_chars: int = 200, min_paragraph_chars: int = 50) -> None:
        self.min_content_chars = min_content_chars
        self.min_paragraph_chars = min_paragraph_chars

    def extract_text(self, html: str, max_length: int | None = 0) -> str:
        """Main textual content of ``html``.

        Args:
            html: Raw page markup.
            max_length: Truncation limit; ``0``/``None`` keeps everything.
        """

        soup = BeautifulSoup(html, "lxml")
        _remove(soup.select(STRIP_TAGS))
        _remove(soup.select(STRUCTURAL_TAGS))
        _remove([tag for tag in soup.find_all(True) if _is_denied(tag)])

        text = self._select_main_content(soup)
        return clean_content(text, max_length)

    def _select_main_content(self, soup: BeautifulSoup) -> str:
        best = ""
        for selector in CONTENT_SELECTORS:
            for element in soup.select(selector):
                text = clean_text(element.get_text(" ", strip=True))
                if len(text) > self.min_content_chars and len(text) > len(best):
                    best = text
        if best:
            return best

        paragraphs = []
        for p in soup.find_all("p"):
            text = clean_text(p.get_text(" ", strip=True))
            if len(text) > self.min_paragraph_chars and not _PARAGRAPH_BOILERPLATE_RE.match(text):
                paragraphs.append(text)
        if paragraphs:
            logger.debug("No content block found, using paragraphs", extra={"paragraphs": len(paragraphs)})
            return "\n\n".join(paragraphs)

        root = soup.body or soup
        return root.get_text(" ", strip=True)

    def extract_title(self, html: str) -> str:
        try:
            title = Document(html).short_title()
        except Exception as e:
            logger.debug("Readability failed to extract title: %s", e)
            soup = BeautifulSoup(html, "lxml")
            title = soup.title.get_text(strip=True) if soup.title else ""
        return clean_text(title or "")

    @staticmethod
    def is_low_quality(text: str) -> bool:
        """True for implausibly short text or text that reads like a bot challenge."""

        stripped = text.strip()
        if len(stripped) < LOW_QUALITY_MIN_CHARS:
            return True
        lowered = stripped.lower()
        return any(marker in lowered for marker in CHALLENGE_MARKERS)
