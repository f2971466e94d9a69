"""Tests for text and URL helpers."""

from __future__ import annotations

import pytest

from webharvest.utils.text import (
    clean_text,
    extract_content_words,
    generate_timestamp,
    get_content_preview,
    get_word_count,
    is_pdf_url,
    remove_stop_words,
    sanitize_query,
    strip_boilerplate_phrases,
    validate_url,
)


def test_clean_text_collapses_whitespace_and_trims() -> None:
    assert clean_text("  hello \n\n  world\t ") == "hello world"


def test_clean_text_is_idempotent() -> None:
    text = "  Some   text\nwith\t\tmixed    spacing and a trailing space  "
    once = clean_text(text, 20)
    assert clean_text(once, 20) == once
    assert clean_text(clean_text(text)) == clean_text(text)


@pytest.mark.parametrize("limit", [1, 5, 17, 100])
def test_clean_text_truncation_bound(limit: int) -> None:
    text = "word " * 50
    assert len(clean_text(text, limit)) <= limit


@pytest.mark.parametrize("limit", [0, None])
def test_clean_text_zero_or_none_means_unlimited(limit) -> None:
    text = "x" * 10_000
    assert clean_text(text, limit) == text


def test_sanitize_query_bounds_length() -> None:
    assert sanitize_query("  python  ") == "python"
    assert len(sanitize_query("a" * 5000, max_length=1000)) == 1000


def test_word_count_and_preview() -> None:
    assert get_word_count("one two  three") == 3
    assert get_content_preview("short text", 100) == "short text"
    preview = get_content_preview("abcdefghij" * 10, 20)
    assert preview.endswith("...")
    assert len(preview) == 23


def test_generate_timestamp_is_utc_iso() -> None:
    ts = generate_timestamp()
    assert ts.endswith("Z")
    assert "T" in ts


@pytest.mark.parametrize(
    "url, ok",
    [
        ("https://example.com/page", True),
        ("http://example.com", True),
        ("ftp://example.com/file", False),
        ("javascript:alert(1)", False),
        ("/relative/path", False),
        ("https://", False),
        ("https://exa mple.com", False),
        ("", False),
        (None, False),
    ],
)
def test_validate_url(url, ok) -> None:
    assert validate_url(url) is ok


def test_is_pdf_url() -> None:
    assert is_pdf_url("https://example.com/paper.pdf")
    assert is_pdf_url("https://example.com/paper.PDF?download=1")
    assert not is_pdf_url("https://example.com/pdf-guide")
    assert not is_pdf_url("https://example.com/page.html")


def test_remove_stop_words_keeps_order() -> None:
    assert remove_stop_words("The quick guide to the Python language") == "quick guide Python language"


def test_extract_content_words() -> None:
    assert extract_content_words("What is the best JavaScript tutorial?") == ["best", "javascript", "tutorial"]
    assert extract_content_words("the of and") == []
    assert extract_content_words("python python asyncio") == ["python", "asyncio"]


def test_strip_boilerplate_phrases_reaches_fixed_point() -> None:
    text = "Intro text. All rights reserved. Advertisement Body text continues."
    once = strip_boilerplate_phrases(text)
    assert "All rights reserved" not in once
    assert "Advertisement" not in once
    assert strip_boilerplate_phrases(once) == once
