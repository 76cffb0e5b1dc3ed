"""Text cleanup for feed summaries shown on the dashboard."""

from __future__ import annotations

import re

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_PUNCT_RE = re.compile(r"^[\s,.\-–—:]+")
_BLOCK_TAG_RE = re.compile(r"</?(a|li|p|div|br|h[1-6])[^>]*>", re.IGNORECASE)
_ANY_TAG_RE = re.compile(r"<[^>]+>")


def normalize_text(text: str) -> str:
    """Lowercase, drop everything but ASCII letters/digits/whitespace, collapse spaces."""
    s = _NON_ALNUM_RE.sub("", text.lower())
    return _WHITESPACE_RE.sub(" ", s).strip()


def strip_html(html: str) -> str:
    """Remove markup from a summary.

    Block-level tags are replaced with a space so adjacent words don't merge,
    remaining tags are dropped, ``&nbsp;`` becomes a plain space and runs of
    whitespace collapse to one.
    """
    if not html:
        return ""

    s = _BLOCK_TAG_RE.sub(" ", html)
    s = _ANY_TAG_RE.sub("", s)
    s = s.replace("&nbsp;", " ").replace("\xa0", " ")
    return _WHITESPACE_RE.sub(" ", s).strip()


def _is_ascii_alnum(char: str) -> bool:
    return ("a" <= char <= "z") or ("0" <= char <= "9")


def _find_match_length(summary: str, title: str) -> int:
    """Length of the prefix of ``summary`` that spells out ``title``.

    Only ASCII letters and digits are compared; punctuation and spacing in
    the summary are skipped over, so "Breaking News - Foo" matches the title
    "Breaking News: Foo".
    """
    title_chars = normalize_text(title).replace(" ", "")
    if not title_chars:
        return 0

    matched = 0
    index = 0
    while index < len(summary) and matched < len(title_chars):
        char = summary[index].lower()
        if _is_ascii_alnum(char) and char == title_chars[matched]:
            matched += 1
        index += 1
    return index


def clean_summary(summary: str, title: str) -> str:
    """Strip HTML from ``summary`` and drop a leading copy of ``title``.

    Many feeds repeat the headline as the first sentence of the description.
    Returns an empty string when the summary is nothing but the title.
    """
    summary = strip_html(summary)
    if not summary:
        return ""

    if normalize_text(summary).startswith(normalize_text(title)):
        match_len = _find_match_length(summary, title)
        if match_len >= len(summary):
            return ""
        if match_len > 0:
            summary = summary[match_len:]

    return _LEADING_PUNCT_RE.sub("", summary).strip()
