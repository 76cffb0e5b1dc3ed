"""Unit tests for kiosk_lite.textutil summary cleanup."""

import pytest

from kiosk_lite.textutil import clean_summary, normalize_text, strip_html

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestNormalizeText:
    def test_normalize_text_when_mixed_case_and_punctuation_then_simplified(self) -> None:
        assert normalize_text("  Breaking News: It's   HERE! ") == "breaking news its here"

    def test_normalize_text_when_empty_then_empty(self) -> None:
        assert normalize_text("") == ""


class TestStripHTML:
    def test_strip_html_when_inline_tags_then_removed(self) -> None:
        assert strip_html("<p><b>Bold</b> summary</p>") == "Bold summary"

    def test_strip_html_when_block_tags_then_words_do_not_merge(self) -> None:
        assert strip_html("<div>one</div><div>two</div><br/>three") == "one two three"

    def test_strip_html_when_nbsp_then_space(self) -> None:
        assert strip_html("a&nbsp;b\xa0c") == "a b c"

    def test_strip_html_when_uppercase_block_tags_then_replaced(self) -> None:
        assert strip_html("<LI>first</LI><LI>second</LI>") == "first second"


class TestCleanSummary:
    def test_clean_summary_when_no_overlap_then_unchanged(self) -> None:
        summary = "Completely different text."

        assert clean_summary(summary, "No Overlap") == summary

    def test_clean_summary_when_summary_repeats_title_then_title_removed(self) -> None:
        title = "Breaking News: Something happened."
        summary = "Breaking News: Something happened. More details here."

        assert clean_summary(summary, title) == "More details here."

    def test_clean_summary_when_punctuation_differs_then_fuzzy_match_removed(self) -> None:
        title = "Update: Market rallies"
        summary = "Update - Market rallies. More details."

        assert clean_summary(summary, title) == "More details."

    def test_clean_summary_when_html_then_stripped(self) -> None:
        assert clean_summary("<p><b>Bold</b> summary</p>", "Title") == "Bold summary"

    def test_clean_summary_when_summary_equals_title_then_empty(self) -> None:
        assert clean_summary("Same text", "Same text") == ""

    def test_clean_summary_when_empty_summary_then_empty(self) -> None:
        assert clean_summary("", "Anything") == ""

    def test_clean_summary_when_leading_punctuation_then_trimmed(self) -> None:
        assert clean_summary(" — : details", "") == "details"
