"""
Unit tests for text processing: clean_text, strip_quoted_reply and clean_email_body.
"""

from inquiro.services.text_processing import clean_email_body, clean_text, strip_quoted_reply


class TestCleanText:
    """Tests for clean_text()."""

    def test_empty_returns_empty(self) -> None:
        assert clean_text("") == ""
        assert clean_text("   ") == ""
        assert clean_text("\n\n") == ""

    def test_strips_outer_whitespace(self) -> None:
        assert clean_text("  hello  ") == "hello"
        assert clean_text("\n  hello  \n") == "hello"

    def test_normalizes_inner_lines_and_dedupes(self) -> None:
        # Consecutive duplicate lines become one; blank lines preserved between paragraphs
        assert clean_text("  hello   \n\n  world  ") == "hello\n\nworld"
        assert clean_text("line1\n  line1  \nline2") == "line1\nline2"

    def test_collapses_blank_runs(self) -> None:
        assert clean_text("First para.\n\n\n\nSecond para.") == "First para.\n\nSecond para."

    def test_nfkc_normalization(self) -> None:
        # Fullwidth letters fold to ASCII
        assert clean_text("Ｈｉ") == "Hi"


class TestStripQuotedReply:
    """Tests for strip_quoted_reply()."""

    def test_empty(self) -> None:
        assert strip_quoted_reply("") == ""

    def test_drops_quoted_lines_and_reply_header(self) -> None:
        text = "Sounds good.\n\nOn Tue, Mar 5, 2024 at 9:00 AM Jane <jane@example.com> wrote:\n> Can we meet?\n  > Earlier"
        assert strip_quoted_reply(text) == "Sounds good.\n"

    def test_keeps_plain_text(self) -> None:
        text = "No quotes here.\nThe rate is > 5% though."
        assert strip_quoted_reply(text) == text


def test_clean_email_body() -> None:
    text = "  Thanks!  \n\n\n> old message\n> more\n\nBest,\nSam  "
    assert clean_email_body(text) == "Thanks!\n\nBest,\nSam"
