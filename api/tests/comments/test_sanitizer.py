"""Tests for comment content sanitization."""

import pytest

from lawcomments.comments.sanitizer import sanitize_content


class TestSanitizeContent:
    """Tests for sanitize_content."""

    @pytest.mark.parametrize(
        "text",
        [
            "טקסט תקין",
            "סעיף 3(א) צריך להתייחס גם לתושבי חוץ.",
            "Plain English, with punctuation: yes!",
            "שורה ראשונה\n\nשורה שנייה",
            "5 > 3 and 2 < 4",
            "option=2 and one=1",
            "if x<y then stop",
            "the javascript: prefix",
            "style=\"plain\" in prose",
        ],
    )
    def test_safe_text_is_unchanged(self, text: str):
        assert sanitize_content(text) == text

    def test_script_block_is_removed(self):
        assert sanitize_content("שלום<script>alert('x')</script> עולם") == "שלום עולם"

    def test_tags_are_stripped_and_text_kept(self):
        assert sanitize_content("<p>הערה <b>חשובה</b></p>") == "הערה חשובה"

    def test_event_handlers_go_with_their_tag(self):
        result = sanitize_content('<a onclick="steal()">לחץ</a> כאן')

        assert result == "לחץ כאן"

    def test_dangerous_schemes_go_with_their_tag(self):
        result = sanitize_content('<a href="javascript:alert(1)">קישור</a>')

        assert result == "קישור"

    def test_attribute_with_unquoted_handler_is_removed(self):
        assert sanitize_content("<img src=x onerror=alert(1)> תמונה") == "תמונה"

    def test_unterminated_tag_opener_is_neutralized(self):
        assert "<" not in sanitize_content("הערה <img src=x onerror=alert(1)")

    def test_nested_vectors_do_not_reassemble(self):
        """Removing one vector must not leave another behind."""
        result = sanitize_content("<scr<script></script>ipt>alert(1)</script>")

        assert "<script" not in result.lower()

    def test_whitespace_is_normalized(self):
        result = sanitize_content("  הערה\t\tעם    רווחים\n\n\n\nושורות  ")

        assert result == "הערה עם רווחים\n\nושורות"

    def test_control_characters_are_removed(self):
        assert sanitize_content("הערה\x00\x07 נקייה") == "הערה נקייה"

    def test_entirely_unsafe_input_becomes_empty(self):
        assert sanitize_content("<script>alert(1)</script>") == ""

    @pytest.mark.parametrize("value", [None, 42, ["list"]])
    def test_non_string_input_never_raises(self, value):
        assert sanitize_content(value) == ""

    @pytest.mark.parametrize(
        "text",
        [
            "<b>bold</b>  text",
            "x <scr<script>ipt> y",
            "  onload=go() start",
            "javascript:javascript:alert(1)",
        ],
    )
    def test_idempotent(self, text: str):
        once = sanitize_content(text)
        assert sanitize_content(once) == once
