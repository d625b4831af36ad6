"""
Unit tests for input sanitization.
"""

import pytest

from app.core.sanitize import sanitize, sanitize_text


class TestSanitizeText:
    """Tests for single string sanitization."""

    def test_removes_script_block_with_content(self):
        assert sanitize_text("<script>alert('x')</script>Hello") == "Hello"

    def test_script_block_is_case_insensitive(self):
        assert sanitize_text("a<SCRIPT type='text/javascript'>evil()</SCRIPT>b") == "ab"

    def test_strips_tags_keeps_text(self):
        assert sanitize_text("<b>bold</b> text") == "bold text"

    def test_strips_attributes_and_handlers(self):
        assert sanitize_text('<img src=x onerror="alert(1)">Name') == "Name"

    def test_trims_whitespace(self):
        assert sanitize_text("   padded value  ") == "padded value"

    def test_decodes_entities(self):
        assert sanitize_text("Tom &amp; Jerry") == "Tom & Jerry"

    def test_entity_encoded_script_is_removed(self):
        assert sanitize_text("&lt;script&gt;alert(1)&lt;/script&gt;safe") == "safe"

    def test_plain_comparison_text_survives(self):
        assert sanitize_text("5 < 6") == "5 < 6"

    def test_plain_text_unchanged(self):
        assert sanitize_text("Computer Science") == "Computer Science"


class TestSanitize:
    """Tests for recursive payload sanitization."""

    def test_walks_nested_structures(self):
        payload = {
            "personalInfo": {"fatherName": " <i>Ram</i> "},
            "tags": ["<b>a</b>", 3, None],
        }
        assert sanitize(payload) == {
            "personalInfo": {"fatherName": "Ram"},
            "tags": ["a", 3, None],
        }

    @pytest.mark.parametrize("value", [5, 7.5, True, False, None])
    def test_non_strings_untouched(self, value):
        assert sanitize(value) is value

    def test_keys_are_not_rewritten(self):
        assert sanitize({"<b>key</b>": "v"}) == {"<b>key</b>": "v"}

    @pytest.mark.parametrize(
        "value",
        [
            "<script>x</script><b>y</b>",
            "&lt;b&gt;bold&lt;/b&gt;",
            "&amp;lt;script&amp;gt;alert(1)&amp;lt;/script&amp;gt;",
            "<scr<script>x</script>ipt>alert(1)</script>",
            "&" + "amp;" * 20 + "lt;b&gt;x",
            "  spaced  ",
            {"a": ["<p>para</p>", {"b": "&lt;i&gt;"}]},
        ],
    )
    def test_idempotent(self, value):
        once = sanitize(value)
        assert sanitize(once) == once

    def test_deeply_encoded_markup_settles(self):
        value = "&" + "amp;" * 20 + "lt;b&gt;x"
        assert sanitize_text(value) == "x"
