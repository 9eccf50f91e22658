"""
Tests for masking, previews, normalization and prompt sanitization.
"""
import re

from popup_translator.services.text_processing import (
    create_safe_preview,
    mask_sensitive_patterns,
    normalize_text,
    sanitize_input,
)

EMAIL_RE = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')
DIGIT_RUN_RE = re.compile(r'\d{6,}')


class TestMasking:

    def test_email_masked(self):
        assert mask_sensitive_patterns("Contact: user@example.com") == "Contact: [EMAIL]"

    def test_url_masked(self):
        assert mask_sensitive_patterns("See https://example.com/path?q=1") == "See [URL]"

    def test_long_number_masked(self):
        assert mask_sensitive_patterns("Card: 1234567890") == "Card: [***]"

    def test_short_numbers_kept(self):
        assert mask_sensitive_patterns("Room 12345, code 42") == "Room 12345, code 42"

    def test_separated_phone_number_masked(self):
        assert mask_sensitive_patterns("call 555-123-4567 now") == "call [***] now"

    def test_combined(self):
        assert (
            mask_sensitive_patterns("Email user@test.com or call 090 1234 5678")
            == "Email [EMAIL] or call [***]"
        )


class TestPreview:

    def test_preview_has_no_sensitive_substrings(self):
        preview = create_safe_preview("contact me at a@b.com or 555-123-4567")

        assert not EMAIL_RE.search(preview)
        assert not DIGIT_RUN_RE.search(preview)

    def test_preview_truncated_to_fixed_length(self):
        assert len(create_safe_preview("a" * 100)) == 30

    def test_preview_never_equals_short_source(self):
        text = "hello"
        preview = create_safe_preview(text)

        assert preview != text
        assert text.startswith(preview)

    def test_masking_happens_before_truncation(self):
        # An address straddling the cut must not leak its first half
        text = "x" * 20 + " someone@example.com" + " filler" * 10
        assert "someone" not in create_safe_preview(text)


class TestNormalization:

    def test_strips_and_unifies_line_endings(self):
        assert normalize_text("  a\r\nb\rc  ") == "a\nb\nc"

    def test_keeps_internal_whitespace(self):
        assert normalize_text("a  b\n\nc") == "a  b\n\nc"

    def test_unicode_composition(self):
        decomposed = "\u30cf\u309a"  # ハ + combining handakuten
        assert normalize_text(decomposed) == "\u30d1"  # パ


class TestSanitizeInput:

    def test_english_unchanged(self):
        assert sanitize_input("Hello, World!") == "Hello, World!"

    def test_japanese_unchanged(self):
        assert sanitize_input("こんにちは、世界！") == "こんにちは、世界！"

    def test_removes_special_symbols(self):
        assert sanitize_input("Hello ✨ World 🌍") == "Hello  World "

    def test_preserves_code(self):
        code = "function foo() { return 42; }\n\tx = [1, 2];"
        assert sanitize_input(code) == code
