"""Text utilities for cache keying, privacy-safe previews and prompt sanitization."""

import re
import unicodedata

from popup_translator.config.constants import (
    SOURCE_PREVIEW_LENGTH,
    MASK_EMAIL,
    MASK_URL,
    MASK_NUMBER,
    MASK_MIN_DIGIT_RUN,
)

EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')
URL_PATTERN = re.compile(r'(?:https?://|www\.)[^\s]+', re.IGNORECASE)
# 6+ digits, allowing one '-', '.' or space between them (phone numbers, card numbers)
DIGIT_RUN_PATTERN = re.compile(rf'\d(?:[-. ]?\d){{{MASK_MIN_DIGIT_RUN - 1},}}')


def normalize_text(text: str) -> str:
    """
    Normalize text for consistent cache keying.

    Rules:
    - Unicode NFC composition (same glyphs hash the same)
    - CRLF/CR line endings become LF
    - Trim leading and trailing whitespace

    Internal whitespace is kept since paragraph breaks change the translation.
    """
    text = unicodedata.normalize("NFC", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.strip()


def mask_sensitive_patterns(text: str) -> str:
    """Mask emails, URLs and long digit runs."""
    text = EMAIL_PATTERN.sub(MASK_EMAIL, text)
    text = URL_PATTERN.sub(MASK_URL, text)
    text = DIGIT_RUN_PATTERN.sub(MASK_NUMBER, text)
    return text


def create_safe_preview(text: str) -> str:
    """
    Create a preview of the source text for cache storage.

    Sensitive patterns are masked first, then the result is truncated to
    SOURCE_PREVIEW_LENGTH and to at most half of the source, so the preview
    can never reproduce the full text.
    """
    masked = mask_sensitive_patterns(text)
    limit = min(SOURCE_PREVIEW_LENGTH, len(text) // 2)
    return masked[:limit]


def _is_allowed_char(c: str) -> bool:
    if c.isascii():
        return c.isprintable() or c.isspace()
    if c.isspace():
        return True
    code = ord(c)
    return (
        0x3040 <= code <= 0x309F      # Hiragana
        or 0x30A0 <= code <= 0x30FF   # Katakana
        or 0x4E00 <= code <= 0x9FAF   # CJK Unified Ideographs (Kanji)
        or 0x3000 <= code <= 0x303F   # CJK Punctuation
        or 0xFF00 <= code <= 0xFFEF   # Fullwidth forms
    )


def sanitize_input(text: str) -> str:
    """
    Keep only characters the translation prompt is meant to see.

    Emoji and decorative symbols confuse the model, so anything outside
    ASCII, whitespace and the Japanese scripts is dropped.
    """
    return "".join(c for c in text if _is_allowed_char(c))
