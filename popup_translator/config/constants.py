"""
Application-wide constants for translation, caching and error handling.

This file centralizes the tuning values of the translation core.

Note: Environment-dependent settings (API key, paths, cache bounds) belong in settings.py.
This file is for operational parameters that rarely change between environments.
"""

# ==============================================================================
# MODELS & PRICING
# ==============================================================================

DEFAULT_MODEL: str = "claude-haiku-4-5-20251001"

# (model id, display name) offered to the settings surface
AVAILABLE_MODELS: tuple[tuple[str, str], ...] = (
    ("claude-haiku-4-5-20251001", "Claude Haiku 4.5 (Fast, Cheap)"),
    ("claude-sonnet-4-5-20250514", "Claude Sonnet 4.5 (Best Quality)"),
    ("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet"),
    ("claude-3-5-haiku-20241022", "Claude 3.5 Haiku"),
)

# USD per million tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "claude-haiku-4-5-20251001": (1.0, 5.0),
    "claude-sonnet-4-5-20250514": (3.0, 15.0),
    "claude-3-5-sonnet-20241022": (3.0, 15.0),
    "claude-3-5-haiku-20241022": (0.8, 4.0),
}

TOKENS_PER_PRICING_UNIT: int = 1_000_000

# ==============================================================================
# TRANSLATION REQUEST
# ==============================================================================

TRANSLATION_MAX_TOKENS: int = 4096

# Low creativity for faithful translations
TRANSLATION_TEMPERATURE: float = 0.3

TRANSLATION_SYSTEM_PROMPT: str = """You are a Japanese-English translator.

Detect the dominant language and translate to the other language (Japanese <-> English).

Output formatting:
- Use clear paragraph breaks for readability
- Preserve code blocks, URLs, and technical terms exactly as-is
- For lists, maintain bullet/number formatting

Only output the translation."""

# Only the first content block carries the translation
TRANSLATION_CONTENT_BLOCK_INDEX: int = 0

# Logical translation surface used when the caller does not name one
DEFAULT_SURFACE: str = "main"

# ==============================================================================
# TRANSLATION CACHE
# ==============================================================================

CACHE_FILENAME: str = "translation_cache.json"

CACHE_FILE_VERSION: int = 1

# Max characters kept from the source text in a cache preview
SOURCE_PREVIEW_LENGTH: int = 30

# Placeholders substituted into source previews
MASK_EMAIL: str = "[EMAIL]"
MASK_URL: str = "[URL]"
MASK_NUMBER: str = "[***]"

# Digits (optionally separated by single '-', '.' or ' ') counted as one run
MASK_MIN_DIGIT_RUN: int = 6

# ==============================================================================
# ERROR HANDLING & RETRY
# ==============================================================================

ERROR_HISTORY_FILENAME: str = "error_history.json"

# Keep only the most recent failures
MAX_ERROR_HISTORY: int = 50

# Default retry delays (seconds) per error kind when upstream gives no hint
RATE_LIMIT_DEFAULT_DELAY_SEC: float = 5.0
OVERLOADED_DELAY_SEC: float = 3.0
TIMEOUT_RETRY_DELAY_SEC: float = 1.0
NETWORK_RETRY_DELAY_SEC: float = 2.0
IMMEDIATE_RETRY_DELAY_SEC: float = 0.0

# Anthropic returns 529 when the API is overloaded
HTTP_STATUS_OVERLOADED: int = 529

# Caller-side retry defaults
RETRY_MAX_ATTEMPTS: int = 3
RETRY_BACKOFF_FACTOR: float = 2.0
RETRY_MAX_DELAY_SEC: float = 60.0

# Max characters of an upstream error body kept in messages
ERROR_BODY_SNIPPET_CHARS: int = 300
