"""
Translation Cache Module

- TranslationCache: content-addressed LRU + TTL store of finished translations
- make_cache_key: SHA-256 key of (model, normalized text)

Usage:
    from popup_translator.services.cache import get_translation_cache
"""

from popup_translator.services.cache.translation_cache import (
    TranslationCache,
    make_cache_key,
    get_translation_cache,
)

__all__ = [
    "TranslationCache",
    "make_cache_key",
    "get_translation_cache",
]
