"""
Schemas Package

Pydantic models for persisted cache and error history records.
"""

from popup_translator.schemas.cache import CacheEntry, CacheSnapshot, CacheStats
from popup_translator.schemas.error_history import ErrorHistoryEntry, ErrorHistorySnapshot

__all__ = [
    "CacheEntry",
    "CacheSnapshot",
    "CacheStats",
    "ErrorHistoryEntry",
    "ErrorHistorySnapshot",
]
