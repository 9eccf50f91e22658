"""
Translation Cache Schemas

Pydantic models for cached translations and their on-disk snapshot.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from popup_translator.config.constants import CACHE_FILE_VERSION


class CacheEntry(BaseModel):
    """
    One cached translation.

    The source text itself is never stored: `key` is a SHA-256 digest of the
    normalized source and model, `source_preview` a truncated, masked excerpt.
    """
    model_config = ConfigDict(frozen=True)

    key: str
    translated_text: str
    source_preview: str
    model: str
    created_at: float


class CacheSnapshot(BaseModel):
    """Persisted cache file. Entries are ordered least- to most-recently used."""
    version: int = CACHE_FILE_VERSION
    entries: List[CacheEntry] = Field(default_factory=list)


class CacheStats(BaseModel):
    entry_count: int = 0
    hits: int = 0
    misses: int = 0
    enabled: bool = True
