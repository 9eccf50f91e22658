"""
Translation Cache - content-addressed store of finished translations.

Keys are SHA-256 digests of (model, normalized source text), so identical
requests always collide regardless of call order. The store is bounded two
ways:
- max_entries: least-recently-used entries are evicted once exceeded
- ttl_seconds: entries older than the TTL are treated as absent on lookup
  and purged lazily

The cache never raises. Absence is None, and persistence failures are
logged and otherwise ignored so a broken disk never breaks translation.

Example:
- User translates "hello" with claude-haiku -> network call, entry stored
- User translates "hello" again -> served from cache, no network call, $0
"""

import hashlib
import logging
import os
import threading
import time
from collections import OrderedDict
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import ValidationError

from popup_translator.config.settings import settings
from popup_translator.schemas.cache import CacheEntry, CacheSnapshot, CacheStats
from popup_translator.services.metrics import cache_lookups
from popup_translator.services.text_processing import normalize_text, create_safe_preview

logger = logging.getLogger(__name__)


def make_cache_key(text: str, model: str) -> str:
    """
    Generate the cache key for a translation request.

    Args:
        text: Source text (normalized here)
        model: Target model identifier

    Returns:
        64-character hex SHA-256 digest
    """
    key_str = f"{model}\x00{normalize_text(text)}"
    return hashlib.sha256(key_str.encode("utf-8")).hexdigest()


class TranslationCache:
    """LRU + TTL cache for translations, persisted as JSON on every write."""

    def __init__(
        self,
        max_entries: int = 100,
        ttl_seconds: float = 30 * 24 * 60 * 60,
        path: Optional[Path] = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the translation cache.

        Args:
            max_entries: Maximum number of cached translations
            ttl_seconds: Maximum entry age before it is treated as absent
            path: JSON file to load from and persist to (None = memory only)
            enabled: Initial enabled state
            clock: Source of Unix timestamps (injectable for tests)
        """
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()  # LRU order, oldest first
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._path = Path(path) if path is not None else None
        self._enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._io_lock = threading.Lock()  # Serializes file writes; taken before _lock
        self._hits = 0
        self._misses = 0

        self._load()

    # ------------------------------------------------------------------
    # Lookup / insert
    # ------------------------------------------------------------------

    def lookup(self, text: str, model: str) -> Optional[CacheEntry]:
        """
        Retrieve a cached translation.

        Expired entries are purged here, not only at insertion time.
        A hit refreshes the entry's recency.

        Returns:
            The CacheEntry, or None if absent, expired or caching is disabled
        """
        if not self._enabled:
            return None

        key = make_cache_key(text, model)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_expired(entry):
                del self._entries[key]
                logger.debug(f"[TranslationCache] Expired entry purged: {key[:16]}")
                entry = None

            if entry is None:
                self._misses += 1
                cache_lookups.labels(result="miss").inc()
                logger.debug(f"[TranslationCache] MISS for key {key[:16]} (model: {model})")
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            cache_lookups.labels(result="hit").inc()
            logger.debug(f"[TranslationCache] HIT for key {key[:16]} ('{entry.source_preview}', model: {model})")
            return entry

    def insert(self, text: str, model: str, translated_text: str) -> None:
        """
        Store a finished translation, overwriting any entry with the same key.

        Enforces the entry bound afterwards by evicting least-recently-used
        entries (ties broken by insertion order, oldest first).
        """
        if not self._enabled:
            return

        key = make_cache_key(text, model)
        entry = CacheEntry(
            key=key,
            translated_text=translated_text,
            source_preview=create_safe_preview(normalize_text(text)),
            model=model,
            created_at=self._clock(),
        )

        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            self._purge_expired()
            while len(self._entries) > self._max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug(f"[TranslationCache] Evicted LRU entry: {evicted_key[:16]}")
        self._persist()

        logger.debug(f"[TranslationCache] PUT for key {key[:16]} ({len(translated_text)} chars)")

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Clear all cached entries and statistics."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        self._persist()
        logger.info("[TranslationCache] Cache cleared")

    def set_enabled(self, enabled: bool) -> None:
        """
        Enable or disable caching.

        Disabling keeps existing entries so re-enabling restores them.
        """
        self._enabled = enabled
        logger.info(f"[TranslationCache] Cache {'enabled' if enabled else 'disabled'}")

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def entry_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.entry_count

    def entries(self) -> List[CacheEntry]:
        """Snapshot of entries, least- to most-recently used."""
        with self._lock:
            return list(self._entries.values())

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entry_count=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                enabled=self._enabled,
            )

    # ------------------------------------------------------------------
    # Internals (_is_expired and _purge_expired: callers hold self._lock)
    # ------------------------------------------------------------------

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at > self._ttl

    def _purge_expired(self) -> None:
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"[TranslationCache] Purged {len(expired)} expired entries")

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            snapshot = CacheSnapshot.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.error(f"[TranslationCache] Error reading cache file {self._path}: {e}")
            return

        for entry in snapshot.entries:
            self._entries.pop(entry.key, None)
            self._entries[entry.key] = entry
        self._purge_expired()
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
        logger.info(f"[TranslationCache] Loaded {len(self._entries)} entries from {self._path}")

    def _persist(self) -> None:
        """Write the current entries to disk. Lookups are not blocked while the file is written."""
        if self._path is None:
            return
        with self._io_lock:
            with self._lock:
                snapshot = CacheSnapshot(entries=list(self._entries.values()))
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
                os.replace(tmp_path, self._path)
            except OSError as e:
                logger.error(f"[TranslationCache] Error writing cache file {self._path}: {e}")


_translation_cache: Optional[TranslationCache] = None


def get_translation_cache() -> TranslationCache:
    """Get the process-wide translation cache, created from settings on first use."""
    global _translation_cache
    if _translation_cache is None:
        _translation_cache = TranslationCache(
            max_entries=settings.CACHE_MAX_ENTRIES,
            ttl_seconds=settings.CACHE_TTL_SEC,
            path=settings.cache_path,
            enabled=settings.CACHE_ENABLED,
        )
    return _translation_cache
