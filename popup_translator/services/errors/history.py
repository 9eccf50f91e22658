"""
Error History - bounded, persisted log of translation failures.

Only the error kind, a display message, the input length and the model are
kept; the source text never leaves memory.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import ValidationError

from popup_translator.config.constants import MAX_ERROR_HISTORY
from popup_translator.config.settings import settings
from popup_translator.schemas.error_history import ErrorHistoryEntry, ErrorHistorySnapshot
from popup_translator.services.errors.classifier import ClassifiedError

logger = logging.getLogger(__name__)


class ErrorHistory:
    """Keeps the last `max_entries` failures, oldest first."""

    def __init__(
        self,
        path: Optional[Path] = None,
        max_entries: int = MAX_ERROR_HISTORY,
        clock: Callable[[], float] = time.time,
    ):
        self._path = Path(path) if path is not None else None
        self._max_entries = max_entries
        self._clock = clock
        self._entries: List[ErrorHistoryEntry] = []
        self._lock = threading.Lock()
        self._io_lock = threading.Lock()  # Serializes file writes; taken before _lock
        self._load()

    def record(self, error: ClassifiedError, input_length: int, model: str) -> ErrorHistoryEntry:
        """Append a failure, dropping the oldest entries beyond the bound."""
        entry = ErrorHistoryEntry(
            timestamp=self._clock(),
            error_type=error.kind.value,
            error_message=error.user_message,
            input_length=input_length,
            model=model,
        )
        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > self._max_entries:
                del self._entries[: len(self._entries) - self._max_entries]
        self._persist()
        return entry

    def entries(self) -> List[ErrorHistoryEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        self._persist()
        logger.info("[ErrorHistory] History cleared")

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            snapshot = ErrorHistorySnapshot.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.error(f"[ErrorHistory] Error reading history file {self._path}: {e}")
            return
        self._entries = snapshot.entries[-self._max_entries:]

    def _persist(self) -> None:
        if self._path is None:
            return
        with self._io_lock:
            with self._lock:
                snapshot = ErrorHistorySnapshot(entries=list(self._entries))
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
                os.replace(tmp_path, self._path)
            except OSError as e:
                logger.error(f"[ErrorHistory] Error writing history file {self._path}: {e}")


_error_history: Optional[ErrorHistory] = None


def get_error_history() -> ErrorHistory:
    """Get the process-wide error history, backed by the settings data dir."""
    global _error_history
    if _error_history is None:
        _error_history = ErrorHistory(path=settings.error_history_path)
    return _error_history
