"""
Translation Engine - streams translations with caching and session fencing.

Architecture:
    translate() -> SessionCoordinator.begin() -> TranslationCache.lookup()
        hit:  Delta(cached) -> Usage(cost 0, cache_hit) -> Completed
        miss: transport.stream() -> StreamDecoder -> Delta* -> Usage -> Completed | Failed
              Completed: one TranslationCache.insert()
              Failed:    classify(); never cached

Key Features:
- Only events of the surface's current session reach the caller
- Superseded sessions keep streaming silently so their result still lands in the cache
- Failures are classified once and returned to the caller; nothing is retried here

Usage:
    from popup_translator.services.translation import get_translation_engine

    engine = get_translation_engine()
    stream = engine.translate("こんにちは", model="claude-haiku-4-5-20251001")
    async for tagged in stream:
        render(tagged.event)
"""

import asyncio
import inspect
import logging
import time
import uuid
from contextlib import aclosing
from dataclasses import replace
from typing import Any, AsyncIterator, Callable, List, Optional, Set

from popup_translator.config.settings import Settings, settings as default_settings
from popup_translator.config.constants import (
    AVAILABLE_MODELS,
    DEFAULT_SURFACE,
    TOKENS_PER_PRICING_UNIT,
)
from popup_translator.schemas.cache import CacheStats
from popup_translator.schemas.error_history import ErrorHistoryEntry
from popup_translator.services.cache.translation_cache import TranslationCache, get_translation_cache
from popup_translator.services.errors.classifier import classify
from popup_translator.services.errors.exceptions import (
    TranslationFailedError,
    TranslationValidationError,
)
from popup_translator.services.errors.history import ErrorHistory, get_error_history
from popup_translator.services.metrics import translations_total, stream_latency
from popup_translator.services.protocols import StreamingTransportProtocol
from popup_translator.services.session.coordinator import SessionCoordinator, SessionId
from popup_translator.services.translation.anthropic_client import AnthropicStreamingClient
from popup_translator.services.translation.events import (
    Completed,
    Delta,
    Failed,
    SessionEvent,
    Usage,
)
from popup_translator.services.translation.stream_decoder import StreamDecoder

logger = logging.getLogger(__name__)


class TranslationStream:
    """
    Single-pass async iterable of the tagged events of one session.

    Iterating it drives the translation. A stream whose session has been
    superseded ends silently once its upstream call finishes.
    """

    def __init__(self, session: SessionId, events: AsyncIterator[SessionEvent]):
        self.session = session
        self._events = events
        self._consumed = False

    def __aiter__(self) -> AsyncIterator[SessionEvent]:
        if self._consumed:
            raise RuntimeError(f"TranslationStream for {self.session} can only be iterated once")
        self._consumed = True
        return self._events

    async def aclose(self) -> None:
        """Abort the stream; the upstream call is cancelled and nothing is cached."""
        await self._events.aclose()


class TranslationEngine:
    """
    Orchestrates cache lookup, streaming network calls and session fencing.

    Thread-safety: the cache and session coordinator lock internally; the
    engine itself is meant to be driven from one event loop.
    """

    def __init__(
        self,
        transport: StreamingTransportProtocol,
        cache: TranslationCache,
        sessions: Optional[SessionCoordinator] = None,
        error_history: Optional[ErrorHistory] = None,
        settings: Settings = default_settings,
    ):
        """
        Initialize the translation engine.

        Args:
            transport: Streaming endpoint implementing StreamingTransportProtocol
            cache: Translation cache shared by all sessions
            sessions: Session coordinator (a private one is created if omitted)
            error_history: Where failures of current sessions are recorded
            settings: Source of the default model and the pricing table
        """
        self._transport = transport
        self._cache = cache
        self._sessions = sessions or SessionCoordinator()
        self._error_history = error_history
        self._settings = settings
        self._background: Set[asyncio.Task] = set()

    @property
    def sessions(self) -> SessionCoordinator:
        return self._sessions

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def translate(
        self,
        text: str,
        model: Optional[str] = None,
        surface: str = DEFAULT_SURFACE,
    ) -> TranslationStream:
        """
        Start a translation on `surface`, superseding the surface's previous session.

        Args:
            text: Source text
            model: Model identifier (defaults to settings.TRANSLATION_MODEL)
            surface: Logical output surface, e.g. one UI pane

        Returns:
            TranslationStream tagged with the new session id

        Raises:
            TranslationValidationError: if text is empty or whitespace only
        """
        if not text or not text.strip():
            raise TranslationValidationError("Nothing to translate: text is empty")

        model = model or self._settings.TRANSLATION_MODEL
        session = self._sessions.begin(surface)
        logger.debug(f"[TranslationEngine] Session {session} started ({len(text)} chars, model={model})")
        return TranslationStream(session, self._run(session, text, model))

    async def _run(self, session: SessionId, text: str, model: str) -> AsyncIterator[SessionEvent]:
        # Stays "cancelled" if the caller closes the stream before a terminal event
        outcome = "cancelled"
        started: Optional[float] = None
        try:
            cached = self._cache.lookup(text, model)
            if cached is not None:
                outcome = "cache_hit"
                for event in (
                    Delta(cached.translated_text),
                    Usage(0, 0, estimated_cost=0.0, cache_hit=True),
                    Completed(),
                ):
                    if self._sessions.is_current(session):
                        yield SessionEvent(session, event)
                return

            parts: List[str] = []
            started = time.perf_counter()
            decoder = StreamDecoder()

            async with aclosing(decoder.decode(self._transport.stream(text, model))) as events:
                async for event in events:
                    if isinstance(event, Delta):
                        parts.append(event.text)
                    elif isinstance(event, Usage):
                        event = replace(
                            event,
                            estimated_cost=self.estimate_cost(model, event.input_tokens, event.output_tokens),
                        )
                    elif isinstance(event, Completed):
                        # File writes run off the event loop
                        await asyncio.to_thread(self._cache.insert, text, model, "".join(parts))
                        outcome = "completed"
                    elif isinstance(event, Failed):
                        error = classify(event.reason)
                        event = replace(event, error=error)
                        outcome = "failed"
                        logger.warning(
                            f"[TranslationEngine] Session {session} failed: {error.kind.value} "
                            f"(retryable={error.retryable}, retry_after={error.retry_after}) - {error.message}"
                        )
                        if self._error_history is not None and self._sessions.is_current(session):
                            await asyncio.to_thread(self._error_history.record, error, len(text), model)

                    if self._sessions.is_current(session):
                        yield SessionEvent(session, event)
        finally:
            if started is not None:
                stream_latency.labels(model=model).observe(time.perf_counter() - started)
            self._finish(session, outcome)

    def _finish(self, session: SessionId, outcome: str) -> None:
        if not self._sessions.finish(session):
            logger.debug(f"[TranslationEngine] Session {session} was superseded ({outcome})")
            outcome = "superseded"
        translations_total.labels(outcome=outcome).inc()

    def estimate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """Estimated USD cost of a request from the model's per-million-token pricing."""
        input_price, output_price = self._settings.get_model_pricing(model)
        return (
            input_tokens * input_price + output_tokens * output_price
        ) / TOKENS_PER_PRICING_UNIT

    def trigger(
        self,
        text: str,
        on_event: Callable[[SessionEvent], Any],
        model: Optional[str] = None,
        surface: str = DEFAULT_SURFACE,
    ) -> SessionId:
        """
        Start a translation in a background task that feeds `on_event`.

        The task runs to completion even after the session is superseded,
        so an abandoned translation still populates the cache. `on_event`
        may be a plain function or a coroutine function.

        Returns:
            The id of the new session
        """
        stream = self.translate(text, model, surface)
        task = asyncio.create_task(self._pump(stream, on_event), name=f"translate-{stream.session}")
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return stream.session

    async def _pump(self, stream: TranslationStream, on_event: Callable[[SessionEvent], Any]) -> None:
        async with aclosing(stream):
            async for tagged in stream:
                result = on_event(tagged)
                if inspect.isawaitable(result):
                    await result

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[TranslationEngine] Background {task.get_name()} crashed: {exc}", exc_info=exc)

    async def wait_background(self) -> None:
        """Wait until every triggered translation has finished."""
        while self._background:
            pending = list(self._background)
            await asyncio.gather(*pending, return_exceptions=True)
            self._background.difference_update(pending)

    async def aclose(self) -> None:
        """Let triggered translations finish, then close the transport."""
        await self.wait_background()
        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def translate_once(self, text: str, model: Optional[str] = None) -> str:
        """
        Translate and return the full text.

        Runs on a private surface, so it never supersedes an interactive session.
        The surface is released afterwards.

        Raises:
            TranslationValidationError: if text is empty
            TranslationFailedError: if the translation fails
        """
        parts: List[str] = []
        surface = f"once-{uuid.uuid4().hex}"
        stream = self.translate(text, model, surface=surface)
        try:
            async with aclosing(stream):
                async for tagged in stream:
                    event = tagged.event
                    if isinstance(event, Delta):
                        parts.append(event.text)
                    elif isinstance(event, Failed):
                        raise TranslationFailedError(event.error) from event.reason
        finally:
            self._sessions.release(surface)
        return "".join(parts)

    # ------------------------------------------------------------------
    # Administration (settings surface)
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self._cache.clear()

    def set_cache_enabled(self, enabled: bool) -> None:
        self._cache.set_enabled(enabled)

    def cache_entry_count(self) -> int:
        return self._cache.entry_count

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    @staticmethod
    def available_models() -> List[tuple[str, str]]:
        return list(AVAILABLE_MODELS)

    def get_error_history(self) -> List[ErrorHistoryEntry]:
        if self._error_history is None:
            return []
        return self._error_history.entries()

    def clear_error_history(self) -> None:
        if self._error_history is not None:
            self._error_history.clear()


_translation_engine: Optional[TranslationEngine] = None


def get_translation_engine() -> TranslationEngine:
    """Get the process-wide engine wired to the Anthropic API and the persisted cache."""
    global _translation_engine
    if _translation_engine is None:
        _translation_engine = TranslationEngine(
            transport=AnthropicStreamingClient(),
            cache=get_translation_cache(),
            error_history=get_error_history(),
        )
    return _translation_engine
