"""
Translation Processing Module

This module contains all translation-related services:
- TranslationEngine: cache-aware, session-fenced streaming translation
- StreamDecoder: Anthropic event stream -> StreamEvents
- AnthropicStreamingClient: httpx streaming transport

Usage:
    from popup_translator.services.translation import get_translation_engine
    from popup_translator.services.translation.events import Delta, Completed, Failed
"""

from popup_translator.services.translation.events import (
    Delta,
    Usage,
    Completed,
    Failed,
    StreamEvent,
    SessionEvent,
    is_terminal,
)
from popup_translator.services.translation.stream_decoder import StreamDecoder
from popup_translator.services.translation.anthropic_client import AnthropicStreamingClient
from popup_translator.services.translation.engine import (
    TranslationEngine,
    TranslationStream,
    get_translation_engine,
)

__all__ = [
    # Events
    "Delta",
    "Usage",
    "Completed",
    "Failed",
    "StreamEvent",
    "SessionEvent",
    "is_terminal",
    # Decoding & transport
    "StreamDecoder",
    "AnthropicStreamingClient",
    # Engine
    "TranslationEngine",
    "TranslationStream",
    "get_translation_engine",
]
