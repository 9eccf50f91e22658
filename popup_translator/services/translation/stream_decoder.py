"""
Stream Decoder - turns the Anthropic Messages event stream into StreamEvents.

The upstream format is server-sent events: `event:` lines naming the type
and `data:` lines carrying one JSON payload each. The decoder

- buffers partial lines (and partial UTF-8 sequences) across network reads,
- skips keep-alives (blank lines, `:` comments, `ping` events),
- surfaces malformed frames as Failed(StreamParseError) instead of dropping them,
- emits Usage once, right before Completed, when token counts were reported,
- emits Failed(IncompleteResponseError) if the stream ends without `message_stop`.

Nothing is emitted after the terminal event.

Usage:
    decoder = StreamDecoder()
    async for event in decoder.decode(transport.stream(text, model)):
        ...
"""

import codecs
import json
import logging
import re
from typing import Any, AsyncIterable, AsyncIterator, List, Optional

from popup_translator.config.constants import TRANSLATION_CONTENT_BLOCK_INDEX
from popup_translator.services.errors.exceptions import (
    IncompleteResponseError,
    StreamParseError,
    UpstreamStreamError,
)
from popup_translator.services.translation.events import (
    Completed,
    Delta,
    Failed,
    StreamEvent,
    Usage,
)

logger = logging.getLogger(__name__)

_LINE_END = re.compile(r'\r\n|\r|\n')

# SSE fields that carry no payload for us
_IGNORED_FIELDS = frozenset({"event", "id", "retry"})

# Payload types that carry nothing the caller needs
_IGNORED_TYPES = frozenset({"ping", "content_block_start", "content_block_stop"})


class StreamDecoder:
    """Incremental, single-use decoder for one response stream."""

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._done = False
        self._input_tokens: Optional[int] = None
        self._output_tokens: Optional[int] = None

    @property
    def done(self) -> bool:
        """True once a terminal event has been emitted."""
        return self._done

    # ------------------------------------------------------------------
    # Push interface
    # ------------------------------------------------------------------

    def feed(self, data: bytes) -> List[StreamEvent]:
        """Consume one network read and return the events it completes."""
        if self._done:
            return []
        try:
            self._buffer += self._utf8.decode(data)
        except UnicodeDecodeError as e:
            return self._fail(StreamParseError(f"Invalid UTF-8 in stream: {e}"))
        return self._drain_lines(final=False)

    def finish(self) -> List[StreamEvent]:
        """Signal end of stream; returns the closing events."""
        if self._done:
            return []
        try:
            self._buffer += self._utf8.decode(b"", final=True)
        except UnicodeDecodeError as e:
            return self._fail(StreamParseError(f"Truncated UTF-8 at end of stream: {e}"))

        events = self._drain_lines(final=True)
        if not self._done:
            events.extend(self._fail(IncompleteResponseError("Stream closed without message_stop")))
        return events

    # ------------------------------------------------------------------
    # Pull interface
    # ------------------------------------------------------------------

    async def decode(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
        """
        Decode a byte stream into StreamEvents.

        Failures raised while reading `chunks` (connection errors, timeouts,
        HTTP errors from the transport) end the sequence as Failed(reason).
        """
        iterator = chunks.__aiter__()
        try:
            while True:
                try:
                    chunk = await iterator.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as e:
                    logger.debug(f"[StreamDecoder] Transport failure: {type(e).__name__}: {e}")
                    for event in self._fail(e):
                        yield event
                    return

                for event in self.feed(chunk):
                    yield event
                if self._done:
                    return

            for event in self.finish():
                yield event
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fail(self, reason: BaseException) -> List[StreamEvent]:
        self._done = True
        self._buffer = ""
        return [Failed(reason)]

    def _drain_lines(self, final: bool) -> List[StreamEvent]:
        events: List[StreamEvent] = []
        while not self._done:
            match = _LINE_END.search(self._buffer)
            if match is None:
                break
            # A trailing '\r' may be the first half of '\r\n'
            if not final and match.group() == "\r" and match.end() == len(self._buffer):
                break
            line = self._buffer[:match.start()]
            self._buffer = self._buffer[match.end():]
            events.extend(self._handle_line(line))

        if final and not self._done and self._buffer:
            line, self._buffer = self._buffer, ""
            events.extend(self._handle_line(line))
        return events

    def _handle_line(self, line: str) -> List[StreamEvent]:
        line = line.strip()
        if not line or line.startswith(":"):
            return []

        name, sep, value = line.partition(":")
        if not sep:
            return self._fail(StreamParseError(f"Malformed stream line: {line[:80]!r}"))
        if name in _IGNORED_FIELDS:
            return []
        if name != "data":
            return self._fail(StreamParseError(f"Unexpected stream field: {name[:40]!r}"))

        value = value.strip()
        try:
            payload = json.loads(value)
        except json.JSONDecodeError as e:
            return self._fail(StreamParseError(f"Malformed data frame ({e.msg}): {value[:80]!r}"))
        if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
            return self._fail(StreamParseError(f"Data frame without event type: {value[:80]!r}"))

        try:
            return self._handle_payload(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            return self._fail(StreamParseError(f"Unexpected {payload['type']} payload: {e}"))

    def _handle_payload(self, payload: dict) -> List[StreamEvent]:
        event_type = payload["type"]

        if event_type in _IGNORED_TYPES:
            return []

        if event_type == "content_block_delta":
            # Only the first content block carries the translation
            if payload.get("index", 0) != TRANSLATION_CONTENT_BLOCK_INDEX:
                return []
            delta = payload["delta"]
            text = delta.get("text")
            if text:
                return [Delta(str(text))]
            return []

        if event_type == "message_start":
            self._record_usage(payload["message"].get("usage"))
            return []

        if event_type == "message_delta":
            self._record_usage(payload.get("usage"))
            return []

        if event_type == "message_stop":
            self._done = True
            events: List[StreamEvent] = []
            if self._input_tokens is not None or self._output_tokens is not None:
                events.append(Usage(self._input_tokens or 0, self._output_tokens or 0))
            events.append(Completed())
            return events

        if event_type == "error":
            error = payload.get("error") or {}
            return self._fail(UpstreamStreamError(
                str(error.get("type", "unknown_error")),
                str(error.get("message", "")),
            ))

        logger.debug(f"[StreamDecoder] Skipping unknown event type: {event_type}")
        return []

    def _record_usage(self, usage: Any) -> None:
        if usage is None:
            return
        if not isinstance(usage, dict):
            raise TypeError("usage is not an object")
        if usage.get("input_tokens") is not None:
            self._input_tokens = int(usage["input_tokens"])
        if usage.get("output_tokens") is not None:
            self._output_tokens = int(usage["output_tokens"])
