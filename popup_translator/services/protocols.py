"""
Protocol definitions for the translation core's collaborators.

This module defines interfaces (Python Protocols) that allow:
- Swapping the upstream API client (e.g. Anthropic -> local model)
- Testing without real API credentials
- Clear contracts between the engine and its transport

Usage:
    from popup_translator.services.protocols import StreamingTransportProtocol

    async def run(transport: StreamingTransportProtocol):
        async for chunk in transport.stream("hello", "claude-haiku-4-5-20251001"):
            ...
"""

from typing import AsyncIterator, Protocol


class StreamingTransportProtocol(Protocol):
    """
    Interface for a streaming translation endpoint.

    Implementations issue one streaming request per call and yield the raw
    bytes of the upstream event stream as they arrive. Failures (missing
    credential, non-2xx status, connection errors, timeouts) are raised from
    the iterator, at the latest on the first read.
    """

    def stream(self, text: str, model: str) -> AsyncIterator[bytes]:
        """
        Stream the raw response for translating `text` with `model`.

        Args:
            text: Source text as entered by the user
            model: Upstream model identifier

        Yields:
            Raw byte chunks of the event stream, in receive order
        """
        ...
