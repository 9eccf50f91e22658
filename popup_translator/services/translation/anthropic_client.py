"""
Anthropic Streaming Client - raw event stream from the Messages API.

Built on httpx.AsyncClient. The client only moves bytes: decoding the
event stream and classifying failures happen downstream.

Usage:
    async with AnthropicStreamingClient(api_key="sk-...") as client:
        async for chunk in client.stream("こんにちは", "claude-haiku-4-5-20251001"):
            ...
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from popup_translator.config.settings import settings
from popup_translator.config.constants import (
    TRANSLATION_MAX_TOKENS,
    TRANSLATION_TEMPERATURE,
    TRANSLATION_SYSTEM_PROMPT,
)
from popup_translator.services.errors.exceptions import CredentialMissingError, UpstreamHTTPError
from popup_translator.services.text_processing import sanitize_input

logger = logging.getLogger(__name__)


class AnthropicStreamingClient:
    """
    Streaming transport for the Anthropic Messages API.

    Args:
        api_key: API key (defaults to settings.ANTHROPIC_API_KEY)
        api_url: Messages endpoint URL
        api_version: Value of the anthropic-version header
        timeout_sec: Deadline for the whole request, from connect to the last byte
        transport: Optional custom transport (useful for testing)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self._api_url = api_url or settings.ANTHROPIC_API_URL
        self._api_version = api_version or settings.ANTHROPIC_VERSION
        self._timeout_sec = timeout_sec if timeout_sec is not None else settings.REQUEST_TIMEOUT_SEC
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_sec), transport=transport)

    async def aclose(self) -> None:
        """Close the underlying HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "AnthropicStreamingClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def build_request_body(self, text: str, model: str) -> Dict[str, Any]:
        """Messages API request body; special symbols are stripped from the text."""
        return {
            "model": model,
            "messages": [{"role": "user", "content": sanitize_input(text)}],
            "max_tokens": TRANSLATION_MAX_TOKENS,
            "stream": True,
            "system": TRANSLATION_SYSTEM_PROMPT,
            "temperature": TRANSLATION_TEMPERATURE,
        }

    async def stream(self, text: str, model: str) -> AsyncIterator[bytes]:
        """
        Issue one streaming request and yield raw response bytes.

        The whole request, from connect to the last byte, shares one deadline
        of `timeout_sec`; httpx's own timeout only bounds each single read.

        Raises:
            CredentialMissingError: if no API key is configured
            UpstreamHTTPError: on a non-2xx response
            TimeoutError: when the request deadline passes
        """
        if not self._api_key:
            raise CredentialMissingError("ANTHROPIC_API_KEY not set")

        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": self._api_version,
            "content-type": "application/json",
            "accept": "text/event-stream",
        }
        body = self.build_request_body(text, model)
        request = self._client.build_request("POST", self._api_url, headers=headers, json=body)
        deadline = asyncio.get_running_loop().time() + self._timeout_sec

        logger.debug(f"[AnthropicClient] POST {self._api_url} (model={model}, {len(text)} chars)")
        async with asyncio.timeout_at(deadline):
            response = await self._client.send(request, stream=True)

        try:
            if not response.is_success:
                async with asyncio.timeout_at(deadline):
                    error_body = (await response.aread()).decode("utf-8", errors="replace")
                raise UpstreamHTTPError(response.status_code, error_body, response.headers)

            chunks = response.aiter_bytes()
            while True:
                try:
                    # Only the read is bounded; the yield below must stay outside the timeout scope
                    async with asyncio.timeout_at(deadline):
                        chunk = await chunks.__anext__()
                except StopAsyncIteration:
                    break
                except TimeoutError:
                    logger.warning(f"[AnthropicClient] Request exceeded {self._timeout_sec:g}s deadline")
                    raise
                yield chunk
        finally:
            await response.aclose()
