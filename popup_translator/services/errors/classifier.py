"""
Error Classifier - maps raw failures into a closed taxonomy.

Every failure from the HTTP transport, the API or the stream decoder is
mapped to exactly one ErrorKind together with retry metadata. The function
is total: anything unrecognized becomes ErrorKind.UNKNOWN.

Usage:
    from popup_translator.services.errors import classify

    error = classify(exc)
    if error.retryable:
        await asyncio.sleep(error.retry_after or 0)
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import httpx

from popup_translator.config.constants import (
    RATE_LIMIT_DEFAULT_DELAY_SEC,
    OVERLOADED_DELAY_SEC,
    TIMEOUT_RETRY_DELAY_SEC,
    NETWORK_RETRY_DELAY_SEC,
    IMMEDIATE_RETRY_DELAY_SEC,
    HTTP_STATUS_OVERLOADED,
)
from popup_translator.services.errors.exceptions import (
    CredentialMissingError,
    IncompleteResponseError,
    StreamParseError,
    TranslationFailedError,
    UpstreamHTTPError,
    UpstreamStreamError,
)
from popup_translator.services.errors.retry import parse_retry_after_seconds

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    CREDENTIAL_MISSING = "credential_missing"
    AUTHENTICATION_FAILED = "authentication_failed"
    RATE_LIMITED = "rate_limited"
    OVERLOADED = "overloaded"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    INCOMPLETE_RESPONSE = "incomplete_response"
    UNKNOWN = "unknown"


# kind -> (retryable, default delay); API_ERROR retryability depends on status class
_RETRY_TABLE: Dict[ErrorKind, tuple[bool, Optional[float]]] = {
    ErrorKind.CREDENTIAL_MISSING: (False, None),
    ErrorKind.AUTHENTICATION_FAILED: (False, None),
    ErrorKind.RATE_LIMITED: (True, RATE_LIMIT_DEFAULT_DELAY_SEC),
    ErrorKind.OVERLOADED: (True, OVERLOADED_DELAY_SEC),
    ErrorKind.TIMEOUT: (True, TIMEOUT_RETRY_DELAY_SEC),
    ErrorKind.NETWORK_ERROR: (True, NETWORK_RETRY_DELAY_SEC),
    ErrorKind.API_ERROR: (False, IMMEDIATE_RETRY_DELAY_SEC),
    ErrorKind.PARSE_ERROR: (True, IMMEDIATE_RETRY_DELAY_SEC),
    ErrorKind.INCOMPLETE_RESPONSE: (True, IMMEDIATE_RETRY_DELAY_SEC),
    ErrorKind.UNKNOWN: (False, IMMEDIATE_RETRY_DELAY_SEC),
}

# Anthropic error types (HTTP body or in-stream `error` event)
_UPSTREAM_ERROR_TYPES: Dict[str, ErrorKind] = {
    "authentication_error": ErrorKind.AUTHENTICATION_FAILED,
    "permission_error": ErrorKind.AUTHENTICATION_FAILED,
    "rate_limit_error": ErrorKind.RATE_LIMITED,
    "overloaded_error": ErrorKind.OVERLOADED,
    "timeout_error": ErrorKind.TIMEOUT,
}

# Server-side error types that are worth retrying
_RETRYABLE_API_ERROR_TYPES = frozenset({"api_error"})


@dataclass(frozen=True)
class ClassifiedError:
    """
    A failure mapped into the closed taxonomy.

    Attributes:
        kind: Taxonomy member
        retry_after: Suggested delay in seconds before retrying (None when retrying is pointless)
        retryable: Whether a retry may succeed
        message: Technical detail, never shown verbatim for credential errors
        status: HTTP status when the failure came from a response
    """
    kind: ErrorKind
    retry_after: Optional[float]
    retryable: bool
    message: str = ""
    status: Optional[int] = None

    @property
    def user_message(self) -> str:
        """Human-readable message safe for display."""
        kind = self.kind
        if kind is ErrorKind.CREDENTIAL_MISSING:
            return "API key not configured. Please add your Anthropic API key in Settings."
        if kind is ErrorKind.AUTHENTICATION_FAILED:
            return "Invalid API key. Please check your API key in Settings."
        if kind is ErrorKind.RATE_LIMITED:
            if self.retry_after:
                return f"Rate limit exceeded. Please wait {self.retry_after:g} seconds."
            return "Rate limit exceeded. Please wait a moment and try again."
        if kind is ErrorKind.OVERLOADED:
            return "The translation API is currently overloaded. Please try again in a moment."
        if kind is ErrorKind.TIMEOUT:
            return "Request timed out. Please try again."
        if kind is ErrorKind.NETWORK_ERROR:
            return "Network error. Please check your internet connection."
        if kind is ErrorKind.API_ERROR:
            return f"API error ({self.status}): {self.message}" if self.status else f"API error: {self.message}"
        if kind is ErrorKind.PARSE_ERROR:
            return "Failed to parse API response. Please try again."
        if kind is ErrorKind.INCOMPLETE_RESPONSE:
            return "The translation was cut off before it finished. Please try again."
        return f"An error occurred: {self.message}" if self.message else "An unknown error occurred."

    @property
    def needs_settings(self) -> bool:
        """True when the user has to fix the API key before retrying."""
        return self.kind in (ErrorKind.CREDENTIAL_MISSING, ErrorKind.AUTHENTICATION_FAILED)


def _make(
    kind: ErrorKind,
    message: str = "",
    *,
    status: Optional[int] = None,
    retry_after: Optional[float] = None,
    retryable: Optional[bool] = None,
) -> ClassifiedError:
    default_retryable, default_delay = _RETRY_TABLE[kind]
    return ClassifiedError(
        kind=kind,
        retry_after=retry_after if retry_after is not None else default_delay,
        retryable=default_retryable if retryable is None else retryable,
        message=message,
        status=status,
    )


def _classify_http(exc: UpstreamHTTPError) -> ClassifiedError:
    status = exc.status
    message = str(exc)

    if status in (401, 403):
        return _make(ErrorKind.AUTHENTICATION_FAILED, message, status=status)
    if status == 429:
        hint = parse_retry_after_seconds(exc.headers.get("retry-after"))
        return _make(ErrorKind.RATE_LIMITED, message, status=status, retry_after=hint)
    if status == HTTP_STATUS_OVERLOADED:
        return _make(ErrorKind.OVERLOADED, message, status=status)
    if status == 408:
        return _make(ErrorKind.TIMEOUT, message, status=status)

    error_type = exc.error_type
    if error_type in _UPSTREAM_ERROR_TYPES:
        kind = _UPSTREAM_ERROR_TYPES[error_type]
        hint = None
        if kind is ErrorKind.RATE_LIMITED:
            hint = parse_retry_after_seconds(exc.headers.get("retry-after"))
        return _make(kind, message, status=status, retry_after=hint)

    return _make(ErrorKind.API_ERROR, exc.body or message, status=status, retryable=status >= 500)


def _classify_stream_error(exc: UpstreamStreamError) -> ClassifiedError:
    kind = _UPSTREAM_ERROR_TYPES.get(exc.error_type)
    if kind is not None:
        return _make(kind, str(exc))
    return _make(
        ErrorKind.API_ERROR,
        exc.message or exc.error_type,
        retryable=exc.error_type in _RETRYABLE_API_ERROR_TYPES,
    )


def classify(raw_failure: object) -> ClassifiedError:
    """
    Map a raw failure into the closed taxonomy.

    Args:
        raw_failure: Exception raised by the transport, API client or decoder

    Returns:
        The ClassifiedError; never raises
    """
    exc = raw_failure

    if isinstance(exc, TranslationFailedError):
        return exc.error
    if isinstance(exc, CredentialMissingError):
        return _make(ErrorKind.CREDENTIAL_MISSING, str(exc))
    if isinstance(exc, UpstreamHTTPError):
        return _classify_http(exc)
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            body = response.text
        except httpx.ResponseNotRead:
            # Streamed response whose body was never read
            body = ""
        return _classify_http(UpstreamHTTPError(response.status_code, body, response.headers))
    if isinstance(exc, UpstreamStreamError):
        return _classify_stream_error(exc)
    if isinstance(exc, (StreamParseError, httpx.DecodingError, json.JSONDecodeError, UnicodeDecodeError)):
        return _make(ErrorKind.PARSE_ERROR, str(exc))
    if isinstance(exc, IncompleteResponseError):
        return _make(ErrorKind.INCOMPLETE_RESPONSE, str(exc))
    # TimeoutError subclasses OSError and httpx timeouts subclass TransportError
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return _make(ErrorKind.TIMEOUT, str(exc) or type(exc).__name__)
    if isinstance(exc, (httpx.TransportError, ConnectionError, OSError)):
        return _make(ErrorKind.NETWORK_ERROR, str(exc) or type(exc).__name__)

    detail = str(exc) if isinstance(exc, BaseException) else repr(exc)
    logger.debug(f"[ErrorClassifier] Unrecognized failure {type(exc).__name__}: {detail}")
    return _make(ErrorKind.UNKNOWN, detail or type(exc).__name__)
