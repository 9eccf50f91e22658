"""
Translation Exceptions

Raw failures raised at the network boundary and by the stream decoder.
Every one of them is mapped to a ClassifiedError before reaching a caller.
"""

import json
from typing import Mapping, Optional

from popup_translator.config.constants import ERROR_BODY_SNIPPET_CHARS


class TranslatorError(Exception):
    """Base exception for translation core errors"""
    pass


class TranslationValidationError(TranslatorError, ValueError):
    """Raised when the text to translate is empty or whitespace only"""
    pass


class CredentialMissingError(TranslatorError):
    """Raised when no API key is configured"""
    pass


class StreamParseError(TranslatorError):
    """Raised when a stream frame cannot be parsed"""
    pass


class IncompleteResponseError(TranslatorError):
    """Raised when the stream ends without a terminal marker"""
    pass


class UpstreamHTTPError(TranslatorError):
    """Raised when the API answers with a non-2xx status"""

    def __init__(self, status: int, body: str = "", headers: Optional[Mapping[str, str]] = None):
        self.status = status
        self.body = body
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        super().__init__(f"API error {status}: {body[:ERROR_BODY_SNIPPET_CHARS]}")

    @property
    def error_type(self) -> Optional[str]:
        """Anthropic error type from a JSON body ({"error": {"type": ...}}), if any."""
        try:
            payload = json.loads(self.body)
        except (json.JSONDecodeError, TypeError):
            return None
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if isinstance(error, dict):
            return error.get("type")
        return None


class UpstreamStreamError(TranslatorError):
    """Raised for an `error` event delivered inside the event stream"""

    def __init__(self, error_type: str, message: str = ""):
        self.error_type = error_type
        self.message = message
        super().__init__(f"{error_type}: {message}" if message else error_type)


class TranslationFailedError(TranslatorError):
    """Raised by one-shot translation when the stream ends in a failure"""

    def __init__(self, error):
        self.error = error
        super().__init__(error.user_message)
