"""
Error Handling Module

- ErrorKind / ClassifiedError / classify: closed failure taxonomy
- RetryPolicy: caller-side retry decisions
- ErrorHistory: bounded, persisted log of failures
- Exceptions raised at the network boundary and by the stream decoder

Usage:
    from popup_translator.services.errors import classify, RetryPolicy
"""

from popup_translator.services.errors.exceptions import (
    TranslatorError,
    TranslationValidationError,
    CredentialMissingError,
    StreamParseError,
    IncompleteResponseError,
    UpstreamHTTPError,
    UpstreamStreamError,
    TranslationFailedError,
)
from popup_translator.services.errors.classifier import ClassifiedError, ErrorKind, classify
from popup_translator.services.errors.retry import RetryPolicy, parse_retry_after_seconds
from popup_translator.services.errors.history import ErrorHistory, get_error_history

__all__ = [
    # Taxonomy
    "ErrorKind",
    "ClassifiedError",
    "classify",
    # Retry
    "RetryPolicy",
    "parse_retry_after_seconds",
    # History
    "ErrorHistory",
    "get_error_history",
    # Exceptions
    "TranslatorError",
    "TranslationValidationError",
    "CredentialMissingError",
    "StreamParseError",
    "IncompleteResponseError",
    "UpstreamHTTPError",
    "UpstreamStreamError",
    "TranslationFailedError",
]
