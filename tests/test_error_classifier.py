"""
Tests for the failure taxonomy and the retry policy.
"""
import asyncio
import json

import httpx
import pytest

from popup_translator.services.errors import (
    ErrorKind,
    RetryPolicy,
    classify,
    parse_retry_after_seconds,
    CredentialMissingError,
    IncompleteResponseError,
    StreamParseError,
    TranslationFailedError,
    UpstreamHTTPError,
    UpstreamStreamError,
)


def _error_body(error_type: str, message: str = "boom") -> str:
    return json.dumps({"type": "error", "error": {"type": error_type, "message": message}})


class TestClassifyHttpStatus:

    def test_credential_missing(self):
        error = classify(CredentialMissingError("ANTHROPIC_API_KEY not set"))
        assert error.kind is ErrorKind.CREDENTIAL_MISSING
        assert error.retryable is False
        assert error.retry_after is None
        assert error.needs_settings

    @pytest.mark.parametrize("status", [401, 403])
    def test_authentication_failed(self, status):
        error = classify(UpstreamHTTPError(status, _error_body("authentication_error")))
        assert error.kind is ErrorKind.AUTHENTICATION_FAILED
        assert error.retryable is False
        assert error.retry_after is None
        assert error.status == status

    def test_rate_limited_uses_retry_after_header(self):
        error = classify(UpstreamHTTPError(429, _error_body("rate_limit_error"), {"Retry-After": "12"}))
        assert error.kind is ErrorKind.RATE_LIMITED
        assert error.retryable is True
        assert error.retry_after == 12.0

    def test_rate_limited_defaults_to_five_seconds(self):
        error = classify(UpstreamHTTPError(429, ""))
        assert error.kind is ErrorKind.RATE_LIMITED
        assert error.retry_after == 5.0

    def test_invalid_retry_after_falls_back_to_default(self):
        error = classify(UpstreamHTTPError(429, "", {"retry-after": "soon"}))
        assert error.retry_after == 5.0

    def test_overloaded_529(self):
        error = classify(UpstreamHTTPError(529, _error_body("overloaded_error")))
        assert error.kind is ErrorKind.OVERLOADED
        assert error.retryable is True
        assert error.retry_after == 3.0

    def test_overloaded_by_body_type(self):
        error = classify(UpstreamHTTPError(503, _error_body("overloaded_error")))
        assert error.kind is ErrorKind.OVERLOADED

    def test_server_error_is_retryable_api_error(self):
        error = classify(UpstreamHTTPError(500, _error_body("api_error")))
        assert error.kind is ErrorKind.API_ERROR
        assert error.retryable is True
        assert error.retry_after == 0.0

    def test_client_error_is_not_retryable(self):
        error = classify(UpstreamHTTPError(400, _error_body("invalid_request_error", "bad model")))
        assert error.kind is ErrorKind.API_ERROR
        assert error.retryable is False
        assert "400" in error.user_message

    def test_request_timeout_status(self):
        assert classify(UpstreamHTTPError(408, "")).kind is ErrorKind.TIMEOUT

    def test_httpx_status_error(self):
        request = httpx.Request("POST", "https://api.example.test/v1/messages")
        response = httpx.Response(429, headers={"retry-after": "7"}, request=request)
        error = classify(httpx.HTTPStatusError("rate limited", request=request, response=response))
        assert error.kind is ErrorKind.RATE_LIMITED
        assert error.retry_after == 7.0


class TestClassifyTransport:

    def test_httpx_timeout(self):
        error = classify(httpx.ReadTimeout("read timed out"))
        assert error.kind is ErrorKind.TIMEOUT
        assert error.retryable is True
        assert error.retry_after == 1.0

    def test_asyncio_timeout(self):
        assert classify(asyncio.TimeoutError()).kind is ErrorKind.TIMEOUT

    def test_connect_error(self):
        error = classify(httpx.ConnectError("connection refused"))
        assert error.kind is ErrorKind.NETWORK_ERROR
        assert error.retryable is True
        assert error.retry_after == 2.0

    def test_os_level_connection_error(self):
        assert classify(ConnectionResetError("reset by peer")).kind is ErrorKind.NETWORK_ERROR


class TestClassifyStream:

    def test_parse_error(self):
        error = classify(StreamParseError("bad frame"))
        assert error.kind is ErrorKind.PARSE_ERROR
        assert error.retryable is True
        assert error.retry_after == 0.0

    def test_incomplete_response(self):
        error = classify(IncompleteResponseError("no message_stop"))
        assert error.kind is ErrorKind.INCOMPLETE_RESPONSE
        assert error.retryable is True

    def test_in_stream_overloaded(self):
        assert classify(UpstreamStreamError("overloaded_error", "Overloaded")).kind is ErrorKind.OVERLOADED

    def test_in_stream_api_error_is_retryable(self):
        error = classify(UpstreamStreamError("api_error", "Internal error"))
        assert error.kind is ErrorKind.API_ERROR
        assert error.retryable is True

    def test_in_stream_unknown_type_is_api_error(self):
        error = classify(UpstreamStreamError("mystery_error"))
        assert error.kind is ErrorKind.API_ERROR
        assert error.retryable is False


class TestClassifyTotal:

    @pytest.mark.parametrize("raw", [RuntimeError("weird"), KeyError("x"), "not an exception", None, 42])
    def test_unrecognized_maps_to_unknown(self, raw):
        error = classify(raw)
        assert error.kind is ErrorKind.UNKNOWN
        assert error.retryable is False
        assert error.retry_after == 0.0

    def test_unread_streamed_response_is_classified(self):
        request = httpx.Request("POST", "https://api.example.test/v1/messages")
        response = httpx.Response(500, stream=httpx.ByteStream(b"boom"), request=request)

        error = classify(httpx.HTTPStatusError("server error", request=request, response=response))

        assert error.kind is ErrorKind.API_ERROR
        assert error.status == 500
        assert error.retryable is True

    def test_already_classified_failure_passes_through(self):
        inner = classify(UpstreamHTTPError(529, ""))
        assert classify(TranslationFailedError(inner)) is inner

    def test_every_kind_has_user_message(self):
        samples = [
            CredentialMissingError(),
            UpstreamHTTPError(401, ""),
            UpstreamHTTPError(429, ""),
            UpstreamHTTPError(529, ""),
            httpx.ConnectTimeout("t"),
            httpx.ConnectError("c"),
            UpstreamHTTPError(418, "teapot"),
            StreamParseError("p"),
            IncompleteResponseError("i"),
            RuntimeError("u"),
        ]
        kinds = {classify(s).kind for s in samples}
        assert kinds == set(ErrorKind)
        for s in samples:
            assert classify(s).user_message


class TestRetryPolicy:

    def test_not_retryable_gives_up(self):
        policy = RetryPolicy()
        assert policy.next_delay(classify(UpstreamHTTPError(401, "")), attempt=1) is None

    def test_attempts_exhausted(self):
        policy = RetryPolicy(max_attempts=2)
        error = classify(httpx.ConnectError("down"))
        assert policy.next_delay(error, attempt=1) == 2.0
        assert policy.next_delay(error, attempt=2) is None

    def test_exponential_growth_is_capped(self):
        policy = RetryPolicy(max_attempts=10, backoff_factor=2.0, max_delay_sec=10.0)
        error = classify(UpstreamHTTPError(429, "", {"retry-after": "3"}))
        assert policy.next_delay(error, attempt=1) == 3.0
        assert policy.next_delay(error, attempt=2) == 6.0
        assert policy.next_delay(error, attempt=3) == 10.0

    def test_zero_delay_kinds_retry_immediately(self):
        policy = RetryPolicy()
        assert policy.next_delay(classify(IncompleteResponseError()), attempt=1) == 0.0

    def test_jitter_stays_within_spread(self):
        policy = RetryPolicy(max_attempts=5, jitter=0.5)
        delay = policy.next_delay(classify(httpx.ConnectError("down")), attempt=1)
        assert 1.0 <= delay <= 3.0


@pytest.mark.parametrize("value,expected", [
    ("5", 5.0),
    (" 2.5 ", 2.5),
    ("-1", None),
    ("Wed, 21 Oct 2015 07:28:00 GMT", None),
    ("", None),
    (None, None),
])
def test_parse_retry_after_seconds(value, expected):
    assert parse_retry_after_seconds(value) == expected
