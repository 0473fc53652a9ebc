from __future__ import annotations

import types

import httpx

from chatcompat.base.errors import (
    ApiError,
    ChatError,
    ErrorCode,
    InvalidValue,
    MissingField,
    StreamCancelled,
    StreamTruncated,
    classify_exception,
    code_for_status,
)


def test_classify_chat_error_passthrough():
    e = ApiError("bad", "nope", status=401, code=ErrorCode.AUTH)
    assert classify_exception(e) is ErrorCode.AUTH  # nosec B101 - assert is appropriate in unit tests


def test_classify_http_status_mapping():
    e1 = types.SimpleNamespace(status_code=404)
    assert classify_exception(e1) is ErrorCode.NOT_FOUND  # nosec B101 - assert is appropriate in unit tests
    e2 = types.SimpleNamespace(response=types.SimpleNamespace(status_code=503))
    assert classify_exception(e2) is ErrorCode.UNAVAILABLE  # nosec B101 - assert is appropriate in unit tests


def test_classify_httpx_failures():
    req = httpx.Request("POST", "https://api.example.com/v1/chat/completions")
    assert classify_exception(httpx.ReadTimeout("slow", request=req)) is ErrorCode.TIMEOUT  # nosec B101
    assert classify_exception(httpx.ConnectError("refused", request=req)) is ErrorCode.TRANSIENT  # nosec B101
    assert classify_exception(httpx.RemoteProtocolError("peer closed", request=req)) is ErrorCode.TRANSIENT  # nosec B101
    assert classify_exception(TimeoutError()) is ErrorCode.TIMEOUT  # nosec B101


def test_classify_heuristics():
    assert classify_exception(Exception("rate limit exceeded")) is ErrorCode.RATE_LIMIT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("timed out waiting")) is ErrorCode.TIMEOUT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("connection reset by peer")) is ErrorCode.TRANSIENT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("random")) is ErrorCode.UNKNOWN  # nosec B101 - assert is appropriate in unit tests


def test_code_for_status_ranges():
    assert code_for_status(None) is ErrorCode.UNKNOWN  # nosec B101
    assert code_for_status(429) is ErrorCode.RATE_LIMIT  # nosec B101
    assert code_for_status(418) is ErrorCode.VALIDATION  # nosec B101
    assert code_for_status(599) is ErrorCode.SERVER_ERROR  # nosec B101
    assert code_for_status(302) is ErrorCode.UNKNOWN  # nosec B101


def test_build_errors_carry_field_and_validation_code():
    missing = MissingField("model")
    invalid = InvalidValue("temperature", "must be <= 2")
    assert missing.field == "model" and missing.code is ErrorCode.VALIDATION  # nosec B101
    assert invalid.reason == "must be <= 2" and "temperature" in invalid.message  # nosec B101
    assert isinstance(invalid, ChatError)  # nosec B101


def test_stream_error_defaults():
    truncated = StreamTruncated(partial={"id": "x"})
    assert truncated.code is ErrorCode.TRUNCATED and truncated.retryable is True  # nosec B101
    assert truncated.partial == {"id": "x"}  # nosec B101
    assert StreamCancelled("closed").code is ErrorCode.CANCELLED  # nosec B101
