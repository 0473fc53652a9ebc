"""Response decoder tests: success shape, error envelopes, malformed bodies."""
from __future__ import annotations

import json

import pytest

from chatcompat.base.errors import ApiError, ErrorCode, MalformedResponse
from chatcompat.base.response import decode_model_list, decode_response
from chatcompat.base.schema import Role

SUCCESS = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 1700000000,
    "model": "gpt-4o-mini",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "4"},
            "finish_reason": "stop",
        }
    ],
    "usage": {
        "prompt_tokens": 10,
        "completion_tokens": 1,
        "total_tokens": 11,
        "prompt_tokens_details": {"cached_tokens": 8},
    },
}


def test_decode_success_from_bytes_str_and_mapping():
    for body in (json.dumps(SUCCESS).encode(), json.dumps(SUCCESS), SUCCESS):
        resp = decode_response(body)
        assert resp.id == "chatcmpl-1"
        assert resp.content == "4"
        assert resp.finish_reason == "stop"
        assert resp.choices[0].message.role is Role.ASSISTANT
        assert resp.usage.total_tokens == 11
        assert resp.usage.cached_tokens == 8


def test_created_defaults_to_zero_and_unknown_fields_are_ignored():
    body = {k: v for k, v in SUCCESS.items() if k != "created"}
    body["service_tier"] = "default"
    resp = decode_response(body)
    assert resp.created == 0


def test_tool_call_response_and_to_message():
    body = dict(SUCCESS)
    body["choices"] = [
        {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {"id": "call_1", "type": "function", "function": {"name": "f", "arguments": "{\"a\": 1}"}}
                ],
            },
            "finish_reason": "tool_calls",
        }
    ]
    resp = decode_response(body)
    assert resp.content is None
    assert resp.tool_calls[0].function.parsed_arguments() == {"a": 1}
    msg = resp.choices[0].message.to_message()
    assert msg.role is Role.ASSISTANT and msg.tool_calls[0].id == "call_1"


def test_reasoning_content_is_kept():
    body = dict(SUCCESS)
    body["choices"] = [
        {"index": 0, "message": {"role": "assistant", "content": "42", "reasoning_content": "think"}, "finish_reason": "stop"}
    ]
    assert decode_response(body).choices[0].message.reasoning_content == "think"


def test_error_envelope_object_is_api_error():
    body = {"error": {"message": "Invalid API key", "type": "invalid_request_error", "code": "invalid_api_key"}}
    with pytest.raises(ApiError) as ei:
        decode_response(json.dumps(body), status=401, vendor="openai")
    err = ei.value
    assert err.message == "Invalid API key"
    assert err.api_code == "invalid_api_key"
    assert err.status == 401
    assert err.code is ErrorCode.AUTH
    assert err.vendor == "openai"
    assert err.retryable is False


def test_error_envelope_with_integer_code_and_no_status():
    body = {"error": {"message": "slow down", "type": "rate_limit_error", "code": 429}}
    with pytest.raises(ApiError) as ei:
        decode_response(body)
    assert ei.value.api_code == 429
    assert ei.value.code is ErrorCode.RATE_LIMIT
    assert ei.value.retryable is True


def test_error_envelope_bare_string():
    with pytest.raises(ApiError) as ei:
        decode_response({"error": "model not found"}, status=404)
    assert ei.value.message == "model not found"
    assert ei.value.api_code is None
    assert ei.value.code is ErrorCode.NOT_FOUND


def test_null_error_key_is_not_an_envelope():
    body = dict(SUCCESS)
    body["error"] = None
    assert decode_response(body).content == "4"


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"[1, 2]",
        json.dumps({"object": "chat.completion", "model": "m"}),
        json.dumps({**SUCCESS, "choices": [{"index": "zero", "message": {}}]}),
    ],
)
def test_malformed_bodies(body):
    with pytest.raises(MalformedResponse) as ei:
        decode_response(body, vendor="deepseek")
    assert ei.value.code is ErrorCode.PROTOCOL


def test_decode_model_list():
    body = {"object": "list", "data": [{"id": "a", "owned_by": "me"}, {"id": "b"}]}
    models = decode_model_list(json.dumps(body))
    assert models.ids() == ("a", "b")
    assert models.data[0].owned_by == "me"
