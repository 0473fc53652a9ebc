"""Merge rules of the stream accumulator."""
from __future__ import annotations

import json

from chatcompat.base.schema import Role
from chatcompat.base.streaming import StreamAccumulator, StreamChunk
from chatcompat.tests.streaming.helpers import delta_chunk, events_named


def _merge(*chunks) -> StreamAccumulator:
    acc = StreamAccumulator()
    for c in chunks:
        acc.merge(StreamChunk.model_validate(c))
    return acc


def _tool(index, *, id_=None, name=None, arguments=None, type_=None):
    tc = {"index": index}
    if id_ is not None:
        tc["id"] = id_
    if type_ is not None:
        tc["type"] = type_
    fn = {}
    if name is not None:
        fn["name"] = name
    if arguments is not None:
        fn["arguments"] = arguments
    if fn:
        tc["function"] = fn
    return tc


def test_content_is_appended_in_order():
    acc = _merge(delta_chunk("A", role="assistant"), delta_chunk("B"))
    assert acc.content(0) == "AB"


def test_empty_delta_is_a_no_op():
    with_noop = _merge(delta_chunk("A"), delta_chunk(), delta_chunk("B"))
    without = _merge(delta_chunk("A"), delta_chunk("B"))
    assert with_noop.snapshot() == without.snapshot()


def test_content_starts_empty_not_none():
    snap = _merge(delta_chunk(role="assistant"), delta_chunk(finish_reason="stop")).snapshot()
    assert snap.choices[0].message.content == ""


def test_finish_reason_is_set_once(log_capture, debug_logging):
    acc = _merge(
        delta_chunk("x", finish_reason="stop"),
        delta_chunk(finish_reason=None),
        delta_chunk(finish_reason="length"),
    )
    assert acc.finish_reason(0) == "stop"
    conflicts = events_named(log_capture, "stream.merge.conflict")
    assert conflicts and conflicts[0]["field"] == "finish_reason"
    assert conflicts[0]["kept"] == "stop" and conflicts[0]["ignored"] == "length"


def test_role_is_set_once():
    snap = _merge(delta_chunk(role="assistant"), delta_chunk("x", role="user")).snapshot()
    assert snap.choices[0].message.role is Role.ASSISTANT


def test_choices_are_sparse_and_sorted_by_index():
    acc = _merge(delta_chunk("two", index=2), delta_chunk("zero", index=0), delta_chunk("!", index=2))
    snap = acc.snapshot()
    assert [c.index for c in snap.choices] == [0, 2]
    assert snap.choice(2).message.content == "two!"
    assert snap.choice(1) is None


def test_tool_call_arguments_concatenate():
    acc = _merge(
        delta_chunk(tool_calls=[_tool(0, id_="call_1", type_="function", name="f", arguments='{"a"')]),
        delta_chunk(tool_calls=[_tool(0, arguments=": 1}")]),
    )
    call = acc.snapshot().tool_calls[0]
    assert call.id == "call_1"
    assert call.function.name == "f"
    assert call.function.arguments == '{"a": 1}'
    assert call.function.parsed_arguments() == {"a": 1}


def test_tool_call_name_and_id_are_set_once():
    acc = _merge(
        delta_chunk(tool_calls=[_tool(0, id_="call_1", name="f")]),
        delta_chunk(tool_calls=[{"index": 0, "id": None, "function": {"name": None, "arguments": "{}"}}]),
        delta_chunk(tool_calls=[_tool(0, id_="call_2", name="g")]),
    )
    call = acc.snapshot().tool_calls[0]
    assert (call.id, call.function.name, call.function.arguments) == ("call_1", "f", "{}")


def test_parallel_tool_calls_use_their_own_index_space():
    acc = _merge(
        delta_chunk(index=1, tool_calls=[_tool(1, id_="b", name="second"), _tool(0, id_="a", name="first")]),
        delta_chunk(index=1, tool_calls=[_tool(0, arguments="{}"), _tool(1, arguments="[]")]),
    )
    calls = acc.snapshot().choice(1).message.tool_calls
    assert [(c.id, c.function.name, c.function.arguments) for c in calls] == [
        ("a", "first", "{}"),
        ("b", "second", "[]"),
    ]


def test_tool_call_without_index_uses_list_position():
    acc = _merge(
        delta_chunk(tool_calls=[{"id": "a", "function": {"name": "f", "arguments": "1"}}]),
        delta_chunk(tool_calls=[{"function": {"arguments": "2"}}]),
    )
    call = acc.snapshot().tool_calls[0]
    assert call.function.arguments == "12"
    assert call.type == "function"


def test_usage_top_level_and_per_choice_replace():
    per_choice = delta_chunk()
    per_choice["choices"][0]["usage"] = {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}
    acc = _merge(per_choice)
    assert acc.usage.total_tokens == 2
    acc.merge(
        StreamChunk.model_validate(
            delta_chunk(usage={"prompt_tokens": 5, "completion_tokens": 7, "total_tokens": 12})
        )
    )
    assert acc.snapshot().usage.total_tokens == 12


def test_envelope_fields_first_non_empty_wins():
    first = delta_chunk("a", chunk_id="", model="")
    second = delta_chunk("b", chunk_id="chatcmpl-2", model="m-2")
    third = delta_chunk("c", chunk_id="chatcmpl-3", model="m-3")
    snap = _merge(first, second, third).snapshot()
    assert snap.id == "chatcmpl-2"
    assert snap.model == "m-2"
    assert snap.created == 1700000000


def test_unknown_role_is_ignored(log_capture, debug_logging):
    snap = _merge(delta_chunk("x", role="narrator")).snapshot()
    assert snap.choices[0].message.role is None
    assert events_named(log_capture, "stream.merge.unknown_role")


def test_snapshot_is_immutable_copy():
    acc = _merge(delta_chunk("A"))
    snap = acc.snapshot()
    acc.merge(StreamChunk.model_validate(delta_chunk("B")))
    assert snap.content == "A"
    assert acc.snapshot().content == "AB"
    assert json.loads(json.dumps(snap.to_dict()))["choices"][0]["message"]["content"] == "A"
