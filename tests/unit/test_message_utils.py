"""Tests for executor message helpers."""

from langchain_core.messages import AIMessage, ToolMessage

from planningAgent.graph.message_utils import (
    build_tool_responses,
    forced_stop_message,
    has_forced_stop,
    merge_ask_user_calls,
)


def test_single_ask_user_call_unchanged():
    call = {"name": "ask_user", "args": {"question": "Which chain?"}, "id": "c1"}

    assert merge_ask_user_calls([call]) is call


def test_multiple_ask_user_calls_merged():
    merged = merge_ask_user_calls([
        {"name": "ask_user", "args": {"question": "Which chain?"}, "id": "c1"},
        {"name": "ask_user", "args": {"question": " How much? "}, "id": "c2"},
    ])

    assert merged == {"name": "ask_user", "args": {"question": "1. Which chain?\n2. How much?"}, "id": "c1"}


def test_tool_responses_get_fresh_ids_and_ask_user_rewrite():
    messages = [
        AIMessage(content="", tool_calls=[{"name": "ask_user", "args": {"question": "Which chain?"}, "id": "c1"}]),
        ToolMessage(content="Base", name="ask_user", tool_call_id="c1"),
        AIMessage(content="", tool_calls=[{"name": "get_balance", "args": {"token": "ETH"}, "id": "c2"}]),
        ToolMessage(content='{"ok": false}', name="get_balance", tool_call_id="c2", status="error"),
    ]

    responses = build_tool_responses(messages)

    assert len(responses) == 2
    assert responses[0].content == "You asked user: Which chain?\nUser response: Base"
    assert responses[1].status == "error"
    ids = [r.tool_call_id for r in responses]
    assert len(set(ids)) == 2
    assert all(len(i) == 8 and i not in ("c1", "c2") for i in ids)


def test_forced_stop_detection():
    assert has_forced_stop([forced_stop_message("too many steps")])
    assert not has_forced_stop([ToolMessage(content="not json {", name="x", tool_call_id="1")])
    assert not has_forced_stop(None)
