"""Tests for the selector node: selection validation, livelock and control outcomes."""

import pytest

from helpers import ScriptedReasoner, calls, reply, tool_call
from planningAgent.graph.nodes import build_selector_node
from planningAgent.graph.state import initial_run_state


def _state(statuses=("pending", "pending", "pending", "pending"), retries=None, **overrides):
    retries = retries or [0] * len(statuses)
    state = initial_run_state(thread_id="t1", request="Swap 1 ETH to USDC")
    state["plans"] = [{
        "plan_id": "p1",
        "title": "Swap",
        "tasks": [
            {"index": i, "title": f"task {i}", "status": s, "retry_count": retries[i],
             "result": "done" if s == "completed" else None}
            for i, s in enumerate(statuses)
        ],
    }]
    state.update(overrides)
    return state


def _select(*indexes, plan_id="p1"):
    return calls(tool_call("select_tasks", {"plan_id": plan_id, "task_indexes": list(indexes)}))


@pytest.mark.asyncio
async def test_selects_tasks_and_composes_executor_input():
    reasoner = ScriptedReasoner({"select": [_select(1)]})
    node = build_selector_node(reasoner=reasoner)

    updates = await node(_state(("completed", "pending")))

    assert updates["next_node_signal"] == "continue"
    assert updates["active_plan_id"] == "p1"
    assert updates["selected_task_indexes"] == [1]
    assert updates["executor_input"] == (
        "I need to execute the following steps:\n- task 1 => pending"
        "\n\nThe steps done are:\n- task 0 => done"
    )
    assert reasoner.calls[0]["actions"] == ["select_tasks", "terminate", "ask_user"]


@pytest.mark.asyncio
async def test_invalid_indexes_dropped_and_selection_truncated():
    reasoner = ScriptedReasoner({"select": [_select(0, 9, 2, 2, 3, 4, 1, 5)]})
    node = build_selector_node(reasoner=reasoner, max_selected_tasks=3)

    updates = await node(_state(("completed", "pending", "failed", "pending", "pending", "pending"), retries=[0, 0, 1, 0, 0, 0]))

    # 0 completed, 9 out of range, second 2 duplicated; failed 2 is still selectable
    assert updates["next_node_signal"] == "continue"
    assert updates["selected_task_indexes"] == [2, 3, 4]


@pytest.mark.asyncio
async def test_empty_selection_is_selector_fault():
    reasoner = ScriptedReasoner({"select": [_select(0)]})
    node = build_selector_node(reasoner=reasoner)

    updates = await node(_state(("completed", "pending")))

    assert updates["next_node_signal"] == "answer"
    assert updates["ended_by"] == "selector_fault"


@pytest.mark.asyncio
async def test_unknown_plan_and_plain_text_are_selector_faults():
    for proposal in (_select(0, plan_id="nope"), reply("let me think")):
        node = build_selector_node(reasoner=ScriptedReasoner({"select": [proposal]}))
        updates = await node(_state())
        assert updates["ended_by"] == "selector_fault"


@pytest.mark.asyncio
async def test_terminate_keeps_reason():
    reasoner = ScriptedReasoner({"select": [calls(tool_call("terminate", {"reason": "wallet is empty"}))]})
    node = build_selector_node(reasoner=reasoner)

    updates = await node(_state())

    assert updates == {
        "next_node_signal": "answer",
        "ended_by": "terminated",
        "termination_reason": "wallet is empty",
    }


@pytest.mark.asyncio
async def test_ask_user_requests_clarification():
    reasoner = ScriptedReasoner({"select": [calls(tool_call("ask_user", {"question": "Which network?"}))]})
    node = build_selector_node(reasoner=reasoner)

    updates = await node(_state())

    assert updates == {"next_node_signal": "ask", "question": "Which network?"}


@pytest.mark.asyncio
async def test_livelock_after_repeated_selection_without_progress():
    reasoner = ScriptedReasoner({"select": [_select(1, 2)]})
    node = build_selector_node(reasoner=reasoner, livelock_threshold=3)
    state = _state()

    for expected in (1, 2):
        updates = await node(state)
        assert updates["next_node_signal"] == "continue"
        assert updates["selection_counter"]["p1:1,2"]["count"] == expected
        state = {**state, **updates}

    updates = await node(state)

    assert updates["next_node_signal"] == "answer"
    assert updates["ended_by"] == "livelock"
    assert updates["selection_counter"]["p1:1,2"]["count"] == 3


@pytest.mark.asyncio
async def test_progress_resets_selection_counter():
    reasoner = ScriptedReasoner({"select": [_select(1)]})
    node = build_selector_node(reasoner=reasoner)

    first = await node(_state())
    # Task 1 failed once in between: fingerprint changed
    progressed = _state(("pending", "failed", "pending", "pending"), retries=[0, 1, 0, 0])
    second = await node({**progressed, "selection_counter": first["selection_counter"]})

    assert second["selection_counter"]["p1:1"]["count"] == 1


@pytest.mark.asyncio
async def test_different_selection_in_between_restarts_count():
    reasoner = ScriptedReasoner({"select": [_select(1), _select(1), _select(2), _select(1)]})
    node = build_selector_node(reasoner=reasoner, livelock_threshold=3)
    state = _state()

    for _ in range(4):
        updates = await node(state)
        assert updates["next_node_signal"] == "continue"
        state = {**state, **updates}

    assert state["selection_counter"] == {"p1:1": {"count": 1, "fingerprint": "1=pending/0"}}


@pytest.mark.asyncio
async def test_livelock_ignores_index_order():
    reasoner = ScriptedReasoner({"select": [_select(0, 1), _select(1, 0), _select(0, 1)]})
    node = build_selector_node(reasoner=reasoner, livelock_threshold=3)
    state = _state()

    for expected in (1, 2):
        updates = await node(state)
        assert updates["next_node_signal"] == "continue"
        assert updates["selection_counter"]["p1:0,1"]["count"] == expected
        state = {**state, **updates}

    updates = await node(state)

    assert updates["ended_by"] == "livelock"
    assert updates["selection_counter"] == {"p1:0,1": {"count": 3, "fingerprint": "0=pending/0,1=pending/0"}}


@pytest.mark.asyncio
async def test_terminal_conditions_skip_the_model():
    reasoner = ScriptedReasoner()
    node = build_selector_node(reasoner=reasoner)

    exhausted = await node(_state(("failed",), retries=[5]))
    completed = await node(_state(("completed",)))
    stalled = await node(_state(selection_counter={"p1:0": {"count": 3, "fingerprint": "0=pending/0"}}))

    assert exhausted["ended_by"] == "retry_exhausted"
    assert completed["ended_by"] == "completed"
    assert stalled["ended_by"] == "livelock"
    assert reasoner.calls == []
