"""End-to-end runs of the compiled graph behind the Orchestrator.

The chat models are replaced by a scripted reasoner; everything else
(graph, checkpointer, tool registry, gateway, stores) is real.
"""

import asyncio
import gc
import json
import re

import pytest

from helpers import ScriptedReasoner, calls, reply, tool_call
from planningAgent.callbacks import CallbackManager, ToolExecutionState
from planningAgent.config.settings import Settings
from planningAgent.graph.builder import build_planning_graph
from planningAgent.hitl import HumanInterruptGateway, WaitingResult
from planningAgent.persistence import InMemoryConversationStore, build_checkpointer
from planningAgent.runtime import AnswerResult, Orchestrator, build_planning_app
from planningAgent.utils.error_handler import NoPendingInterruptError, StaleResumeError

THREAD = "thread-1"


def _plan_id(messages):
    text = "\n".join(str(m.content) for m in messages)
    return re.search(r'"plan_id": "([a-z0-9]{5})"', text).group(1)


def create(*tasks, title="Swap"):
    return calls(tool_call("create_plan", {"plans": [{"title": title, "tasks": list(tasks)}]}))


def select(*indexes):
    return lambda messages: calls(tool_call("select_tasks", {
        "plan_id": _plan_id(messages), "task_indexes": list(indexes),
    }))


def update(*task_updates):
    return lambda messages: calls(tool_call("update_plan", {
        "plan_id": _plan_id(messages), "tasks": list(task_updates),
    }))


def terminate(reason="pass finished"):
    return calls(tool_call("terminate", {"reason": reason}))


def _orchestrator(reasoner, tool_registry, *, recursion_limit=200, max_passes=20, **graph_kwargs):
    app = build_planning_graph(
        reasoner=reasoner,
        tool_registry=tool_registry,
        checkpointer=build_checkpointer(),
        **graph_kwargs,
    )
    return Orchestrator(
        app=app,
        gateway=HumanInterruptGateway(callbacks=tool_registry.callbacks),
        conversation_store=InMemoryConversationStore(),
        recursion_limit=recursion_limit,
        max_passes=max_passes,
    )


def _record_tools(tool_registry):
    started = []

    def on_event(data):
        if data.state == ToolExecutionState.STARTED:
            started.append((data.tool_name, dict(data.args)))

    tool_registry.callbacks.register_tool_execution_callback(on_event)
    return started


@pytest.mark.asyncio
async def test_plan_select_execute_until_completed(tool_registry):
    """Fresh request: one plan, both tasks executed in one pass, plan completed."""
    reasoner = ScriptedReasoner({
        "plan": [create("Get ETH balance", "Get USDC balance")],
        "select": [select(0, 1)],
        "execute": [
            calls(
                tool_call("get_balance", {"token": "ETH"}),
                tool_call("get_balance", {"token": "USDC"}),
            ),
            terminate("both balances fetched"),
        ],
        "update": [update(
            {"index": 0, "status": "completed", "result": "12.5 ETH"},
            {"index": 1, "status": "completed", "result": "12.5 USDC"},
        )],
        "answer": [reply("You hold 12.5 ETH and 12.5 USDC.")],
    })
    orchestrator = _orchestrator(reasoner, tool_registry)

    result = await orchestrator.run(THREAD, "What are my ETH and USDC balances?")

    assert isinstance(result, AnswerResult)
    assert result.status == "answered"
    assert result.answer == "You hold 12.5 ETH and 12.5 USDC."
    assert result.ended_by == "completed"
    assert result.plans[0]["status"] == "completed"
    assert reasoner.phases() == ["plan", "select", "execute", "execute", "update", "answer"]
    assert "- Get ETH balance => pending\n- Get USDC balance => pending" in reasoner.prompts("execute")[0]

    history = orchestrator.conversation_store.get_messages(THREAD)
    assert [m.content for m in history] == ["What are my ETH and USDC balances?", "You hold 12.5 ETH and 12.5 USDC."]


@pytest.mark.asyncio
async def test_retry_ceiling_ends_run_naming_failed_task(tool_registry):
    """A task failing five times is never selected again; the answer explains it."""
    reasoner = ScriptedReasoner({
        "plan": [create("Fetch ETH price", title="Price")],
        "select": [select(0)],
        "execute": [calls(tool_call("broken_lookup", {"query": "ETH"})), terminate()] * 5,
        "update": [update({"index": 0, "status": "failed", "result": "upstream unavailable"})],
        "answer": [reply("I could not fetch the ETH price: the price service kept failing.")],
    })
    orchestrator = _orchestrator(reasoner, tool_registry)

    result = await orchestrator.run(THREAD, "What is the ETH price?")

    assert result.ended_by == "retry_exhausted"
    task = result.plans[0]["tasks"][0]
    assert task["status"] == "failed"
    assert task["retry_count"] == 5
    assert reasoner.phases().count("select") == 5
    assert reasoner.phases().count("update") == 5
    answer_prompt = reasoner.prompts("answer")[0]
    assert "'Fetch ETH price'" in answer_prompt
    assert "failed too many times" in answer_prompt


@pytest.mark.asyncio
async def test_ask_user_suspends_and_resumes_without_rerunning_tools(tool_registry):
    started = _record_tools(tool_registry)
    reasoner = ScriptedReasoner({
        "plan": [create("Check ETH balance and confirm the swap")],
        "select": [select(0)],
        "execute": [
            calls(tool_call("get_balance", {"token": "ETH"})),
            calls(tool_call("ask_user", {"question": "Proceed with the swap?"})),
            terminate("user confirmed"),
        ],
        "update": [update({"index": 0, "status": "completed"})],
        "answer": [reply("Confirmed.")],
    })
    orchestrator = _orchestrator(reasoner, tool_registry)

    waiting = await orchestrator.run(THREAD, "Swap 1 ETH if I have enough")

    assert isinstance(waiting, WaitingResult)
    assert waiting.status == "waiting"
    assert waiting.kind == "ask_user"
    assert waiting.question == "Proceed with the swap?"
    assert waiting.expected_reply_shape == {"input": "string"}
    assert orchestrator.is_awaiting(THREAD)

    result = await orchestrator.resume(THREAD, {"externalInput": "yes"}, token=waiting.token)

    assert isinstance(result, AnswerResult)
    assert result.ended_by == "completed"
    assert started == [("get_balance", {"token": "ETH"})]
    assert not orchestrator.is_awaiting(THREAD)
    assert "You asked user: Proceed with the swap?\nUser response: yes" in reasoner.prompts("update")[0]
    assert (await orchestrator.get_state(THREAD))["passes"] == 1


@pytest.mark.asyncio
async def test_review_update_reports_edited_payload_and_reproposes(tool_registry):
    started = _record_tools(tool_registry)
    swap = {"token_in": "ETH", "token_out": "USDC", "amount": 100}
    reasoner = ScriptedReasoner(
        {
            "plan": [create("Swap ETH to USDC")],
            "select": [select(0)],
            "execute": [
                calls(tool_call("swap_tokens", swap)),
                calls(tool_call("swap_tokens", {**swap, "amount": 50})),
                terminate("swap sent"),
            ],
            "update": [update({"index": 0, "status": "completed"})],
            "answer": [reply("Swapped 50 ETH.")],
        },
        extractions=[{"action": "update"}, {"updates": [{"path": "amount", "value": "50"}]}],
    )
    orchestrator = _orchestrator(reasoner, tool_registry)

    review = await orchestrator.run(THREAD, "Swap 100 ETH to USDC")

    assert review.kind == "review"
    assert review.context["amount"] == 100
    assert review.context["min_out"] == str(2**60)

    again = await orchestrator.resume(THREAD, "change amount to 50")

    # Edited payload went back to the executor, which proposed the call again
    assert isinstance(again, WaitingResult)
    assert again.kind == "review"
    assert again.context["amount"] == 50
    assert started == []
    edited = reasoner.calls[-1]["messages"][-1]
    assert '"amount": 50' in edited.content
    assert "was not executed" in edited.content

    result = await orchestrator.resume(THREAD, {"action": "approve"}, token=again.token)

    assert result.answer == "Swapped 50 ETH."
    assert started == [("swap_tokens", {**swap, "amount": 50})]


@pytest.mark.asyncio
async def test_reject_returns_to_executor(tool_registry):
    started = _record_tools(tool_registry)
    reasoner = ScriptedReasoner(
        {
            "plan": [create("Swap ETH to USDC")],
            "select": [select(0), calls(tool_call("terminate", {"reason": "user rejected the swap"}))],
            "execute": [
                calls(tool_call("swap_tokens", {"token_in": "ETH", "token_out": "USDC", "amount": 1})),
                terminate("rejected by user"),
            ],
            "update": [update({"index": 0, "status": "failed", "result": "rejected"})],
            "answer": [reply("The swap was cancelled.")],
        },
        extractions=[{"action": "reject"}],
    )
    orchestrator = _orchestrator(reasoner, tool_registry)

    await orchestrator.run(THREAD, "Swap 1 ETH")
    result = await orchestrator.run(THREAD, "reject")

    assert started == []
    assert result.ended_by == "terminated"
    assert "Transaction rejected by human review" in reasoner.prompts("update")[0]
    assert "user rejected the swap" in reasoner.prompts("answer")[0]


@pytest.mark.asyncio
async def test_selector_clarification_round_trip(tool_registry):
    reasoner = ScriptedReasoner({
        "plan": [create("Swap on the chosen network")],
        "select": [calls(tool_call("ask_user", {"question": "Which network?"})), select(0)],
        "execute": [terminate("swapped on Base")],
        "update": [update({"index": 0, "status": "completed"})],
        "answer": [reply("Swapped on Base.")],
    })
    orchestrator = _orchestrator(reasoner, tool_registry)

    waiting = await orchestrator.run(THREAD, "Swap 1 ETH")

    assert waiting.kind == "clarification"
    assert waiting.question == "Which network?"

    result = await orchestrator.run(THREAD, "Base")

    assert result.answer == "Swapped on Base."
    assert "You asked user: Which network?\nUser response: Base" in reasoner.prompts("update")[0]


@pytest.mark.asyncio
async def test_resume_guards(tool_registry):
    reasoner = ScriptedReasoner({
        "plan": [create("Confirm")],
        "select": [select(0)],
        "execute": [calls(tool_call("ask_user", {"question": "Sure?"}))],
    })
    orchestrator = _orchestrator(reasoner, tool_registry)

    with pytest.raises(NoPendingInterruptError):
        await orchestrator.resume(THREAD, "yes")

    waiting = await orchestrator.run(THREAD, "Do it")

    with pytest.raises(StaleResumeError):
        await orchestrator.resume(THREAD, "yes", token="not-" + waiting.token)


@pytest.mark.asyncio
async def test_new_request_starts_with_empty_plans(tool_registry):
    reasoner = ScriptedReasoner({
        "plan": [create("First"), create("Second")],
        "select": [select(0)],
        "execute": [reply("Nothing to do.")],
        "answer": [reply("ok")],
    })
    orchestrator = _orchestrator(reasoner, tool_registry)

    first = await orchestrator.run(THREAD, "first request")
    second = await orchestrator.run(THREAD, "second request")

    assert first.ended_by == second.ended_by == "executor_answer"
    assert [t["title"] for t in second.plans[0]["tasks"]] == ["Second"]
    # Prior turns are handed to the planner as chat history
    assert "first request" in reasoner.prompts("plan")[1]


@pytest.mark.asyncio
async def test_empty_answer_falls_back_to_summary(tool_registry):
    reasoner = ScriptedReasoner({
        "plan": [create("Fetch ETH price", title="Price")],
        "select": [select(0)],
        "execute": [calls(tool_call("broken_lookup", {"query": "ETH"})), terminate()],
        "update": [update({"index": 0, "status": "failed"})],
        "answer": [reply("")],
    })
    orchestrator = _orchestrator(reasoner, tool_registry)

    result = await orchestrator.run(THREAD, "What is the ETH price?")

    assert result.ended_by == "retry_exhausted"
    assert "Fetch ETH price" in result.answer
    assert "0/1 tasks completed" in result.answer


@pytest.mark.asyncio
async def test_recursion_limit_produces_error_result(tool_registry):
    reasoner = ScriptedReasoner({
        "plan": [create("Loop")],
        "select": [select(0)],
        "execute": [terminate()],
        "update": [update({"index": 0, "status": "in-progress"})],
    })
    orchestrator = _orchestrator(reasoner, tool_registry, recursion_limit=4)

    result = await orchestrator.run(THREAD, "loop forever")

    assert result.status == "error"
    assert orchestrator.conversation_store.get_messages(THREAD)[-1].content == result.answer


STUCK_BEHAVIOURS = {
    # Same task fails every pass: bounded by the retry ceiling
    "always_failing": (
        [calls(tool_call("broken_lookup", {"query": "ETH"})), terminate()],
        {"index": 0, "status": "failed"},
        "retry_exhausted",
    ),
    # Planner reports no progress: identical selections trip the livelock detector
    "no_progress": (
        [terminate("nothing happened")],
        {"index": 0, "status": "in-progress"},
        "livelock",
    ),
    # Executor never stops calling tools: the step guard forces a stop
    "endless_tool_calls": (
        [calls(tool_call("get_balance", {"token": "ETH"}))],
        {"index": 0, "status": "in-progress"},
        "forced_stop",
    ),
}


@pytest.mark.asyncio
@pytest.mark.parametrize("behaviour", sorted(STUCK_BEHAVIOURS))
async def test_run_always_terminates(tool_registry, behaviour):
    execute, task_update, ended_by = STUCK_BEHAVIOURS[behaviour]
    reasoner = ScriptedReasoner({
        "plan": [create("Unresolvable task")],
        "select": [select(0)],
        "execute": execute,
        "update": [update(task_update)],
        "answer": [reply("Stopped.")],
    })
    orchestrator = _orchestrator(reasoner, tool_registry, max_executor_steps=5)

    result = await orchestrator.run(THREAD, "Do the impossible")

    assert result.status == "answered"
    assert result.ended_by == ended_by
    state = await orchestrator.get_state(THREAD)
    assert state["passes"] <= 5
    assert state["pending_interrupt"] is None


@pytest.mark.asyncio
async def test_build_planning_app_wires_settings(tool_registry, tmp_path):
    config = tmp_path / "tools.yaml"
    config.write_text("tools:\n  swap_tokens:\n    requires_review: false\n")
    settings = Settings(_env_file=None)
    settings.tools.tools_config_path = str(config)
    settings.governance.max_task_retries = 2
    reasoner = ScriptedReasoner({
        "plan": [create("Fetch ETH price", title="Price")],
        "select": [select(0)],
        "execute": [calls(tool_call("broken_lookup", {"query": "ETH"})), terminate()],
        "update": [update({"index": 0, "status": "failed"})],
        "answer": [reply("Price unavailable.")],
    })

    orchestrator = build_planning_app(settings=settings, tools=[tool_registry.get_tool("broken_lookup")], reasoner=reasoner)
    result = await orchestrator.run(THREAD, "ETH price?")

    assert result.ended_by == "retry_exhausted"
    assert result.plans[0]["tasks"][0]["retry_count"] == 2
    assert "now" in reasoner.calls[0]["messages"][0].content


@pytest.mark.asyncio
async def test_thread_locks_are_released_after_runs(tool_registry):
    reasoner = ScriptedReasoner({
        "plan": [reply("Nothing to do.")],
        "answer": [reply("Nothing to do.")],
    })
    orchestrator = _orchestrator(reasoner, tool_registry)

    results = await asyncio.gather(*(orchestrator.run(f"thread-{i}", "hello") for i in range(3)))
    gc.collect()

    assert [r.ended_by for r in results] == ["no_update"] * 3
    assert len(orchestrator._locks) == 0
