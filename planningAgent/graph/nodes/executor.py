"""Executor node - runs one pass over the selected tasks with the domain tools.

A pass is a propose/dispatch loop. It ends when the model answers in plain
text, calls terminate, or hits the step guard. ask_user calls and calls to
review-gated tools suspend the run instead: the node stores a pending
interrupt together with its in-pass messages, and the next invocation
resumes here with the human reply, so no earlier tool call runs twice.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage, ToolMessage

from planningAgent.agents.interfaces import Proposal, ReasoningAdapter
from planningAgent.graph.message_utils import (
    build_tool_responses,
    forced_stop_message,
    merge_ask_user_calls,
)
from planningAgent.graph.prompts import EXECUTOR_PROMPT
from planningAgent.graph.state import RunState
from planningAgent.hitl.gateway import build_interrupt, coerce_external_input
from planningAgent.hitl.review import (
    REJECTION_MESSAGE,
    REVIEW_QUESTION,
    apply_payload_edits,
    classify_review,
    extract_payload_edits,
    format_update_message,
    split_reply,
    stringify_large_ints,
)
from planningAgent.tools import ToolRegistry
from planningAgent.tools.control import ASK_USER, TERMINATE, executor_control_tools, terminate_reason
from planningAgent.utils.error_handler import (
    ModelInvocationError,
    ToolExecutionError,
    error_payload,
    with_error_boundary,
)
from planningAgent.utils.logging_utils import log_node_entry, log_node_exit, log_visible_tools

LOGGER = logging.getLogger(__name__)

REVIEW_ACTIONS = ("approve", "reject", "update")


def _tool_message(content: str, call: Dict[str, Any], status: str = "success") -> ToolMessage:
    return ToolMessage(content=content, name=call["name"], tool_call_id=call["id"], status=status)


def build_executor_node(
    *,
    reasoner: ReasoningAdapter,
    tool_registry: ToolRegistry,
    human_review: bool = True,
    max_steps: int = 25,
) -> Callable:
    """Build the executor node.

    Args:
        reasoner: Reasoning adapter proposing tool calls
        tool_registry: Domain tools, their review metadata and simulators
        human_review: Gate review-marked tools behind a human decision
        max_steps: Proposals allowed per pass before a forced stop

    Returns:
        Async function that processes RunState
    """

    async def _dispatch(call: Dict[str, Any]) -> ToolMessage:
        try:
            content = await tool_registry.invoke(call["name"], call["args"], tool_call_id=call["id"])
        except ToolExecutionError as e:
            return _tool_message(error_payload(e), call, status="error")
        return _tool_message(content, call)

    async def _resolve_review(pending: Dict[str, Any], reply: Dict[str, Any]) -> ToolMessage:
        call = pending["tool_call"]
        action, text = split_reply(reply)

        if action not in REVIEW_ACTIONS:
            if not text:
                action = "reject"
            else:
                try:
                    action = await classify_review(reasoner, text)
                except Exception as e:
                    LOGGER.error(f"Review classification failed: {e}")
                    return _tool_message(f"Error when classify human review: {e}", call, status="error")

        LOGGER.info(f"Review of {call['name']} resolved as {action}")
        if action == "approve":
            return await _dispatch(call)
        if action == "reject":
            return _tool_message(REJECTION_MESSAGE, call)

        if not text:
            return _tool_message("Error when update payload: no changes were described", call, status="error")
        preview = pending.get("context")
        try:
            edits = await extract_payload_edits(reasoner, text, preview)
            updated = apply_payload_edits(preview, edits)
        except Exception as e:
            LOGGER.error(f"Payload update failed: {e}")
            return _tool_message(f"Error when update payload: {e}", call, status="error")
        return _tool_message(format_update_message(updated, edits), call)

    async def _resume(pending: Dict[str, Any], resume_input: Dict[str, Any]) -> ToolMessage:
        reply = coerce_external_input(resume_input)
        if pending["kind"] == "review":
            return await _resolve_review(pending, reply)
        _, text = split_reply(reply)
        return _tool_message(text or "", pending["tool_call"])

    @with_error_boundary("executor")
    async def executor_node(state: RunState) -> Dict[str, Any]:
        log_node_entry(LOGGER, "executor", state)

        pending = state.get("pending_interrupt")
        resume_input = state.get("resume_input")
        passes = state.get("passes", 0)

        # ========== Step 1: Fresh pass or resumed pass ==========
        if pending and pending.get("kind") in ("ask_user", "review") and resume_input is not None:
            messages: List[BaseMessage] = list(state.get("executor_messages") or [])
            messages.append(await _resume(pending, resume_input))
        else:
            messages = []
            passes += 1

        base = [
            SystemMessage(content=EXECUTOR_PROMPT),
            HumanMessage(content=state.get("executor_input") or ""),
        ]
        actions = tool_registry.list_tools() + executor_control_tools()
        log_visible_tools(LOGGER, "execute", actions)

        def finish(signal: str, **extra: Any) -> Dict[str, Any]:
            updates = {
                "executor_messages": messages,
                "tool_responses": build_tool_responses(messages),
                "next_node_signal": signal,
                "pending_interrupt": None,
                "resume_input": None,
                "passes": passes,
                **extra,
            }
            log_node_exit(LOGGER, "executor", updates)
            return updates

        def suspend(interrupt: Dict[str, Any]) -> Dict[str, Any]:
            updates = {
                "executor_messages": messages,
                "pending_interrupt": interrupt,
                "resume_input": None,
                "passes": passes,
                "next_node_signal": None,
            }
            log_node_exit(LOGGER, "executor", updates)
            return updates

        # ========== Step 2: Propose / dispatch loop ==========
        steps = 0
        while True:
            if steps >= max_steps:
                LOGGER.warning(f"Executor reached {max_steps} proposals in one pass, forcing stop")
                messages.append(forced_stop_message(f"Executor exceeded {max_steps} steps in one pass"))
                return finish("continue")
            steps += 1

            try:
                proposal: Proposal = await reasoner.propose(base + messages, actions, phase="execute")
            except ModelInvocationError as e:
                return finish("answer", ended_by="error", errors=[f"executor: {e.user_message}"])

            if not proposal.tool_calls:
                LOGGER.info("Executor answered without tool calls")
                return finish("answer", ended_by="executor_answer", executor_answer=proposal.text)

            first = proposal.tool_calls[0]
            if first["name"] == TERMINATE:
                reason = terminate_reason(first["args"])
                LOGGER.info(f"Executor terminated the pass: {reason}")
                messages.append(proposal.to_message([first]))
                messages.append(_tool_message(json.dumps({"signal": TERMINATE, "reason": reason}), first))
                return finish("continue")

            asks = [call for call in proposal.tool_calls if call["name"] == ASK_USER]
            if asks:
                merged = merge_ask_user_calls(asks)
                question = str(merged["args"].get("question", ""))
                messages.append(proposal.to_message([merged]))
                return suspend(build_interrupt("ask_user", question, tool_call=merged))

            gated = None
            if human_review:
                gated = next((c for c in proposal.tool_calls if tool_registry.requires_review(c["name"])), None)
            if gated is not None:
                messages.append(proposal.to_message([gated]))
                try:
                    preview = stringify_large_ints(await tool_registry.simulate(gated["name"], gated["args"]))
                except ToolExecutionError as e:
                    messages.append(_tool_message(f"Error: {e.user_message}", gated, status="error"))
                    continue
                return suspend(build_interrupt("review", REVIEW_QUESTION, context=preview, tool_call=gated))

            messages.append(proposal.to_message())
            for call in proposal.tool_calls:
                messages.append(await _dispatch(call))

    return executor_node
