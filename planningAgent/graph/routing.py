"""Routing logic for the plan-select-execute graph.

Every visit to the planner/selector junction evaluates, in priority order:

1. forced-stop signal in the last pass's tool responses, or pass limit reached -> answer
2. next_node_signal == "answer" -> answer
3. any task at or over the retry ceiling -> answer
4. all plans completed -> answer
5. no plan yet -> planner (create)
6. otherwise -> planner (update)

A thread suspended on a human interrupt routes to END; the next invocation
enters straight at the suspended node.
"""

from __future__ import annotations

import logging
from typing import Literal, Tuple

from langgraph.graph import END

from planningAgent.graph.message_utils import has_forced_stop
from planningAgent.graph.plan import all_plans_completed, load_plans, tasks_at_ceiling
from planningAgent.graph.state import DEFAULT_RETRY_CEILING, RunState
from planningAgent.utils.logging_utils import log_routing_decision

LOGGER = logging.getLogger("planningAgent.routing")


def junction_decision(state: RunState) -> Tuple[Literal["planner", "answer"], str]:
    """Return (destination, reason code) per the junction priority table."""
    if has_forced_stop(state.get("tool_responses")):
        return "answer", "forced_stop"

    passes = state.get("passes", 0)
    max_passes = state.get("max_passes")
    if max_passes is not None and passes >= max_passes:
        return "answer", "loop_limit"

    if state.get("next_node_signal") == "answer":
        return "answer", state.get("ended_by") or "signalled"

    plans = load_plans(state.get("plans"))
    ceiling = state.get("retry_ceiling") or DEFAULT_RETRY_CEILING
    if tasks_at_ceiling(plans, ceiling):
        return "answer", "retry_exhausted"

    if all_plans_completed(plans):
        return "answer", "completed"

    if not plans:
        return "planner", "create"
    return "planner", "update"


def entry_route(state: RunState) -> Literal["planner", "executor", "ask", "answer"]:
    """Route from START: resume a suspended node, otherwise evaluate the junction."""
    pending = state.get("pending_interrupt")
    if pending and state.get("resume_input") is not None:
        decision = "ask" if pending.get("kind") == "clarification" else "executor"
        log_routing_decision(LOGGER, "start", decision, f"Resuming {pending.get('kind')} interrupt")
        return decision

    decision, reason = junction_decision(state)
    log_routing_decision(LOGGER, "start", decision, reason)
    return decision


def planner_route(state: RunState) -> Literal["selector", "answer"]:
    if state.get("next_node_signal") == "answer":
        decision = "answer"
        reason = f"Planner requested answer ({state.get('ended_by')})"
    else:
        decision = "selector"
        reason = "Plans ready for selection"
    log_routing_decision(LOGGER, "planner", decision, reason)
    return decision


def selector_route(state: RunState) -> Literal["executor", "ask", "answer"]:
    signal = state.get("next_node_signal")
    if signal == "answer":
        decision = "answer"
        reason = f"Selector requested answer ({state.get('ended_by')})"
    elif signal == "ask":
        decision = "ask"
        reason = "Selector needs clarification from the user"
    else:
        decision = "executor"
        reason = f"Selected tasks {state.get('selected_task_indexes')} of plan {state.get('active_plan_id')}"
    log_routing_decision(LOGGER, "selector", decision, reason)
    return decision


def _suspend_or_junction(state: RunState, from_node: str):
    pending = state.get("pending_interrupt")
    if pending:
        log_routing_decision(LOGGER, from_node, "end", f"Suspended on {pending.get('kind')} interrupt")
        return END
    decision, reason = junction_decision(state)
    log_routing_decision(LOGGER, from_node, decision, reason)
    return decision


def executor_route(state: RunState) -> Literal["planner", "answer", "__end__"]:
    return _suspend_or_junction(state, "executor")


def ask_route(state: RunState) -> Literal["planner", "answer", "__end__"]:
    return _suspend_or_junction(state, "ask")
