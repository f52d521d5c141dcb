"""Selector node - picks the next tasks for the executor, asks the user, or stops."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError

from planningAgent.agents.interfaces import ReasoningAdapter
from planningAgent.graph.plan import (
    all_plans_completed,
    find_plan,
    load_plans,
    selectable_indexes,
    status_fingerprint,
    tasks_at_ceiling,
)
from planningAgent.graph.prompts import SELECTOR_PROMPT, compose_executor_input, format_plans
from planningAgent.graph.state import DEFAULT_RETRY_CEILING, RunState
from planningAgent.tools.control import (
    ASK_USER,
    SELECT_TASKS,
    TERMINATE,
    AskUserInput,
    SelectTasksInput,
    selector_tools,
    terminate_reason,
)
from planningAgent.utils.error_handler import with_error_boundary
from planningAgent.utils.logging_utils import log_node_entry, log_node_exit, log_prompt

LOGGER = logging.getLogger(__name__)

_DECISIONS = (SELECT_TASKS, TERMINATE, ASK_USER)


def selection_key(plan_id: str, indexes: List[int]) -> str:
    """Order-insensitive key of a selection, e.g. ``p1:0,2``."""
    return f"{plan_id}:{','.join(str(i) for i in sorted(indexes))}"


def build_selector_node(
    *,
    reasoner: ReasoningAdapter,
    max_selected_tasks: int = 3,
    livelock_threshold: int = 3,
    prompt_log_length: int = 500,
) -> Callable:
    """Build the selector node.

    The same selection made ``livelock_threshold`` times in a row without any
    change to the selected tasks' status or retry count ends the run.
    """

    def _fault(detail: str) -> Dict[str, Any]:
        LOGGER.warning(f"Selector fault: {detail}")
        return {
            "next_node_signal": "answer",
            "ended_by": "selector_fault",
            "errors": [f"selector: {detail}"],
        }

    @with_error_boundary("selector")
    async def selector_node(state: RunState) -> Dict[str, Any]:
        log_node_entry(LOGGER, "selector", state)

        plans = load_plans(state.get("plans"))
        ceiling = state.get("retry_ceiling") or DEFAULT_RETRY_CEILING

        # ========== Step 1: Terminal conditions ==========
        if tasks_at_ceiling(plans, ceiling):
            updates: Dict[str, Any] = {"next_node_signal": "answer", "ended_by": "retry_exhausted"}
            log_node_exit(LOGGER, "selector", updates)
            return updates
        if all_plans_completed(plans):
            updates = {"next_node_signal": "answer", "ended_by": "completed"}
            log_node_exit(LOGGER, "selector", updates)
            return updates
        stalled = [
            key for key, entry in (state.get("selection_counter") or {}).items()
            if entry.get("count", 0) >= livelock_threshold
        ]
        if stalled:
            LOGGER.warning(f"Livelock carried over for selections {stalled}")
            updates = {"next_node_signal": "answer", "ended_by": "livelock"}
            log_node_exit(LOGGER, "selector", updates)
            return updates

        # ========== Step 2: Ask the model ==========
        system_prompt = SELECTOR_PROMPT.format(max_tasks=max_selected_tasks)
        log_prompt(LOGGER, "selector", system_prompt, prompt_log_length)
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=(
                f"User request: {state.get('request', '')}\n\n"
                f"The current plans:\n{format_plans(plans)}"
            )),
        ]
        proposal = await reasoner.propose(messages, selector_tools(), phase="select")

        decision = next((call for call in proposal.tool_calls if call["name"] in _DECISIONS), None)
        if decision is None:
            updates = _fault(f"no selection proposed (tool calls: {proposal.names})")
            log_node_exit(LOGGER, "selector", updates)
            return updates

        # ========== Step 3: Terminate / ask ==========
        if decision["name"] == TERMINATE:
            reason = terminate_reason(decision["args"])
            LOGGER.info(f"Selector terminated the run: {reason}")
            updates = {
                "next_node_signal": "answer",
                "ended_by": "terminated",
                "termination_reason": reason,
            }
            log_node_exit(LOGGER, "selector", updates)
            return updates

        if decision["name"] == ASK_USER:
            try:
                question = AskUserInput.model_validate(decision["args"]).question
            except ValidationError as e:
                updates = _fault(f"invalid ask_user arguments: {e}")
            else:
                updates = {"next_node_signal": "ask", "question": question}
            log_node_exit(LOGGER, "selector", updates)
            return updates

        # ========== Step 4: Validate the selection ==========
        try:
            args = SelectTasksInput.model_validate(decision["args"])
        except ValidationError as e:
            updates = _fault(f"invalid select_tasks arguments: {e}")
            log_node_exit(LOGGER, "selector", updates)
            return updates

        plan = find_plan(plans, args.plan_id)
        if plan is None:
            updates = _fault(f"unknown plan {args.plan_id!r}")
            log_node_exit(LOGGER, "selector", updates)
            return updates

        allowed = set(selectable_indexes(plan, ceiling))
        indexes: List[int] = []
        for index in args.task_indexes:
            if index in allowed and index not in indexes:
                indexes.append(index)
        if len(indexes) > max_selected_tasks:
            LOGGER.info(f"Truncating selection {indexes} to {max_selected_tasks} tasks")
            indexes = indexes[:max_selected_tasks]
        if not indexes:
            updates = _fault(f"no selectable task in {args.task_indexes} of plan {plan.plan_id}")
            log_node_exit(LOGGER, "selector", updates)
            return updates

        # ========== Step 5: Livelock detection ==========
        # Only the latest selection is kept, so a different selection restarts the count
        key = selection_key(plan.plan_id, indexes)
        fingerprint = status_fingerprint(plan, sorted(indexes))
        previous = (state.get("selection_counter") or {}).get(key)
        if previous and previous.get("fingerprint") == fingerprint:
            count = previous.get("count", 0) + 1
        else:
            count = 1
        counter = {key: {"count": count, "fingerprint": fingerprint}}

        if count >= livelock_threshold:
            LOGGER.warning(f"Livelock: selection {key} repeated {count} times without progress")
            updates = {
                "next_node_signal": "answer",
                "ended_by": "livelock",
                "selection_counter": counter,
            }
            log_node_exit(LOGGER, "selector", updates)
            return updates

        updates = {
            "active_plan_id": plan.plan_id,
            "selected_task_indexes": indexes,
            "executor_input": compose_executor_input(plan, indexes),
            "selection_counter": counter,
            "next_node_signal": "continue",
            "question": None,
        }
        log_node_exit(LOGGER, "selector", updates)
        return updates

    return selector_node
