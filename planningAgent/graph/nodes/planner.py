"""Planner node - creates plans for a request and updates them after each executor pass.

The planner is the only writer of the plan collection. Before calling the
model it short-circuits to the answer node when a task hit the retry ceiling
or every plan is completed; a proposal without an actionable plan call also
ends in the answer node rather than stalling the run.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError

from planningAgent.agents.interfaces import ReasoningAdapter
from planningAgent.graph.plan import (
    PlanModel,
    all_plans_completed,
    apply_task_updates,
    dump_plans,
    find_plan,
    load_plans,
    materialize_plans,
    replace_plan,
    tasks_at_ceiling,
)
from planningAgent.graph.prompts import (
    PLANNER_CREATE_PROMPT,
    PLANNER_UPDATE_PROMPT,
    format_plans,
    format_tool_catalog,
    format_tool_responses,
)
from planningAgent.graph.state import DEFAULT_RETRY_CEILING, RunState
from planningAgent.tools import ToolRegistry
from planningAgent.tools.control import (
    CREATE_PLAN,
    UPDATE_PLAN,
    CreatePlanInput,
    UpdatePlanInput,
    planner_create_tools,
    planner_update_tools,
)
from planningAgent.utils.error_handler import with_error_boundary
from planningAgent.utils.logging_utils import (
    log_node_entry,
    log_node_exit,
    log_plan_created,
    log_prompt,
    log_task_updates,
)

LOGGER = logging.getLogger(__name__)


def _answer(ended_by: str, **extra: Any) -> Dict[str, Any]:
    return {"next_node_signal": "answer", "ended_by": ended_by, **extra}


def _terminal_check(plans: List[PlanModel], ceiling: int) -> Dict[str, Any] | None:
    exhausted = tasks_at_ceiling(plans, ceiling)
    if exhausted:
        titles = ", ".join(f"{task.title!r}" for _, task in exhausted)
        LOGGER.warning(f"Retry ceiling ({ceiling}) reached by: {titles}")
        return _answer("retry_exhausted")
    if all_plans_completed(plans):
        LOGGER.info("All plans completed")
        return _answer("completed")
    return None


def build_planner_node(
    *,
    reasoner: ReasoningAdapter,
    tool_registry: ToolRegistry,
    prompt_log_length: int = 500,
) -> Callable:
    """Build the planner node.

    Args:
        reasoner: Reasoning adapter proposing create_plan/update_plan calls
        tool_registry: Domain tools, listed in the create prompt so tasks match real capabilities
        prompt_log_length: Truncation for prompt logging

    Returns:
        Async function that processes RunState
    """

    async def _create(state: RunState) -> Dict[str, Any]:
        system_prompt = (
            f"{PLANNER_CREATE_PROMPT}\n\nAvailable tools:\n"
            f"{format_tool_catalog(tool_registry.list_tools())}"
        )
        log_prompt(LOGGER, "planner.create", system_prompt, prompt_log_length)
        messages = [
            SystemMessage(content=system_prompt),
            *state.get("chat_history", []),
            HumanMessage(content=f"Plan to execute the user's request: {state.get('request', '')}"),
        ]
        proposal = await reasoner.propose(messages, planner_create_tools(), phase="plan")

        drafts = []
        for call in proposal.tool_calls:
            if call["name"] != CREATE_PLAN:
                continue
            try:
                args = CreatePlanInput.model_validate(call["args"])
            except ValidationError as e:
                LOGGER.warning(f"Invalid create_plan arguments: {e}")
                continue
            drafts.extend((draft.title, draft.tasks) for draft in args.plans)

        try:
            plans = materialize_plans(drafts)
        except ValidationError as e:
            LOGGER.warning(f"Could not materialize plans: {e}")
            plans = []
        if not plans:
            LOGGER.warning(f"No plan created (tool calls: {proposal.names})")
            return _answer("no_update", executor_answer=proposal.text or None)

        dumped = dump_plans(plans)
        log_plan_created(LOGGER, dumped)
        return {
            "plans": dumped,
            "active_plan_id": plans[0].plan_id,
            "selected_task_indexes": [],
            "tool_responses": [],
            "next_node_signal": "continue",
        }

    async def _update(state: RunState, plans: List[PlanModel], ceiling: int) -> Dict[str, Any]:
        log_prompt(LOGGER, "planner.update", PLANNER_UPDATE_PROMPT, prompt_log_length)
        context = (
            f"User request: {state.get('request', '')}\n\n"
            f"The current plans:\n{format_plans(plans)}\n\n"
            f"Tool responses of the last execution pass:\n"
            f"{format_tool_responses(state.get('tool_responses'))}\n\n"
            f"Update current plan: active plan {state.get('active_plan_id')}, "
            f"selected tasks {state.get('selected_task_indexes') or []}"
        )
        messages = [SystemMessage(content=PLANNER_UPDATE_PROMPT), HumanMessage(content=context)]
        proposal = await reasoner.propose(messages, planner_update_tools(), phase="update")

        applied = False
        for call in proposal.tool_calls:
            if call["name"] != UPDATE_PLAN:
                continue
            try:
                args = UpdatePlanInput.model_validate(call["args"])
            except ValidationError as e:
                LOGGER.warning(f"Invalid update_plan arguments: {e}")
                continue
            plan = find_plan(plans, args.plan_id)
            if plan is None:
                LOGGER.warning(f"update_plan for unknown plan {args.plan_id!r}")
                continue
            updated = apply_task_updates(plan, args.tasks, state.get("tool_responses"))
            log_task_updates(LOGGER, plan.plan_id, [t.model_dump() for t in args.tasks])
            plans = replace_plan(plans, updated)
            applied = True

        if not applied:
            LOGGER.warning(f"No actionable plan update (tool calls: {proposal.names})")
            return _answer("no_update")

        updates: Dict[str, Any] = {"plans": dump_plans(plans), "next_node_signal": "continue"}
        terminal = _terminal_check(plans, ceiling)
        if terminal:
            updates.update(terminal)
        return updates

    @with_error_boundary("planner")
    async def planner_node(state: RunState) -> Dict[str, Any]:
        log_node_entry(LOGGER, "planner", state)

        plans = load_plans(state.get("plans"))
        ceiling = state.get("retry_ceiling") or DEFAULT_RETRY_CEILING

        updates = _terminal_check(plans, ceiling)
        if updates is None:
            updates = await _update(state, plans, ceiling) if plans else await _create(state)

        log_node_exit(LOGGER, "planner", updates)
        return updates

    return planner_node
