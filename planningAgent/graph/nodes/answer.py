"""Answer node - writes the single user-facing reply that closes a request."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from planningAgent.agents.interfaces import ReasoningAdapter
from planningAgent.graph.plan import PlanModel, load_plans
from planningAgent.graph.prompts import (
    ANSWER_PROMPT,
    format_plans,
    format_tool_responses,
    termination_guidance,
)
from planningAgent.graph.routing import junction_decision
from planningAgent.graph.state import DEFAULT_RETRY_CEILING, RunState
from planningAgent.utils.error_handler import PlanningAgentError
from planningAgent.utils.logging_utils import log_agent_response, log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)


def failed_tasks(plans: List[PlanModel], ceiling: int) -> List[str]:
    """Describe tasks that failed, ceiling-bound ones first."""
    exhausted, failing = [], []
    for plan in plans:
        for task in plan.tasks:
            label = f"'{task.title}' (plan {plan.plan_id}, {task.retry_count} failures)"
            if task.retry_count >= ceiling:
                exhausted.append(label)
            elif task.status == "failed":
                failing.append(label)
    return exhausted + failing


def fallback_answer(
    plans: List[PlanModel],
    ended_by: Optional[str],
    failed: List[str],
    errors: List[str],
    executor_answer: Optional[str] = None,
) -> str:
    """Plain summary of plan progress used when the model gives no reply."""
    if executor_answer and ended_by == "executor_answer":
        return executor_answer

    lines = []
    for plan in plans:
        done = sum(1 for task in plan.tasks if task.status == "completed")
        lines.append(f"Plan '{plan.title}': {done}/{len(plan.tasks)} tasks completed.")
    if failed:
        lines.append("Failed tasks: " + ", ".join(failed) + ".")
    if errors:
        lines.append("Errors: " + "; ".join(errors) + ".")
    if ended_by and ended_by != "completed":
        lines.append(f"Execution ended: {ended_by.replace('_', ' ')}.")
    if not lines:
        lines.append("I could not make progress on this request.")
    return "\n".join(lines)


def build_answer_node(*, reasoner: ReasoningAdapter, system_prompt: Optional[str] = None) -> Callable:
    """Build the answer node.

    The reply is grounded on the plans and tool responses of the run; the
    termination reason decides which extra guidance the model receives.
    """
    prompt = system_prompt or ANSWER_PROMPT

    async def answer_node(state: RunState) -> Dict[str, Any]:
        log_node_entry(LOGGER, "answer", state)

        plans = load_plans(state.get("plans"))
        ceiling = state.get("retry_ceiling") or DEFAULT_RETRY_CEILING
        ended_by = state.get("ended_by")
        if not ended_by:
            _, ended_by = junction_decision(state)

        errors = list(state.get("errors") or [])
        failed = failed_tasks(plans, ceiling)
        guidance = termination_guidance(
            ended_by,
            failed=", ".join(failed) or "none",
            reason=state.get("termination_reason") or "",
            errors="; ".join(errors) or "unknown error",
        )

        context = [f"User request: {state.get('request', '')}"]
        if plans:
            context.append(f"Plans:\n{format_plans(plans)}")
        if state.get("tool_responses"):
            context.append(f"Tool responses:\n{format_tool_responses(state.get('tool_responses'))}")
        if state.get("executor_answer"):
            context.append(f"Executor notes:\n{state['executor_answer']}")
        if guidance:
            context.append(guidance)

        messages = [
            SystemMessage(content=prompt),
            *state.get("chat_history", []),
            HumanMessage(content="\n\n".join(context)),
        ]

        text = ""
        try:
            proposal = await reasoner.propose(messages, [], phase="answer", require_action=False)
            text = proposal.text.strip()
        except PlanningAgentError as e:
            LOGGER.error(f"Answer synthesis failed: {e}")
            errors.append(f"answer: {e.user_message}")

        if not text:
            LOGGER.warning("Empty answer from the model, using progress summary")
            text = fallback_answer(plans, ended_by, failed, errors, state.get("executor_answer"))

        log_agent_response(LOGGER, text)
        updates = {
            "final_answer": text,
            "ended_by": ended_by,
            "errors": errors,
            "next_node_signal": None,
        }
        log_node_exit(LOGGER, "answer", updates)
        return updates

    return answer_node
