"""Prompt templates and context formatting for each orchestration phase."""

from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional, Sequence

from langchain_core.messages import BaseMessage
from langchain_core.tools import BaseTool

from .plan import PlanModel

PLANNER_CREATE_PROMPT = """You are a planner. Your goal is to create plans that execute the user's request.

Rules:
- Keep every piece of information from the user's request (amounts, names, networks, dates) in the task titles that need it.
- Each task must be achievable with the tools listed below.
- Do not add tasks that only verify or confirm a previous task.
- If key information is missing and no tool can obtain it, add a task that asks the user for it.

Call create_plan exactly once."""

PLANNER_UPDATE_PROMPT = """You are a planner. Your goal is to update the current plans from the results of the last execution pass.

Rules:
- Mark a task completed when a tool response shows it succeeded, failed when a tool response shows an error.
- Reference the tool response that holds a task's result with response_tool_id; narrow it with response_data_paths when only some fields matter.
- If the same task keeps failing without giving the information needed, append a more specific task instead (use an index past the last task).
- If a failed task still produced the information needed, take it from its tool response and continue with the next tasks.
- Leave tasks you have no news about untouched.

Call update_plan for the plan that was worked on."""

SELECTOR_PROMPT = """You are a task selector. Choose what the executor works on next.

- Call select_tasks with at most {max_tasks} unfinished tasks of one plan, in the order they should run.
- Call terminate when none of the remaining tasks can make progress.
- Call ask_user when a remaining task needs information only the user can give."""

EXECUTOR_PROMPT = """You are an executor. Execute the tasks you are given.

1. Execute each task exactly as specified, do not add or remove tasks.
2. Work out the action each task needs and call the right tool with precise arguments.
3. Call ask_user only when a task cannot be executed without more information from the user.
4. Call terminate with a short reason once the tasks are done or cannot progress further."""

ANSWER_PROMPT = """You are the assistant talking to the user. Write the final reply for their request.

Base the reply only on the plans and tool responses provided. State clearly what was done and what was not.
If a task failed, say which one and why, do not claim success for it."""

REVIEW_CLASSIFY_PROMPT = """You are analyzing a human review response for an approval step.
Determine whether the human wants to:
1. APPROVE the action (proceed with execution)
2. REJECT the action (cancel execution)
3. UPDATE the action (change some of its parameters)

Classify the intent from the human's response alone."""

REVIEW_UPDATE_PROMPT = """You extract structured edits from a user's request.
Given the user's input and the current payload, identify every parameter they want to change.
For each one give the exact path in the payload (dotted, with [n] for list items) and the new value.
Do not change the structure of the payload, only values."""

ENDED_BY_GUIDANCE = {
    "retry_exhausted": "Execution stopped because these tasks failed too many times: {failed}. Explain the failure to the user.",
    "livelock": "Execution stopped because the same tasks were selected repeatedly without progress. Explain that the work stalled.",
    "loop_limit": "Execution stopped after reaching the maximum number of execution passes. Explain that the work stalled.",
    "forced_stop": "Execution was stopped by a tool limit. Explain what was completed before the stop.",
    "selector_fault": "No further task could be selected. Explain what remains undone.",
    "terminated": "Execution was terminated: {reason}",
    "no_update": "The plan could not be updated further. Summarize the progress made.",
    "error": "An internal error interrupted execution: {errors}. Apologize and explain what was completed.",
}


def _first_line(text: Optional[str]) -> str:
    text = (text or "").strip()
    return text.splitlines()[0] if text else ""


def format_tool_catalog(tools: Iterable[BaseTool]) -> str:
    lines = [f"- {tool.name}: {_first_line(tool.description)}" for tool in tools]
    return "\n".join(lines) if lines else "(no tools available)"


def format_plans(plans: Sequence[PlanModel]) -> str:
    return json.dumps([plan.model_dump(mode="json") for plan in plans], ensure_ascii=False, indent=2)


def format_tool_responses(responses: Optional[Iterable[BaseMessage]]) -> str:
    lines: List[str] = []
    for message in responses or []:
        name = getattr(message, "name", None) or "tool"
        call_id = getattr(message, "tool_call_id", "")
        status = getattr(message, "status", "success")
        lines.append(f"- [{call_id}] {name} ({status}): {message.content}")
    return "\n".join(lines) if lines else "(no tool responses)"


def _result_text(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False, default=str)


def compose_executor_input(plan: PlanModel, indexes: Sequence[int]) -> str:
    """Instruction for an executor pass: selected tasks plus results already available."""
    selected = [plan.tasks[i] for i in indexes]
    content = "I need to execute the following steps:\n" + "\n".join(
        f"- {task.title} => {task.status}" for task in selected
    )
    done = [task for task in plan.tasks if task.status == "completed"]
    if done:
        content += "\n\nThe steps done are:\n" + "\n".join(
            f"- {task.title} => {_result_text(task.result)}" for task in done
        )
    return content


def termination_guidance(ended_by: Optional[str], *, failed: str = "", reason: str = "", errors: str = "") -> str:
    template = ENDED_BY_GUIDANCE.get(ended_by or "")
    if not template:
        return ""
    return template.format(failed=failed, reason=reason, errors=errors)
