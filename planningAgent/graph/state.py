"""Run state for the plan-select-execute graph.

One RunState lives per conversation thread in the checkpointer. Plans are
stored as plain dicts (see ``graph/plan.py``) so the state stays serializable.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, TypedDict

from langchain_core.messages import BaseMessage

DEFAULT_RETRY_CEILING = 5

NextNodeSignal = Literal["continue", "answer", "ask"]

EndedBy = Literal[
    "completed",
    "retry_exhausted",
    "livelock",
    "selector_fault",
    "terminated",
    "no_update",
    "executor_answer",
    "forced_stop",
    "loop_limit",
    "error",
]


class RunState(TypedDict, total=False):
    """Working memory of one request on one conversation thread."""

    # ========== Request ==========
    thread_id: str
    request: str
    chat_history: List[BaseMessage]  # Prior turns from the conversation store

    # ========== Plans ==========
    plans: List[Dict[str, Any]]  # PlanModel dumps, mutated only by the planner
    active_plan_id: Optional[str]
    selected_task_indexes: List[int]

    # ========== Executor pass ==========
    executor_input: Optional[str]
    executor_messages: List[BaseMessage]  # In-pass proposals and tool results
    tool_responses: List[BaseMessage]  # Last pass, one fresh correlation id per response
    executor_answer: Optional[str]

    # ========== Routing ==========
    next_node_signal: Optional[NextNodeSignal]
    question: Optional[str]  # Clarification requested by the selector
    termination_reason: Optional[str]

    # ========== Human interrupt ==========
    pending_interrupt: Optional[Dict[str, Any]]
    resume_input: Optional[Dict[str, Any]]

    # ========== Loop control ==========
    selection_counter: Dict[str, Dict[str, Any]]  # "<plan_id>:<indexes>" -> {count, fingerprint}
    passes: int
    max_passes: int
    retry_ceiling: int  # Failures after which a task is never reselected

    # ========== Outcome ==========
    ended_by: Optional[EndedBy]
    errors: List[str]
    final_answer: Optional[str]  # Key differs from the "answer" node name


def initial_run_state(
    *,
    thread_id: str,
    request: str,
    chat_history: Optional[List[BaseMessage]] = None,
    max_passes: int = 20,
    retry_ceiling: int = DEFAULT_RETRY_CEILING,
) -> RunState:
    """Fresh run state for a new request; overwrites every key of the previous run."""
    return {
        "thread_id": thread_id,
        "request": request,
        "chat_history": list(chat_history or []),
        "plans": [],
        "active_plan_id": None,
        "selected_task_indexes": [],
        "executor_input": None,
        "executor_messages": [],
        "tool_responses": [],
        "executor_answer": None,
        "next_node_signal": None,
        "question": None,
        "termination_reason": None,
        "pending_interrupt": None,
        "resume_input": None,
        "selection_counter": {},
        "passes": 0,
        "max_passes": max_passes,
        "retry_ceiling": retry_ceiling,
        "ended_by": None,
        "errors": [],
        "final_answer": None,
    }
