"""Graph builder for the plan-select-execute orchestrator.

Graph architecture:

    START → (entry) → planner → selector → executor → (junction) → planner ...
                         │          │         │
                         │          └→ ask ───┤ (suspend → END)
                         └──────────┴─────────┴→ answer → END

A suspended run ends at END with ``pending_interrupt`` set; the next
invocation on the same thread enters straight at the suspended node.
"""

from __future__ import annotations

import logging
from typing import Optional

from langgraph.graph import END, START, StateGraph

from planningAgent.agents.interfaces import ReasoningAdapter
from planningAgent.graph.nodes import (
    build_answer_node,
    build_ask_node,
    build_executor_node,
    build_planner_node,
    build_selector_node,
)
from planningAgent.graph.routing import (
    ask_route,
    entry_route,
    executor_route,
    planner_route,
    selector_route,
)
from planningAgent.graph.state import RunState
from planningAgent.tools import ToolRegistry

LOGGER = logging.getLogger(__name__)


def build_planning_graph(
    *,
    reasoner: ReasoningAdapter,
    tool_registry: ToolRegistry,
    max_selected_tasks: int = 3,
    livelock_threshold: int = 3,
    max_executor_steps: int = 25,
    human_review: bool = True,
    prompt_log_length: int = 500,
    answer_prompt: Optional[str] = None,
    checkpointer=None,
):
    """Build the orchestration graph.

    Args:
        reasoner: Reasoning adapter shared by every node
        tool_registry: Domain tools available to the executor
        max_selected_tasks: Upper bound of tasks per executor pass
        livelock_threshold: Repeated selections without progress before stopping
        max_executor_steps: Proposals per executor pass before a forced stop
        human_review: Gate review-marked tools behind a human decision
        prompt_log_length: Truncation for prompt logging
        answer_prompt: Optional system prompt override for the answer node
        checkpointer: Checkpointer holding the run state per thread

    Returns:
        Compiled LangGraph application
    """

    # ========== Build Nodes ==========
    planner_node = build_planner_node(
        reasoner=reasoner,
        tool_registry=tool_registry,
        prompt_log_length=prompt_log_length,
    )
    selector_node = build_selector_node(
        reasoner=reasoner,
        max_selected_tasks=max_selected_tasks,
        livelock_threshold=livelock_threshold,
        prompt_log_length=prompt_log_length,
    )
    executor_node = build_executor_node(
        reasoner=reasoner,
        tool_registry=tool_registry,
        human_review=human_review,
        max_steps=max_executor_steps,
    )
    ask_node = build_ask_node()
    answer_node = build_answer_node(reasoner=reasoner, system_prompt=answer_prompt)

    if not human_review:
        LOGGER.warning("Human review disabled, review-gated tools run without approval")

    # ========== Build Graph ==========
    graph = StateGraph(RunState)

    graph.add_node("planner", planner_node)
    graph.add_node("selector", selector_node)
    graph.add_node("executor", executor_node)
    graph.add_node("ask", ask_node)
    graph.add_node("answer", answer_node)

    # ========== Routing ==========
    # Entry point: resume a suspended node or evaluate the junction
    graph.add_conditional_edges(
        START,
        entry_route,
        {
            "planner": "planner",
            "executor": "executor",  # Resume ask_user / review
            "ask": "ask",            # Resume clarification
            "answer": "answer",
        },
    )

    graph.add_conditional_edges(
        "planner",
        planner_route,
        {
            "selector": "selector",
            "answer": "answer",
        },
    )

    graph.add_conditional_edges(
        "selector",
        selector_route,
        {
            "executor": "executor",
            "ask": "ask",
            "answer": "answer",
        },
    )

    # Executor and ask: suspend, or back to the junction
    graph.add_conditional_edges(
        "executor",
        executor_route,
        {
            "planner": "planner",
            "answer": "answer",
            END: END,
        },
    )

    graph.add_conditional_edges(
        "ask",
        ask_route,
        {
            "planner": "planner",
            "answer": "answer",
            END: END,
        },
    )

    graph.add_edge("answer", END)

    # ========== Compile ==========
    return graph.compile(checkpointer=checkpointer)


__all__ = ["build_planning_graph"]
