"""Ask node - suspends the run on a clarification question from the selector."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from langchain_core.messages import ToolMessage

from planningAgent.graph.message_utils import ask_user_response, fresh_correlation_id
from planningAgent.graph.state import RunState
from planningAgent.hitl.gateway import build_interrupt, coerce_external_input
from planningAgent.tools.control import ASK_USER
from planningAgent.utils.error_handler import with_error_boundary
from planningAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)


def build_ask_node() -> Callable:
    """Build the ask node.

    First visit stores a ``clarification`` interrupt. On resume the reply is
    handed to the planner as a tool response, the same way an executor-side
    ask_user answer is.
    """

    @with_error_boundary("ask")
    def ask_node(state: RunState) -> Dict[str, Any]:
        log_node_entry(LOGGER, "ask", state)

        pending = state.get("pending_interrupt")
        resume_input = state.get("resume_input")

        if pending and pending.get("kind") == "clarification" and resume_input is not None:
            answer = coerce_external_input(resume_input).get("input") or ""
            response = ToolMessage(
                content=ask_user_response(pending["question"], str(answer)),
                name=ASK_USER,
                tool_call_id=fresh_correlation_id(),
            )
            updates: Dict[str, Any] = {
                "tool_responses": [response],
                "pending_interrupt": None,
                "resume_input": None,
                "question": None,
                "next_node_signal": "continue",
            }
        else:
            question = state.get("question") or "Could you give more details about your request?"
            updates = {
                "pending_interrupt": build_interrupt("clarification", question),
                "resume_input": None,
            }

        log_node_exit(LOGGER, "ask", updates)
        return updates

    return ask_node
