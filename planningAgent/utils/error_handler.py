"""Unified error handling for planningAgent nodes and tools."""

from __future__ import annotations

import functools
import inspect
import json
import logging
from typing import Any, Callable, Dict, Optional

LOGGER = logging.getLogger(__name__)


class PlanningAgentError(Exception):
    """Base exception for planningAgent errors."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class ToolExecutionError(PlanningAgentError):
    """Error during tool execution."""

    def __init__(self, tool_name: str, message: str, user_message: Optional[str] = None):
        super().__init__(message, user_message=user_message)
        self.tool_name = tool_name


class ModelInvocationError(PlanningAgentError):
    """Error during model invocation."""
    pass


class ConfigurationError(PlanningAgentError):
    """Invalid or inconsistent configuration."""
    pass


class NoPendingInterruptError(PlanningAgentError):
    """Resume requested for a thread that is not waiting on a human."""
    pass


class StaleResumeError(PlanningAgentError):
    """Resume token does not match the thread's pending interrupt."""
    pass


def _error_update(node_name: str, user_message: str) -> Dict[str, Any]:
    return {
        "next_node_signal": "answer",
        "ended_by": "error",
        "errors": [f"{node_name}: {user_message}"],
        "pending_interrupt": None,
        "resume_input": None,
    }


def with_error_boundary(node_name: str):
    """Decorator to add error boundary to graph nodes.

    Catches exceptions and converts them into a routing update that sends the
    run to the answer node, which explains the failure to the user.

    Args:
        node_name: Name of the node for logging and error messages

    Example:
        @with_error_boundary("planner")
        async def planner_node(state: RunState) -> Dict[str, Any]:
            # node logic
            pass
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def sync_wrapper(state):
            try:
                return func(state)
            except ModelInvocationError as e:
                LOGGER.error(f"{node_name} model error: {e}")
                return _error_update(node_name, f"AI model call failed: {e.user_message}")
            except PlanningAgentError as e:
                LOGGER.error(f"{node_name} error: {e}")
                return _error_update(node_name, e.user_message)
            except Exception as e:
                LOGGER.exception(f"{node_name} unexpected error", exc_info=e)
                # Don't expose internal error details to users
                return _error_update(node_name, "an unexpected internal error occurred")

        @functools.wraps(func)
        async def async_wrapper(state):
            try:
                return await func(state)
            except ModelInvocationError as e:
                LOGGER.error(f"{node_name} model error: {e}")
                return _error_update(node_name, f"AI model call failed: {e.user_message}")
            except PlanningAgentError as e:
                LOGGER.error(f"{node_name} error: {e}")
                return _error_update(node_name, e.user_message)
            except Exception as e:
                LOGGER.exception(f"{node_name} unexpected error", exc_info=e)
                return _error_update(node_name, "an unexpected internal error occurred")

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def error_payload(error: Exception) -> str:
    """Render a tool failure as the JSON content of an error tool response."""
    message = getattr(error, "user_message", None) or str(error)
    return json.dumps({"ok": False, "error": message}, ensure_ascii=False)


def handle_model_error(error: Exception) -> str:
    """Convert model invocation errors to user-friendly messages.

    Args:
        error: Exception raised during model invocation

    Returns:
        User-friendly error message
    """
    error_str = str(error).lower()

    if "rate_limit" in error_str or "429" in error_str:
        return "Too many requests, please try again later"

    if "timeout" in error_str:
        return "The AI service timed out, please retry"

    if "context_length" in error_str or "maximum context" in error_str:
        return "The conversation is too long, please start a new thread"

    if "invalid_api_key" in error_str or "authentication" in error_str:
        return "The API key is invalid, please contact the administrator"

    if "quota" in error_str or "insufficient" in error_str:
        return "The AI service quota is exhausted, please contact the administrator"

    return f"The AI service is temporarily unavailable: {error}"
