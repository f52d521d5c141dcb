"""Observer callbacks for tool execution and human review events."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union

LOGGER = logging.getLogger(__name__)


class ToolExecutionState(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class ToolExecutionData:
    """Snapshot passed to tool execution callbacks."""

    tool_call_id: str
    tool_name: str
    state: ToolExecutionState
    args: Any = None
    result: Any = None
    error: Optional[str] = None
    execution_time_ms: Optional[float] = None  # Only for COMPLETED and FAILED
    timestamp: float = field(default_factory=time.time)


@dataclass(slots=True)
class HumanReviewData:
    """Snapshot passed to human review callbacks when a thread suspends."""

    thread_id: str
    kind: str
    question: str
    tool_name: Optional[str] = None
    payload: Any = None
    timestamp: float = field(default_factory=time.time)


ToolExecutionCallback = Callable[[ToolExecutionData], Union[None, Awaitable[None]]]
HumanReviewCallback = Callable[[HumanReviewData], Union[None, Awaitable[None]]]


class CallbackManager:
    """Fan-out of execution events to registered observers.

    Callbacks may be sync or async. A failing callback is logged and skipped.
    """

    def __init__(self) -> None:
        self._tool_callbacks: List[ToolExecutionCallback] = []
        self._review_callbacks: List[HumanReviewCallback] = []

    def register_tool_execution_callback(self, callback: ToolExecutionCallback) -> None:
        self._tool_callbacks.append(callback)

    def unregister_tool_execution_callback(self, callback: ToolExecutionCallback) -> None:
        self._tool_callbacks = [cb for cb in self._tool_callbacks if cb is not callback]

    def register_human_review_callback(self, callback: HumanReviewCallback) -> None:
        self._review_callbacks.append(callback)

    def unregister_human_review_callback(self, callback: HumanReviewCallback) -> None:
        self._review_callbacks = [cb for cb in self._review_callbacks if cb is not callback]

    async def notify_tool_execution(self, data: ToolExecutionData) -> None:
        await self._notify(self._tool_callbacks, data, "tool execution")

    async def notify_human_review(self, data: HumanReviewData) -> None:
        await self._notify(self._review_callbacks, data, "human review")

    async def _notify(self, callbacks: List[Callable], data: Any, label: str) -> None:
        for callback in list(callbacks):
            try:
                outcome = callback(data)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                LOGGER.error(f"Error in {label} callback {callback!r}: {e}")
