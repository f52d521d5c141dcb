"""Tool metadata management, registration and dispatch."""

from __future__ import annotations

import inspect
import json
import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from langchain_core.tools import BaseTool

from planningAgent.callbacks import CallbackManager, ToolExecutionData, ToolExecutionState
from planningAgent.tools.control import CONTROL_TOOL_NAMES
from planningAgent.utils.error_handler import ConfigurationError, ToolExecutionError
from planningAgent.utils.logging_utils import log_tool_call, log_tool_result

LOGGER = logging.getLogger(__name__)

Simulator = Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True, slots=True)
class ToolMeta:
    """Describes governance attributes for a tool."""

    name: str
    risk: str = "low"
    tags: List[str] = field(default_factory=list)
    requires_review: bool = False  # Pause for human approval before the real call


def _stringify(result: Any) -> str:
    if isinstance(result, str):
        return result
    content = getattr(result, "content", None)
    if isinstance(content, str):
        return content
    return json.dumps(result, ensure_ascii=False, default=str)


class ToolRegistry:
    """Tracks tool instances, governance metadata and review simulators."""

    def __init__(
        self,
        tools: Optional[Iterable[BaseTool]] = None,
        meta: Optional[Iterable[ToolMeta]] = None,
        callbacks: Optional[CallbackManager] = None,
    ) -> None:
        self._tools: Dict[str, BaseTool] = {}
        self._meta: Dict[str, ToolMeta] = {}
        self._simulators: Dict[str, Simulator] = {}
        self.callbacks = callbacks or CallbackManager()
        if tools:
            for tool in tools:
                self.register_tool(tool)
        if meta:
            for item in meta:
                self.register_meta(item)

    def register_tool(
        self,
        tool: BaseTool,
        *,
        requires_review: bool = False,
        simulate: Optional[Simulator] = None,
        risk: str = "low",
        tags: Optional[List[str]] = None,
    ) -> None:
        """Register a tool.

        Review-gated tools must provide ``simulate``: a side-effect free entry
        point that returns the preview payload shown to the reviewer.
        """
        if tool.name in CONTROL_TOOL_NAMES:
            raise ConfigurationError(f"Tool name {tool.name} is reserved for orchestration control")
        if requires_review and simulate is None:
            raise ConfigurationError(f"Tool {tool.name} requires review but has no simulate entry point")
        self._tools[tool.name] = tool
        if simulate is not None:
            self._simulators[tool.name] = simulate
        self._meta[tool.name] = ToolMeta(
            name=tool.name,
            risk="high" if requires_review and risk == "low" else risk,
            tags=list(tags or []),
            requires_review=requires_review,
        )

    def register_meta(self, metadata: ToolMeta) -> None:
        if metadata.requires_review and metadata.name not in self._simulators:
            LOGGER.warning(f"Tool {metadata.name} marked for review without a simulator, review disabled")
            metadata = replace(metadata, requires_review=False)
        self._meta[metadata.name] = metadata

    def get_tool(self, name: str) -> BaseTool:
        if name not in self._tools:
            raise KeyError(f"Unknown tool: {name}")
        return self._tools[name]

    def get_meta(self, name: str) -> ToolMeta:
        if name not in self._meta:
            raise KeyError(f"Missing metadata for tool: {name}")
        return self._meta[name]

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> List[BaseTool]:
        return list(self._tools.values())

    def requires_review(self, name: str) -> bool:
        meta = self._meta.get(name)
        return bool(meta and meta.requires_review and name in self._simulators)

    async def simulate(self, name: str, args: Dict[str, Any]) -> Any:
        """Run the side-effect free preview of a review-gated tool."""
        simulator = self._simulators.get(name)
        if simulator is None:
            raise ToolExecutionError(name, f"Tool {name} has no simulate entry point")
        LOGGER.info(f"Simulating tool: {name}")
        try:
            preview = simulator(dict(args))
            if inspect.isawaitable(preview):
                preview = await preview
        except Exception as e:
            LOGGER.error(f"Simulation of {name} failed: {e}")
            raise ToolExecutionError(name, str(e), user_message=f"Simulation of {name} failed: {e}") from e
        return preview

    async def invoke(self, name: str, args: Dict[str, Any], *, tool_call_id: Optional[str] = None) -> str:
        """Execute a tool and return its result as a string.

        Raises:
            ToolExecutionError: Unknown tool, invalid arguments or a failure inside the tool.
        """
        call_id = tool_call_id or uuid.uuid4().hex[:8]
        if name not in self._tools:
            raise ToolExecutionError(name, f"Unknown tool: {name}")

        log_tool_call(LOGGER, name, args)
        await self.callbacks.notify_tool_execution(ToolExecutionData(
            tool_call_id=call_id, tool_name=name, state=ToolExecutionState.STARTED, args=args,
        ))
        started = time.perf_counter()
        try:
            result = await self._tools[name].ainvoke(args)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            log_tool_result(LOGGER, name, e, success=False)
            await self.callbacks.notify_tool_execution(ToolExecutionData(
                tool_call_id=call_id, tool_name=name, state=ToolExecutionState.FAILED,
                args=args, error=str(e), execution_time_ms=elapsed,
            ))
            raise ToolExecutionError(name, str(e), user_message=f"Tool {name} failed: {e}") from e

        elapsed = (time.perf_counter() - started) * 1000
        content = _stringify(result)
        log_tool_result(LOGGER, name, content, success=True)
        await self.callbacks.notify_tool_execution(ToolExecutionData(
            tool_call_id=call_id, tool_name=name, state=ToolExecutionState.COMPLETED,
            args=args, result=content, execution_time_ms=elapsed,
        ))
        return content
