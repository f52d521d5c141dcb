"""Interfaces for the decision-making collaborators of the graph."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, TypeVar

from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.tools import BaseTool
from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ModelResolver(Protocol):
    """Callable that returns a LangChain-compatible model runnable."""

    def __call__(self, model_id: str):
        ...


def _text_of(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content or "")


@dataclass(slots=True)
class Proposal:
    """Structured decision: zero or more named tool calls, or free text."""

    tool_calls: List[Dict[str, Any]] = field(default_factory=list)
    text: str = ""

    @classmethod
    def from_message(cls, message: BaseMessage) -> "Proposal":
        calls = []
        for call in getattr(message, "tool_calls", None) or []:
            calls.append({
                "name": call["name"],
                "args": dict(call.get("args") or {}),
                "id": call.get("id") or f"call_{uuid.uuid4().hex[:8]}",
            })
        return cls(tool_calls=calls, text=_text_of(message.content))

    @property
    def names(self) -> List[str]:
        return [call["name"] for call in self.tool_calls]

    def first(self, name: str) -> Optional[Dict[str, Any]]:
        for call in self.tool_calls:
            if call["name"] == name:
                return call
        return None

    def to_message(self, tool_calls: Optional[List[Dict[str, Any]]] = None) -> AIMessage:
        calls = self.tool_calls if tool_calls is None else tool_calls
        return AIMessage(
            content=self.text,
            tool_calls=[{"name": c["name"], "args": c["args"], "id": c["id"]} for c in calls],
        )


class ReasoningAdapter(Protocol):
    """Opaque decision engine behind the planner, selector, executor and answer nodes."""

    async def propose(
        self,
        messages: Sequence[BaseMessage],
        actions: Sequence[BaseTool],
        *,
        phase: str,
        require_action: bool = True,
    ) -> Proposal:
        ...

    async def extract(
        self,
        messages: Sequence[BaseMessage],
        schema: Type[SchemaT],
        *,
        phase: str = "classify",
    ) -> SchemaT:
        ...
