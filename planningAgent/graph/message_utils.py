"""Helpers for executor message history and tool response correlation."""

from __future__ import annotations

import json
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage

from planningAgent.tools.control import ASK_USER

FORCED_STOP_SIGNAL = "forced_stop"


def fresh_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


def merge_ask_user_calls(calls: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Fold several ask_user calls into one call with a numbered question."""
    if len(calls) == 1:
        return calls[0]
    questions = [str(call["args"].get("question", "")).strip() for call in calls]
    merged = "\n".join(f"{i}. {question}" for i, question in enumerate(questions, 1))
    return {"name": ASK_USER, "args": {"question": merged}, "id": calls[0]["id"]}


def asked_questions(messages: Iterable[BaseMessage]) -> Dict[str, str]:
    """Map ask_user tool call id to the question that was asked."""
    questions: Dict[str, str] = {}
    for message in messages:
        if isinstance(message, AIMessage):
            for call in message.tool_calls:
                if call["name"] == ASK_USER:
                    questions[call["id"]] = str(call["args"].get("question", ""))
    return questions


def ask_user_response(question: str, answer: str) -> str:
    return f"You asked user: {question}\nUser response: {answer}"


def build_tool_responses(messages: Sequence[BaseMessage]) -> List[ToolMessage]:
    """Tool results of a pass, re-keyed with fresh correlation ids.

    ask_user results are rewritten to carry the question next to the answer.
    """
    questions = asked_questions(messages)
    responses: List[ToolMessage] = []
    for message in messages:
        if not isinstance(message, ToolMessage):
            continue
        content = message.content
        if message.name == ASK_USER and message.tool_call_id in questions:
            content = ask_user_response(questions[message.tool_call_id], str(content))
        responses.append(ToolMessage(
            content=content,
            name=message.name,
            tool_call_id=fresh_correlation_id(),
            status=message.status,
        ))
    return responses


def forced_stop_message(reason: str) -> ToolMessage:
    return ToolMessage(
        content=json.dumps({"signal": FORCED_STOP_SIGNAL, "reason": reason}),
        name="executor",
        tool_call_id=fresh_correlation_id(),
        status="error",
    )


def signal_of(message: BaseMessage) -> Optional[str]:
    content = message.content
    if not isinstance(content, str) or '"signal"' not in content:
        return None
    try:
        payload = json.loads(content)
    except ValueError:
        return None
    return payload.get("signal") if isinstance(payload, dict) else None


def has_forced_stop(responses: Optional[Iterable[BaseMessage]]) -> bool:
    return any(signal_of(message) == FORCED_STOP_SIGNAL for message in responses or [])
