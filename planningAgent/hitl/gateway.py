"""Human interrupt gateway.

Suspension is an explicit result, not a captured call stack: a node that
needs a human stores a ``pending_interrupt`` payload in the run state and the
graph routes to END. The checkpointer keeps the state, the gateway turns the
payload into a ``WaitingResult`` for the caller, and a later resume invokes
the graph again on the same thread with ``resume_input`` set. The entry
router sends control straight back to the suspended node, which consumes the
reply at the stored decision point.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Literal, Optional, Union

from planningAgent.callbacks import CallbackManager, HumanReviewData

LOGGER = logging.getLogger(__name__)

InterruptKind = Literal["ask_user", "review", "clarification"]

TEXT_REPLY = {"input": "string"}
REVIEW_REPLY = {"action": "approve | reject | update", "input": "string (optional free text)"}

EXPECTED_REPLIES: Dict[str, Dict[str, str]] = {
    "ask_user": TEXT_REPLY,
    "clarification": TEXT_REPLY,
    "review": REVIEW_REPLY,
}


def build_interrupt(
    kind: InterruptKind,
    question: str,
    *,
    context: Any = None,
    tool_call: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Payload stored in ``pending_interrupt`` while a thread waits for a human."""
    return {
        "kind": kind,
        "question": question,
        "expected_reply": dict(EXPECTED_REPLIES[kind]),
        "context": context,
        "tool_call": tool_call,
        "token": uuid.uuid4().hex,
    }


def coerce_external_input(external_input: Union[str, Dict[str, Any], None]) -> Dict[str, Any]:
    """Normalize a caller reply to ``{"input": ..., "action": ...}`` form."""
    if external_input is None:
        return {}
    if isinstance(external_input, str):
        return {"input": external_input}
    reply = dict(external_input)
    if "externalInput" in reply and "input" not in reply:
        reply["input"] = reply.pop("externalInput")
    return reply


@dataclass(slots=True)
class WaitingResult:
    """Returned to the caller while a thread is suspended."""

    thread_id: str
    question: str
    expected_reply_shape: Dict[str, str]
    kind: str
    token: str
    context: Any = None
    status: str = "waiting"


@dataclass(slots=True)
class _AwaitingEntry:
    since: float = field(default_factory=time.monotonic)


class HumanInterruptGateway:
    """Tracks which threads await a human and notifies review observers."""

    def __init__(self, *, timeout_seconds: Optional[float] = 60.0, callbacks: Optional[CallbackManager] = None):
        self.timeout_seconds = timeout_seconds
        self.callbacks = callbacks or CallbackManager()
        self._awaiting: Dict[str, _AwaitingEntry] = {}

    async def suspend(self, thread_id: str, pending: Dict[str, Any]) -> WaitingResult:
        """Raise the awaiting flag for ``thread_id`` and describe the wait to the caller."""
        self._awaiting[thread_id] = _AwaitingEntry()
        LOGGER.info(f"Thread {thread_id} suspended ({pending['kind']}): {pending['question'][:100]}")

        tool_call = pending.get("tool_call") or {}
        await self.callbacks.notify_human_review(HumanReviewData(
            thread_id=thread_id,
            kind=pending["kind"],
            question=pending["question"],
            tool_name=tool_call.get("name"),
            payload=pending.get("context"),
        ))
        return WaitingResult(
            thread_id=thread_id,
            question=pending["question"],
            expected_reply_shape=dict(pending["expected_reply"]),
            kind=pending["kind"],
            token=pending["token"],
            context=pending.get("context"),
        )

    def is_awaiting(self, thread_id: str) -> bool:
        entry = self._awaiting.get(thread_id)
        if entry is None:
            return False
        if self.timeout_seconds is not None and time.monotonic() - entry.since > self.timeout_seconds:
            LOGGER.info(f"Awaiting flag for thread {thread_id} expired")
            self._awaiting.pop(thread_id, None)
            return False
        return True

    def clear(self, thread_id: str) -> None:
        self._awaiting.pop(thread_id, None)

    @contextmanager
    def resuming(self, thread_id: str) -> Iterator[None]:
        """Clear the awaiting flag on entry and keep it cleared on every exit path."""
        self.clear(thread_id)
        try:
            yield
        finally:
            self.clear(thread_id)
