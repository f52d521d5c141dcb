"""Request-level entry point: runs the graph per thread and handles suspension.

Every call returns either an ``AnswerResult`` (the request is closed) or a
``WaitingResult`` (the thread waits for a human reply). Calls on one thread
are serialized; separate threads run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from langgraph.errors import GraphRecursionError

from planningAgent.graph.state import DEFAULT_RETRY_CEILING, initial_run_state
from planningAgent.hitl import HumanInterruptGateway, WaitingResult, coerce_external_input
from planningAgent.persistence import ConversationStore
from planningAgent.utils.error_handler import NoPendingInterruptError, StaleResumeError
from planningAgent.utils.logging_utils import log_agent_response, log_error, log_user_message

LOGGER = logging.getLogger(__name__)

RECURSION_ERROR_MESSAGE = "The request needed too many steps and was stopped. Please try a simpler request."
INTERNAL_ERROR_MESSAGE = "Sorry, something went wrong while processing your request."


@dataclass(slots=True)
class AnswerResult:
    """Closed request: the final reply and how the run ended."""

    thread_id: str
    answer: str
    ended_by: Optional[str] = None
    plans: List[Dict[str, Any]] = field(default_factory=list)
    status: str = "answered"


RunResult = Union[AnswerResult, WaitingResult]


class Orchestrator:
    """Drive the compiled graph for conversation threads."""

    def __init__(
        self,
        *,
        app,
        gateway: HumanInterruptGateway,
        conversation_store: ConversationStore,
        recursion_limit: int = 200,
        max_passes: int = 20,
        retry_ceiling: int = DEFAULT_RETRY_CEILING,
        history_limit: Optional[int] = None,
    ) -> None:
        self.app = app
        self.gateway = gateway
        self.conversation_store = conversation_store
        self.recursion_limit = recursion_limit
        self.max_passes = max_passes
        self.retry_ceiling = retry_ceiling
        self.history_limit = history_limit
        # Entries vanish once no call on the thread holds the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock(self, thread_id: str) -> asyncio.Lock:
        lock = self._locks.get(thread_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[thread_id] = lock
        return lock

    def _config(self, thread_id: str) -> Dict[str, Any]:
        return {"configurable": {"thread_id": thread_id}, "recursion_limit": self.recursion_limit}

    async def get_state(self, thread_id: str) -> Dict[str, Any]:
        """Checkpointed run state of ``thread_id`` (empty before the first request)."""
        snapshot = await self.app.aget_state({"configurable": {"thread_id": thread_id}})
        return dict(snapshot.values or {})

    async def pending_interrupt(self, thread_id: str) -> Optional[Dict[str, Any]]:
        return (await self.get_state(thread_id)).get("pending_interrupt")

    def is_awaiting(self, thread_id: str) -> bool:
        return self.gateway.is_awaiting(thread_id)

    async def run(self, thread_id: str, request: str) -> RunResult:
        """Handle one incoming message; on a suspended thread it is the resume reply."""
        async with self._lock(thread_id):
            pending = await self.pending_interrupt(thread_id)
            if pending:
                LOGGER.info(f"Thread {thread_id} is suspended, treating message as {pending['kind']} reply")
                return await self._resume(thread_id, pending, coerce_external_input(request))

            log_user_message(LOGGER, request)
            history = self.conversation_store.get_messages(thread_id, limit=self.history_limit)
            self.conversation_store.append(thread_id, "human", request)
            state = initial_run_state(
                thread_id=thread_id,
                request=request,
                chat_history=history,
                max_passes=self.max_passes,
                retry_ceiling=self.retry_ceiling,
            )
            return await self._invoke(thread_id, state)

    async def resume(
        self,
        thread_id: str,
        external_input: Union[str, Dict[str, Any], None],
        *,
        token: Optional[str] = None,
    ) -> RunResult:
        """Continue a suspended thread with the human reply.

        Raises:
            NoPendingInterruptError: Nothing is pending on the thread.
            StaleResumeError: ``token`` does not match the pending interrupt.
        """
        async with self._lock(thread_id):
            pending = await self.pending_interrupt(thread_id)
            if not pending:
                raise NoPendingInterruptError(
                    f"Thread {thread_id} has no pending interrupt",
                    user_message="There is nothing waiting for your reply.",
                )
            if token is not None and token != pending.get("token"):
                raise StaleResumeError(
                    f"Resume token {token} does not match pending interrupt on thread {thread_id}",
                    user_message="This reply belongs to a question that is no longer pending.",
                )
            return await self._resume(thread_id, pending, coerce_external_input(external_input))

    async def _resume(self, thread_id: str, pending: Dict[str, Any], reply: Dict[str, Any]) -> RunResult:
        LOGGER.info(f"Resuming thread {thread_id} ({pending['kind']})")
        if reply.get("input"):
            self.conversation_store.append(thread_id, "human", str(reply["input"]))
        with self.gateway.resuming(thread_id):
            result = await self._invoke(thread_id, {"resume_input": reply}, suspend=False)
        if isinstance(result, dict):
            return await self.gateway.suspend(thread_id, result)
        return result

    async def _invoke(
        self,
        thread_id: str,
        payload: Dict[str, Any],
        *,
        suspend: bool = True,
    ) -> Union[RunResult, Dict[str, Any]]:
        try:
            values = await self.app.ainvoke(payload, config=self._config(thread_id))
        except GraphRecursionError as e:
            log_error(LOGGER, e, context=f"thread {thread_id}")
            return self._error_result(thread_id, RECURSION_ERROR_MESSAGE)
        except Exception as e:
            log_error(LOGGER, e, context=f"thread {thread_id}")
            return self._error_result(thread_id, INTERNAL_ERROR_MESSAGE)

        pending = values.get("pending_interrupt")
        if pending:
            # The gateway flag is raised outside of ``resuming`` so it survives its cleanup
            return await self.gateway.suspend(thread_id, pending) if suspend else pending

        answer = values.get("final_answer") or ""
        self.conversation_store.append(thread_id, "ai", answer)
        log_agent_response(LOGGER, answer)
        return AnswerResult(
            thread_id=thread_id,
            answer=answer,
            ended_by=values.get("ended_by"),
            plans=list(values.get("plans") or []),
        )

    def _error_result(self, thread_id: str, message: str) -> AnswerResult:
        self.conversation_store.append(thread_id, "ai", message)
        return AnswerResult(thread_id=thread_id, answer=message, ended_by="error", status="error")


__all__ = ["AnswerResult", "Orchestrator", "RunResult"]
