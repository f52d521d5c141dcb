"""Reasoning adapter backed by LangChain chat models."""

from __future__ import annotations

import logging
from typing import Sequence, Type

from langchain_core.messages import BaseMessage
from langchain_core.tools import BaseTool

from planningAgent.models import ModelRegistry
from planningAgent.utils.error_handler import ModelInvocationError, PlanningAgentError, handle_model_error
from planningAgent.utils.logging_utils import log_model_selection, log_visible_tools

from .interfaces import ModelResolver, Proposal, SchemaT

LOGGER = logging.getLogger(__name__)


class ChatModelReasoner:
    """Select a model per phase and ask it for tool calls or structured output."""

    def __init__(self, *, model_registry: ModelRegistry, model_resolver: ModelResolver) -> None:
        self._registry = model_registry
        self._resolver = model_resolver

    def _model(self, phase: str, require_tools: bool):
        spec = self._registry.prefer(phase=phase, require_tools=require_tools)
        log_model_selection(LOGGER, phase, spec.model_id, reason=f"slot={spec.key}")
        return self._resolver(spec.model_id)

    async def propose(
        self,
        messages: Sequence[BaseMessage],
        actions: Sequence[BaseTool],
        *,
        phase: str,
        require_action: bool = True,
    ) -> Proposal:
        model = self._model(phase, require_tools=bool(actions))
        if actions:
            log_visible_tools(LOGGER, phase, list(actions))
            kwargs = {"tool_choice": "required"} if require_action else {}
            runnable = model.bind_tools(list(actions), **kwargs)
        else:
            runnable = model

        try:
            response = await runnable.ainvoke(list(messages))
        except PlanningAgentError:
            raise
        except Exception as e:
            LOGGER.error(f"Model invocation failed during {phase}: {e}")
            raise ModelInvocationError(str(e), user_message=handle_model_error(e)) from e

        proposal = Proposal.from_message(response)
        LOGGER.info(f"Proposal for {phase}: tool_calls={proposal.names} text={len(proposal.text)} chars")
        return proposal

    async def extract(
        self,
        messages: Sequence[BaseMessage],
        schema: Type[SchemaT],
        *,
        phase: str = "classify",
    ) -> SchemaT:
        model = self._model(phase, require_tools=False)
        try:
            result = await model.with_structured_output(schema).ainvoke(list(messages))
        except Exception as e:
            LOGGER.error(f"Structured extraction failed during {phase}: {e}")
            raise ModelInvocationError(str(e), user_message=handle_model_error(e)) from e

        if isinstance(result, dict):
            return schema.model_validate(result)
        return result
