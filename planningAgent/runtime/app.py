"""Runtime assembly for the planning orchestrator."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from langchain_core.tools import BaseTool

from planningAgent.agents import ChatModelReasoner, ReasoningAdapter
from planningAgent.callbacks import CallbackManager
from planningAgent.config import Settings, get_settings
from planningAgent.graph.builder import build_planning_graph
from planningAgent.hitl import HumanInterruptGateway
from planningAgent.models import build_default_registry
from planningAgent.persistence import ConversationStore, build_checkpointer, build_conversation_store
from planningAgent.telemetry import configure_tracing
from planningAgent.tools import ToolRegistry
from planningAgent.tools.builtin import now
from planningAgent.tools.config_loader import load_tool_config

from .model_resolver import build_model_resolver, resolve_model_configs
from .orchestrator import Orchestrator

LOGGER = logging.getLogger(__name__)


def _create_tool_registry(
    tools: Optional[Iterable[BaseTool]],
    callbacks: CallbackManager,
    settings: Settings,
) -> ToolRegistry:
    registry = ToolRegistry(callbacks=callbacks)
    registry.register_tool(now, tags=["meta"])
    for tool in tools or []:
        registry.register_tool(tool)
    load_tool_config(registry, settings.tools.tools_config_path)
    return registry


def build_planning_app(
    *,
    settings: Optional[Settings] = None,
    tools: Optional[Iterable[BaseTool]] = None,
    tool_registry: Optional[ToolRegistry] = None,
    reasoner: Optional[ReasoningAdapter] = None,
    conversation_store: Optional[ConversationStore] = None,
    callbacks: Optional[CallbackManager] = None,
) -> Orchestrator:
    """Return an Orchestrator wired to a compiled graph.

    Args:
        settings: Application settings, loaded from the environment when omitted
        tools: Extra domain tools registered next to the builtin ones
        tool_registry: Fully prepared registry (review-gated tools with simulators), replaces ``tools``
        reasoner: Reasoning adapter, ChatModelReasoner over the configured models when omitted
        conversation_store: History store, SQLite when SESSION_DB_PATH is set, in-memory otherwise
        callbacks: Tool execution and human review observers
    """

    settings = settings or get_settings()
    configure_tracing(settings.observability)
    callbacks = callbacks or (tool_registry.callbacks if tool_registry else CallbackManager())

    if tool_registry is None:
        tool_registry = _create_tool_registry(tools, callbacks, settings)
    LOGGER.info(f"Registered tools: {[tool.name for tool in tool_registry.list_tools()]}")

    if reasoner is None:
        model_configs = resolve_model_configs(settings)
        model_ids = {slot: cfg["id"] for slot, cfg in model_configs.items()}
        reasoner = ChatModelReasoner(
            model_registry=build_default_registry(model_ids),
            model_resolver=build_model_resolver(model_configs),
        )

    governance = settings.governance
    app = build_planning_graph(
        reasoner=reasoner,
        tool_registry=tool_registry,
        max_selected_tasks=governance.max_selected_tasks,
        livelock_threshold=governance.livelock_threshold,
        max_executor_steps=governance.max_executor_steps,
        human_review=governance.human_review,
        prompt_log_length=settings.observability.log_prompt_max_length,
        checkpointer=build_checkpointer(),
    )

    return Orchestrator(
        app=app,
        gateway=HumanInterruptGateway(
            timeout_seconds=settings.hitl.awaiting_timeout_seconds,
            callbacks=callbacks,
        ),
        conversation_store=conversation_store or build_conversation_store(settings.observability.session_db_path),
        recursion_limit=governance.recursion_limit,
        max_passes=governance.max_passes,
        retry_ceiling=governance.max_task_retries,
    )
