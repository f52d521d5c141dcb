"""Tests for the chat-model reasoning adapter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from planningAgent.agents import ChatModelReasoner
from planningAgent.hitl.review import ReviewDecision
from planningAgent.models import build_default_registry
from planningAgent.tools.control import selector_tools
from planningAgent.utils.error_handler import ModelInvocationError


def _reasoner(model):
    registry = build_default_registry({"base": {"id": "b"}, "reason": {"id": "r"}, "chat": {"id": "c"}})
    resolver = MagicMock(return_value=model)
    return ChatModelReasoner(model_registry=registry, model_resolver=resolver), resolver


@pytest.mark.asyncio
async def test_propose_binds_tools_with_required_choice():
    bound = MagicMock()
    bound.ainvoke = AsyncMock(return_value=AIMessage(
        content="",
        tool_calls=[{"name": "select_tasks", "args": {"plan_id": "p1", "task_indexes": [0]}, "id": "c1"}],
    ))
    model = MagicMock()
    model.bind_tools.return_value = bound
    reasoner, resolver = _reasoner(model)

    proposal = await reasoner.propose([HumanMessage(content="go")], selector_tools(), phase="select")

    resolver.assert_called_once_with("r")
    assert model.bind_tools.call_args.kwargs == {"tool_choice": "required"}
    assert proposal.names == ["select_tasks"]
    assert proposal.first("select_tasks")["args"]["task_indexes"] == [0]


@pytest.mark.asyncio
async def test_propose_without_tools_returns_text():
    model = MagicMock()
    model.ainvoke = AsyncMock(return_value=AIMessage(content=[{"type": "text", "text": "All done."}]))
    reasoner, resolver = _reasoner(model)

    proposal = await reasoner.propose([HumanMessage(content="sum up")], [], phase="answer", require_action=False)

    resolver.assert_called_once_with("b")
    assert proposal.tool_calls == []
    assert proposal.text == "All done."


@pytest.mark.asyncio
async def test_model_errors_are_wrapped():
    model = MagicMock()
    model.ainvoke = AsyncMock(side_effect=RuntimeError("Connection reset"))
    reasoner, _ = _reasoner(model)

    with pytest.raises(ModelInvocationError):
        await reasoner.propose([HumanMessage(content="x")], [], phase="answer", require_action=False)


@pytest.mark.asyncio
async def test_extract_validates_dict_output():
    structured = MagicMock()
    structured.ainvoke = AsyncMock(return_value={"action": "approve"})
    model = MagicMock()
    model.with_structured_output.return_value = structured
    reasoner, resolver = _reasoner(model)

    decision = await reasoner.extract([HumanMessage(content="ok")], ReviewDecision)

    resolver.assert_called_once_with("c")
    assert decision == ReviewDecision(action="approve")
