"""Review of sensitive tool calls: preview serialization and reply interpretation."""

from __future__ import annotations

import copy
import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional, Tuple

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, Field

from planningAgent.agents.interfaces import ReasoningAdapter
from planningAgent.graph.prompts import REVIEW_CLASSIFY_PROMPT, REVIEW_UPDATE_PROMPT
from planningAgent.utils.paths import get_path, set_path

LOGGER = logging.getLogger(__name__)

ReviewAction = Literal["approve", "reject", "update"]

MAX_SAFE_INTEGER = 2**53 - 1

REVIEW_QUESTION = (
    "Please review this action and approve it or reject it. "
    "To change it, describe the parameters you want updated."
)
REJECTION_MESSAGE = "Transaction rejected by human review. Exit process."


class ReviewDecision(BaseModel):
    action: ReviewAction = Field(..., description="approve, reject or update")


class PayloadEdit(BaseModel):
    path: str = Field(..., description="Path of the parameter to update, e.g. 'amount' or 'route.legs[0].amount'")
    value: str = Field(..., description="New value to set at this path")


class PayloadEdits(BaseModel):
    updates: List[PayloadEdit] = Field(default_factory=list, description="Edits to apply to the payload")


def stringify_large_ints(value: Any) -> Any:
    """Make a preview JSON-transport safe: big integers and decimals become strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value) if abs(value) > MAX_SAFE_INTEGER else value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {str(k): stringify_large_ints(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [stringify_large_ints(v) for v in value]
    if isinstance(value, BaseModel):
        return stringify_large_ints(value.model_dump())
    return value


def _coerce_value(raw: str, current: Any) -> Any:
    if isinstance(current, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def apply_payload_edits(payload: Any, edits: PayloadEdits) -> Any:
    """Apply edits to a deep copy of ``payload``; existing string fields stay strings."""
    updated = copy.deepcopy(payload)
    for edit in edits.updates:
        try:
            current = get_path(updated, edit.path)
        except KeyError:
            current = None
        set_path(updated, edit.path, _coerce_value(edit.value, current))
    return updated


def split_reply(reply: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """Return (explicit action, free text) from a normalized reply."""
    action = reply.get("action")
    if isinstance(action, str):
        action = action.strip().lower() or None
    text = reply.get("input")
    if isinstance(text, str):
        text = text.strip() or None
    return action, text


async def classify_review(reasoner: ReasoningAdapter, text: str) -> ReviewAction:
    decision = await reasoner.extract(
        [SystemMessage(content=REVIEW_CLASSIFY_PROMPT), HumanMessage(content=text)],
        ReviewDecision,
        phase="classify",
    )
    LOGGER.info(f"Review reply classified as {decision.action}")
    return decision.action


async def extract_payload_edits(reasoner: ReasoningAdapter, text: str, payload: Any) -> PayloadEdits:
    return await reasoner.extract(
        [
            SystemMessage(content=REVIEW_UPDATE_PROMPT),
            HumanMessage(content=(
                f"I want to update the following in this payload: {text}\n\n"
                f"Current payload: {json.dumps(payload, ensure_ascii=False, indent=2)}\n\n"
                "Extract every parameter I want to change and its new value."
            )),
        ],
        PayloadEdits,
        phase="classify",
    )


def format_update_message(payload: Any, edits: PayloadEdits) -> str:
    changes = "\n".join(f"- {edit.path} = {edit.value}" for edit in edits.updates)
    return (
        f"Updated payload: {json.dumps(payload, ensure_ascii=False, indent=2)}\n"
        f"Updated parameters:\n{changes}\n"
        "The call was not executed. Propose it again with the updated parameters."
    )
