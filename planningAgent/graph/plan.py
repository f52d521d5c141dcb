"""Plan and task models with invariant-preserving mutation helpers.

Plans live in the run state as plain dicts (``PlanModel.model_dump(mode="json")``)
so the checkpointer can persist them; every mutation goes through the models
defined here.
"""

from __future__ import annotations

import json
import logging
import secrets
import string
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from langchain_core.messages import BaseMessage
from pydantic import BaseModel, Field, computed_field, field_validator

from planningAgent.utils.paths import pick_paths

LOGGER = logging.getLogger(__name__)

TaskStatus = Literal["pending", "in-progress", "completed", "failed"]
PlanStatus = Literal["pending", "in-progress", "completed"]

PLAN_ID_ALPHABET = string.ascii_lowercase + string.digits
PLAN_ID_LENGTH = 5


def generate_plan_id() -> str:
    return "".join(secrets.choice(PLAN_ID_ALPHABET) for _ in range(PLAN_ID_LENGTH))


def _normalize_status(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower().replace("_", "-").replace(" ", "-")
    return value


class TaskModel(BaseModel):
    """Single unit of work inside a plan."""

    index: int = Field(ge=0)
    title: str = Field(min_length=1)
    status: TaskStatus = "pending"
    retry_count: int = Field(default=0, ge=0)
    result: Optional[Any] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        return _normalize_status(value)

    def updated(
        self,
        status: TaskStatus,
        *,
        title: Optional[str] = None,
        result: Optional[Any] = None,
    ) -> "TaskModel":
        """Return a copy with a new status; reporting a failure bumps retry_count."""
        return self.model_copy(update={
            "status": status,
            "title": title or self.title,
            "result": result if result is not None else self.result,
            "retry_count": self.retry_count + (1 if status == "failed" else 0),
        })


class PlanModel(BaseModel):
    """Ordered, index-addressed collection of tasks.

    ``status`` is computed from the tasks and cannot be assigned.
    """

    plan_id: str = Field(default_factory=generate_plan_id, min_length=1)
    title: str = Field(min_length=1)
    tasks: List[TaskModel] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def status(self) -> PlanStatus:
        if self.tasks and all(task.status == "completed" for task in self.tasks):
            return "completed"
        if any(task.status != "pending" for task in self.tasks):
            return "in-progress"
        return "pending"

    def task(self, index: int) -> Optional[TaskModel]:
        if 0 <= index < len(self.tasks):
            return self.tasks[index]
        return None


class TaskUpdateModel(BaseModel):
    """One positional task update proposed by the planner."""

    index: int = Field(description="Task index inside the plan. Indexes past the end append new tasks.")
    status: TaskStatus = Field(description="New task status: pending, in-progress, completed or failed.")
    title: Optional[str] = Field(default=None, description="New title, required for appended tasks.")
    result: Optional[Any] = Field(default=None, description="Short outcome of the last attempt.")
    response_tool_id: Optional[str] = Field(
        default=None,
        description="Correlation id of the tool response that holds the task result.",
    )
    response_data_paths: Optional[List[str]] = Field(
        default=None,
        description="Dotted paths picked from the tool response payload, e.g. ['quote.amountOut'].",
    )

    @field_validator("status", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        return _normalize_status(value)


# ========== Construction ==========

def materialize_plans(drafts: Iterable[Tuple[str, Sequence[str]]]) -> List[PlanModel]:
    """Turn (title, task titles) drafts into plans with fresh ids and pending tasks."""
    plans: List[PlanModel] = []
    for title, task_titles in drafts:
        tasks = [
            TaskModel(index=i, title=task_title)
            for i, task_title in enumerate(t for t in task_titles if t and t.strip())
        ]
        if not tasks:
            LOGGER.warning(f"Skipping plan without tasks: {title!r}")
            continue
        plans.append(PlanModel(title=title, tasks=tasks))
    return plans


def load_plans(raw: Optional[Iterable[Mapping[str, Any]]]) -> List[PlanModel]:
    return [PlanModel.model_validate(item) for item in (raw or [])]


def dump_plans(plans: Iterable[PlanModel]) -> List[Dict[str, Any]]:
    return [plan.model_dump(mode="json") for plan in plans]


def find_plan(plans: Sequence[PlanModel], plan_id: Optional[str]) -> Optional[PlanModel]:
    for plan in plans:
        if plan.plan_id == plan_id:
            return plan
    return None


# ========== Queries ==========

def tasks_at_ceiling(plans: Sequence[PlanModel], ceiling: int) -> List[Tuple[PlanModel, TaskModel]]:
    return [
        (plan, task)
        for plan in plans
        for task in plan.tasks
        if task.retry_count >= ceiling
    ]


def all_plans_completed(plans: Sequence[PlanModel]) -> bool:
    """True only when at least one plan exists and every task of every plan is completed."""
    return bool(plans) and all(plan.status == "completed" for plan in plans)


def selectable_indexes(plan: PlanModel, ceiling: int) -> List[int]:
    return [
        task.index
        for task in plan.tasks
        if task.status != "completed" and task.retry_count < ceiling
    ]


# ========== Updates ==========

def _parse_payload(content: Any) -> Any:
    if isinstance(content, str):
        try:
            return json.loads(content)
        except ValueError:
            return content
    return content


def index_tool_responses(tool_responses: Optional[Iterable[BaseMessage]]) -> Dict[str, Any]:
    """Map correlation id to tool response content."""
    indexed: Dict[str, Any] = {}
    for message in tool_responses or []:
        call_id = getattr(message, "tool_call_id", None)
        if call_id:
            indexed[call_id] = message.content
    return indexed


def resolve_update_result(update: TaskUpdateModel, responses: Mapping[str, Any]) -> Optional[Any]:
    """Pick the result for a task update.

    A referenced tool response wins (narrowed to ``response_data_paths`` when
    given), then an explicit ``result``.
    """
    if update.response_tool_id and update.response_tool_id in responses:
        payload = _parse_payload(responses[update.response_tool_id])
        if update.response_data_paths and isinstance(payload, (dict, list)):
            return pick_paths(payload, update.response_data_paths)
        return payload
    if update.response_tool_id:
        LOGGER.warning(f"Unknown response_tool_id {update.response_tool_id!r}, falling back to result")
    return update.result


def apply_task_updates(
    plan: PlanModel,
    updates: Sequence[TaskUpdateModel],
    tool_responses: Optional[Iterable[BaseMessage]] = None,
) -> PlanModel:
    """Apply positional updates and return the new plan.

    Tasks not referenced stay unchanged and only the first update per index
    applies. Indexes past the current end are an append-only extension: they
    are added in ascending order as new pending tasks at the next free
    position.
    """
    responses = index_tool_responses(tool_responses)
    tasks = list(plan.tasks)
    appended: List[TaskUpdateModel] = []
    seen = set()

    for update in updates:
        # First update per index wins; a repeated "failed" counts once
        if update.index in seen:
            LOGGER.warning(f"Ignoring duplicate update for task {update.index} of plan {plan.plan_id}")
            continue
        seen.add(update.index)
        if update.index < 0:
            LOGGER.warning(f"Ignoring negative task index {update.index} for plan {plan.plan_id}")
            continue
        if update.index >= len(plan.tasks):
            appended.append(update)
            continue
        tasks[update.index] = tasks[update.index].updated(
            update.status,
            title=update.title,
            result=resolve_update_result(update, responses),
        )

    for update in sorted(appended, key=lambda u: u.index):
        if not update.title:
            LOGGER.warning(f"Ignoring appended task without title at index {update.index}")
            continue
        tasks.append(TaskModel(index=len(tasks), title=update.title))

    return plan.model_copy(update={"tasks": tasks})


def replace_plan(plans: Sequence[PlanModel], new_plan: PlanModel) -> List[PlanModel]:
    return [new_plan if plan.plan_id == new_plan.plan_id else plan for plan in plans]


def status_fingerprint(plan: PlanModel, indexes: Sequence[int]) -> str:
    """Compact signature of the selected tasks' status and retry progress."""
    parts = []
    for index in indexes:
        task = plan.task(index)
        parts.append(f"{index}={task.status}/{task.retry_count}" if task else f"{index}=missing")
    return ",".join(parts)
