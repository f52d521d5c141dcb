"""Control tools - signal tools that steer orchestration instead of doing work.

These tools never perform an operation. They are offered to the model so
that its decision arrives as a structured tool call; the graph nodes read the
call arguments (validated with the input models below) and route on them:

    create_plan / update_plan  -> planner mutates the plan collection
    select_tasks               -> selector hands tasks to the executor
    terminate                  -> selector/executor stop the current pass
    ask_user                   -> the run suspends until the human replies
"""

from __future__ import annotations

import json
from typing import List, Optional

from langchain_core.tools import tool
from pydantic import BaseModel, Field

from planningAgent.graph.plan import TaskUpdateModel

CREATE_PLAN = "create_plan"
UPDATE_PLAN = "update_plan"
SELECT_TASKS = "select_tasks"
TERMINATE = "terminate"
ASK_USER = "ask_user"

CONTROL_TOOL_NAMES = frozenset({CREATE_PLAN, UPDATE_PLAN, SELECT_TASKS, TERMINATE, ASK_USER})


class PlanDraftModel(BaseModel):
    title: str = Field(..., description="Short title of the plan")
    tasks: List[str] = Field(..., min_length=1, description="Ordered task titles, one unit of work each")


class CreatePlanInput(BaseModel):
    plans: List[PlanDraftModel] = Field(..., min_length=1, description="Plans decomposing the request")


class UpdatePlanInput(BaseModel):
    plan_id: str = Field(..., description="Id of the plan being updated")
    tasks: List[TaskUpdateModel] = Field(..., description="Task updates addressed by index")


class SelectTasksInput(BaseModel):
    plan_id: str = Field(..., description="Id of the plan the tasks belong to")
    task_indexes: List[int] = Field(..., min_length=1, description="Indexes of the tasks to execute next")


class TerminateInput(BaseModel):
    reason: str = Field(..., description="Why the work stops here")


class AskUserInput(BaseModel):
    question: str = Field(..., description="Clear, specific question for the user")


@tool(CREATE_PLAN, args_schema=CreatePlanInput)
def create_plan(plans: List[PlanDraftModel]) -> str:
    """Create one or more plans for the user's request.

    Break the request into small, ordered tasks. Each task must be doable with
    the available tools in one or a few calls. Use several plans only when the
    request contains independent goals.
    """
    return json.dumps({"signal": "plan_created", "plans": len(plans)})


@tool(UPDATE_PLAN, args_schema=UpdatePlanInput)
def update_plan(plan_id: str, tasks: List[TaskUpdateModel]) -> str:
    """Update task statuses and results of a plan after an execution pass.

    Mark a task completed when its tool responses show success, failed when
    they show an error. Reference the tool response holding the result with
    response_tool_id and, optionally, the fields worth keeping with
    response_data_paths. Use an index past the last task to append a new task.
    """
    return json.dumps({"signal": "plan_updated", "plan_id": plan_id, "tasks": len(tasks)})


@tool(SELECT_TASKS, args_schema=SelectTasksInput)
def select_tasks(plan_id: str, task_indexes: List[int]) -> str:
    """Select up to three unfinished tasks of a plan to execute next.

    Prefer tasks whose prerequisites are completed. Tasks that can run with
    the same information may be selected together.
    """
    return json.dumps({"signal": "tasks_selected", "plan_id": plan_id, "task_indexes": task_indexes})


@tool(TERMINATE, args_schema=TerminateInput)
def terminate(reason: str) -> str:
    """Stop working on the current tasks and explain why."""
    return json.dumps({"signal": "terminate", "reason": reason})


@tool(ASK_USER, args_schema=AskUserInput)
def ask_user(question: str) -> str:
    """Ask the user for information you cannot obtain with the available tools."""
    return json.dumps({"signal": "ask_user", "question": question})


def planner_create_tools():
    return [create_plan]


def planner_update_tools():
    return [update_plan]


def selector_tools():
    return [select_tasks, terminate, ask_user]


def executor_control_tools():
    return [terminate, ask_user]


def terminate_reason(args: Optional[dict]) -> str:
    return str((args or {}).get("reason") or "No reason given")
