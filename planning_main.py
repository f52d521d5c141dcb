#!/usr/bin/env python3
"""planningAgent - interactive entry point.

Usage:
    python planning_main.py

Each message is a request: the agent plans it, executes the tasks with the
registered tools and replies. When it needs a human (a question, or approval
of a review-gated action) the next line you type is the reply.
"""

import asyncio
import logging
import sys
import uuid
from pathlib import Path

# Add project root to sys.path for imports
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from planningAgent.config import get_settings
from planningAgent.hitl import WaitingResult
from planningAgent.runtime import build_planning_app
from planningAgent.utils.error_handler import PlanningAgentError
from planningAgent.utils.logging_utils import setup_logging


def _print_result(result) -> None:
    if isinstance(result, WaitingResult):
        print()
        if result.context is not None:
            print(f"[{result.kind}] {result.context}")
        print(f"? {result.question}")
        if result.kind == "review":
            print("  (reply approve / reject, or describe what to change)")
        return

    print(f"\n{result.answer}")
    if result.status == "error":
        print("  (request ended with an error, see the log file)")


async def main():
    """Main entry point for the planningAgent CLI."""
    settings = get_settings()
    logger = setup_logging(getattr(logging, settings.observability.log_level.upper(), logging.INFO))

    print("=" * 60)
    print("planningAgent - Plan, select, execute, review")
    print("=" * 60)
    print()
    print("Commands:")
    print("  /quit, /exit  - exit")
    print("  /reset        - start a new conversation thread")
    print("  /state        - show the current plans")
    print()

    try:
        orchestrator = build_planning_app(settings=settings)
    except PlanningAgentError as e:
        print(f"Startup failed: {e.user_message}")
        return

    thread_id = str(uuid.uuid4())
    logger.info(f"New session started with thread_id: {thread_id}")
    print(f"Thread: {thread_id[:8]}...")
    print()

    loop = asyncio.get_running_loop()
    while True:
        try:
            user_input = (await loop.run_in_executor(None, lambda: input("> "))).strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            break

        if not user_input:
            continue
        if user_input in ("/quit", "/exit"):
            print("\nBye!")
            break
        if user_input == "/reset":
            thread_id = str(uuid.uuid4())
            print(f"New thread: {thread_id[:8]}...")
            continue
        if user_input == "/state":
            state = await orchestrator.get_state(thread_id)
            for plan in state.get("plans") or []:
                print(f"Plan {plan['plan_id']}: {plan['title']} ({plan['status']})")
                for task in plan["tasks"]:
                    print(f"  [{task['index']}] {task['title']} => {task['status']} (retries: {task['retry_count']})")
            continue

        result = await orchestrator.run(thread_id, user_input)
        _print_result(result)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
