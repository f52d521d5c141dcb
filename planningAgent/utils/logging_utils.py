"""Logging utilities for planningAgent."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

LOGS_DIR = Path("logs")

# Generate log filename with timestamp
LOG_FILE = LOGS_DIR / f"planning_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"


def setup_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> logging.Logger:
    """Setup logging configuration for planningAgent.

    Args:
        level: Logging level for the file handler (default: INFO)
        log_file: Override for the log file location

    Returns:
        Configured logger instance
    """
    target = Path(log_file) if log_file else LOG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("planningAgent")
    logger.setLevel(logging.DEBUG)  # Capture all child logs, handlers filter
    logger.propagate = False

    # Clear existing handlers
    logger.handlers = []

    # File handler (detailed logs)
    file_handler = logging.FileHandler(target, encoding="utf-8")
    file_handler.setLevel(level)
    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    file_handler.setFormatter(file_formatter)

    # Console handler (user-friendly)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.info("=" * 80)
    logger.info("planningAgent session started")
    logger.info(f"Log file: {target}")
    logger.info("=" * 80)

    return logger


def _truncate(text: str, limit: int = 500) -> str:
    if len(text) > limit:
        return text[:limit] + "... (truncated)"
    return text


def log_node_entry(logger: logging.Logger, node_name: str, state: Dict[str, Any]) -> None:
    """Log node entry with a compact run-state snapshot.

    Args:
        logger: Logger instance
        node_name: Name of the node being entered
        state: Current run state
    """
    logger.info(f"\n{'#'*80}")
    logger.info(f"# ENTERING NODE: {node_name}")
    logger.info(f"{'#'*80}")
    logger.info("State snapshot:")
    logger.info(f"  - thread_id: {state.get('thread_id') or 'N/A'}")
    logger.info(f"  - plans: {len(state.get('plans') or [])}")
    logger.info(f"  - active_plan_id: {state.get('active_plan_id')}")
    logger.info(f"  - selected_task_indexes: {state.get('selected_task_indexes') or []}")
    logger.info(f"  - passes: {state.get('passes', 0)}/{state.get('max_passes')}")
    logger.info(f"  - tool_responses: {len(state.get('tool_responses') or [])}")
    logger.info(f"  - next_node_signal: {state.get('next_node_signal')}")
    if state.get("pending_interrupt"):
        logger.info(f"  - pending_interrupt: {state['pending_interrupt'].get('kind')}")


def log_node_exit(logger: logging.Logger, node_name: str, updates: Dict[str, Any]) -> None:
    """Log node exit with state updates.

    Args:
        logger: Logger instance
        node_name: Name of the node being exited
        updates: State updates returned by the node
    """
    logger.info(f"\n{'#'*80}")
    logger.info(f"# EXITING NODE: {node_name}")
    logger.info(f"{'#'*80}")
    logger.info("State updates:")
    for key, value in updates.items():
        if key in ("executor_messages", "tool_responses", "chat_history"):
            logger.info(f"  - {key}: {len(value or [])} messages")
        elif key == "plans":
            logger.info(f"  - plans: {len(value or [])} plans")
        else:
            logger.info(f"  - {key}: {_truncate(str(value), 200)}")
    logger.info(f"{'#'*80}\n")


def log_tool_call(logger: logging.Logger, tool_name: str, args: Dict[str, Any]) -> None:
    """Log tool invocation.

    Args:
        logger: Logger instance
        tool_name: Name of the tool being called
        args: Tool arguments
    """
    logger.info(f"Tool call: {tool_name}")
    logger.debug(f"  Arguments: {json.dumps(args, ensure_ascii=False, indent=2, default=str)}")


def log_tool_result(logger: logging.Logger, tool_name: str, result: Any, success: bool = True) -> None:
    """Log tool execution result.

    Args:
        logger: Logger instance
        tool_name: Name of the tool
        result: Tool execution result
        success: Whether the tool executed successfully
    """
    status = "✓ Success" if success else "✗ Failed"
    logger.info(f"Tool result: {tool_name} - {status}")
    logger.debug(f"  Result: {_truncate(str(result))}")


def log_model_selection(logger: logging.Logger, phase: str, model_id: str, reason: str = "") -> None:
    """Log model selection decision.

    Args:
        logger: Logger instance
        phase: Orchestration phase (plan/select/execute/answer)
        model_id: Selected model ID
        reason: Reason for selection
    """
    logger.info(f"Model selected for {phase}: {model_id}")
    if reason:
        logger.debug(f"  Reason: {reason}")


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """Log error with context.

    Args:
        logger: Logger instance
        error: Exception instance
        context: Additional context about where the error occurred
    """
    logger.error(f"Error occurred: {type(error).__name__}: {str(error)}")
    if context:
        logger.error(f"  Context: {context}")
    logger.exception("Full traceback:", exc_info=error)


def log_user_message(logger: logging.Logger, content: str) -> None:
    logger.info(f"User input: {content[:100]}{'...' if len(content) > 100 else ''}")


def log_agent_response(logger: logging.Logger, content: str) -> None:
    logger.info(f"Agent response: {content[:100]}{'...' if len(content) > 100 else ''}")


def log_prompt(logger: logging.Logger, phase: str, prompt: str, max_length: int = 500) -> None:
    """Log the system prompt used for a phase, truncated to max_length."""
    logger.debug(f"System prompt for {phase}:\n{_truncate(prompt, max_length)}")


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    """Log routing decision.

    Args:
        logger: Logger instance
        from_node: Source node making the decision
        decision: Routing destination
        reason: Reason for the routing decision
    """
    logger.info(f"\n{'='*80}")
    logger.info(f"Routing decision from {from_node}:")
    logger.info(f"  → Destination: {decision}")
    if reason:
        logger.info(f"  → Reason: {reason}")
    logger.info(f"{'='*80}\n")


def log_plan_created(logger: logging.Logger, plans: List[Dict[str, Any]]) -> None:
    """Log plan creation details.

    Args:
        logger: Logger instance
        plans: Plan dictionaries as stored in the run state
    """
    logger.info(f"\n{'='*80}")
    logger.info(f"Plans created: {len(plans)}")
    for plan in plans:
        logger.info(f"  Plan {plan.get('plan_id')}: {plan.get('title')}")
        for task in plan.get("tasks", []):
            logger.info(f"    [{task.get('index')}] {task.get('title')}")
    logger.info(f"{'='*80}\n")


def log_task_updates(logger: logging.Logger, plan_id: str, updates: List[Dict[str, Any]]) -> None:
    """Log task updates applied to a plan."""
    logger.info(f"Plan {plan_id} updated: {len(updates)} task updates")
    for update in updates:
        logger.info(
            f"  [{update.get('index')}] → {update.get('status')}"
            + (f" (title: {update['title']})" if update.get("title") else "")
        )


def log_visible_tools(logger: logging.Logger, phase: str, tools: list) -> None:
    """Log tools offered to the model for a phase.

    Args:
        logger: Logger instance
        phase: Phase name
        tools: List of tool names or tool objects
    """
    tool_names = [t.name if hasattr(t, "name") else str(t) for t in tools]
    logger.info(f"Visible tools for {phase}: [{', '.join(tool_names)}]")
