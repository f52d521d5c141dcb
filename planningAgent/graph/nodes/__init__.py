"""Graph node builders."""

from .answer import build_answer_node
from .ask import build_ask_node
from .executor import build_executor_node
from .planner import build_planner_node
from .selector import build_selector_node

__all__ = [
    "build_answer_node",
    "build_ask_node",
    "build_executor_node",
    "build_planner_node",
    "build_selector_node",
]
