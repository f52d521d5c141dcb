"""Runtime utilities."""

from .app import build_planning_app
from .model_resolver import build_model_resolver, resolve_model_configs
from .orchestrator import AnswerResult, Orchestrator

__all__ = [
    "AnswerResult",
    "Orchestrator",
    "build_model_resolver",
    "build_planning_app",
    "resolve_model_configs",
]
