"""Model management utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .typing import ModelKey

# Phases that decide what happens next get the strongest model
_REASONING_PHASES = {"plan", "update", "select"}


@dataclass(frozen=True, slots=True)
class ModelSpec:
    """Normalized description of a chat model endpoint."""

    key: ModelKey
    model_id: str
    can_tools: bool
    domain: str  # general | reasoning | chat
    quality: str  # low | med | high


class ModelRegistry:
    """Central registry for model specs and per-phase routing."""

    def __init__(self, specs: Optional[Iterable[ModelSpec]] = None) -> None:
        self._specs: Dict[ModelKey, ModelSpec] = {}
        if specs:
            for spec in specs:
                self.register(spec)

    def register(self, spec: ModelSpec) -> None:
        """Store a spec under its key."""

        self._specs[spec.key] = spec

    def get(self, key: ModelKey) -> ModelSpec:
        """Return the spec for a given key."""

        if key not in self._specs:
            raise KeyError(f"Unknown model key: {key}")
        return self._specs[key]

    def prefer(self, *, phase: str, require_tools: bool) -> ModelSpec:
        """Choose a model spec for an orchestration phase.

        plan/update/select use the reasoning slot, tool execution and review
        classification use the chat slot, answer synthesis uses the base slot.
        A slot that cannot call tools is skipped when tools are required.
        """

        if phase in _REASONING_PHASES and "reason" in self._specs:
            return self.get("reason")
        if require_tools or phase in ("execute", "classify"):
            return self.get("chat")
        if "base" in self._specs:
            return self.get("base")
        return self.get("chat")


def build_default_registry(model_configs: Dict[str, Dict[str, object]]) -> ModelRegistry:
    """Instantiate the registry with defaults drawn from configuration.

    Args:
        model_configs: Dictionary mapping slot names to model configuration dicts.
                      Each config dict must have an 'id' key.
    """

    return ModelRegistry(
        [
            ModelSpec(
                key="base",
                model_id=str(model_configs["base"]["id"]),
                can_tools=False,
                domain="general",
                quality="low",
            ),
            ModelSpec(
                key="reason",
                model_id=str(model_configs["reason"]["id"]),
                can_tools=True,
                domain="reasoning",
                quality="high",
            ),
            ModelSpec(
                key="chat",
                model_id=str(model_configs["chat"]["id"]),
                can_tools=True,
                domain="chat",
                quality="med",
            ),
        ]
    )
