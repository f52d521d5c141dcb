"""Model registry and routing."""

from .registry import ModelRegistry, ModelSpec, build_default_registry

__all__ = ["ModelRegistry", "ModelSpec", "build_default_registry"]
