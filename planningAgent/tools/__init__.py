"""Tool registry, control tools and builtin tools."""

from .registry import ToolMeta, ToolRegistry

__all__ = ["ToolMeta", "ToolRegistry"]
