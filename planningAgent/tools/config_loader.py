"""Tool configuration loader.

Example ``tools.yaml``::

    tools:
      swap_tokens:
        requires_review: true
        risk: high
        tags: [chain, write]
      get_balance:
        tags: [chain, read]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .registry import ToolMeta, ToolRegistry

LOGGER = logging.getLogger(__name__)


class ToolConfig:
    """Tool metadata overrides loaded from YAML."""

    def __init__(self, config_path: Path):
        """Load tool configuration from YAML file.

        Args:
            config_path: Path to tools.yaml configuration file
        """
        self.config_path = Path(config_path)
        self.config = self._load_config()

    def _load_config(self) -> dict:
        """Load and parse YAML configuration."""
        if not self.config_path.exists():
            LOGGER.warning(f"Tools config not found: {self.config_path}, using defaults")
            return {"tools": {}}

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
                LOGGER.info(f"Loaded tools configuration from {self.config_path}")
                return config
        except (OSError, yaml.YAMLError) as e:
            LOGGER.error(f"Failed to load tools config: {e}, using defaults")
            return {"tools": {}}

    def get_tool_config(self, tool_name: str) -> Dict[str, Any]:
        tools = self.config.get("tools") or {}
        entry = tools.get(tool_name) or {}
        return entry if isinstance(entry, dict) else {}

    def apply(self, registry: ToolRegistry) -> None:
        """Merge configured metadata into the registered tools."""
        for tool in registry.list_tools():
            entry = self.get_tool_config(tool.name)
            if not entry:
                continue
            current = registry.get_meta(tool.name)
            registry.register_meta(ToolMeta(
                name=tool.name,
                risk=str(entry.get("risk", current.risk)),
                tags=list(entry.get("tags", current.tags)),
                requires_review=bool(entry.get("requires_review", current.requires_review)),
            ))
            LOGGER.debug(f"Applied tool config for {tool.name}: {entry}")


def load_tool_config(registry: ToolRegistry, config_path: Optional[str]) -> Optional[ToolConfig]:
    if not config_path:
        return None
    config = ToolConfig(Path(config_path))
    config.apply(registry)
    return config
