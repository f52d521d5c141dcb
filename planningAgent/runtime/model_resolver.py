"""Default model resolver wiring using environment-derived settings.

It builds a ModelResolver function that creates ChatOpenAI instances on demand,
so any OpenAI-compatible endpoint can back each model slot.
"""

from __future__ import annotations

import os
from typing import Callable, Dict, Optional, TypedDict

from langchain_openai import ChatOpenAI

from planningAgent.agents.interfaces import ModelResolver
from planningAgent.config.settings import Settings
from planningAgent.utils.error_handler import ConfigurationError

_PLACEHOLDERS = {"base-quick", "reasoner-pro", "chat-mid"}


class ModelConfig(TypedDict):
    id: str
    api_key: Optional[str]
    base_url: Optional[str]
    temperature: float


def _resolved_value(preferred: Optional[str], *env_names: str) -> Optional[str]:
    """Return preferred value unless it is a default placeholder overridden in the environment."""
    if preferred and preferred not in _PLACEHOLDERS:
        return preferred
    for name in env_names:
        value = os.getenv(name)
        if value:
            return value
    return preferred


def resolve_model_configs(settings: Settings) -> Dict[str, ModelConfig]:
    """Build normalized model configs (id + credentials) for the base, reason and chat slots."""

    models = settings.models
    return {
        "base": {
            "id": _resolved_value(models.base, "MODEL_BASIC_ID", "MODEL_BASE_ID") or "base-quick",
            "api_key": models.base_api_key,
            "base_url": models.base_base_url,
            "temperature": models.temperature,
        },
        "reason": {
            "id": _resolved_value(models.reason, "MODEL_REASONING_ID", "MODEL_REASON_ID") or "reasoner-pro",
            "api_key": models.reason_api_key,
            "base_url": models.reason_base_url,
            "temperature": models.temperature,
        },
        "chat": {
            "id": _resolved_value(models.chat, "MODEL_CHAT_ID") or "chat-mid",
            "api_key": models.chat_api_key,
            "base_url": models.chat_base_url,
            "temperature": models.temperature,
        },
    }


def _chat_kwargs(config: ModelConfig) -> Dict[str, object]:
    if not config["api_key"]:
        raise ConfigurationError(
            f"Missing API key for model {config['id']}",
            user_message=f"No API key configured for model {config['id']}, set it in .env",
        )
    kwargs: Dict[str, object] = {
        "model": config["id"],
        "api_key": config["api_key"],
        "temperature": config["temperature"],
    }
    if config["base_url"]:
        kwargs["base_url"] = config["base_url"]
    return kwargs


def build_model_resolver(model_configs: Dict[str, ModelConfig]) -> ModelResolver:
    """Construct a resolver that returns ChatOpenAI-compatible clients.

    Models are instantiated lazily, on each request for a model id.

    Raises:
        KeyError: If requested model_id is not in the configuration
        ConfigurationError: If API key is missing for the requested model
    """

    catalog: Dict[str, Callable[[], ChatOpenAI]] = {}
    for config in model_configs.values():
        catalog[config["id"]] = lambda cfg=config: ChatOpenAI(**_chat_kwargs(cfg))

    def resolver(model_id: str):
        if model_id not in catalog:
            raise KeyError(f"Model {model_id} is not registered in the configuration.")
        return catalog[model_id]()

    return resolver
