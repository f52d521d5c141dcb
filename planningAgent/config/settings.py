"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
All settings classes automatically load from environment variables with support for
multiple alias names (e.g., MODEL_BASIC_* and MODEL_BASE_* both work).

Example:
    from planningAgent.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    api_key = settings.models.reason_api_key
    ceiling = settings.governance.max_task_retries
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


class ModelRoutingSettings(BaseSettings):
    """Vendor-neutral model identifiers and credentials.

    Three slots are routed by orchestration phase:
    - MODEL_BASE, MODEL_BASE_ID, MODEL_BASIC_ID (answer synthesis, fallback)
    - MODEL_REASON, MODEL_REASON_ID, MODEL_REASONING_ID (planning and selection)
    - MODEL_CHAT, MODEL_CHAT_ID (tool execution and review classification)

    Each model slot has three fields: id, api_key, base_url.
    """

    base: str = Field(
        default="base-quick",
        validation_alias=AliasChoices("MODEL_BASE", "MODEL_BASE_ID", "MODEL_BASIC_ID"),
    )
    base_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_BASE_API_KEY", "MODEL_BASIC_API_KEY"),
    )
    base_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_BASE_URL", "MODEL_BASIC_BASE_URL"),
    )

    reason: str = Field(
        default="reasoner-pro",
        validation_alias=AliasChoices("MODEL_REASON", "MODEL_REASON_ID", "MODEL_REASONING_ID"),
    )
    reason_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_REASON_API_KEY", "MODEL_REASONING_API_KEY"),
    )
    reason_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_REASON_URL", "MODEL_REASONING_BASE_URL"),
    )

    chat: str = Field(
        default="chat-mid",
        validation_alias=AliasChoices("MODEL_CHAT", "MODEL_CHAT_ID"),
    )
    chat_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_CHAT_API_KEY", "MODEL_DEFAULT_CHAT_API_KEY"),
    )
    chat_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_CHAT_URL", "MODEL_CHAT_BASE_URL"),
    )

    temperature: float = Field(default=0.0, ge=0.0, le=2.0, alias="MODEL_TEMPERATURE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class GovernanceSettings(BaseSettings):
    """Retry, selection and loop limits for the orchestration cycle.

    - max_task_retries: failures after which a task is never reselected (default: 5)
    - max_selected_tasks: tasks handed to one executor pass (default: 3)
    - livelock_threshold: identical selections without progress before giving up (default: 3)
    - max_executor_steps: proposals inside one executor pass before a forced stop (default: 25)
    - max_passes: executor passes per request (default: 20)
    - human_review: pause review-gated tools for approval (default: True)
    """

    max_task_retries: int = Field(
        default=5, ge=1, le=50,
        validation_alias=AliasChoices("GOVERNANCE_MAX_TASK_RETRIES", "MAX_TASK_RETRIES"),
    )
    max_selected_tasks: int = Field(
        default=3, ge=1, le=10,
        validation_alias=AliasChoices("GOVERNANCE_MAX_SELECTED_TASKS", "MAX_SELECTED_TASKS"),
    )
    livelock_threshold: int = Field(
        default=3, ge=2, le=20,
        validation_alias=AliasChoices("GOVERNANCE_LIVELOCK_THRESHOLD", "LIVELOCK_THRESHOLD"),
    )
    max_executor_steps: int = Field(
        default=25, ge=1, le=500,
        validation_alias=AliasChoices("GOVERNANCE_MAX_EXECUTOR_STEPS", "MAX_EXECUTOR_STEPS"),
    )
    max_passes: int = Field(
        default=20, ge=1, le=500,
        validation_alias=AliasChoices("GOVERNANCE_MAX_PASSES", "MAX_PASSES"),
    )
    recursion_limit: int = Field(default=200, ge=25, le=5000, alias="GRAPH_RECURSION_LIMIT")
    human_review: bool = Field(
        default=True,
        validation_alias=AliasChoices("GOVERNANCE_HUMAN_REVIEW", "HUMAN_REVIEW"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class HitlSettings(BaseSettings):
    """Human-in-the-loop behaviour.

    awaiting_timeout_seconds bounds how long the "awaiting human" indicator
    stays raised for a suspended thread.
    """

    awaiting_timeout_seconds: float = Field(
        default=60.0, ge=1.0,
        validation_alias=AliasChoices("HITL_AWAITING_TIMEOUT_SECONDS", "AWAITING_TIMEOUT_SECONDS"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ToolSettings(BaseSettings):
    """Tool metadata configuration."""

    tools_config_path: Optional[str] = Field(default=None, alias="TOOLS_CONFIG_PATH")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ObservabilitySettings(BaseSettings):
    """Tracing, logging, and persistence configuration.

    Controls observability features:
    - LangSmith tracing (LANGCHAIN_TRACING_V2, LANGCHAIN_PROJECT, etc.)
    - Logging settings (LOG_LEVEL, LOG_PROMPT_MAX_LENGTH)
    - Conversation persistence (SESSION_DB_PATH for SQLite storage)
    """

    langsmith_project: Optional[str] = Field(default=None, alias="LANGCHAIN_PROJECT")
    langsmith_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LANGCHAIN_API_KEY", "LANGSMITH_API_KEY")
    )
    langsmith_endpoint: Optional[str] = Field(default=None, alias="LANGCHAIN_ENDPOINT")
    tracing_enabled: bool = Field(default=False, alias="LANGCHAIN_TRACING_V2")

    # Logging settings
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_prompt_max_length: int = Field(default=500, ge=100, le=5000, alias="LOG_PROMPT_MAX_LENGTH")

    # Conversation history database path
    # Unset keeps history in memory only
    session_db_path: Optional[str] = Field(default=None, alias="SESSION_DB_PATH")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Hierarchical structure containing nested settings groups:
    - models: Model routing and API credentials (ModelRoutingSettings)
    - governance: Retry/selection/loop limits (GovernanceSettings)
    - hitl: Human-in-the-loop behaviour (HitlSettings)
    - tools: Tool metadata configuration (ToolSettings)
    - observability: Tracing and logging (ObservabilitySettings)

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    models: ModelRoutingSettings = Field(default_factory=ModelRoutingSettings)
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    hitl: HitlSettings = Field(default_factory=HitlSettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance.

    Uses LRU cache to ensure only one Settings object is created per process.
    All configuration is automatically loaded from .env file.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()
