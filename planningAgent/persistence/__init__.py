"""Run-state checkpointing and conversation history."""

from .checkpointer import build_checkpointer
from .conversation_store import (
    ConversationStore,
    InMemoryConversationStore,
    SqliteConversationStore,
    build_conversation_store,
)

__all__ = [
    "ConversationStore",
    "InMemoryConversationStore",
    "SqliteConversationStore",
    "build_checkpointer",
    "build_conversation_store",
]
