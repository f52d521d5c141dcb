"""Append-only conversation history keyed by thread id."""

from __future__ import annotations

import os
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Protocol, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

Role = Literal["human", "ai"]


def to_message(role: str, content: str) -> BaseMessage:
    if role == "human":
        return HumanMessage(content=content)
    return AIMessage(content=content)


class ConversationStore(Protocol):
    """History of human/assistant turns per conversation thread."""

    def get_messages(self, thread_id: str, limit: Optional[int] = None) -> List[BaseMessage]:
        ...

    def append(self, thread_id: str, role: Role, content: str) -> None:
        ...


class InMemoryConversationStore:
    """Process-local store, used by default and in tests."""

    def __init__(self) -> None:
        self._turns: Dict[str, List[Tuple[str, str]]] = {}
        self._lock = threading.Lock()

    def get_messages(self, thread_id: str, limit: Optional[int] = None) -> List[BaseMessage]:
        with self._lock:
            turns = list(self._turns.get(thread_id, []))
        if limit is not None:
            turns = turns[-limit:] if limit > 0 else []
        return [to_message(role, content) for role, content in turns]

    def append(self, thread_id: str, role: Role, content: str) -> None:
        with self._lock:
            self._turns.setdefault(thread_id, []).append((role, content))


class SqliteConversationStore:
    """SQLite store for conversation turns."""

    def __init__(self, db_path: str = "data/conversations.db"):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file
        """
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS turns (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    thread_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_turns_thread ON turns (thread_id, id)")
            conn.commit()
        finally:
            conn.close()

    def append(self, thread_id: str, role: Role, content: str) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(
                "INSERT INTO turns (thread_id, role, content, created_at) VALUES (?, ?, ?, ?)",
                (thread_id, role, content, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    def get_messages(self, thread_id: str, limit: Optional[int] = None) -> List[BaseMessage]:
        """Return the thread's turns, oldest first; ``limit`` keeps only the most recent ones."""
        conn = sqlite3.connect(self.db_path)
        try:
            if limit is not None:
                cursor = conn.execute(
                    """SELECT role, content FROM (
                           SELECT id, role, content FROM turns WHERE thread_id = ?
                           ORDER BY id DESC LIMIT ?
                       ) ORDER BY id ASC""",
                    (thread_id, max(limit, 0)),
                )
            else:
                cursor = conn.execute(
                    "SELECT role, content FROM turns WHERE thread_id = ? ORDER BY id ASC",
                    (thread_id,),
                )
            rows = cursor.fetchall()
        finally:
            conn.close()
        return [to_message(role, content) for role, content in rows]

    def list_threads(self) -> List[tuple]:
        """List threads as (thread_id, turn_count, last_updated) tuples, most recent first."""
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute(
                """SELECT thread_id, COUNT(*), MAX(created_at) FROM turns
                   GROUP BY thread_id ORDER BY MAX(created_at) DESC"""
            )
            return cursor.fetchall()
        finally:
            conn.close()


def build_conversation_store(db_path: Optional[str] = None):
    """SQLite-backed store when a path is configured, in-memory otherwise."""
    if db_path:
        return SqliteConversationStore(db_path)
    return InMemoryConversationStore()
