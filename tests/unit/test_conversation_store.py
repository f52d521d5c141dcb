"""Tests for conversation history stores."""

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from planningAgent.persistence import (
    InMemoryConversationStore,
    SqliteConversationStore,
    build_conversation_store,
)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryConversationStore()
    return SqliteConversationStore(str(tmp_path / "db" / "conversations.db"))


def test_append_and_read_in_order(store):
    store.append("t1", "human", "Swap 1 ETH")
    store.append("t1", "ai", "Done, tx 0xabc")
    store.append("t2", "human", "other thread")

    messages = store.get_messages("t1")

    assert [type(m) for m in messages] == [HumanMessage, AIMessage]
    assert [m.content for m in messages] == ["Swap 1 ETH", "Done, tx 0xabc"]
    assert store.get_messages("unknown") == []


def test_limit_keeps_most_recent(store):
    for i in range(5):
        store.append("t1", "human", f"m{i}")

    assert [m.content for m in store.get_messages("t1", limit=2)] == ["m3", "m4"]


def test_sqlite_lists_threads(tmp_path):
    store = SqliteConversationStore(str(tmp_path / "conversations.db"))
    store.append("t1", "human", "a")
    store.append("t1", "ai", "b")

    threads = store.list_threads()

    assert threads[0][0] == "t1"
    assert threads[0][1] == 2


def test_build_conversation_store(tmp_path):
    assert isinstance(build_conversation_store(None), InMemoryConversationStore)
    assert isinstance(build_conversation_store(str(tmp_path / "c.db")), SqliteConversationStore)
