"""Checkpointer for LangGraph state persistence.

The run state of a suspended thread (pending interrupt, executor messages,
plans) lives here between ``run`` and ``resume``.
"""

from __future__ import annotations

from langgraph.checkpoint.memory import MemorySaver


def build_checkpointer():
    """Build a LangGraph checkpointer for run state persistence.

    Returns:
        MemorySaver instance, one per application
    """
    return MemorySaver()
