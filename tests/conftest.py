"""Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root and the test helpers are importable
project_root = Path(__file__).parent.parent
for path in (project_root, Path(__file__).parent):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from helpers import ScriptedReasoner, broken_lookup, get_balance, simulate_swap, swap_tokens  # noqa: E402
from planningAgent.tools import ToolRegistry  # noqa: E402


@pytest.fixture
def tool_registry():
    """Registry with a read tool, a failing tool and a review-gated swap."""
    registry = ToolRegistry()
    registry.register_tool(get_balance, tags=["read"])
    registry.register_tool(broken_lookup, tags=["read"])
    registry.register_tool(swap_tokens, requires_review=True, simulate=simulate_swap, tags=["write"])
    return registry


@pytest.fixture
def make_reasoner():
    return ScriptedReasoner
