"""planningAgent - plan, select, execute and review with human-in-the-loop suspension."""

__version__ = "1.0.0"
