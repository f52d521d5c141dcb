"""LangGraph wiring for the plan-select-execute cycle."""
