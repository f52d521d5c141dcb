"""Builtin utility tools."""

from .now import now

__all__ = ["now"]
