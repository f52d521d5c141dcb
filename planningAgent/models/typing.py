"""Shared typing helpers for model routing."""

from typing import Literal

ModelKey = Literal["base", "reason", "chat"]

Phase = Literal["plan", "update", "select", "execute", "classify", "answer"]
