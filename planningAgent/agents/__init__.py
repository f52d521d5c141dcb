"""Reasoning adapter contracts and the chat-model implementation."""

from .interfaces import ModelResolver, Proposal, ReasoningAdapter
from .reasoner import ChatModelReasoner

__all__ = ["ChatModelReasoner", "ModelResolver", "Proposal", "ReasoningAdapter"]
