"""Test doubles shared by unit and e2e tests.

The scripted reasoner replaces the chat models: each phase replays a queue
of prepared proposals, so graph runs are deterministic.
"""

import json
import uuid

from langchain_core.tools import tool

from planningAgent.agents.interfaces import Proposal


def tool_call(name, args=None, call_id=None):
    return {"name": name, "args": dict(args or {}), "id": call_id or f"call_{uuid.uuid4().hex[:6]}"}


def calls(*tool_calls, text=""):
    """Proposal carrying the given tool calls."""
    return Proposal(tool_calls=list(tool_calls), text=text)


def reply(text):
    """Proposal answering in plain text."""
    return Proposal(tool_calls=[], text=text)


class ScriptedReasoner:
    """Reasoning adapter replaying scripted proposals per phase.

    A script entry is a Proposal, a callable ``(messages) -> Proposal`` or an
    exception instance to raise. When a phase queue runs dry its last entry
    is repeated.
    """

    def __init__(self, script=None, extractions=None):
        self.script = {phase: list(entries) for phase, entries in (script or {}).items()}
        self.extractions = list(extractions or [])
        self.calls = []
        self.extract_calls = []

    @staticmethod
    def _next(queue, phase):
        if not queue:
            raise AssertionError(f"No scripted response for phase {phase!r}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def propose(self, messages, actions, *, phase, require_action=True):
        self.calls.append({
            "phase": phase,
            "messages": list(messages),
            "actions": [a.name for a in actions],
            "require_action": require_action,
        })
        entry = self._next(self.script.get(phase, []), phase)
        if isinstance(entry, Exception):
            raise entry
        if callable(entry):
            return entry(messages)
        return entry

    async def extract(self, messages, schema, *, phase="classify"):
        self.extract_calls.append({"schema": schema.__name__, "messages": list(messages)})
        entry = self._next(self.extractions, phase)
        if isinstance(entry, Exception):
            raise entry
        return schema.model_validate(entry) if isinstance(entry, dict) else entry

    def phases(self):
        return [call["phase"] for call in self.calls]

    def prompts(self, phase):
        """Concatenated message contents of every call made for ``phase``."""
        return [
            "\n".join(str(m.content) for m in call["messages"])
            for call in self.calls
            if call["phase"] == phase
        ]


@tool
def get_balance(token: str) -> str:
    """Return the wallet balance of a token."""
    return json.dumps({"token": token, "balance": {"amount": "12.5", "decimals": 18}})


@tool
def swap_tokens(token_in: str, token_out: str, amount: float) -> str:
    """Swap an amount of one token into another."""
    return json.dumps({"ok": True, "tx": "0xabc", "token_in": token_in, "token_out": token_out, "amount": amount})


@tool
def broken_lookup(query: str) -> str:
    """Lookup that always fails."""
    raise RuntimeError(f"upstream unavailable for {query}")


def simulate_swap(args):
    return {
        "token_in": args["token_in"],
        "token_out": args["token_out"],
        "amount": args["amount"],
        "min_out": 2**60,
        "route": {"legs": [{"pool": "p1", "fee": 3000}]},
    }
