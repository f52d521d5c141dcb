"""Dotted/bracket path helpers for JSON-like payloads.

Paths look like ``amount``, ``route.tokenIn.symbol`` or ``legs[0].amount``.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Iterable, List, Union

_TOKEN = re.compile(r"[^.\[\]]+|\[(\d+)\]")

PathKey = Union[str, int]


def parse_path(path: str) -> List[PathKey]:
    """Split a path into keys; ``[n]`` segments become integer indexes."""
    keys: List[PathKey] = []
    for match in _TOKEN.finditer(path.strip()):
        if match.group(1) is not None:
            keys.append(int(match.group(1)))
        else:
            keys.append(match.group(0))
    if not keys:
        raise ValueError(f"Empty path: {path!r}")
    return keys


def get_path(data: Any, path: str) -> Any:
    """Return the value at ``path``; raises KeyError when it does not exist."""
    current = data
    for key in parse_path(path):
        if isinstance(key, int) and isinstance(current, list):
            if key >= len(current):
                raise KeyError(path)
            current = current[key]
        elif isinstance(current, dict) and str(key) in current:
            current = current[str(key)]
        else:
            raise KeyError(path)
    return current


def set_path(data: Any, path: str, value: Any) -> None:
    """Set ``value`` at ``path`` in place, creating missing containers."""
    keys = parse_path(path)
    current = data
    for key, next_key in zip(keys, keys[1:]):
        empty = [] if isinstance(next_key, int) else {}
        if isinstance(key, int) and isinstance(current, list):
            while len(current) <= key:
                current.append(None)
            if not isinstance(current[key], (dict, list)):
                current[key] = empty
            current = current[key]
        else:
            if not isinstance(current, dict):
                raise TypeError(f"Cannot descend into {type(current).__name__} at {path!r}")
            child = current.get(str(key))
            if not isinstance(child, (dict, list)):
                child = empty
                current[str(key)] = child
            current = child

    last = keys[-1]
    if isinstance(last, int) and isinstance(current, list):
        while len(current) <= last:
            current.append(None)
        current[last] = value
    elif isinstance(current, dict):
        current[str(last)] = value
    else:
        raise TypeError(f"Cannot assign into {type(current).__name__} at {path!r}")


def pick_paths(data: Any, paths: Iterable[str]) -> Any:
    """Build a new payload holding only ``paths``; missing paths are skipped."""
    picked: Any = [] if isinstance(data, list) else {}
    for path in paths:
        try:
            value = get_path(data, path)
        except KeyError:
            continue
        try:
            set_path(picked, path, copy.deepcopy(value))
        except TypeError:
            continue
    return picked
