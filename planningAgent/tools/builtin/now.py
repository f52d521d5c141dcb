"""Clock tool for tasks that depend on the current time."""

import json
from datetime import datetime, timezone

from langchain_core.tools import tool


@tool
def now() -> str:
    """Current time as JSON: ``{"utc": ISO 8601, "unix": seconds}``.

    Plans use it for date-dependent steps, e.g. quote deadlines or
    "since yesterday" queries.
    """
    current = datetime.now(timezone.utc)
    return json.dumps({"utc": current.isoformat(), "unix": int(current.timestamp())})


__all__ = ["now"]
