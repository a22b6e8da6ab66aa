"""
Timestamp parsing shared by the validator and the weather client.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional


def parse_timestamp(value: Any) -> Optional[int]:
    """
    Parse an ISO 8601 string or a Unix epoch number into epoch seconds.

    Naive ISO strings are treated as UTC. Returns None when unparseable.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if not isinstance(value, str) or not value.strip():
        return None

    ts = value.strip()
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(ts)
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())
