"""
DynamoDB value helpers shared by the stores.
"""

from decimal import Decimal
from typing import Any


def dynamodb_sanitise(value: Any) -> Any:
    """
    Recursively sanitise an object for DynamoDB put_item():
    - float -> Decimal(str(float))
    - bool is kept as-is
    - None values removed from dicts and lists
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return value

    if isinstance(value, float):
        return Decimal(str(value))

    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            sv = dynamodb_sanitise(v)
            if sv is not None:
                out[k] = sv
        return out

    if isinstance(value, (list, tuple)):
        out = []
        for v in value:
            sv = dynamodb_sanitise(v)
            if sv is not None:
                out.append(sv)
        return out

    return value


def to_native(x: Any) -> Any:
    """Convert DynamoDB Decimal to int/float recursively for JSON/SNS."""
    if isinstance(x, Decimal):
        if x == x.to_integral_value():
            return int(x)
        return float(x)
    if isinstance(x, dict):
        return {k: to_native(v) for k, v in x.items()}
    if isinstance(x, list):
        return [to_native(v) for v in x]
    if isinstance(x, set):
        return sorted(to_native(v) for v in x)
    return x
