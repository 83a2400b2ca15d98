"""
JSON encoding shared by serializer output and cached payloads.
"""

import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable
from uuid import UUID


def json_default(value: Any) -> Any:
    """Encode values the stdlib JSON encoder does not know."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonCodec:
    """``dumps``/``loads`` pair over :mod:`json` with a fallback encoder.

    Encoding is lossy in the same way serializer JSON output is: datetimes,
    dates, decimals and UUIDs come back as strings, sets and tuples as lists.
    """

    def __init__(self, default: Callable[[Any], Any] = json_default):
        self.default = default

    def dumps(self, value: Any) -> str:
        return json.dumps(value, default=self.default)

    def loads(self, raw: Any) -> Any:
        return json.loads(raw)
