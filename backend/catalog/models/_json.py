from __future__ import annotations

import json
from typing import Any


def safe_json_loads(value: Any, fallback: Any) -> Any:
    """Decode a serialized JSON column; malformed or empty values yield fallback."""
    if not value:
        return fallback
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return fallback


def json_dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
