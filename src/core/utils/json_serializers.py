"""Shared JSON serialization utilities for type-safe JSON encoding."""

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any


def _serialize_known_type(obj: Any) -> tuple[bool, Any]:
    """Try to serialize by known type. Returns (handled, result)."""
    if isinstance(obj, (datetime, date)):
        return True, obj.isoformat()
    if isinstance(obj, Decimal):
        return True, float(obj)
    if isinstance(obj, Path):
        return True, str(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return True, list(obj)
    return False, None


def json_serializer(obj: Any) -> Any:
    """
    Type-safe JSON serializer for log records and cache entries.

    Keeps native types where JSON has them instead of stringifying everything:
    - datetime/date → ISO 8601 string
    - Decimal → float
    - Path → string
    - sets/tuples → list
    - pydantic models → model_dump()
    - Enums → value
    - Everything else → string (fallback)

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation with proper types
    """
    handled, result = _serialize_known_type(obj)
    if handled:
        return result
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "value"):
        return obj.value
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)


def dumps(value: Any) -> str:
    """Serialize a value to a compact JSON string using json_serializer."""
    return json.dumps(value, default=json_serializer, separators=(",", ":"))


__all__ = ["json_serializer", "dumps"]
