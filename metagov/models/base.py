"""
Shared helpers for MetaGov data models.

All MetaGov models are frozen dataclasses. This module provides the
standalone serialization functions they use, together with ID and
timestamp helpers.
"""

import json
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any


def generate_uuid() -> str:
    """Generate a new UUID4 string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(value: str | datetime) -> datetime:
    """
    Parse an RFC 3339 / ISO 8601 timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted. Naive values are assumed to be UTC.

    Args:
        value: Timestamp string or datetime.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If the string cannot be parsed.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def serialize_value(value: Any, exclude_none: bool = False) -> Any:
    """
    Serialize a single value to a JSON-compatible type.

    Args:
        value: Value to serialize.
        exclude_none: If True, exclude None values in nested dicts/lists.

    Returns:
        JSON-compatible representation of the value.
    """
    if isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, dict):
        result = {}
        for k, v in value.items():
            if exclude_none and v is None:
                continue
            result[k] = serialize_value(v, exclude_none)
        return result
    elif isinstance(value, (set, frozenset)):
        return sorted(serialize_value(item, exclude_none) for item in value)
    elif isinstance(value, (list, tuple)):
        return [serialize_value(item, exclude_none) for item in value]
    elif hasattr(value, "to_dict"):
        return value.to_dict(exclude_none)
    elif hasattr(value, "value"):
        # Handle enums
        return value.value
    return value


def model_to_dict(instance: Any, exclude_none: bool = False) -> dict[str, Any]:
    """
    Convert a dataclass instance to a dictionary.

    Args:
        instance: A dataclass instance to convert.
        exclude_none: If True, exclude keys with None values from the output.

    Returns:
        A dictionary representation of the instance with all fields serialized
        to JSON-compatible types.
    """
    result = asdict(instance)
    return {
        k: serialize_value(v, exclude_none)
        for k, v in result.items()
        if not (exclude_none and v is None)
    }


def model_to_json(
    instance: Any, indent: int | None = None, exclude_none: bool = False
) -> str:
    """
    Convert a dataclass instance to a JSON string.

    Args:
        instance: A dataclass instance to convert.
        indent: Number of spaces for indentation. If None, output is compact.
        exclude_none: If True, exclude keys with None values from the output.

    Returns:
        A JSON string representation of the instance.
    """
    return json.dumps(model_to_dict(instance, exclude_none), indent=indent)
