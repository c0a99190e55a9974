"""Serialization of job arguments and step cursors.

Persisted job data must survive a JSON round trip, so arguments and cursors
are converted to JSON-compatible values before they are stored. Tuples
become lists, datetimes become ISO strings, pydantic models become dicts.
"""

from datetime import datetime
from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python


class SerializationError(ValueError):
    """A value cannot be represented in persisted job data."""

    pass


def serialize_value(value: Any) -> Any:
    """Convert a single value to its JSON-compatible form."""
    try:
        return to_jsonable_python(value)
    except PydanticSerializationError as e:
        raise SerializationError(
            f"Unsupported value of type '{type(value).__name__}': {e}"
        ) from e


def serialize_arguments(arguments: list[Any]) -> list[Any]:
    """Convert job arguments to JSON-compatible values."""
    return [serialize_value(argument) for argument in arguments]


def serialize_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def deserialize_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
