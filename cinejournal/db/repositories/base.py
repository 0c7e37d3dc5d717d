"""Helpers shared by the repositories."""

from typing import Any, Iterable
from uuid import UUID


def coerce_uuid(value: str | UUID) -> UUID | None:
    """Parse a UUID, returning None for malformed input."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def apply_fields(model: Any, data: dict[str, Any], protected: Iterable[str] = ()) -> None:
    """Copy known column values from ``data`` onto ``model``.

    Keys that are not table columns, or that are protected, are ignored.
    """
    columns = set(model.__table__.columns.keys()) - set(protected)
    for key, value in data.items():
        if key in columns:
            setattr(model, key, value)
