"""Source API envelope parsing.

Every endpoint answers ``{"data": ...}``.  Depending on the endpoint, the
items live under a named array inside ``data``, ``data`` is itself the array,
or ``data`` is a single snapshot object.

Field names use camelCase to match the source JSON structure.
"""

# ruff: noqa: N815

import enum
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, field_validator


class SourceShape(enum.StrEnum):
    """Where a source endpoint keeps its items inside ``data``."""

    FIELD = "field"
    LIST = "list"
    OBJECT = "object"


class Pagination(BaseModel):
    """Pagination block reported by paginated endpoints."""

    model_config = ConfigDict(extra="ignore")

    page: int | None = None
    totalPages: int | None = None

    @field_validator("page", "totalPages", mode="before")
    @classmethod
    def _coerce_blank(cls, v: Any) -> Any:
        return None if v in ("", None) else v


class SourceEnvelope(BaseModel):
    """Top-level response envelope."""

    model_config = ConfigDict(extra="ignore")

    data: Any = None


def parse_envelope(raw_json: Any) -> SourceEnvelope:
    """Validate a decoded response body as a source envelope.

    Raises:
        pydantic.ValidationError: If the body is not a JSON object.
    """
    return SourceEnvelope.model_validate(raw_json)


def extract_items(data: Any, shape: SourceShape, field: str | None = None) -> list[dict[str, Any]]:
    """Pull the item list out of an envelope's ``data`` node.

    A missing or null array field yields an empty list.  Non-object entries
    are dropped with a warning.

    Args:
        data: The envelope's ``data`` value.
        shape: How the endpoint lays out its items.
        field: Array field name, required for ``SourceShape.FIELD``.

    Returns:
        The list of item dicts.
    """
    if shape is SourceShape.OBJECT:
        if isinstance(data, dict):
            return [data]
        logger.warning("Expected an object in response data, got {}", type(data).__name__)
        return []

    if shape is SourceShape.LIST:
        raw_items = data
    else:
        if field is None:
            msg = "field is required for SourceShape.FIELD"
            raise ValueError(msg)
        raw_items = data.get(field) if isinstance(data, dict) else None

    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        logger.warning("Expected a list of items, got {}", type(raw_items).__name__)
        return []

    items = [item for item in raw_items if isinstance(item, dict)]
    if len(items) != len(raw_items):
        logger.warning("Dropped {} non-object items from response", len(raw_items) - len(items))
    return items


def extract_pagination(data: Any) -> Pagination | None:
    """Return the pagination block from ``data``, if any."""
    if not isinstance(data, dict):
        return None
    raw = data.get("pagination")
    if not isinstance(raw, dict):
        return None
    return Pagination.model_validate(raw)
