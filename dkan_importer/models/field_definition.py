from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

"""FieldDefinition model for the DKAN data dictionary.

A data dictionary is a JSON document of the shape
``{"title": ..., "fields": [{"name", "title", "type", "format", "description", "constraints"}]}``.
Each entry of ``fields`` is read once into a FieldDefinition and never mutated.
"""

__all__ = [
    "FieldConstraints",
    "FieldDefinition",
]


@dataclass(frozen=True)
class FieldConstraints:
    """Optional ``constraints`` block of a dictionary field."""
    required: bool = False
    minimum: float | int | None = None
    maximum: float | int | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    enum: tuple[Any, ...] | None = None

    @staticmethod
    def from_mapping(raw: Mapping[str, Any] | None) -> FieldConstraints:
        if not isinstance(raw, Mapping):
            return FieldConstraints()
        enum_values = raw.get("enum")
        return FieldConstraints(
            required=raw.get("required") is True,
            minimum=_number_or_none(raw.get("minimum")),
            maximum=_number_or_none(raw.get("maximum")),
            min_length=_length_or_none(raw.get("minLength")),
            max_length=_length_or_none(raw.get("maxLength")),
            pattern=raw.get("pattern") if isinstance(raw.get("pattern"), str) else None,
            enum=tuple(enum_values) if isinstance(enum_values, list) else None,
        )


@dataclass(frozen=True)
class FieldDefinition:
    """One column description from the data dictionary.

    ``name`` is the machine identifier, ``title`` the display label the
    spreadsheet header is expected to carry.
    """
    name: str
    type: str = "string"
    title: str | None = None
    format: str | None = None
    description: str | None = None
    constraints: FieldConstraints = field(default_factory=FieldConstraints)
    # items のタイプ指定 (array 型のみ)
    item_type: str | None = None

    @staticmethod
    def from_mapping(raw: Mapping[str, Any]) -> FieldDefinition:
        """Build a FieldDefinition from a raw dictionary entry.

        Raises:
            ValueError: when the entry has no string ``name``
        """
        name = raw.get("name")
        if not isinstance(name, str):
            raise ValueError("Field name not found")
        items = raw.get("items")
        item_type = items.get("type") if isinstance(items, Mapping) else None
        return FieldDefinition(
            name=name,
            type=raw.get("type") if isinstance(raw.get("type"), str) else "string",
            title=raw.get("title") if isinstance(raw.get("title"), str) else None,
            format=raw.get("format") if isinstance(raw.get("format"), str) else None,
            description=raw.get("description") if isinstance(raw.get("description"), str) else None,
            constraints=FieldConstraints.from_mapping(raw.get("constraints")),
            item_type=item_type if isinstance(item_type, str) else None,
        )


def _number_or_none(value: Any) -> float | int | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


def _length_or_none(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value
