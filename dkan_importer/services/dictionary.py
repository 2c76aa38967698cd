from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..models.field_definition import FieldDefinition
from ..models.schema_types import (
    ArrayType,
    FieldSchema,
    MixedType,
    ScalarType,
    SchemaType,
    StructuralSchema,
)
from ..normalize import has_required_marker, normalize_string
from .duplicates import DuplicateFieldsError

"""Data dictionary -> structural schema conversion.

Per field:
1. PropertyKey = normalized title when present and non-empty, else normalized name
2. required = name ends with ``*`` OR title ends with ``*`` OR constraints.required
3. dictionary type -> schema type (datetime and unknown types become string)
4. not required and not array/object -> ``[type, null]`` union
5. constraints copied through; datetime fields always get a ``format``

Two fields resolving to the same PropertyKey fail the conversion. Callers run
``services.duplicates.check_dictionary_duplicates`` first for the full report.
"""

__all__ = [
    "DictionaryError",
    "DataDictionary",
    "parse_fields",
    "property_key",
    "is_required_field",
    "map_dictionary_type",
    "build_field_schema",
    "convert_dictionary_to_schema",
    "title_to_name_mapping",
]

DEFAULT_DATETIME_FORMAT = "date-time"
DEFAULT_SCHEMA_TITLE = "Untitled Schema"

_TYPE_MAP: dict[str, ScalarType] = {
    "integer": ScalarType.INTEGER,
    "number": ScalarType.NUMBER,
    "float": ScalarType.NUMBER,
    "boolean": ScalarType.BOOLEAN,
    "object": ScalarType.OBJECT,
    "datetime": ScalarType.STRING,
}


class DictionaryError(Exception):
    """Raised when the data dictionary is malformed."""


@dataclass(frozen=True)
class DataDictionary:
    """A data dictionary as published by the DKAN metastore."""
    identifier: str
    title: str
    fields: list[FieldDefinition]
    url: str | None = None
    # 元の data ノード (title, fields)
    raw: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_data(identifier: str, data: Mapping[str, Any], url: str | None = None) -> DataDictionary:
        title = data.get("title")
        return DataDictionary(
            identifier=identifier,
            title=title if isinstance(title, str) else DEFAULT_SCHEMA_TITLE,
            fields=parse_fields(data),
            url=url,
            raw=dict(data),
        )

    def to_schema(self) -> StructuralSchema:
        return convert_dictionary_to_schema(self.raw)


def parse_fields(root: Mapping[str, Any]) -> list[FieldDefinition]:
    """Read the ``fields`` array of a dictionary root.

    Raises:
        DictionaryError: ``fields`` is missing or not an array, or a field has no name
    """
    raw_fields = root.get("fields") if isinstance(root, Mapping) else None
    if not isinstance(raw_fields, list):
        raise DictionaryError("Fields array not found in schema")
    definitions: list[FieldDefinition] = []
    for position, raw in enumerate(raw_fields, start=1):
        if not isinstance(raw, Mapping):
            raise DictionaryError(f"Field name not found (field {position})")
        try:
            definitions.append(FieldDefinition.from_mapping(raw))
        except ValueError as e:
            raise DictionaryError(str(e)) from e
    return definitions


def property_key(definition: FieldDefinition) -> str:
    if definition.title:
        title = normalize_string(definition.title)
        if title:
            return title
    return normalize_string(definition.name)


def is_required_field(definition: FieldDefinition) -> bool:
    return (
        has_required_marker(definition.name)
        or has_required_marker(definition.title)
        or definition.constraints.required
    )


def map_dictionary_type(type_name: str, item_type: str | None = None) -> SchemaType:
    if type_name == "array":
        if item_type is None:
            return ArrayType()
        return ArrayType(map_dictionary_type(item_type))
    return _TYPE_MAP.get(type_name, ScalarType.STRING)


def _resolve_format(definition: FieldDefinition) -> tuple[str | None, str | None]:
    """Return (format, native_format) for a field."""
    fmt = definition.format
    usable = fmt is not None and fmt != "" and fmt != "default"
    if definition.type == "datetime":
        if usable:
            return fmt, fmt
        return DEFAULT_DATETIME_FORMAT, None
    return (fmt, None) if usable else (None, None)


def build_field_schema(definition: FieldDefinition, required: bool) -> FieldSchema:
    scalar = map_dictionary_type(definition.type, definition.item_type)
    if not required and not isinstance(scalar, ArrayType) and scalar is not ScalarType.OBJECT:
        declared: SchemaType = MixedType((scalar, ScalarType.NULL))
    else:
        declared = scalar
    fmt, native_format = _resolve_format(definition)
    constraints = definition.constraints
    return FieldSchema(
        field_type=declared,
        format=fmt,
        pattern=constraints.pattern,
        enum_values=constraints.enum,
        minimum=constraints.minimum,
        maximum=constraints.maximum,
        min_length=constraints.min_length,
        max_length=constraints.max_length,
        title=definition.title,
        description=definition.description,
        native_format=native_format,
    )


def convert_dictionary_to_schema(root: Mapping[str, Any]) -> StructuralSchema:
    """Convert a dictionary root ``{title, fields}`` into a StructuralSchema.

    Raises:
        DictionaryError: when the root has no ``fields`` array or a field lacks ``name``
        DuplicateFieldsError: when two fields resolve to the same PropertyKey
    """
    definitions = parse_fields(root)
    properties: dict[str, FieldSchema] = {}
    required: set[str] = set()
    positions: dict[str, list[int]] = {}
    for position, definition in enumerate(definitions, start=1):
        key = property_key(definition)
        positions.setdefault(key, []).append(position)
        is_required = is_required_field(definition)
        properties.setdefault(key, build_field_schema(definition, is_required))
        if is_required:
            required.add(key)

    collisions = {key: p for key, p in positions.items() if len(p) > 1}
    if collisions:
        lines = ["Data dictionary contains duplicate fields:"]
        for key, p in collisions.items():
            lines.append(f"  • Column key '{key}' appears at positions: {', '.join(str(i) for i in p)}")
        lines.append("Please ensure all field names and titles are unique.")
        raise DuplicateFieldsError("\n".join(lines))

    title = root.get("title")
    return StructuralSchema(
        properties=properties,
        required=frozenset(required),
        title=title if isinstance(title, str) else DEFAULT_SCHEMA_TITLE,
        additional_properties=False,
    )


def title_to_name_mapping(definitions: list[FieldDefinition]) -> dict[str, str]:
    """Map each PropertyKey (normalized header text) to the field's normalized name."""
    return {property_key(d): normalize_string(d.name) for d in definitions}
