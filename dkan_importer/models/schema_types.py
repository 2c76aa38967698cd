from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

"""Structural schema models.

SchemaType is a closed variant: a ScalarType member, an ArrayType (with an
optional item type) or a MixedType union. The dictionary is parsed into these
types once; coercion and export never re-read raw JSON schema nodes.

StructuralSchema renders itself to a Draft-07 JSON Schema document for the
jsonschema validator (``to_json_schema``).
"""

__all__ = [
    "ScalarType",
    "ArrayType",
    "MixedType",
    "SchemaType",
    "FieldSchema",
    "StructuralSchema",
    "allows_null",
    "contains_type",
]

JSON_SCHEMA_DRAFT = "http://json-schema.org/draft-07/schema#"

class ScalarType(Enum):
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    NULL = "null"

@dataclass(frozen=True)
class ArrayType:
    """Array of ``items``; ``None`` leaves the item type unconstrained."""
    items: SchemaType | None = None

@dataclass(frozen=True)
class MixedType:
    """Ordered union of member types without duplicates."""
    members: tuple[SchemaType, ...]

    def __post_init__(self) -> None:
        unique: list[SchemaType] = []
        for member in self.members:
            if member not in unique:
                unique.append(member)
        object.__setattr__(self, "members", tuple(unique))

SchemaType = Union[ScalarType, ArrayType, MixedType]

def allows_null(schema_type: SchemaType) -> bool:
    """True for the bare Null type and for unions containing Null."""
    if schema_type is ScalarType.NULL:
        return True
    if isinstance(schema_type, MixedType):
        return ScalarType.NULL in schema_type.members
    return False

def contains_type(schema_type: SchemaType, target: SchemaType) -> bool:
    if schema_type == target:
        return True
    if isinstance(schema_type, MixedType):
        return target in schema_type.members
    return False

def _json_type(schema_type: SchemaType) -> str:
    if isinstance(schema_type, ArrayType):
        return "array"
    if isinstance(schema_type, MixedType):
        raise ValueError("nested union types are not supported")
    return schema_type.value

@dataclass(frozen=True)
class FieldSchema:
    """Per-property schema, looked up by PropertyKey during coercion."""
    field_type: SchemaType
    format: str | None = None
    pattern: str | None = None
    enum_values: tuple[Any, ...] | None = None
    minimum: float | int | None = None
    maximum: float | int | None = None
    min_length: int | None = None
    max_length: int | None = None
    # Rendering-only metadata (not used by coercion)
    title: str | None = None
    description: str | None = None
    native_format: str | None = None

    def to_json_schema(self) -> dict[str, Any]:
        node: dict[str, Any] = {}
        if isinstance(self.field_type, MixedType):
            node["type"] = [_json_type(member) for member in self.field_type.members]
        else:
            node["type"] = _json_type(self.field_type)
            if isinstance(self.field_type, ArrayType) and self.field_type.items is not None:
                node["items"] = {"type": _json_type(self.field_type.items)}
        if self.title is not None:
            node["title"] = self.title
        if self.description is not None:
            node["description"] = self.description
        if self.format is not None:
            node["format"] = self.format
        if self.native_format is not None:
            node["dkan_format"] = self.native_format
        if self.min_length is not None:
            node["minLength"] = self.min_length
        if self.max_length is not None:
            node["maxLength"] = self.max_length
        if self.minimum is not None:
            node["minimum"] = self.minimum
        if self.maximum is not None:
            node["maximum"] = self.maximum
        if self.pattern is not None:
            node["pattern"] = self.pattern
        if self.enum_values is not None:
            node["enum"] = list(self.enum_values)
        return node

@dataclass(frozen=True)
class StructuralSchema:
    """Closed object schema: typed properties, a required set, no extra keys."""
    properties: dict[str, FieldSchema] = field(default_factory=dict)
    required: frozenset[str] = frozenset()
    title: str = "Untitled Schema"
    additional_properties: bool = False

    def is_required(self, property_key: str) -> bool:
        return property_key in self.required

    def to_json_schema(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "$schema": JSON_SCHEMA_DRAFT,
            "type": "object",
            "title": self.title,
            "properties": {key: fs.to_json_schema() for key, fs in self.properties.items()},
        }
        if self.required:
            # 宣言順を維持
            document["required"] = [key for key in self.properties if key in self.required]
        document["additionalProperties"] = self.additional_properties
        return document
