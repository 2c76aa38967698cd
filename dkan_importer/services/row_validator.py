from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import SchemaError
from jsonschema.exceptions import ValidationError as JsonSchemaValidationError

from ..models.row_data import ParsedRow
from ..models.schema_types import StructuralSchema
from ..models.validation_error import RawStructuralError
from .coercion import CellCoercionEngine

"""Row validation against the structural schema.

Protocol per row:
1. validate the coerced values as-is
2. on failure, run one corrective coercion pass (strings re-coerced against
   their FieldSchema, numbers/booleans turned into text where String is
   accepted) and validate once more

No further passes are made. The ParsedRow is not modified; the corrected
values are returned in the outcome.
"""

__all__ = [
    "SchemaBuildError",
    "RowValidationOutcome",
    "RowValidator",
]

logger = logging.getLogger(__name__)

# date-time / uri は jsonschema[format-nongpl] の検査器を使用
CHECKED_FORMATS = ("email", "date", "date-time", "uri")
_REQUIRED_SUFFIX = " is a required property"


class SchemaBuildError(Exception):
    """Raised when the structural schema is not a valid Draft-07 schema."""


@dataclass(frozen=True)
class RowValidationOutcome:
    values: dict[str, Any]  # 検証時点の値 (補正後)
    errors: list[RawStructuralError] = field(default_factory=list)
    corrected: bool = False

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _escape_pointer_token(token: Any) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def _pointer(path: Any) -> str:
    tokens = list(path)
    if not tokens:
        return ""
    return "/" + "/".join(_escape_pointer_token(t) for t in tokens)


def _missing_property(message: str) -> str | None:
    if not message.endswith(_REQUIRED_SUFFIX):
        return None
    try:
        parsed = ast.literal_eval(message[: -len(_REQUIRED_SUFFIX)])
    except (ValueError, SyntaxError):
        return None
    return parsed if isinstance(parsed, str) else None


class RowValidator:
    """Validates ParsedRows against one StructuralSchema (built once, reused)."""

    def __init__(self, schema: StructuralSchema, engine: CellCoercionEngine | None = None) -> None:
        self.schema = schema
        self.engine = engine or CellCoercionEngine(schema.properties)
        document = schema.to_json_schema()
        try:
            Draft7Validator.check_schema(document)
        except SchemaError as e:
            raise SchemaBuildError(f"invalid structural schema: {e.message}") from e
        self._validator = Draft7Validator(document, format_checker=FormatChecker(formats=CHECKED_FORMATS))

    def is_required_hint(self, property_key: str | None) -> bool:
        if property_key is None:
            return False
        return property_key.endswith("*") or self.schema.is_required(property_key)

    def _to_raw(self, error: JsonSchemaValidationError) -> RawStructuralError:
        path = list(error.absolute_path)
        property_key = str(path[0]) if path else None
        keyword_value = error.validator_value
        if error.validator == "required":
            property_key = _missing_property(error.message)
            keyword_value = property_key
        elif error.validator == "additionalProperties" and isinstance(error.instance, dict):
            keyword_value = tuple(k for k in error.instance if k not in self.schema.properties)
        return RawStructuralError(
            message=error.message,
            pointer=_pointer(path),
            instance=error.instance,
            keyword=str(error.validator),
            keyword_value=keyword_value,
            property_key=property_key,
        )

    def collect_errors(self, values: dict[str, Any]) -> list[RawStructuralError]:
        return [self._to_raw(e) for e in self._validator.iter_errors(values)]

    def apply_corrective_coercion(self, values: dict[str, Any]) -> dict[str, Any]:
        corrected: dict[str, Any] = {}
        for key, value in values.items():
            field_schema = self.schema.properties.get(key)
            corrected[key] = value if field_schema is None else self.engine.coerce_value(value, field_schema)
        return corrected

    def validate_row(self, row: ParsedRow) -> RowValidationOutcome:
        values = dict(row.fields)
        if self._validator.is_valid(values):
            return RowValidationOutcome(values=values)

        corrected = self.apply_corrective_coercion(values)
        errors = self.collect_errors(corrected)
        if errors:
            logger.debug("row %s failed validation with %d error(s)", row.row_number, len(errors))
        return RowValidationOutcome(values=corrected, errors=errors, corrected=True)
