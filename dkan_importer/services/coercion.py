from __future__ import annotations

import json
import logging
import math
import re
import sys
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from ..models.cell import Cell, CellKind
from ..models.schema_types import (
    ArrayType,
    FieldSchema,
    MixedType,
    ScalarType,
    SchemaType,
    allows_null,
    contains_type,
)

"""Cell coercion engine.

Converts one raw spreadsheet cell into a JSON-like value (None, bool, int,
float, str, list, dict) guided by the target property's FieldSchema.

Coercion never discards data: a string that cannot be converted to the declared
type (or would land outside ``[minimum, maximum]``) is returned unchanged and
left for the row validator to reject.
"""

__all__ = [
    "CellCoercionEngine",
    "TRUE_LITERALS",
    "FALSE_LITERALS",
    "NULL_LITERALS",
    "parse_int",
    "parse_float",
    "narrow_float",
    "smart_number_conversion",
    "convert_string_by_format",
    "schema_free_conversion",
    "excel_serial_to_datetime",
    "format_datetime",
    "looks_like_date",
    "value_to_text",
]

logger = logging.getLogger(__name__)

TRUE_LITERALS = frozenset({"true", "yes", "y", "1", "on", "enabled", "active"})
FALSE_LITERALS = frozenset({"false", "no", "n", "0", "off", "disabled", "inactive"})
NULL_LITERALS = frozenset({"null", "nil", "none", ""})

# スキーマ無しフォールバック用 (狭い集合)
_FALLBACK_TRUE = frozenset({"true", "yes", "y", "1"})
_FALLBACK_FALSE = frozenset({"false", "no", "n", "0"})
_FALLBACK_NULL = frozenset({"null", "nil", "none"})

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

_ARRAY_DELIMITERS = (",", ";", "|", "\t")
_PREFERRED_ORDER: tuple[ScalarType, ...] = (
    ScalarType.INTEGER,
    ScalarType.NUMBER,
    ScalarType.BOOLEAN,
    ScalarType.STRING,
)

EXCEL_EPOCH = datetime(1899, 12, 30)
DEFAULT_DATETIME_PATTERN = "%Y-%m-%d %H:%M:%S"
_KEYWORD_DATETIME_PATTERNS = {
    "date": "%Y-%m-%d",
    # Excel の日時はオフセット無し -> UTC として出力
    "date-time": "%Y-%m-%dT%H:%M:%SZ",
    "time": "%H:%M:%S",
}


def parse_int(text: str) -> int | None:
    """Strict signed 64-bit integer parse (no whitespace, no underscores)."""
    if not _INT_RE.fullmatch(text):
        return None
    value = int(text)
    if value < _I64_MIN or value > _I64_MAX:
        return None
    return value


def parse_float(text: str) -> float | None:
    """Strict finite float parse; ``inf``/``nan`` spellings are not numbers here."""
    if not _FLOAT_RE.fullmatch(text):
        return None
    value = float(text)
    if not math.isfinite(value):
        return None
    return value


def _is_integral(value: float) -> bool:
    return abs(math.modf(value)[0]) < sys.float_info.epsilon


def _in_i64_range(value: float) -> bool:
    return _I64_MIN <= value < 2**63


def narrow_float(value: float) -> int | float | None:
    """NaN/inf -> None, integral floats inside the i64 range -> int."""
    if math.isnan(value) or math.isinf(value):
        return None
    if _is_integral(value) and _in_i64_range(value):
        return int(value)
    return value


def smart_number_conversion(text: str) -> int | float | None:
    """Integer parse first, then float parse narrowed to int when integral."""
    as_int = parse_int(text)
    if as_int is not None:
        return as_int
    as_float = parse_float(text)
    if as_float is None:
        return None
    return narrow_float(as_float)


def looks_like_date(text: str) -> bool:
    """YYYY-MM-DD, YYYY/MM/DD, MM/DD/YYYY or DD-MM-YYYY shapes with >= 8 digits."""
    if len(text) != 10:
        return False
    shaped = any(
        text[a] == sep and text[b] == sep
        for a, b in ((4, 7), (2, 5))
        for sep in ("-", "/")
    )
    return shaped and sum(ch in "0123456789" for ch in text) >= 8


def convert_string_by_format(text: str, fmt: str) -> str:
    """Format-directed string conversion (shape detection, not reformatting)."""
    if fmt == "email":
        normalized = text.strip().lower()
        if "@" in normalized and "." in normalized:
            return normalized
        return text
    # date / date-time / time / uri / url は形状確認のみで値はそのまま
    return text


def schema_free_conversion(text: str) -> Any:
    """Heuristic conversion for cells whose column has no FieldSchema."""
    as_int = parse_int(text)
    if as_int is not None:
        return as_int
    as_float = parse_float(text)
    if as_float is not None:
        return as_float
    lowered = text.lower()
    if lowered in _FALLBACK_TRUE:
        return True
    if lowered in _FALLBACK_FALSE:
        return False
    if lowered in _FALLBACK_NULL:
        return None
    return text


def excel_serial_to_datetime(serial: float) -> datetime:
    """Excel serial day number -> naive datetime (day zero 1899-12-30)."""
    days = int(serial)
    seconds = round((serial - days) * 86400.0)
    return EXCEL_EPOCH + timedelta(days=days, seconds=seconds)


def format_datetime(value: datetime, fmt: str | None) -> str:
    if fmt is None:
        return value.strftime(DEFAULT_DATETIME_PATTERN)
    if fmt in _KEYWORD_DATETIME_PATTERNS:
        return value.strftime(_KEYWORD_DATETIME_PATTERNS[fmt])
    if "%" in fmt:
        return value.strftime(fmt)
    return value.strftime(DEFAULT_DATETIME_PATTERN)


def value_to_text(value: Any) -> str:
    """Text form of a scalar JSON value (bool -> "true"/"false")."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _within_bounds(value: int | float, field_schema: FieldSchema) -> bool:
    # 両方指定時のみ範囲チェック
    if field_schema.minimum is None or field_schema.maximum is None:
        return True
    return field_schema.minimum <= value <= field_schema.maximum


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


class CellCoercionEngine:
    """Schema-aware cell -> value conversion.

    ``field_schemas`` maps PropertyKey to FieldSchema. Columns without an entry
    use the schema-free heuristic.
    """

    def __init__(self, field_schemas: Mapping[str, FieldSchema]) -> None:
        self.field_schemas = field_schemas

    def convert_cell(self, cell: Cell, property_key: str) -> Any:
        field_schema = self.field_schemas.get(property_key)
        kind = cell.kind
        if kind in (CellKind.EMPTY, CellKind.ERROR):
            return None
        if kind is CellKind.STRING:
            return self.convert_string(str(cell.value), field_schema)
        if kind is CellKind.FLOAT:
            return narrow_float(float(cell.value))
        if kind is CellKind.BOOL:
            return bool(cell.value)
        if kind is CellKind.INT:
            return int(cell.value)
        if kind is CellKind.DATETIME:
            value = cell.value
            moment = value if isinstance(value, datetime) else excel_serial_to_datetime(float(value))
            return format_datetime(moment, field_schema.format if field_schema else None)
        if kind is CellKind.DATETIME_ISO:
            if field_schema is not None and field_schema.format is not None:
                return convert_string_by_format(str(cell.value), field_schema.format)
            return str(cell.value)
        # DURATION_ISO
        return str(cell.value)

    def convert_string(self, text: str, field_schema: FieldSchema | None) -> Any:
        if not text.strip():
            if field_schema is not None and allows_null(field_schema.field_type):
                return None
            return text
        if field_schema is not None:
            return self.coerce_string_to_schema_type(text, field_schema)
        return schema_free_conversion(text)

    def coerce_string_to_schema_type(self, text: str, field_schema: FieldSchema) -> Any:
        """Type-directed coercion of ``text`` toward ``field_schema.field_type``."""
        return self._coerce(text, field_schema.field_type, field_schema)

    def _coerce(self, text: str, schema_type: SchemaType, field_schema: FieldSchema) -> Any:
        if isinstance(schema_type, MixedType):
            return self._coerce_mixed(text, schema_type, field_schema)
        if isinstance(schema_type, ArrayType):
            return self._coerce_array(text)
        if schema_type is ScalarType.INTEGER:
            return self._coerce_integer(text, field_schema)
        if schema_type is ScalarType.NUMBER:
            number = smart_number_conversion(text)
            if number is not None and _within_bounds(number, field_schema):
                return number
            return text
        if schema_type is ScalarType.BOOLEAN:
            lowered = text.lower()
            if lowered in TRUE_LITERALS:
                return True
            if lowered in FALSE_LITERALS:
                return False
            return text
        if schema_type is ScalarType.STRING:
            return self._coerce_plain_string(text, field_schema)
        if schema_type is ScalarType.OBJECT:
            if text.startswith("{") and text.endswith("}"):
                parsed = _loads_or_none(text)
                if isinstance(parsed, dict):
                    return parsed
            return text
        # NULL
        if text.lower() in NULL_LITERALS:
            return None
        return text

    def _coerce_integer(self, text: str, field_schema: FieldSchema) -> Any:
        as_int = parse_int(text)
        if as_int is not None and _within_bounds(as_int, field_schema):
            return as_int
        as_float = parse_float(text)
        if as_float is not None and _is_integral(as_float) and _in_i64_range(as_float):
            if _within_bounds(as_float, field_schema):
                return int(as_float)
        return text

    def _coerce_plain_string(self, text: str, field_schema: FieldSchema) -> Any:
        if field_schema.enum_values is not None:
            if text in field_schema.enum_values:
                return text
            lowered = text.lower()
            for candidate in field_schema.enum_values:
                if isinstance(candidate, str) and candidate.lower() == lowered:
                    return candidate
        if field_schema.format is not None:
            return convert_string_by_format(text, field_schema.format)
        return text

    def _coerce_array(self, text: str) -> Any:
        if text.startswith("[") and text.endswith("]"):
            parsed = _loads_or_none(text)
            if isinstance(parsed, list):
                return parsed
        for delimiter in _ARRAY_DELIMITERS:
            if delimiter in text:
                return [item.strip() for item in text.split(delimiter)]
        return text

    def _coerce_mixed(self, text: str, mixed: MixedType, field_schema: FieldSchema) -> Any:
        for preferred in _PREFERRED_ORDER:
            if preferred not in mixed.members:
                continue
            converted = self._coerce(text, preferred, field_schema)
            if preferred is ScalarType.STRING:
                if _is_string(converted):
                    return converted
            elif not _is_string(converted):
                return converted

        for member in mixed.members:
            if member in _PREFERRED_ORDER:
                continue
            converted = self._coerce(text, member, field_schema)
            if not _is_string(converted) or converted != text:
                return converted
        return text

    def coerce_value(self, value: Any, field_schema: FieldSchema) -> Any:
        """Corrective pass conversion for an already-coerced value.

        Strings are re-coerced against the schema; numbers and booleans in
        fields accepting String are turned into their text form.
        """
        if isinstance(value, str):
            return self.coerce_string_to_schema_type(value, field_schema)
        if isinstance(value, bool | int | float) and contains_type(field_schema.field_type, ScalarType.STRING):
            return value_to_text(value)
        return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite JSON constant: {name}")


def _loads_or_none(text: str) -> Any:
    # NaN / Infinity は JSON 値として扱わない
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        logger.debug("not a JSON literal: %r", text)
        return None
