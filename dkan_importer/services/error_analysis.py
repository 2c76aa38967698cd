from __future__ import annotations

import ast
import re
from typing import Any

from ..models.validation_error import (
    AdditionalProperties,
    ArrayValidation,
    InvalidFormat,
    OutOfRange,
    PatternMismatch,
    RawStructuralError,
    RequiredFieldMissing,
    TypeMismatch,
    ValidationError,
)
from .coercion import looks_like_date, parse_float

"""Structural validation failure -> typed diagnostic.

``classify`` is the primary entry point: it maps the failing schema keyword
reported by the row validator straight to a ValidationError kind. Keywords it
does not know fall back to ``analyze``, which scans the free-text message with
ordered substring tests (first match wins):

1. "is not of type"                         -> TypeMismatch
2. "is a required property" / "required"    -> RequiredFieldMissing
3. "is less than" / "is greater than" / "minimum" / "maximum" -> OutOfRange
4. "is not a" + email/date/time/uri         -> InvalidFormat
5. string length wording                    -> InvalidFormat
6. "does not match" / "pattern"             -> PatternMismatch
7. "additional properties" / "not allowed"  -> AdditionalProperties
8. array / items / minitems / maxitems / uniqueitems -> ArrayValidation
9. "is not one of" / "enum" / "was expected" -> InvalidFormat
10. anything else                           -> InvalidFormat("Validation failed: ...")
"""

__all__ = [
    "analyze",
    "classify",
    "format_error_path",
    "json_type_name",
    "safe_value_string",
    "extract_expected_type",
    "extract_required_field",
    "extract_pattern",
    "extract_additional_properties",
]

REQUIRED_ANNOTATION = " (required field)"

_BOOLEAN_LIKE = frozenset({"true", "false", "yes", "no", "1", "0"})
_TYPE_WORDS = ("integer", "number", "string", "boolean", "array", "object")
_LENGTH_WORDS = (
    "is shorter than",
    "is longer than",
    "minlength",
    "maxlength",
    "is too short",
    "is too long",
    "should be non-empty",
    "is expected to be empty",
)
_ARRAY_WORDS = ("array", "items", "minitems", "maxitems", "uniqueitems")
_QUOTED = re.compile(r"'([^']*)'")

_RANGE_KEYWORDS = frozenset({"minimum", "maximum", "exclusiveMinimum", "exclusiveMaximum"})
_LENGTH_KEYWORDS = frozenset({"minLength", "maxLength"})
_ARRAY_KEYWORDS = frozenset({"items", "minItems", "maxItems", "uniqueItems"})
_ENUM_KEYWORDS = frozenset({"enum", "const"})


def format_error_path(row_number: int, pointer: str) -> str:
    """``row[n]`` for the row itself, ``row[n]./<property>`` below it."""
    if not pointer:
        return f"row[{row_number}]"
    return f"row[{row_number}].{pointer}"


def safe_value_string(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return f"[array with {len(value)} items]"
    if isinstance(value, dict):
        return f"[object with {len(value)} properties]"
    return str(value)


def _looks_like_number(text: str) -> bool:
    return parse_float(text.strip()) is not None


def json_type_name(value: Any) -> str:
    """JSON type name with heuristic hints for strings."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    text = str(value)
    if text == "":
        return "empty string"
    if _looks_like_number(text):
        return "string (number-like)"
    if text.lower() in _BOOLEAN_LIKE:
        return "string (boolean-like)"
    if looks_like_date(text):
        return "string (date-like)"
    return "string"


def extract_expected_type(message: str) -> str:
    marker = "not of type '"
    start = message.find(marker)
    if start >= 0:
        start += len(marker)
        end = message.find("'", start)
        if end >= 0:
            return message[start:end]
    for word in _TYPE_WORDS:
        if word in message:
            return word
    return "unknown"


def extract_required_field(message: str) -> str:
    match = _QUOTED.search(message)
    if match:
        return match.group(1)
    return "unknown field"


def extract_pattern(message: str) -> str:
    marker = "pattern '"
    start = message.find(marker)
    if start >= 0:
        start += len(marker)
        end = message.find("'", start)
        if end >= 0:
            return message[start:end]
    # jsonschema: "<instance> does not match '<pattern>'"
    marker = " does not match "
    start = message.rfind(marker)
    if start >= 0:
        literal = message[start + len(marker):]
        try:
            parsed = ast.literal_eval(literal)
        except (ValueError, SyntaxError):
            parsed = None
        if isinstance(parsed, str):
            return parsed
    return "unknown pattern"


def extract_additional_properties(message: str) -> list[str]:
    names = [name for name in _QUOTED.findall(message) if name]
    if not names:
        return [message]
    return names


def _enhance_range(message: str, instance: Any) -> str:
    return f"{message} (current value: {safe_value_string(instance)})"


def _enhance_format(message: str, instance: Any, fmt: str | None = None) -> str:
    value = safe_value_string(instance)
    hint = (fmt or message).lower()
    if "email" in hint:
        return f"Invalid email format. Expected: user@domain.com, got: '{value}'"
    if "date" in hint:
        return f"Invalid date format. Expected: YYYY-MM-DD or ISO format, got: '{value}'"
    return f"{message} (value: '{value}')"


def _enhance_length(message: str, instance: Any) -> str:
    if isinstance(instance, str):
        return f"{message} (current length: {len(instance)} characters)"
    return message


def _enhance_array(message: str, instance: Any) -> str:
    if isinstance(instance, list):
        return f"{message} (current array length: {len(instance)})"
    return message


def _enhance_enum(message: str, instance: Any) -> str:
    return f"{message} (provided value: '{safe_value_string(instance)}')"


def _type_mismatch(path: str, expected: str, instance: Any, is_required_hint: bool) -> TypeMismatch:
    if is_required_hint and instance is None:
        expected += REQUIRED_ANNOTATION
    return TypeMismatch(
        path=path,
        expected=expected,
        actual=json_type_name(instance),
        value=safe_value_string(instance),
    )


def analyze(raw_message: str, path: str, offending_value: Any, is_required_hint: bool = False) -> ValidationError:
    """Classify a free-text validator message (ordered substring tests)."""
    lower = raw_message.lower()

    if "is not of type" in lower:
        return _type_mismatch(path, extract_expected_type(raw_message), offending_value, is_required_hint)

    if "is a required property" in lower or "required" in lower:
        return RequiredFieldMissing(path=path, field=extract_required_field(raw_message))

    if any(word in lower for word in ("is less than", "is greater than", "minimum", "maximum")):
        return OutOfRange(path=path, message=_enhance_range(raw_message, offending_value))

    if "is not a" in lower and any(word in lower for word in ("email", "date", "time", "uri")):
        return InvalidFormat(path=path, message=_enhance_format(raw_message, offending_value))

    if any(word in lower for word in _LENGTH_WORDS):
        return InvalidFormat(path=path, message=_enhance_length(raw_message, offending_value))

    if "does not match" in lower or "pattern" in lower:
        return PatternMismatch(
            path=path,
            pattern=extract_pattern(raw_message),
            value=safe_value_string(offending_value),
        )

    if "additional properties" in lower or "not allowed" in lower:
        return AdditionalProperties(path=path, properties=tuple(extract_additional_properties(raw_message)))

    if any(word in lower for word in _ARRAY_WORDS):
        return ArrayValidation(path=path, message=_enhance_array(raw_message, offending_value))

    if "is not one of" in lower or "enum" in lower or "was expected" in lower:
        return InvalidFormat(path=path, message=_enhance_enum(raw_message, offending_value))

    return InvalidFormat(path=path, message=f"Validation failed: {raw_message}")


def _expected_from_keyword(value: Any) -> str:
    if isinstance(value, list):
        return " or ".join(str(v) for v in value)
    return str(value)


def classify(error: RawStructuralError, row_number: int, is_required_hint: bool = False) -> ValidationError:
    """Classify by the typed keyword; unknown keywords go through ``analyze``."""
    path = format_error_path(row_number, error.pointer)
    keyword = error.keyword
    instance = error.instance

    if keyword == "type":
        return _type_mismatch(path, _expected_from_keyword(error.keyword_value), instance, is_required_hint)
    if keyword == "required":
        field = error.property_key or extract_required_field(error.message)
        return RequiredFieldMissing(path=path, field=field)
    if keyword in _RANGE_KEYWORDS:
        return OutOfRange(path=path, message=_enhance_range(error.message, instance))
    if keyword == "format":
        fmt = error.keyword_value if isinstance(error.keyword_value, str) else None
        return InvalidFormat(path=path, message=_enhance_format(error.message, instance, fmt))
    if keyword in _LENGTH_KEYWORDS:
        return InvalidFormat(path=path, message=_enhance_length(error.message, instance))
    if keyword == "pattern":
        return PatternMismatch(path=path, pattern=str(error.keyword_value), value=safe_value_string(instance))
    if keyword == "additionalProperties":
        extras = error.keyword_value
        if isinstance(extras, tuple | list) and extras:
            return AdditionalProperties(path=path, properties=tuple(str(e) for e in extras))
        return AdditionalProperties(path=path, properties=tuple(extract_additional_properties(error.message)))
    if keyword in _ARRAY_KEYWORDS:
        return ArrayValidation(path=path, message=_enhance_array(error.message, instance))
    if keyword in _ENUM_KEYWORDS:
        return InvalidFormat(path=path, message=_enhance_enum(error.message, instance))

    return analyze(error.message, path, instance, is_required_hint)
