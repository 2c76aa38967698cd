from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

"""Per-row validation diagnostics.

ValidationError is a closed set of seven kinds. Each kind renders its own
human readable line via ``__str__``; that text is what lands in the aggregate
error report. ValidationReport groups the errors of one failing row together
with the row's value snapshot at validation time.
"""

__all__ = [
    "ValidationError",
    "TypeMismatch",
    "RequiredFieldMissing",
    "InvalidFormat",
    "OutOfRange",
    "AdditionalProperties",
    "ArrayValidation",
    "PatternMismatch",
    "RawStructuralError",
    "ValidationReport",
]


@dataclass(frozen=True)
class ValidationError:
    path: str  # row[<n>] または row[<n>]./<property>


@dataclass(frozen=True)
class TypeMismatch(ValidationError):
    expected: str
    actual: str
    value: str

    def __str__(self) -> str:
        return f'Type mismatch at {self.path}: expected {self.expected}, got {self.actual} "{self.value}"'


@dataclass(frozen=True)
class RequiredFieldMissing(ValidationError):
    field: str

    def __str__(self) -> str:
        return f"Required field missing at {self.path}: {self.field}"


@dataclass(frozen=True)
class InvalidFormat(ValidationError):
    message: str

    def __str__(self) -> str:
        return f"Invalid format at {self.path}: {self.message}"


@dataclass(frozen=True)
class OutOfRange(ValidationError):
    message: str

    def __str__(self) -> str:
        return f"Value out of range at {self.path}: {self.message}"


@dataclass(frozen=True)
class AdditionalProperties(ValidationError):
    properties: tuple[str, ...]

    def __str__(self) -> str:
        names = json.dumps(list(self.properties), ensure_ascii=False)
        return (
            "Excel has the following extra columns not found in the provided data dictionary "
            f"at {self.path}: {names}"
        )


@dataclass(frozen=True)
class ArrayValidation(ValidationError):
    message: str

    def __str__(self) -> str:
        return f"Array validation failed at {self.path}: {self.message}"


@dataclass(frozen=True)
class PatternMismatch(ValidationError):
    pattern: str
    value: str

    def __str__(self) -> str:
        return f"Pattern validation failed at {self.path}: pattern '{self.pattern}' for value '{self.value}'"


@dataclass(frozen=True)
class RawStructuralError:
    """One structural violation as reported at the validation boundary.

    ``keyword`` is the failing schema keyword (``type``, ``required``, ...),
    ``keyword_value`` its schema value (for ``additionalProperties`` the tuple
    of rejected keys, for ``required`` the missing key). ``pointer`` is the JSON
    pointer of the offending instance inside the row ("" for the row itself).
    """
    message: str
    pointer: str
    instance: Any
    keyword: str | None = None
    keyword_value: Any = None
    property_key: str | None = None  # 対象プロパティ (特定できる場合)


@dataclass(frozen=True)
class ValidationReport:
    """Errors for one failing row. Created only for rows that fail validation."""
    row_number: int
    errors: tuple[ValidationError, ...]
    row_data: dict[str, Any] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return len(self.errors)
