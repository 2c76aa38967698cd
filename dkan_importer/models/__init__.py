"""Domain models for the DKAN data dictionary importer.

This package contains the domain model classes used throughout the
application: dictionary field definitions, the structural schema variant
types, raw cells, parsed rows and the per-row validation diagnostics.
"""

from .cell import Cell, CellKind
from .config_models import ImporterConfig
from .error_record import ErrorRecord
from .field_definition import FieldConstraints, FieldDefinition
from .processing_result import ValidationRunResult
from .row_data import ParsedRow
from .schema_types import ArrayType, FieldSchema, MixedType, ScalarType, SchemaType, StructuralSchema
from .validation_error import (
    AdditionalProperties,
    ArrayValidation,
    InvalidFormat,
    OutOfRange,
    PatternMismatch,
    RawStructuralError,
    RequiredFieldMissing,
    TypeMismatch,
    ValidationError,
    ValidationReport,
)

__all__ = [
    # Dictionary / schema models
    "FieldConstraints",
    "FieldDefinition",
    "ScalarType",
    "ArrayType",
    "MixedType",
    "SchemaType",
    "FieldSchema",
    "StructuralSchema",
    # Sheet models
    "Cell",
    "CellKind",
    "ParsedRow",
    # Diagnostics
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
    "ErrorRecord",
    # Run models
    "ImporterConfig",
    "ValidationRunResult",
]
