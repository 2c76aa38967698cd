from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..excel.reader import SheetData, SheetReadError, read_sheet
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import (
    DICTIONARY_DUPLICATE_ERROR,
    HEADER_DUPLICATE_ERROR,
    PROCESSING_ERROR,
    VALIDATION_REPORT_ERROR,
    ErrorRecord,
)
from ..models.processing_result import ValidationRunResult
from ..models.row_data import ParsedRow
from ..models.schema_types import StructuralSchema
from ..models.validation_error import ValidationReport
from .coercion import CellCoercionEngine
from .dictionary import DictionaryError, convert_dictionary_to_schema, parse_fields, title_to_name_mapping
from .duplicates import (
    DuplicateFieldsError,
    DuplicateHeadersError,
    check_dictionary_duplicates,
    check_header_duplicates,
)
from .error_analysis import classify
from .progress import RowProgressTracker
from .row_validator import RowValidator, SchemaBuildError
from .summary import format_validation_report

"""Validation run orchestration.

Sequence (strictly serial):
1. dictionary duplicate check, then schema conversion
2. full sheet read, header duplicate check, ParsedRow construction for all rows
3. per-row validation in ascending row order, failures classified into reports

Fatal setup errors abort before any row is validated; they are recorded on the
error log sink (when given) and re-raised as ProcessingError. Per-row failures
never abort the run. Nothing here writes files: the caller flushes the sink.
"""

__all__ = [
    "ProcessingError",
    "build_schema",
    "load_rows",
    "validate_rows",
    "run_validation",
]

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal setup / processing error for a validation run."""


def _record(error_log: ErrorLogBuffer | None, error_type: str, message: str) -> None:
    if error_log is not None:
        error_log.append(ErrorRecord.create(error_type, message))


def build_schema(root: Mapping[str, Any]) -> StructuralSchema:
    """Duplicate-check the dictionary and convert it to a StructuralSchema.

    Raises:
        DuplicateFieldsError: normalized names or titles collide
        DictionaryError: malformed dictionary
    """
    check_dictionary_duplicates(root)
    schema = convert_dictionary_to_schema(root)
    logger.debug("schema built: %d properties, %d required", len(schema.properties), len(schema.required))
    return schema


def load_rows(sheet: SheetData, engine: CellCoercionEngine) -> list[ParsedRow]:
    """Coerce every sheet row into a ParsedRow (all rows before any validation)."""
    rows: list[ParsedRow] = []
    for sheet_row in sheet.rows:
        fields: dict[str, Any] = {}
        for header, cell in zip(sheet.headers, sheet_row.cells, strict=False):
            fields[header] = engine.convert_cell(cell, header)
        rows.append(ParsedRow(row_number=sheet_row.row_number, fields=fields))
    return rows


def validate_rows(rows: Sequence[ParsedRow], validator: RowValidator) -> list[ValidationReport]:
    reports: list[ValidationReport] = []
    with RowProgressTracker(len(rows)) as progress:
        for row in rows:
            outcome = validator.validate_row(row)
            progress.advance(outcome.is_valid)
            if outcome.is_valid:
                continue
            errors = tuple(
                classify(raw, row.row_number, validator.is_required_hint(raw.property_key))
                for raw in outcome.errors
            )
            for error in errors:
                logger.debug("  - %s", error)
            reports.append(ValidationReport(row_number=row.row_number, errors=errors, row_data=outcome.values))
    return reports


def run_validation(
    dictionary_root: Mapping[str, Any],
    excel_path: Path,
    sheet_name: str,
    error_log: ErrorLogBuffer | None = None,
) -> ValidationRunResult:
    """Validate one sheet against a data dictionary.

    Raises:
        ProcessingError: on any fatal setup error (details recorded on ``error_log``)
    """
    start = datetime.now(UTC)

    try:
        schema = build_schema(dictionary_root)
        header_mapping = title_to_name_mapping(parse_fields(dictionary_root))
    except DuplicateFieldsError as e:
        _record(error_log, DICTIONARY_DUPLICATE_ERROR, str(e))
        raise ProcessingError(str(e)) from e
    except DictionaryError as e:
        _record(error_log, PROCESSING_ERROR, f"Invalid data dictionary: {e}")
        raise ProcessingError(f"Invalid data dictionary: {e}") from e

    try:
        validator = RowValidator(schema)
    except SchemaBuildError as e:
        _record(error_log, PROCESSING_ERROR, str(e))
        raise ProcessingError(str(e)) from e

    try:
        sheet = read_sheet(excel_path, sheet_name)
    except SheetReadError as e:
        _record(error_log, PROCESSING_ERROR, str(e))
        raise ProcessingError(str(e)) from e

    try:
        check_header_duplicates(sheet.headers)
    except DuplicateHeadersError as e:
        _record(error_log, HEADER_DUPLICATE_ERROR, str(e))
        raise ProcessingError(str(e)) from e

    rows = load_rows(sheet, validator.engine)
    logger.info(f"validating {len(rows)} rows from sheet '{sheet_name}'")
    reports = validate_rows(rows, validator)
    if reports:
        _record(error_log, VALIDATION_REPORT_ERROR, format_validation_report(reports))

    end = datetime.now(UTC)
    return ValidationRunResult(
        schema=schema,
        headers=sheet.headers,
        rows=rows,
        reports=reports,
        start_time=start,
        end_time=end,
        elapsed_seconds=(end - start).total_seconds(),
        header_mapping=header_mapping,
    )
