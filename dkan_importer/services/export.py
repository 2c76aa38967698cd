from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..models.row_data import ParsedRow
from ..models.schema_types import FieldSchema, ScalarType, contains_type

"""Tabular (CSV) export of parsed rows.

Cell rendering:
- str -> itself, int/float -> plain decimal text (no exponent), bool -> "true"/"false"
- list -> ";"-joined element texts, dict -> compact JSON text
- None -> "000000000000.000000" for number fields, "0" for integer fields,
  empty text otherwise

Output column names come from the header mapping (PropertyKey -> dictionary
machine name), falling back to the header itself.
"""

__all__ = [
    "NUMERIC_PLACEHOLDER",
    "INTEGER_PLACEHOLDER",
    "render_cell",
    "export_rows",
    "write_csv",
]

NUMERIC_PLACEHOLDER = "000000000000.000000"
INTEGER_PLACEHOLDER = "0"


def _null_placeholder(field_schema: FieldSchema | None) -> str:
    if field_schema is None:
        return ""
    # number を integer より先に判定
    if contains_type(field_schema.field_type, ScalarType.NUMBER):
        return NUMERIC_PLACEHOLDER
    if contains_type(field_schema.field_type, ScalarType.INTEGER):
        return INTEGER_PLACEHOLDER
    return ""


def _number_text(value: Any) -> str:
    if isinstance(value, float):
        return np.format_float_positional(value, trim="-")
    return str(value)


def _element_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        return _number_text(value)
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def render_cell(value: Any, field_schema: FieldSchema | None) -> str:
    if value is None:
        return _null_placeholder(field_schema)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ";".join(_element_text(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return _number_text(value)


def export_rows(
    rows: Sequence[ParsedRow],
    headers: Sequence[str],
    field_schemas: Mapping[str, FieldSchema],
    header_mapping: Mapping[str, str] | None = None,
) -> str:
    """Render rows as CSV text (header line first, rows in the given order)."""
    mapping = header_mapping or {}
    columns = [mapping.get(h, h) for h in headers]
    records = [
        [render_cell(row.fields.get(h), field_schemas.get(h)) if h in row.fields else "" for h in headers]
        for row in rows
    ]
    frame = pd.DataFrame(records, columns=columns, dtype=object)
    return frame.to_csv(index=False, lineterminator="\n")


def write_csv(text: str, path: Path) -> Path:
    if path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(text)
    return path
