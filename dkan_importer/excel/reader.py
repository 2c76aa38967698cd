from __future__ import annotations

import zipfile
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..models.cell import Cell
from ..normalize import normalize_string

"""Spreadsheet reader.

1行目をヘッダ行、2行目以降をデータ行として扱う。

- header cells are normalized with normalize_string
- every data cell is mapped to the Cell model (EMPTY, STRING, INT, FLOAT,
  BOOL, ERROR, DATETIME, DATETIME_ISO, DURATION_ISO)
- blank rows (only empty cells, whitespace strings or error cells) are skipped;
  row numbers stay the spreadsheet row numbers (header = 1)

pandas is used with ``keep_default_na=False`` so literal "NA" / "null" strings
reach the coercion engine untouched; only truly empty cells become EMPTY.
"""

__all__ = [
    "SheetReadError",
    "SheetRow",
    "SheetData",
    "EXCEL_ERROR_LITERALS",
    "to_cell",
    "read_sheet",
]

EXCEL_ERROR_LITERALS = frozenset(
    {"#N/A", "#DIV/0!", "#VALUE!", "#REF!", "#NAME?", "#NUM!", "#NULL!", "#GETTING_DATA"}
)


class SheetReadError(Exception):
    """Raised when the workbook or sheet cannot be read, or holds no data."""


@dataclass(frozen=True)
class SheetRow:
    row_number: int  # シート上の行番号 (ヘッダ = 1)
    cells: list[Cell]


@dataclass
class SheetData:
    sheet_name: str
    headers: list[str]  # 正規化済
    rows: list[SheetRow]


def to_cell(value: Any) -> Cell:
    """Map one pandas/openpyxl value to a Cell."""
    if isinstance(value, np.generic):
        value = value.item()
    if value is None or (isinstance(value, float) and np.isnan(value)) or value is pd.NaT:
        return Cell.empty()
    if isinstance(value, bool):
        return Cell.boolean(value)
    if isinstance(value, int):
        return Cell.integer(value)
    if isinstance(value, float):
        return Cell.number(value)
    if isinstance(value, pd.Timestamp):
        return Cell.datetime(value.to_pydatetime())
    if isinstance(value, datetime):
        return Cell.datetime(value)
    if isinstance(value, time):
        return Cell.datetime_iso(value.isoformat())
    if isinstance(value, timedelta):
        return Cell.duration_iso(pd.Timedelta(value).isoformat())
    text = str(value)
    if text in EXCEL_ERROR_LITERALS:
        return Cell.error(text)
    return Cell.string(text)


def _load_frame(path: Path, sheet_name: str) -> pd.DataFrame:
    if not path.exists():
        raise SheetReadError(f"Excel file not found: {path}")
    try:
        xls = pd.ExcelFile(path)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise SheetReadError(f"Error opening Excel file '{path}': {e}") from e
    sheet_names = [str(name) for name in xls.sheet_names]
    if sheet_name not in sheet_names:
        raise SheetReadError(f"Error reading sheet '{sheet_name}': sheet not found (available: {sheet_names})")
    # ヘッダなしで生読み, 空セルのみ NaN 扱い
    return xls.parse(sheet_name, header=None, dtype=object, keep_default_na=False, na_values=[""])


def read_sheet(path: Path, sheet_name: str) -> SheetData:
    """Read ``sheet_name`` from the workbook at ``path``.

    Raises:
        SheetReadError: missing/unreadable file, missing sheet, or no data rows
    """
    df = _load_frame(path, sheet_name)
    if df.shape[0] == 0:
        raise SheetReadError("The Excel file is empty")

    headers = [normalize_string(to_cell(v).to_text()) for v in df.iloc[0].tolist()]
    rows: list[SheetRow] = []
    for index in range(1, df.shape[0]):
        cells = [to_cell(v) for v in df.iloc[index].tolist()][: len(headers)]
        if all(cell.is_blank() for cell in cells):
            continue
        rows.append(SheetRow(row_number=index + 1, cells=cells))

    if not rows:
        raise SheetReadError("The Excel file is empty")
    return SheetData(sheet_name=sheet_name, headers=headers, rows=rows)
