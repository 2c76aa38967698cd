from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

"""Raw spreadsheet cell model.

The spreadsheet reader yields one Cell per column. ``kind`` tells the coercion
engine how to interpret ``value``:

- EMPTY: no value (``value`` is None)
- STRING / DATETIME_ISO / DURATION_ISO / ERROR: ``value`` is a str
- INT: int, FLOAT: float, BOOL: bool
- DATETIME: Excel serial day number (float) or a ``datetime``
"""

__all__ = [
    "CellKind",
    "Cell",
]


class CellKind(Enum):
    EMPTY = "empty"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    ERROR = "error"
    DATETIME = "datetime"
    DATETIME_ISO = "datetime_iso"
    DURATION_ISO = "duration_iso"


@dataclass(frozen=True)
class Cell:
    kind: CellKind
    value: Any = None

    @staticmethod
    def empty() -> Cell:
        return Cell(CellKind.EMPTY)

    @staticmethod
    def string(value: str) -> Cell:
        return Cell(CellKind.STRING, value)

    @staticmethod
    def integer(value: int) -> Cell:
        return Cell(CellKind.INT, value)

    @staticmethod
    def number(value: float) -> Cell:
        return Cell(CellKind.FLOAT, value)

    @staticmethod
    def boolean(value: bool) -> Cell:
        return Cell(CellKind.BOOL, value)

    @staticmethod
    def error(code: str) -> Cell:
        return Cell(CellKind.ERROR, code)

    @staticmethod
    def datetime(value: float | datetime) -> Cell:
        return Cell(CellKind.DATETIME, value)

    @staticmethod
    def datetime_iso(value: str) -> Cell:
        return Cell(CellKind.DATETIME_ISO, value)

    @staticmethod
    def duration_iso(value: str) -> Cell:
        return Cell(CellKind.DURATION_ISO, value)

    def is_blank(self) -> bool:
        """Blank for row skipping: empty, whitespace-only string or error cell."""
        if self.kind in (CellKind.EMPTY, CellKind.ERROR):
            return True
        return self.kind is CellKind.STRING and not str(self.value).strip()

    def to_text(self) -> str:
        """Text form used for header cells."""
        if self.kind is CellKind.EMPTY:
            return ""
        if self.kind is CellKind.BOOL:
            return "true" if self.value else "false"
        if self.kind is CellKind.FLOAT and float(self.value).is_integer():
            return str(int(self.value))
        if isinstance(self.value, datetime):
            return self.value.isoformat(sep=" ")
        return str(self.value)
