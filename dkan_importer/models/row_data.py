from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""ParsedRow model.

A ParsedRow is one non-blank data row after per-cell coercion. ``fields`` maps
PropertyKey (normalized header text) to a JSON-like value: None, bool, int,
float, str, list or dict.
"""

__all__ = [
    "ParsedRow",
]


@dataclass(frozen=True)
class ParsedRow:
    """Logical representation of a single spreadsheet data row.

    ``row_number`` is the spreadsheet row number (header = row 1, first data
    row = row 2).
    """
    row_number: int
    fields: dict[str, Any]  # PropertyKey -> coerced value
