from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .row_data import ParsedRow
from .schema_types import StructuralSchema
from .validation_error import ValidationReport

"""Processing result models.

ValidationRunResult aggregates one validation run over a sheet: the parsed
rows (kept for the export pass), the accumulated reports in ascending row
order, and the timing used for the SUMMARY line.
"""

__all__ = [
    "ValidationRunResult",
]


@dataclass(frozen=True)
class ValidationRunResult:
    """Aggregated results of a validation run."""
    schema: StructuralSchema
    headers: list[str]  # 正規化済ヘッダ
    rows: list[ParsedRow]
    reports: list[ValidationReport]  # 行番号昇順
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    # PropertyKey -> dictionary machine name (export 用)
    header_mapping: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.reports

    @property
    def invalid_rows(self) -> int:
        return len(self.reports)

    @property
    def total_errors(self) -> int:
        return sum(len(r.errors) for r in self.reports)
