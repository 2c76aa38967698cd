from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import UTC, datetime

from ..models.processing_result import ValidationRunResult
from ..models.validation_error import ValidationReport

"""Report and summary line rendering.

format_validation_report() renders the aggregate error report body written to
the errors log::

    =============================
    Generated at: <ISO 8601>

    Total rows with errors: <N>

    Row <n>: <k> error(s)
    Row data: <pretty JSON>
    Errors:
      - <error text>

render_summary_line() renders the final SUMMARY line of a CLI run; render_summary_body()
returns the same counters for the SUMMARY log level, which adds its own label.
"""

__all__ = [
    "REPORT_RULE",
    "format_validation_report",
    "render_summary_body",
    "render_summary_line",
]

REPORT_RULE = "============================="


def format_validation_report(reports: Sequence[ValidationReport], generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now(UTC)
    lines = [
        REPORT_RULE,
        f"Generated at: {generated_at.isoformat()}",
        "",
        f"Total rows with errors: {len(reports)}",
        "",
    ]
    for report in reports:
        lines.append(f"Row {report.row_number}: {len(report.errors)} error(s)")
        lines.append(f"Row data: {json.dumps(report.row_data, indent=2, ensure_ascii=False)}")
        lines.append("Errors:")
        for error in report.errors:
            lines.append(f"  - {error}")
        lines.append("")
    return "\n".join(lines)


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # Format very small numbers to avoid scientific notation
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_body(result: ValidationRunResult) -> str:
    """Counters of the SUMMARY line without the ``SUMMARY`` label."""
    return (
        f"rows={len(result.rows)} "
        f"invalid_rows={result.invalid_rows} "
        f"errors={result.total_errors} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_summary_line(result: ValidationRunResult) -> str:
    """Render the SUMMARY line.

    Format:
    SUMMARY rows={rows} invalid_rows={invalid} errors={errors} elapsed_sec={elapsed}

    Examples:
        >>> from datetime import datetime, timezone
        >>> from dkan_importer.models.schema_types import StructuralSchema
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> result = ValidationRunResult(
        ...     schema=StructuralSchema(), headers=[], rows=[], reports=[],
        ...     start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=0 invalid_rows=0 errors=0 elapsed_sec=2'
    """
    return f"SUMMARY {render_summary_body(result)}"
