from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the errors log.

One ErrorRecord is one entry of the durable errors log file. Entries are plain
text blocks of the form::

    [<timestamp>] <error_type>:
    <message>

The record is created by the orchestrator (never by the validation core) and
handed to ErrorLogBuffer, which appends it on flush.
"""

__all__ = [
    "ErrorRecord",
    "DICTIONARY_DUPLICATE_ERROR",
    "HEADER_DUPLICATE_ERROR",
    "VALIDATION_REPORT_ERROR",
    "PROCESSING_ERROR",
]

DICTIONARY_DUPLICATE_ERROR = "Data Dictionary Duplicate Check Error"
HEADER_DUPLICATE_ERROR = "Excel Header Duplicate Check Error"
VALIDATION_REPORT_ERROR = "Excel Validation Error Report"
PROCESSING_ERROR = "Processing Error"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured errors log entry.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        error_type: Entry heading (one of the module level constants)
        message: Free text body, may span multiple lines
    """
    timestamp: str  # ISO8601 UTC
    error_type: str
    message: str

    @staticmethod
    def create(error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(timestamp=ts, error_type=error_type, message=message)

    def to_log_entry(self) -> str:
        return f"\n[{self.timestamp}] {self.error_type}:\n{self.message}\n"
