from __future__ import annotations

from pathlib import Path

from ..models.error_record import ErrorRecord

"""Errors log buffering.

The validation core never writes files. The orchestrator turns fatal setup
errors and the aggregate validation report into ErrorRecords and appends them
here; the CLI decides when to flush. Records are appended to the configured
path (default ``errors.log``) as plain text entries.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends them to ``path``.

    - ファイルは flush 時に記録がある場合のみ生成
    - スレッド安全性不要 (シリアル実行)
    """
    def __init__(self, path: Path | str) -> None:
        self._records: list[ErrorRecord] = []
        self.file_path = Path(path)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records; returns the file path, or None when nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        if fp.parent != Path("."):
            fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_log_entry())
        self._records.clear()
        return fp
