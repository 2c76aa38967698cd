from __future__ import annotations
from pathlib import Path
from dkan_importer.logging.error_log import ErrorLogBuffer
from dkan_importer.models.error_record import (
    HEADER_DUPLICATE_ERROR,
    PROCESSING_ERROR,
    VALIDATION_REPORT_ERROR,
    ErrorRecord,
)


def test_error_record_creation_and_entry():
    rec = ErrorRecord.create(PROCESSING_ERROR, "The Excel file is empty")
    assert rec.timestamp.endswith("Z")
    assert rec.error_type == "Processing Error"
    assert rec.to_log_entry() == f"\n[{rec.timestamp}] Processing Error:\nThe Excel file is empty\n"


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer("errors.log")
    buf.append(ErrorRecord.create(HEADER_DUPLICATE_ERROR, "dup header"))
    buf.append(ErrorRecord.create(VALIDATION_REPORT_ERROR, "line 1\nline 2"))
    path = buf.flush()
    assert path is not None and path.exists()
    text = path.read_text(encoding="utf-8")
    assert "] Excel Header Duplicate Check Error:\ndup header\n" in text
    assert "] Excel Validation Error Report:\nline 1\nline 2\n" in text
    # flush 後バッファクリア
    assert len(buf) == 0


def test_error_log_buffer_appends_across_flushes(temp_workdir: Path):
    buf = ErrorLogBuffer(Path("logs") / "errors.log")
    buf.append(ErrorRecord.create(PROCESSING_ERROR, "first"))
    path = buf.flush()
    size1 = path.stat().st_size
    buf.append(ErrorRecord.create(PROCESSING_ERROR, "second"))
    path2 = buf.flush()
    assert path == path2
    assert path.stat().st_size > size1
    text = path.read_text(encoding="utf-8")
    assert text.index("first") < text.index("second")


def test_error_log_buffer_empty_flush_writes_nothing(temp_workdir: Path):
    buf = ErrorLogBuffer("errors.log")
    assert buf.flush() is None
    assert not (temp_workdir / "errors.log").exists()


def test_records_snapshot():
    buf = ErrorLogBuffer("errors.log")
    rec = ErrorRecord.create(PROCESSING_ERROR, "x")
    buf.append(rec)
    snapshot = buf.records
    snapshot.clear()
    assert buf.records == [rec]
