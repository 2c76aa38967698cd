# Shared pytest fixtures
from __future__ import annotations
import json
import logging
import tempfile
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from dkan_importer.logging.init import LOGGER_NAME, reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        # .env 由来の値がテストへ漏れないようにする
        for name in ("DKAN_BASE_URL", "DKAN_USERNAME", "DKAN_PASSWORD"):
            monkeypatch.delenv(name, raising=False)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()
    # capsys のストリームを掴んだハンドラを外す
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture()
def sample_config_yaml() -> str:
    return """base_url: https://dkan.example.org
data_dictionary_id: dict-001
dataset_id: dataset-001
sheet_name: Samples
username: importer
errors_log: errors.log
output_directory: ./out
timeout_seconds: 10
keep_csv: false
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "importer.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sample_dictionary() -> dict[str, Any]:
    """Dictionary root ``{title, fields}`` covering the common field shapes."""
    return {
        "title": "Samples Dictionary",
        "fields": [
            {"name": "sample_id", "title": "Sample ID*", "type": "string"},
            {"name": "volume", "title": "Volume (mL)*", "type": "integer"},
            {"name": "score", "title": "Optional Score", "type": "number"},
            {"name": "active", "title": "Active", "type": "boolean"},
            {"name": "collected", "title": "Collected", "type": "datetime", "format": "%Y-%m-%d"},
            {"name": "tags", "title": "Tags", "type": "array"},
            {
                "name": "depth",
                "title": "Depth",
                "type": "integer",
                "constraints": {"minimum": 1, "maximum": 10},
            },
        ],
    }


@pytest.fixture()
def write_dictionary(temp_workdir: Path, sample_dictionary: dict[str, Any]) -> Path:
    path = temp_workdir / "data" / "dictionary.json"
    path.write_text(json.dumps(sample_dictionary), encoding="utf-8")
    return path


@pytest.fixture()
def make_workbook(temp_workdir: Path) -> Callable[..., Path]:
    """Build an .xlsx file with openpyxl: ``make_workbook(rows, sheet_name=..., name=...)``.

    ``rows`` includes the header row; ``None`` cells stay empty.
    """
    def _make(rows: Sequence[Sequence[Any]], sheet_name: str = "Sheet1", name: str = "input.xlsx") -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name
        for row in rows:
            ws.append(list(row))
        path = temp_workdir / "data" / name
        wb.save(path)
        return path
    return _make


@pytest.fixture()
def sample_header() -> list[str]:
    return ["Sample ID*", "Volume (mL)*", "Optional Score", "Active", "Collected", "Tags", "Depth"]


@pytest.fixture()
def valid_sheet_rows(sample_header: list[str]) -> list[list[Any]]:
    return [
        sample_header,
        ["S-1", 5, None, "yes", datetime(2024, 3, 5), "a;b", 3],
        ["S-2", "12", 2.5, "no", datetime(2024, 3, 6), '["c"]', None],
    ]
