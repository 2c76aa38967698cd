from __future__ import annotations

from pathlib import Path

import pytest

from dkan_importer.models.row_data import ParsedRow
from dkan_importer.models.schema_types import ArrayType, FieldSchema, MixedType, ScalarType
from dkan_importer.services.export import (
    INTEGER_PLACEHOLDER,
    NUMERIC_PLACEHOLDER,
    export_rows,
    render_cell,
    write_csv,
)

SCHEMAS = {
    "ID*": FieldSchema(ScalarType.STRING),
    "Count": FieldSchema(MixedType((ScalarType.INTEGER, ScalarType.NULL))),
    "Score": FieldSchema(MixedType((ScalarType.NUMBER, ScalarType.NULL))),
    "Tags": FieldSchema(ArrayType()),
    "Active": FieldSchema(MixedType((ScalarType.BOOLEAN, ScalarType.NULL))),
}


def test_render_cell_placeholders():
    assert render_cell(None, SCHEMAS["Score"]) == NUMERIC_PLACEHOLDER == "000000000000.000000"
    assert render_cell(None, SCHEMAS["Count"]) == INTEGER_PLACEHOLDER == "0"
    assert render_cell(None, SCHEMAS["Active"]) == ""
    assert render_cell(None, None) == ""


def test_number_placeholder_wins_over_integer():
    both = FieldSchema(MixedType((ScalarType.INTEGER, ScalarType.NUMBER, ScalarType.NULL)))
    assert render_cell(None, both) == NUMERIC_PLACEHOLDER


def test_render_cell_values():
    assert render_cell(True, None) == "true"
    assert render_cell(False, None) == "false"
    assert render_cell(12, None) == "12"
    assert render_cell(1.5, None) == "1.5"
    assert render_cell(["a", 2, "b"], None) == "a;2;b"
    assert render_cell({"k": [1, 2]}, None) == '{"k":[1,2]}'


@pytest.mark.parametrize(
    "value,expected",
    [(1e-07, "0.0000001"), (1e20, "100000000000000000000"), (0.1, "0.1"), (-2.5, "-2.5")],
)
def test_render_float_without_exponent(value: float, expected: str):
    assert render_cell(value, None) == expected
    assert render_cell([value, "x"], None) == f"{expected};x"


def test_export_rows_maps_headers_to_names():
    rows = [
        ParsedRow(2, {"ID*": "S-1", "Count": 3, "Score": None, "Tags": ["x", "y"], "Active": True}),
        ParsedRow(3, {"ID*": "S-2", "Count": None, "Score": 2.5, "Tags": [], "Active": None}),
    ]
    headers = ["ID*", "Count", "Score", "Tags", "Active"]
    mapping = {"ID*": "sample_id", "Count": "count", "Score": "score"}
    text = export_rows(rows, headers, SCHEMAS, mapping)
    assert text.splitlines() == [
        "sample_id,count,score,Tags,Active",
        "S-1,3,000000000000.000000,x;y,true",
        "S-2,0,2.5,,",
    ]


def test_export_quotes_delimiters():
    rows = [ParsedRow(2, {"ID*": "a,b", "Count": 1})]
    text = export_rows(rows, ["ID*", "Count"], SCHEMAS)
    assert text.splitlines()[1] == '"a,b",1'


def test_write_csv_creates_parent(tmp_path: Path):
    target = tmp_path / "out" / "file.csv"
    assert write_csv("a\n1\n", target) == target
    assert target.read_text(encoding="utf-8") == "a\n1\n"
