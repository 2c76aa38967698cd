from __future__ import annotations

import itertools

import pytest

from dkan_importer.models.schema_types import ArrayType, MixedType, ScalarType, allows_null
from dkan_importer.services.duplicates import DuplicateFieldsError
from dkan_importer.services.dictionary import (
    DataDictionary,
    DictionaryError,
    convert_dictionary_to_schema,
    map_dictionary_type,
    title_to_name_mapping,
    parse_fields,
)


def _root(*fields):
    return {"title": "Test Dictionary", "fields": list(fields)}


@pytest.mark.parametrize(
    "name_marked,title_marked,constraint_required",
    list(itertools.product([False, True], repeat=3)),
)
def test_required_truth_table(name_marked: bool, title_marked: bool, constraint_required: bool):
    field = {
        "name": "weight*" if name_marked else "weight",
        "title": "Weight*" if title_marked else "Weight",
        "type": "number",
    }
    if constraint_required:
        field["constraints"] = {"required": True}
    schema = convert_dictionary_to_schema(_root(field))
    key = "Weight*" if title_marked else "Weight"
    expected = name_marked or title_marked or constraint_required

    assert list(schema.properties) == [key]
    assert schema.is_required(key) is expected
    # 任意項目のみ null を許容
    assert allows_null(schema.properties[key].field_type) is (not expected)


def test_property_key_falls_back_to_name():
    schema = convert_dictionary_to_schema(_root({"name": " sample  id ", "type": "string"}, {"name": "x", "title": "  "}))
    assert list(schema.properties) == ["sample id", "x"]


def test_optional_number_is_union_with_null():
    schema = convert_dictionary_to_schema(_root({"name": "score", "title": "Optional Score", "type": "number"}))
    fs = schema.properties["Optional Score"]
    assert fs.field_type == MixedType((ScalarType.NUMBER, ScalarType.NULL))
    assert fs.to_json_schema()["type"] == ["number", "null"]


def test_array_and_object_never_get_null():
    schema = convert_dictionary_to_schema(
        _root(
            {"name": "tags", "type": "array"},
            {"name": "meta", "type": "object"},
        )
    )
    assert schema.properties["tags"].field_type == ArrayType()
    assert schema.properties["meta"].field_type is ScalarType.OBJECT


def test_datetime_field_always_has_format():
    schema = convert_dictionary_to_schema(
        _root(
            {"name": "a", "type": "datetime"},
            {"name": "b", "type": "datetime", "format": "default"},
            {"name": "c", "type": "datetime", "format": "%Y-%m-%d"},
        )
    )
    assert schema.properties["a"].format == "date-time"
    assert schema.properties["b"].format == "date-time"
    assert schema.properties["c"].format == "%Y-%m-%d"
    assert schema.properties["c"].to_json_schema()["dkan_format"] == "%Y-%m-%d"
    assert schema.properties["a"].field_type == MixedType((ScalarType.STRING, ScalarType.NULL))


@pytest.mark.parametrize(
    "type_name,expected",
    [
        ("integer", ScalarType.INTEGER),
        ("number", ScalarType.NUMBER),
        ("float", ScalarType.NUMBER),
        ("boolean", ScalarType.BOOLEAN),
        ("object", ScalarType.OBJECT),
        ("datetime", ScalarType.STRING),
        ("string", ScalarType.STRING),
        ("geopoint", ScalarType.STRING),
        ("array", ArrayType()),
    ],
)
def test_map_dictionary_type(type_name: str, expected):
    assert map_dictionary_type(type_name) == expected


def test_array_item_type():
    assert map_dictionary_type("array", "integer") == ArrayType(ScalarType.INTEGER)
    schema = convert_dictionary_to_schema(_root({"name": "ids", "type": "array", "items": {"type": "integer"}}))
    assert schema.properties["ids"].to_json_schema() == {"type": "array", "items": {"type": "integer"}}


def test_constraints_copied():
    schema = convert_dictionary_to_schema(
        _root(
            {
                "name": "depth",
                "type": "integer",
                "constraints": {"minimum": 1, "maximum": 10, "pattern": "^[0-9]+$", "enum": [1, 2]},
            },
            {"name": "code", "type": "string", "constraints": {"minLength": 2, "maxLength": 4}},
        )
    )
    depth = schema.properties["depth"]
    assert (depth.minimum, depth.maximum, depth.pattern, depth.enum_values) == (1, 10, "^[0-9]+$", (1, 2))
    node = schema.properties["code"].to_json_schema()
    assert node["minLength"] == 2 and node["maxLength"] == 4


def test_document_shape():
    schema = convert_dictionary_to_schema(
        _root({"name": "b", "title": "B*"}, {"name": "a", "title": "A*"}, {"name": "c"})
    )
    doc = schema.to_json_schema()
    assert doc["$schema"] == "http://json-schema.org/draft-07/schema#"
    assert doc["type"] == "object"
    assert doc["title"] == "Test Dictionary"
    assert doc["required"] == ["B*", "A*"]
    assert doc["additionalProperties"] is False


def test_missing_title_defaults():
    schema = convert_dictionary_to_schema({"fields": [{"name": "x"}]})
    assert schema.title == "Untitled Schema"
    assert "required" not in schema.to_json_schema()


def test_missing_fields_array():
    with pytest.raises(DictionaryError, match="Fields array not found in schema"):
        convert_dictionary_to_schema({"title": "T"})


def test_field_without_name():
    with pytest.raises(DictionaryError, match="Field name not found"):
        parse_fields({"fields": [{"title": "No name"}]})


def test_title_to_name_mapping():
    definitions = parse_fields(_root({"name": "sample_id", "title": "Sample ID *"}, {"name": "note"}))
    assert title_to_name_mapping(definitions) == {"Sample ID*": "sample_id", "note": "note"}


def test_data_dictionary_from_data():
    data = _root({"name": "x", "type": "integer"})
    dictionary = DataDictionary.from_data("dict-1", data, url="https://dkan.example.org/items/dict-1")
    assert dictionary.identifier == "dict-1"
    assert dictionary.title == "Test Dictionary"
    assert [f.name for f in dictionary.fields] == ["x"]
    assert dictionary.to_schema().properties["x"].field_type == MixedType((ScalarType.INTEGER, ScalarType.NULL))


def test_title_colliding_with_other_field_name_fails():
    root = _root(
        {"name": "a", "title": "Sample", "type": "integer", "constraints": {"required": True}},
        {"name": "Sample", "type": "string"},
    )
    with pytest.raises(DuplicateFieldsError) as e:
        convert_dictionary_to_schema(root)
    assert "Column key 'Sample' appears at positions: 1, 2" in str(e.value)
