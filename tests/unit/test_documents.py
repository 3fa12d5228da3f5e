import pytest

from pipeline_studio.domain.base_enums import ExportFormat
from pipeline_studio.domain.errors import BadRequestError
from pipeline_studio.utils.documents import dump_document, load_document


def test_json_dump_is_deterministic():
    first = dump_document({"b": 1, "a": [1, 2]})
    second = dump_document({"a": [1, 2], "b": 1})
    assert first == second
    assert first.startswith('{\n  "a"')


def test_yaml_roundtrip():
    text = dump_document({"nodes": [{"id": "table-1"}], "edges": []}, ExportFormat.YAML)
    assert "table-1" in text
    assert load_document(text, ExportFormat.YAML) == {"nodes": [{"id": "table-1"}], "edges": []}


def test_invalid_json():
    with pytest.raises(BadRequestError) as exc_info:
        load_document("{not json")
    assert "Could not parse json document" in exc_info.value.message


def test_top_level_must_be_object():
    with pytest.raises(BadRequestError):
        load_document("[1, 2, 3]")
