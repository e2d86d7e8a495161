import json
from datetime import date, datetime, time, timedelta

import polars as pl
import pytest
from pydantic import TypeAdapter, ValidationError

from lazypipe.io.exports import ExportItem

export = TypeAdapter(ExportItem)


def parse(data, base_dir):
    return export.validate_python(data, context={"base_dir": base_dir})


@pytest.fixture
def lf():
    return pl.LazyFrame({"a": [1, 2], "b": ["x", "y"]})


def test_csv_export_creates_folder_and_returns_path(tmp_path, lf):
    exp = parse({"type": "csv", "folder": "out/nested", "name": "result"}, tmp_path)
    path = exp.export(lf)
    assert path == tmp_path / "out" / "nested" / "result.csv"
    assert pl.read_csv(path)["a"].to_list() == [1, 2]


def test_csv_eager_with_separator(tmp_path, lf):
    exp = parse({"type": "csv", "folder": ".", "name": "r", "lazy": False, "separator": ";"}, tmp_path)
    path = exp.export(lf)
    assert path.read_text(encoding="utf-8").splitlines()[0] == "a;b"


def test_date_format_suffix(tmp_path, lf):
    exp = parse({"type": "csv", "folder": ".", "name": "r_", "date_format": "%Y"}, tmp_path)
    path = exp.export(lf)
    assert path.name == f"r_{datetime.now().year}.csv"


def test_environment_placeholders(tmp_path, lf, monkeypatch):
    monkeypatch.setenv("LAZYPIPE_OUT", "exports")
    monkeypatch.setenv("LAZYPIPE_NAME", "people")
    exp = parse({"type": "ndjson", "folder": "${LAZYPIPE_OUT}", "name": "{LAZYPIPE_NAME}"}, tmp_path)
    assert exp.folder == tmp_path / "exports"
    path = exp.export(lf)
    assert path == tmp_path / "exports" / "people.ndjson"
    assert [json.loads(line)["b"] for line in path.read_text(encoding="utf-8").splitlines()] == ["x", "y"]


def test_json_export_writes_one_array(tmp_path):
    lf = pl.LazyFrame({"d": [date(2024, 1, 2)], "n": [1]})
    path = parse({"type": "json", "folder": ".", "name": "all"}, tmp_path).export(lf)
    assert path.suffix == ".json"
    assert json.loads(path.read_text(encoding="utf-8")) == [{"d": "2024-01-02", "n": 1}]


def test_unknown_export_type_is_rejected(tmp_path):
    with pytest.raises(ValidationError):
        parse({"type": "xlsx", "folder": ".", "name": "r"}, tmp_path)


def test_extension_is_not_a_document_key(tmp_path):
    with pytest.raises(ValidationError):
        parse({"type": "csv", "folder": ".", "name": "r", "extension": "txt"}, tmp_path)


def test_json_export_handles_temporal_and_nested_values(tmp_path):
    lf = pl.LazyFrame({
        "t": [time(1, 2)],
        "d": [timedelta(seconds=3)],
        "l": [[date(2024, 1, 2), date(2024, 1, 3)]],
        "s": [{"at": datetime(2024, 1, 2, 3, 4, 5)}],
    })
    path = parse({"type": "json", "folder": ".", "name": "temporal"}, tmp_path).export(lf)
    assert json.loads(path.read_text(encoding="utf-8")) == [{
        "t": "01:02:00",
        "d": 3.0,
        "l": ["2024-01-02", "2024-01-03"],
        "s": {"at": "2024-01-02T03:04:05"},
    }]
