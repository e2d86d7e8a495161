from pathlib import Path

import polars as pl
import pytest
from pydantic import ValidationError

from lazypipe import Config
from lazypipe.common.errors import NoExportsError, OtherError, PathError
from lazypipe.proc.transforms import Loader

SELECT_X = """
[source]
type = "csv"
path = "a.csv"

[[transforms]]
type = "select"
columns = ["x"]

[[exports]]
type = "csv"
folder = "./out"
name = "result"
"""


def test_select_scenario(write, xy_csv, tmp_path):
    cfg = write("pipeline.toml", SELECT_X)
    written = Config.from_path(cfg).run()

    assert len(written) == 1
    assert written[0].parent == (tmp_path / "out").resolve()
    assert written[0].name.startswith("result") and written[0].suffix == ".csv"
    df = pl.read_csv(written[0])
    assert df.shape == (3, 1)
    assert df.columns == ["x"]


def test_run_without_exports_does_no_work(write, xy_csv, monkeypatch):
    cfg = write("noexports.toml", '[source]\ntype = "csv"\npath = "a.csv"\n')
    config = Config.from_path(cfg)

    def _fail(self):
        raise AssertionError("nothing should be loaded")

    monkeypatch.setattr(Loader, "load", _fail)
    with pytest.raises(NoExportsError) as ex:
        config.run()
    assert "must define at least one export" in str(ex.value)


def test_load_does_not_need_exports(write, xy_csv):
    cfg = write("noexports.yaml", "source:\n  type: csv\n  path: a.csv\n")
    assert Config.from_path(cfg).load().collect().height == 3


def test_document_transforms_run_after_loader_transforms(write, xy_csv):
    cfg = write("order.yaml", """
source:
  type: csv
  path: a.csv
  transforms:
    - {type: rename, columns: {x: first}}
transforms:
  - {type: select, columns: [first]}
""")
    assert Config.from_path(cfg).load().collect().columns == ["first"]


def test_every_export_gets_the_same_result(write, xy_csv, tmp_path):
    cfg = write("multi.json", """{
      "source": {"type": "csv", "path": "a.csv"},
      "exports": [
        {"type": "csv", "folder": "out", "name": "one"},
        {"type": "ndjson", "folder": "out", "name": "two"}
      ]
    }""")
    written = Config.from_path(cfg).run()
    assert [p.name for p in written] == ["one.csv", "two.ndjson"]
    assert pl.read_csv(written[0]).height == pl.read_ndjson(written[1]).height == 3


class TestNestedConfig:
    def _tree(self, write):
        # the root directory has its own data.csv, which the nested documents must not pick up
        write("data.csv", "v\nroot\n")
        write("sub/deeper/data.csv", "v\nleaf\n")
        write("sub/deeper/leaf.yaml", "source:\n  type: csv\n  path: data.csv\n")
        write("sub/mid.toml", '[source]\ntype = "config"\npath = "deeper/leaf.yaml"\n')
        return write("top.toml", '[source]\ntype = "config"\npath = "sub/mid.toml"\n')

    def test_paths_resolve_against_each_documents_own_folder(self, write):
        top = self._tree(write)
        cwd = Path.cwd()
        df = Config.from_path(top).load().collect()
        assert df["v"].to_list() == ["leaf"]
        assert Path.cwd() == cwd

    def test_failure_in_a_nested_document_leaves_cwd_alone(self, write, tmp_path):
        top = self._tree(write)
        (tmp_path / "sub" / "deeper" / "data.csv").unlink()
        cwd = Path.cwd()
        config = Config.from_path(top)
        with pytest.raises(ValidationError):
            config.load()
        assert Path.cwd() == cwd

    def test_nested_config_mixed_with_join(self, write):
        write("people.csv", "id,name\n1,ann\n2,bob\n")
        write("scores/scores.csv", "id,score\n1,10\n")
        write("scores/scores.toml", '[source]\ntype = "csv"\npath = "scores.csv"\n')
        cfg = write("joined.yaml", """
source:
  type: csv
  path: people.csv
  transforms:
    - type: join
      how: left
      left_on: [id]
      right_on: [id]
      right: {type: config, path: scores/scores.toml}
    - type: sort_by
      by: [{column: id}]
""")
        df = Config.from_path(cfg).load().collect()
        assert df["score"].to_list() == [10, None]

    def test_document_loading_itself_is_a_cycle(self, write):
        cfg = write("self.toml", '[source]\ntype = "config"\npath = "self.toml"\n')
        with pytest.raises(OtherError) as ex:
            Config.from_path(cfg).load()
        assert "config cycle" in str(ex.value)

    def test_cycle_through_two_documents(self, write):
        write("b/b.toml", '[source]\ntype = "config"\npath = "../a.toml"\n')
        a = write("a.toml", '[source]\ntype = "config"\npath = "b/b.toml"\n')
        with pytest.raises(OtherError) as ex:
            Config.from_path(a).load()
        assert "a.toml -> " in str(ex.value)

    def test_same_document_twice_is_not_a_cycle(self, write):
        write("scores.csv", "id,score\n1,10\n")
        write("scores.toml", '[source]\ntype = "csv"\npath = "scores.csv"\n')
        cfg = write("twice.yaml", """
source:
  type: config
  path: scores.toml
  transforms:
    - type: concat
      other: {type: config, path: scores.toml}
""")
        assert Config.from_path(cfg).load().collect()["score"].to_list() == [10, 10]


class TestDocuments:
    def test_missing_document(self, tmp_path):
        with pytest.raises(PathError):
            Config.from_path(tmp_path / "nope.toml")

    def test_unsupported_suffix(self, write):
        with pytest.raises(OtherError):
            Config.from_path(write("pipeline.ini", "[source]\n"))

    def test_unknown_top_level_key(self, write, xy_csv):
        with pytest.raises(ValidationError):
            Config.from_path(write("bad.yaml", "source: {type: csv, path: a.csv}\nsinks: []\n"))

    def test_round_trip(self, write, xy_csv):
        cfg = write("round.yaml", """
source:
  type: csv
  path: a.csv
  schema: {x: Int64}
  transforms:
    - type: filter
      conditions:
        - {type: column, name: x, ops: [{type: gt, other: {type: literal, value: 1}}]}
      condition: {type: match, column: y, pattern: "^b"}
transforms:
  - type: with_columns
    columns:
      - type: condition
        when: {type: match, column: y, pattern: ar}
        then: {type: literal, value: hit}
        ops: [{type: alias, name: flag}]
  - {type: sort_by, by: [{column: x, descending: true}]}
exports:
  - {type: csv, folder: out, name: r, date_format: "_%Y"}
""")
        config = Config.from_path(cfg)
        document = config.to_document()
        assert document["source"]["type"] == "csv"
        assert document["source"]["schema"] == {"x": "Int64"}

        again = Config.model_validate(document)
        assert again == config
        assert again.load().explain() == config.load().explain()
        assert again.load().collect()["y"].to_list() == ["baz", "bar"]

        # plain dump keeps the flattened shapes and parses back too
        dumped = config.model_dump()
        assert dumped["source"]["type"] == "csv"
        assert "source" not in dumped["source"]
        chain = dumped["source"]["transforms"][0]["conditions"][0]
        assert (chain["type"], chain["name"], chain["ops"][0]["type"]) == ("column", "x", "gt")
        assert "base" not in chain
        assert Config.model_validate(dumped) == config


class TestSchemaInference:
    def test_infer_schema(self, write, xy_csv):
        config = Config.from_path(write("p.toml", SELECT_X))
        assert config.infer_schema() == {"x": "Int64"}

    def test_with_pinned_schema(self, write, xy_csv):
        config = Config.from_path(write("p.toml", SELECT_X))
        pinned = config.with_pinned_schema()
        assert pinned.source.source.schema_ == {"x": "Int64", "y": "String"}
        assert config.source.source.schema_ is None
        assert pinned.to_document()["source"]["schema"] == {"x": "Int64", "y": "String"}

    def test_inline_source_cannot_be_pinned(self):
        config = Config.model_validate({"source": {"type": "inline", "columns": [{"name": "a", "values": [1]}]}})
        with pytest.raises(OtherError):
            config.with_pinned_schema()


def test_json_schema_describes_the_document():
    schema = Config.json_schema()
    assert set(schema["properties"]) == {"source", "transforms", "exports"}
    assert "ExpressionChain" in schema["$defs"]
