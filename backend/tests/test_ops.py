import polars as pl
import pytest
from pydantic import ValidationError

from lazypipe.expr import ExpressionChain


def chain(data) -> ExpressionChain:
    return ExpressionChain.model_validate(data)


def _eval(data, df):
    return df.select(chain(data).evaluate().alias("out"))["out"].to_list()


def lit(value):
    return {"type": "literal", "value": value}


@pytest.fixture
def df():
    return pl.DataFrame({
        "x": [1, 2, None],
        "s": ["Foo-1", "bar-22", None],
        "l": [["a", "b"], ["c"], []],
    })


class TestChainShape:
    def test_bare_string_is_a_column(self):
        c = chain("x")
        assert c.ops == []
        assert c.evaluate().meta.eq(pl.col("x"))

    def test_empty_ops_evaluates_like_the_base(self):
        c = chain({"base": {"type": "column", "name": "x"}, "ops": []})
        assert c.evaluate().meta.eq(c.base.evaluate())

    def test_ops_apply_in_list_order(self, df):
        c = chain({"type": "column", "name": "x", "ops": [
            {"type": "add", "other": lit(1)},
            {"type": "mul", "other": lit(2)},
        ]})
        assert c.evaluate().meta.eq(pl.col("x").add(pl.lit(1)).mul(pl.lit(2)))
        assert df.select(c.evaluate())["x"].to_list() == [4, 6, None]

    def test_nested_and_flattened_forms_are_equal(self):
        flat = chain({"type": "column", "name": "x", "ops": [{"type": "alias", "name": "y"}]})
        nested = chain({"base": {"type": "column", "name": "x"}, "ops": [{"type": "alias", "name": "y"}]})
        assert flat == nested

    def test_serialises_flattened(self):
        c = chain({"base": {"type": "column", "name": "x"}, "ops": [{"type": "alias", "name": "y"}]})
        assert c.model_dump() == {"type": "column", "name": "x", "ops": [{"type": "alias", "name": "y"}]}
        assert chain("x").model_dump() == {"type": "column", "name": "x"}

    def test_unknown_op_is_rejected(self):
        with pytest.raises(ValidationError):
            chain({"type": "column", "name": "x", "ops": [{"type": "explode_everything"}]})


class TestStructuralOps:
    def test_alias_cast_fill_null(self, df):
        out = df.select(chain({"type": "column", "name": "x", "ops": [
            {"type": "fill_null", "value": lit(0)},
            {"type": "cast", "dtype": "String"},
            {"type": "alias", "name": "x_str"},
        ]}).evaluate())
        assert out.columns == ["x_str"]
        assert out["x_str"].to_list() == ["1", "2", "0"]

    def test_cast_to_unknown_dtype_fails_to_parse(self):
        with pytest.raises(ValidationError) as ex:
            chain({"type": "column", "name": "x", "ops": [{"type": "cast", "dtype": "Int65"}]})
        assert "unknown datatype" in str(ex.value)

    def test_drop_null(self, df):
        assert _eval({"type": "column", "name": "x", "ops": [{"type": "drop_null"}]}, df) == [1, 2]

    def test_extract_groups_then_struct_field(self, df):
        assert _eval({"type": "column", "name": "s", "ops": [
            {"type": "extract_groups", "pattern": r"(?P<word>[a-zA-Z]+)-(?P<num>\d+)"},
            {"type": "struct", "op": {"type": "field", "name": "num"}},
        ]}, df) == ["1", "22", None]


class TestPredicateOps:
    def test_comparisons(self, df):
        def cmp(kind):
            return _eval({"type": "column", "name": "x", "ops": [{"type": kind, "other": lit(2)}]}, df)

        assert cmp("eq") == [False, True, None]
        assert cmp("neq") == [True, False, None]
        assert cmp("gt") == [False, False, None]
        assert cmp("lt") == [True, False, None]
        assert cmp("gt_eq") == [False, True, None]
        assert cmp("lt_eq") == [True, True, None]

    def test_is_null_both_ways(self, df):
        assert _eval({"type": "column", "name": "x", "ops": [{"type": "is_null"}]}, df) == [False, False, True]
        assert _eval({"type": "column", "name": "x", "ops": [{"type": "is_null", "value": False}]}, df) == [True, True, False]

    def test_contains_regex_and_literal(self, df):
        assert _eval({"type": "column", "name": "s", "ops": [{"type": "contains", "pattern": "^[a-z]"}]}, df) == [False, True, None]
        assert _eval({"type": "column", "name": "s", "ops": [{"type": "contains", "pattern": "-", "literal": True}]}, df) == [True, True, None]

    def test_op_and_or_fold_onto_the_incoming_expression(self):
        df = pl.DataFrame({"a": [True, True, False], "b": [True, False, False]})
        assert _eval({"type": "column", "name": "a", "ops": [{"type": "and", "chains": ["b"]}]}, df) == [True, False, False]
        assert _eval({"type": "column", "name": "a", "ops": [{"type": "or", "chains": ["b"]}]}, df) == [True, True, False]
        # a single chain (or none) is fine here, unlike the and/or expressions
        assert chain({"type": "column", "name": "a", "ops": [{"type": "and", "chains": []}]}).evaluate().meta.eq(pl.col("a"))


class TestArithmeticOps:
    def test_sub_and_div(self, df):
        assert _eval({"type": "column", "name": "x", "ops": [{"type": "sub", "other": lit(1)}]}, df) == [0, 1, None]
        assert _eval({"type": "column", "name": "x", "ops": [{"type": "div", "other": lit(2)}]}, df) == [0.5, 1.0, None]

    def test_other_may_be_a_column(self, df):
        assert _eval({"type": "column", "name": "x", "ops": [{"type": "add", "other": "x"}]}, df) == [2, 4, None]


class TestNamespacedOps:
    def test_str_ops(self, df):
        def s(op):
            return _eval({"type": "column", "name": "s", "ops": [{"type": "str", "op": op}]}, df)

        assert s({"type": "to_uppercase"}) == ["FOO-1", "BAR-22", None]
        assert s({"type": "to_lowercase"}) == ["foo-1", "bar-22", None]
        assert s({"type": "replace", "pattern": r"\d", "value": "#"}) == ["Foo-#", "bar-##", None]
        assert s({"type": "replace", "pattern": r"\d", "value": "#", "all": False}) == ["Foo-#", "bar-#2", None]
        assert s({"type": "slice", "offset": 0, "length": 3}) == ["Foo", "bar", None]
        assert s({"type": "starts_with", "prefix": "bar"}) == [False, True, None]
        assert s({"type": "ends_with", "suffix": "22"}) == [False, True, None]
        assert s({"type": "len_chars"}) == [5, 6, None]
        assert s({"type": "extract", "pattern": r"(\d+)"}) == ["1", "22", None]
        assert s({"type": "pad_start", "length": 6, "fill_char": "*"}) == ["*Foo-1", "bar-22", None]
        assert s({"type": "split", "by": "-"}) == [["Foo", "1"], ["bar", "22"], None]

    def test_str_to_date(self):
        df = pl.DataFrame({"d": ["2024-01-31", "2024-02-29"]})
        out = df.select(chain({"type": "column", "name": "d", "ops": [
            {"type": "str", "op": {"type": "to_date", "format": "%Y-%m-%d"}},
        ]}).evaluate())
        assert out.schema["d"] == pl.Date

    def test_list_ops(self, df):
        def lst(op):
            return _eval({"type": "column", "name": "l", "ops": [{"type": "list", "op": op}]}, df)

        assert lst({"type": "len"}) == [2, 1, 0]
        assert lst({"type": "get", "index": 0}) == ["a", "c", None]
        assert lst({"type": "join", "separator": "+"}) == ["a+b", "c", ""]
        assert lst({"type": "contains", "item": lit("c")}) == [False, True, False]

    def test_list_eval_uses_element(self, df):
        assert _eval({"type": "column", "name": "l", "ops": [
            {"type": "list", "op": {"type": "eval", "expr": {"type": "element", "ops": [
                {"type": "str", "op": {"type": "to_uppercase"}},
            ]}}},
        ]}, df) == [["A", "B"], ["C"], []]

    def test_struct_ops(self):
        df = pl.DataFrame({"p": [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]})
        assert _eval({"type": "column", "name": "p", "ops": [
            {"type": "struct", "op": {"type": "json_encode"}},
        ]}, df) == ['{"a":1,"b":"x"}', '{"a":2,"b":"y"}']
        out = df.select(chain({"type": "column", "name": "p", "ops": [
            {"type": "struct", "op": {"type": "rename_fields", "names": ["c", "d"]}},
        ]}).evaluate())
        assert out.schema["p"] == pl.Struct({"c": pl.Int64, "d": pl.String})
