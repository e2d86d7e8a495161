"""
Operations that modify an incoming polars ``Expr``.

An operation never stands alone: it is one step of an ``ExpressionChain`` and
receives the result of the previous step (or of the chain's base expression).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Annotated, List, Literal, Optional, Union

import polars as pl
from pydantic import BaseModel, ConfigDict, Field

from lazypipe.common.dtypes import DataTypeName, parse_dtype
from lazypipe.expr.logical import fold_onto

if TYPE_CHECKING:
    from lazypipe.expr.chain import ExpressionChain

__all__ = ["Op", "OpItem", "StrOpItem", "ListOpItem", "StructOpItem"]


class Op(BaseModel, ABC):
    """An operation applied to the expression produced by the previous step."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @abstractmethod
    def apply(self, expr: pl.Expr) -> pl.Expr:
        ...


# ============================================================================
# Structural
# ============================================================================

class Alias(Op):
    type: Literal["alias"] = "alias"
    name: str

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.alias(self.name)


class Cast(Op):
    type: Literal["cast"] = "cast"
    dtype: DataTypeName
    strict: bool = True

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.cast(parse_dtype(self.dtype), strict=self.strict)


class ExtractGroups(Op):
    """Extract the capture groups of a regex into a struct (one field per group)."""
    type: Literal["extract_groups"] = "extract_groups"
    pattern: str

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.extract_groups(self.pattern)


class DropNull(Op):
    type: Literal["drop_null"] = "drop_null"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.drop_nulls()


class FillNull(Op):
    type: Literal["fill_null"] = "fill_null"
    value: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.fill_null(self.value.evaluate())


# ============================================================================
# Predicates
# ============================================================================

class Contains(Op):
    """Check if string values contain the given regex (or literal, when literal=true)."""
    type: Literal["contains"] = "contains"
    pattern: str
    literal: bool = False

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.contains(self.pattern, literal=self.literal)


class IsNull(Op):
    """``is_null`` when value is true, ``is_not_null`` otherwise."""
    type: Literal["is_null"] = "is_null"
    value: bool = True

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.is_null() if self.value else expr.is_not_null()


class Eq(Op):
    type: Literal["eq"] = "eq"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.eq(self.other.evaluate())


class Neq(Op):
    type: Literal["neq"] = "neq"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.ne(self.other.evaluate())


class Gt(Op):
    type: Literal["gt"] = "gt"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.gt(self.other.evaluate())


class Lt(Op):
    type: Literal["lt"] = "lt"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.lt(self.other.evaluate())


class GtEq(Op):
    type: Literal["gt_eq"] = "gt_eq"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.ge(self.other.evaluate())


class LtEq(Op):
    type: Literal["lt_eq"] = "lt_eq"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.le(self.other.evaluate())


# ============================================================================
# Logical folds (any number of chains; the incoming expression seeds the fold)
# ============================================================================

class And(Op):
    """Chain the incoming expression into a logical AND with each chain, in order."""
    type: Literal["and"] = "and"
    chains: List[ExpressionChain]

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return fold_onto("and", expr, [c.evaluate() for c in self.chains])


class Or(Op):
    """Chain the incoming expression into a logical OR with each chain, in order."""
    type: Literal["or"] = "or"
    chains: List[ExpressionChain]

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return fold_onto("or", expr, [c.evaluate() for c in self.chains])


# ============================================================================
# Arithmetic
# ============================================================================

class Add(Op):
    type: Literal["add"] = "add"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.add(self.other.evaluate())


class Sub(Op):
    type: Literal["sub"] = "sub"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.sub(self.other.evaluate())


class Mul(Op):
    type: Literal["mul"] = "mul"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.mul(self.other.evaluate())


class Div(Op):
    """True division."""
    type: Literal["div"] = "div"
    other: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.truediv(self.other.evaluate())


# ============================================================================
# String namespace
# ============================================================================

class ToLowercase(Op):
    type: Literal["to_lowercase"] = "to_lowercase"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.to_lowercase()


class ToUppercase(Op):
    type: Literal["to_uppercase"] = "to_uppercase"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.to_uppercase()


class StripChars(Op):
    """Strip the given characters (whitespace when omitted) from both ends."""
    type: Literal["strip_chars"] = "strip_chars"
    characters: Optional[str] = None

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.strip_chars(self.characters)


class Replace(Op):
    type: Literal["replace"] = "replace"
    pattern: str
    value: str
    literal: bool = False
    all: bool = True

    def apply(self, expr: pl.Expr) -> pl.Expr:
        if self.all:
            return expr.str.replace_all(self.pattern, self.value, literal=self.literal)
        return expr.str.replace(self.pattern, self.value, literal=self.literal)


class StrSlice(Op):
    type: Literal["slice"] = "slice"
    offset: int
    length: Optional[int] = None

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.slice(self.offset, self.length)


class Split(Op):
    type: Literal["split"] = "split"
    by: str
    inclusive: bool = False

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.split(self.by, inclusive=self.inclusive)


class StartsWith(Op):
    type: Literal["starts_with"] = "starts_with"
    prefix: str

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.starts_with(self.prefix)


class EndsWith(Op):
    type: Literal["ends_with"] = "ends_with"
    suffix: str

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.ends_with(self.suffix)


class LenChars(Op):
    type: Literal["len_chars"] = "len_chars"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.len_chars()


class ToDate(Op):
    type: Literal["to_date"] = "to_date"
    format: Optional[str] = None
    strict: bool = True

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.to_date(self.format, strict=self.strict)


class ToDatetime(Op):
    type: Literal["to_datetime"] = "to_datetime"
    format: Optional[str] = None
    strict: bool = True

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.to_datetime(self.format, strict=self.strict)


class JsonPathMatch(Op):
    type: Literal["json_path_match"] = "json_path_match"
    path: str

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.json_path_match(self.path)


class PadStart(Op):
    type: Literal["pad_start"] = "pad_start"
    length: int = Field(..., ge=0)
    fill_char: str = Field(" ", min_length=1, max_length=1)

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.pad_start(self.length, self.fill_char)


class PadEnd(Op):
    type: Literal["pad_end"] = "pad_end"
    length: int = Field(..., ge=0)
    fill_char: str = Field(" ", min_length=1, max_length=1)

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.pad_end(self.length, self.fill_char)


class Zfill(Op):
    type: Literal["zfill"] = "zfill"
    length: int = Field(..., ge=0)

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.zfill(self.length)


class Extract(Op):
    """Extract one capture group (1-based; 0 is the whole match)."""
    type: Literal["extract"] = "extract"
    pattern: str
    group: int = Field(1, ge=0)

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.extract(self.pattern, self.group)


class ExtractAll(Op):
    type: Literal["extract_all"] = "extract_all"
    pattern: str

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.str.extract_all(self.pattern)


StrOpItem = Annotated[
    Union[
        ToLowercase,
        ToUppercase,
        StripChars,
        Replace,
        StrSlice,
        Split,
        StartsWith,
        EndsWith,
        LenChars,
        ToDate,
        ToDatetime,
        JsonPathMatch,
        PadStart,
        PadEnd,
        Zfill,
        Extract,
        ExtractAll,
    ],
    Field(discriminator="type"),
]


class Str(Op):
    """String namespace: ``{type = "str", op = {type = "to_lowercase"}}``."""
    type: Literal["str"] = "str"
    op: StrOpItem

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return self.op.apply(expr)


# ============================================================================
# List namespace
# ============================================================================

class ListGet(Op):
    type: Literal["get"] = "get"
    index: int
    null_on_oob: bool = True

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.get(self.index, null_on_oob=self.null_on_oob)


class ListLen(Op):
    type: Literal["len"] = "len"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.len()


class ListJoin(Op):
    type: Literal["join"] = "join"
    separator: str
    ignore_nulls: bool = True

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.join(self.separator, ignore_nulls=self.ignore_nulls)


class ListFirst(Op):
    type: Literal["first"] = "first"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.first()


class ListLast(Op):
    type: Literal["last"] = "last"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.last()


class ListContains(Op):
    type: Literal["contains"] = "contains"
    item: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.contains(self.item.evaluate())


class ListUnique(Op):
    type: Literal["unique"] = "unique"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.unique()


class ListSort(Op):
    type: Literal["sort"] = "sort"
    descending: bool = False

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.sort(descending=self.descending)


class ListEval(Op):
    """Run an expression over every element; use ``{type = "element"}`` for the element."""
    type: Literal["eval"] = "eval"
    expr: ExpressionChain

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.eval(self.expr.evaluate())


class ListToStruct(Op):
    type: Literal["to_struct"] = "to_struct"
    fields: List[str] = Field(..., min_length=1)

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.list.to_struct(fields=list(self.fields))


ListOpItem = Annotated[
    Union[
        ListGet,
        ListLen,
        ListJoin,
        ListFirst,
        ListLast,
        ListContains,
        ListUnique,
        ListSort,
        ListEval,
        ListToStruct,
    ],
    Field(discriminator="type"),
]


class ListOp(Op):
    """List namespace: ``{type = "list", op = {type = "get", index = 0}}``."""
    type: Literal["list"] = "list"
    op: ListOpItem

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return self.op.apply(expr)


# ============================================================================
# Struct namespace
# ============================================================================

class StructField(Op):
    type: Literal["field"] = "field"
    name: str

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.struct.field(self.name)


class RenameFields(Op):
    type: Literal["rename_fields"] = "rename_fields"
    names: List[str]

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.struct.rename_fields(list(self.names))


class JsonEncode(Op):
    type: Literal["json_encode"] = "json_encode"

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.struct.json_encode()


class WithFields(Op):
    type: Literal["with_fields"] = "with_fields"
    fields: List[ExpressionChain] = Field(..., min_length=1)

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return expr.struct.with_fields([f.evaluate() for f in self.fields])


StructOpItem = Annotated[
    Union[StructField, RenameFields, JsonEncode, WithFields],
    Field(discriminator="type"),
]


class StructOp(Op):
    """Struct namespace: ``{type = "struct", op = {type = "field", name = "a"}}``."""
    type: Literal["struct"] = "struct"
    op: StructOpItem

    def apply(self, expr: pl.Expr) -> pl.Expr:
        return self.op.apply(expr)


OpItem = Annotated[
    Union[
        Alias,
        Cast,
        ExtractGroups,
        DropNull,
        FillNull,
        Contains,
        IsNull,
        Eq,
        Neq,
        Gt,
        Lt,
        GtEq,
        LtEq,
        And,
        Or,
        Add,
        Sub,
        Mul,
        Div,
        Str,
        ListOp,
        StructOp,
    ],
    Field(discriminator="type"),
]
