"""
Expressions that evaluate to a polars ``Expr``.

Every node is tagged by ``type`` in documents:

    {type = "column", name = "title"}
    {type = "match", column = "title", pattern = "^Foo"}
    {type = "and", conditions = [...]}        # 2+ operands
    {type = "condition", when = ..., then = ..., otherwise = ...}

Evaluation is pure: it builds an expression and never touches data.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Annotated, List, Literal, Optional, Union

import polars as pl
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, field_validator

from lazypipe.common.dtypes import DataTypeName, parse_dtype
from lazypipe.expr.logical import fold, validate_operands

if TYPE_CHECKING:
    from lazypipe.expr.chain import ExpressionChain

__all__ = [
    "Expression",
    "ExpressionItem",
    "Column",
    "Lit",
    "Null",
    "Len",
    "Element",
    "Match",
    "And",
    "Or",
    "Not",
    "AsStruct",
    "IntRange",
    "ConcatStr",
    "Conditional",
]


class Expression(BaseModel, ABC):
    """A node that evaluates to a polars expression."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @abstractmethod
    def evaluate(self) -> pl.Expr:
        ...


class Column(Expression):
    """Reference a column by name (``pl.col``)."""
    type: Literal["column"] = "column"
    name: str

    def evaluate(self) -> pl.Expr:
        return pl.col(self.name)


class Lit(Expression):
    """A literal scalar value."""
    type: Literal["literal"] = "literal"
    value: Union[StrictBool, StrictInt, StrictFloat, str]

    def evaluate(self) -> pl.Expr:
        return pl.lit(self.value)


class Null(Expression):
    type: Literal["null"] = "null"

    def evaluate(self) -> pl.Expr:
        return pl.lit(None)


class Len(Expression):
    """Number of rows in the current context."""
    type: Literal["len"] = "len"

    def evaluate(self) -> pl.Expr:
        return pl.len()


class Element(Expression):
    """The implicit loop variable inside a ``list`` ``eval`` operation."""
    type: Literal["element"] = "element"

    def evaluate(self) -> pl.Expr:
        return pl.element()


class Match(Expression):
    """Match a regex against a string column (``col(...).str.contains(...)``)."""
    type: Literal["match"] = "match"
    column: str
    pattern: str

    def evaluate(self) -> pl.Expr:
        return pl.col(self.column).str.contains(self.pattern)


class And(Expression):
    """Logical AND of two or more conditions."""
    type: Literal["and"] = "and"
    conditions: List[ExpressionChain]

    @field_validator("conditions")
    @classmethod
    def _at_least_two(cls, v):
        return validate_operands("and", v)

    def evaluate(self) -> pl.Expr:
        return fold("and", [c.evaluate() for c in self.conditions])


class Or(Expression):
    """Logical OR of two or more conditions."""
    type: Literal["or"] = "or"
    conditions: List[ExpressionChain]

    @field_validator("conditions")
    @classmethod
    def _at_least_two(cls, v):
        return validate_operands("or", v)

    def evaluate(self) -> pl.Expr:
        return fold("or", [c.evaluate() for c in self.conditions])


class Not(Expression):
    type: Literal["not"] = "not"
    expr: ExpressionChain

    def evaluate(self) -> pl.Expr:
        return ~self.expr.evaluate()


class AsStruct(Expression):
    """Pack one or more expressions into a struct column."""
    type: Literal["as_struct"] = "as_struct"
    fields: List[ExpressionChain] = Field(..., min_length=1)

    def evaluate(self) -> pl.Expr:
        return pl.struct([f.evaluate() for f in self.fields])


class IntRange(Expression):
    """
    A running integer: start, start + step, ... with one value per row of the
    current context.
    """
    type: Literal["int_range"] = "int_range"
    start: int = 0
    step: int = 1
    dtype: DataTypeName = "Int64"

    @field_validator("step")
    @classmethod
    def _non_zero_step(cls, v: int) -> int:
        if v == 0:
            raise ValueError("int_range step must not be 0")
        return v

    def evaluate(self) -> pl.Expr:
        end = pl.len().cast(pl.Int64) * self.step + self.start
        return pl.int_range(self.start, end, self.step, dtype=parse_dtype(self.dtype))


class ConcatStr(Expression):
    """Horizontally concatenate string representations of several expressions."""
    type: Literal["concat_str"] = "concat_str"
    columns: List[ExpressionChain] = Field(..., min_length=1)
    separator: str = ""
    ignore_nulls: bool = False

    def evaluate(self) -> pl.Expr:
        return pl.concat_str(
            [c.evaluate() for c in self.columns],
            separator=self.separator,
            ignore_nulls=self.ignore_nulls,
        )


class Conditional(Expression):
    """when / then / otherwise; a missing ``otherwise`` yields null."""
    type: Literal["condition"] = "condition"
    when: ExpressionChain
    then: ExpressionChain
    otherwise: Optional[ExpressionChain] = None

    def evaluate(self) -> pl.Expr:
        expr = pl.when(self.when.evaluate()).then(self.then.evaluate())
        if self.otherwise is None:
            return expr
        return expr.otherwise(self.otherwise.evaluate())


ExpressionItem = Annotated[
    Union[
        Column,
        Lit,
        Null,
        Len,
        Element,
        Match,
        And,
        Or,
        Not,
        AsStruct,
        IntRange,
        ConcatStr,
        Conditional,
    ],
    Field(discriminator="type"),
]
