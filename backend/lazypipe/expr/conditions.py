"""
Standalone condition tree, used by the ``filter`` transform's ``condition`` key.

    condition = {type = "and", conditions = [
        {type = "match", column = "a", pattern = "foo"},
        {type = "not", condition = {type = "match", column = "b", pattern = "bar"}},
    ]}

``and`` / ``or`` share the arity rule of the expression AST: at least two operands.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Annotated, List, Literal, Union

import polars as pl
from pydantic import BaseModel, ConfigDict, Field, field_validator

from lazypipe.expr.chain import ExpressionChain
from lazypipe.expr.logical import fold, validate_operands

__all__ = ["Condition", "ConditionItem"]


class Condition(BaseModel, ABC):
    model_config = ConfigDict(extra="forbid", frozen=True)

    @abstractmethod
    def evaluate(self) -> pl.Expr:
        ...


class MatchCondition(Condition):
    type: Literal["match"] = "match"
    column: str
    pattern: str

    def evaluate(self) -> pl.Expr:
        return pl.col(self.column).str.contains(self.pattern)


class AndCondition(Condition):
    type: Literal["and"] = "and"
    conditions: List[ConditionItem]

    @field_validator("conditions")
    @classmethod
    def _at_least_two(cls, v):
        return validate_operands("and", v)

    def evaluate(self) -> pl.Expr:
        return fold("and", [c.evaluate() for c in self.conditions])


class OrCondition(Condition):
    type: Literal["or"] = "or"
    conditions: List[ConditionItem]

    @field_validator("conditions")
    @classmethod
    def _at_least_two(cls, v):
        return validate_operands("or", v)

    def evaluate(self) -> pl.Expr:
        return fold("or", [c.evaluate() for c in self.conditions])


class NotCondition(Condition):
    type: Literal["not"] = "not"
    condition: ConditionItem

    def evaluate(self) -> pl.Expr:
        return ~self.condition.evaluate()


class ExprCondition(Condition):
    """Any boolean expression chain."""
    type: Literal["expr"] = "expr"
    expr: ExpressionChain

    def evaluate(self) -> pl.Expr:
        return self.expr.evaluate()


ConditionItem = Annotated[
    Union[MatchCondition, AndCondition, OrCondition, NotCondition, ExprCondition],
    Field(discriminator="type"),
]

for _model in (AndCondition, OrCondition, NotCondition):
    _model.model_rebuild()
