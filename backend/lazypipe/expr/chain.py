"""
ExpressionChain: a base expression followed by operations applied in order.

Written in documents as any of

    "title"                                          # column shorthand
    {base = {type = "column", name = "title"}, ops = [...]}
    {type = "column", name = "title", ops = [...]}   # flattened

and always serialised in the flattened form.
"""
from __future__ import annotations

from typing import Any, List

import polars as pl
from pydantic import BaseModel, ConfigDict, Field, SerializationInfo, model_serializer, model_validator

from lazypipe.common.utils import dump_model
from lazypipe.expr import expressions as _expressions
from lazypipe.expr import ops as _ops
from lazypipe.expr.expressions import Expression, ExpressionItem
from lazypipe.expr.ops import OpItem

__all__ = ["ExpressionChain"]


class ExpressionChain(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base: ExpressionItem = Field(..., description="Expression the operations start from")
    ops: List[OpItem] = Field(default_factory=list, description="Operations, applied in order")

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"base": {"type": "column", "name": data}}
        if isinstance(data, Expression):
            return {"base": data}
        if isinstance(data, dict) and "base" not in data and "type" in data:
            base = dict(data)
            ops = base.pop("ops", [])
            return {"base": base, "ops": ops}
        return data

    @model_serializer(mode="plain")
    def _flatten(self, info: SerializationInfo) -> Any:
        base = dump_model(self.base, info)
        if not self.ops:
            return base
        return {**base, "ops": [dump_model(op, info) for op in self.ops]}

    def evaluate(self) -> pl.Expr:
        expr = self.base.evaluate()
        for op in self.ops:
            expr = op.apply(expr)
        return expr


# Expressions and operations refer back to ExpressionChain; finish their schemas now
# that it exists.
_NAMESPACE = {"ExpressionChain": ExpressionChain}

for _module in (_expressions, _ops):
    setattr(_module, "ExpressionChain", ExpressionChain)
    for _obj in list(vars(_module).values()):
        if (
            isinstance(_obj, type)
            and issubclass(_obj, BaseModel)
            and _obj.__module__ == _module.__name__
            and not _obj.__pydantic_complete__
        ):
            _obj.model_rebuild(_types_namespace=_NAMESPACE)

ExpressionChain.model_rebuild()
