from __future__ import annotations
# chain must be imported before anything evaluates an expression: it completes the
# models that refer back to ExpressionChain.
from .chain import ExpressionChain
from .conditions import Condition, ConditionItem
from .expressions import Expression, ExpressionItem
from .ops import Op, OpItem

__all__ = [
    "ExpressionChain",
    "Condition",
    "ConditionItem",
    "Expression",
    "ExpressionItem",
    "Op",
    "OpItem",
]
