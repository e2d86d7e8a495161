"""
Logical AND/OR construction shared by the expression AST and the standalone
condition tree.

Operand lists arrive complete (from document deserialization) and are validated
once; after that, folding never has to deal with fewer than two operands.
"""
from __future__ import annotations

from typing import List, Literal, Sequence, TypeVar

import polars as pl

from lazypipe.common.errors import ArityError

__all__ = ["LogicalKind", "MIN_OPERANDS", "validate_operands", "fold", "fold_onto"]

LogicalKind = Literal["and", "or"]

MIN_OPERANDS = 2

T = TypeVar("T")


def validate_operands(kind: LogicalKind, operands: Sequence[T]) -> List[T]:
    """Return operands as a list, or raise ArityError when there are fewer than two."""
    if len(operands) < MIN_OPERANDS:
        raise ArityError(kind, len(operands), MIN_OPERANDS)
    return list(operands)


def _combine(kind: LogicalKind, left: pl.Expr, right: pl.Expr) -> pl.Expr:
    if kind == "and":
        return left & right
    if kind == "or":
        return left | right
    raise ValueError(f"Unknown logical operator: {kind}")


def fold(kind: LogicalKind, exprs: Sequence[pl.Expr]) -> pl.Expr:
    """Left fold: the first operand seeds the accumulator, the rest combine in order."""
    exprs = validate_operands(kind, exprs)
    combined = exprs[0]
    for e in exprs[1:]:
        combined = _combine(kind, combined, e)
    return combined


def fold_onto(kind: LogicalKind, seed: pl.Expr, exprs: Sequence[pl.Expr]) -> pl.Expr:
    """Fold exprs onto an existing expression; any number of operands (including none)."""
    combined = seed
    for e in exprs:
        combined = _combine(kind, combined, e)
    return combined
