"""
Transforms and the Loader that binds them to a source.

A transform takes the accumulated plan and returns a new one; nothing is executed
until an export (or an explicit ``collect`` step) forces it. ``join`` and ``concat``
load a second, complete Loader as their right-hand side.

    [source]
    type = "csv"
    path = "data/*.csv"
    transforms = [
        {type = "filter", conditions = [{type = "match", column = "title", pattern = "^Foo"}]},
        {type = "select", columns = ["id", "title"]},
    ]
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Union

import polars as pl
import polars.selectors as cs
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    field_validator,
    model_serializer,
    model_validator,
)

from lazypipe.common.errors import EngineError
from lazypipe.common.logger import get_logger
from lazypipe.common.utils import dump_model
from lazypipe.expr import ExpressionChain
from lazypipe.expr.conditions import ConditionItem
from lazypipe.expr.logical import fold_onto
from lazypipe.io.sources import SourceItem

log = get_logger()

__all__ = ["Transform", "TransformItem", "Loader", "apply_transforms"]


def _as_list(v: Any) -> Any:
    return [v] if isinstance(v, str) else v


def _is_regex(name: str) -> bool:
    return name.startswith("^") and name.endswith("$")


def _selector(names: Sequence[str]):
    """Column selector for plain names and ``^...$`` regexes."""
    selected = None
    for name in names:
        s = cs.matches(name) if _is_regex(name) else cs.by_name(name)
        selected = s if selected is None else selected | s
    return selected


class Transform(BaseModel, ABC):
    model_config = ConfigDict(extra="forbid", frozen=True)

    @abstractmethod
    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        ...


# ============================================================================
# Column shaping
# ============================================================================

class Select(Transform):
    type: Literal["select"] = "select"
    columns: List[ExpressionChain] = Field(..., min_length=1)

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.select([c.evaluate() for c in self.columns])


class Drop(Transform):
    type: Literal["drop"] = "drop"
    columns: List[str] = Field(..., min_length=1)

    @field_validator("columns", mode="before")
    @classmethod
    def _single_name(cls, v):
        return _as_list(v)

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.drop(_selector(self.columns))


class Rename(Transform):
    """Rename by mapping and/or prefix every column (the prefix applies after the mapping)."""
    type: Literal["rename"] = "rename"
    columns: Optional[Dict[str, str]] = None
    prefix: Optional[str] = None

    @model_validator(mode="after")
    def _something_to_do(self) -> "Rename":
        if not self.columns and not self.prefix:
            raise ValueError("rename needs 'columns' and/or 'prefix'")
        return self

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        if self.columns:
            lf = lf.rename(self.columns)
        if self.prefix:
            lf = lf.select(pl.all().name.prefix(self.prefix))
        return lf


class Unnest(Transform):
    """Expand struct columns into one column per field."""
    type: Literal["unnest"] = "unnest"
    columns: List[str] = Field(..., min_length=1)

    @field_validator("columns", mode="before")
    @classmethod
    def _single_name(cls, v):
        return _as_list(v)

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.unnest(_selector(self.columns))


class Set(Transform):
    """Append (or replace) one computed column."""
    type: Literal["set"] = "set"
    expr: ExpressionChain

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.with_columns(self.expr.evaluate())


class WithColumns(Transform):
    type: Literal["with_columns"] = "with_columns"
    columns: List[ExpressionChain] = Field(..., min_length=1)

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.with_columns([c.evaluate() for c in self.columns])


class Explode(Transform):
    type: Literal["explode"] = "explode"
    columns: List[str] = Field(..., min_length=1)

    @field_validator("columns", mode="before")
    @classmethod
    def _single_name(cls, v):
        return _as_list(v)

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.explode(pl.col(self.columns))


# ============================================================================
# Rows
# ============================================================================

class Filter(Transform):
    """Keep rows for which every condition holds (chains first, then the condition tree)."""
    type: Literal["filter"] = "filter"
    conditions: Optional[List[ExpressionChain]] = None
    condition: Optional[ConditionItem] = None

    @model_validator(mode="after")
    def _has_condition(self) -> "Filter":
        if not self.conditions and self.condition is None:
            raise ValueError("filter needs 'conditions' and/or 'condition'")
        return self

    def predicate(self) -> pl.Expr:
        exprs = [c.evaluate() for c in self.conditions or []]
        if self.condition is not None:
            exprs.append(self.condition.evaluate())
        return fold_onto("and", exprs[0], exprs[1:])

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.filter(self.predicate())


class Extract(Transform):
    """
    Extract the capture groups of ``pattern`` from ``column`` into new columns, one per
    group (named groups keep their names). With ``filter = true`` rows that do not
    match are dropped first.
    """
    type: Literal["extract"] = "extract"
    column: str
    pattern: str
    filter: bool = False

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        source = pl.col(self.column)
        if self.filter:
            lf = lf.filter(source.str.contains(self.pattern))
        groups = f"_{self.column}_groups"
        return lf.with_columns(source.str.extract_groups(self.pattern).alias(groups)).unnest(groups)


class SortKey(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    column: ExpressionChain
    descending: bool = False


class SortBy(Transform):
    type: Literal["sort_by"] = "sort_by"
    by: List[SortKey] = Field(..., min_length=1)

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.sort(
            [k.column.evaluate() for k in self.by],
            descending=[k.descending for k in self.by],
        )


class DropDuplicates(Transform):
    type: Literal["drop_duplicates"] = "drop_duplicates"
    subset: Optional[List[str]] = None
    keep: Literal["first", "last", "any", "none"] = "any"
    maintain_order: bool = False

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.unique(subset=self.subset, keep=self.keep, maintain_order=self.maintain_order)


class Collect(Transform):
    """Materialise the plan in memory before continuing."""
    type: Literal["collect"] = "collect"

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.collect().lazy()


# ============================================================================
# Combining
# ============================================================================

class Join(Transform):
    type: Literal["join"] = "join"
    right: Loader
    left_on: List[ExpressionChain] = Field(..., min_length=1)
    right_on: List[ExpressionChain] = Field(..., min_length=1)
    how: Literal["inner", "left", "right", "full", "anti", "semi"] = "inner"
    suffix: str = "_right"

    @model_validator(mode="after")
    def _same_key_count(self) -> "Join":
        if len(self.left_on) != len(self.right_on):
            raise ValueError(
                f"join needs as many left_on as right_on keys "
                f"(got {len(self.left_on)} and {len(self.right_on)})"
            )
        return self

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.join(
            self.right.load(),
            left_on=[k.evaluate() for k in self.left_on],
            right_on=[k.evaluate() for k in self.right_on],
            how=self.how,
            suffix=self.suffix,
        )


class GroupBy(Transform):
    type: Literal["group_by"] = "group_by"
    keys: List[ExpressionChain] = Field(..., min_length=1)
    aggregations: List[ExpressionChain] = Field(..., min_length=1)
    maintain_order: bool = False

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return lf.group_by(
            [k.evaluate() for k in self.keys], maintain_order=self.maintain_order
        ).agg([a.evaluate() for a in self.aggregations])


class Concat(Transform):
    type: Literal["concat"] = "concat"
    other: Loader
    how: Literal[
        "vertical", "vertical_relaxed", "horizontal", "diagonal", "diagonal_relaxed"
    ] = "vertical"

    def apply(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        return pl.concat([lf, self.other.load()], how=self.how)


TransformItem = Annotated[
    Union[
        Select,
        Drop,
        Rename,
        Filter,
        Extract,
        Unnest,
        SortBy,
        DropDuplicates,
        Join,
        Set,
        WithColumns,
        Explode,
        Collect,
        GroupBy,
        Concat,
    ],
    Field(discriminator="type"),
]


def apply_transforms(lf: pl.LazyFrame, transforms: Sequence[Transform]) -> pl.LazyFrame:
    """Fold transforms over a plan in order; polars failures name the offending step."""
    for i, t in enumerate(transforms):
        log.transform_apply(t.type, i)
        try:
            lf = t.apply(lf)
        except pl.exceptions.PolarsError as exc:
            raise EngineError(f"transform #{i} '{t.type}'", str(exc)) from exc
    return lf


class Loader(BaseModel):
    """
    A source plus its own transforms. Written flattened in documents:

        {type = "csv", path = "a.csv", transforms = [...]}
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: SourceItem
    transforms: List[TransformItem] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _unflatten(cls, data: Any) -> Any:
        if isinstance(data, dict) and "source" not in data and "type" in data:
            source = dict(data)
            transforms = source.pop("transforms", [])
            return {"source": source, "transforms": transforms}
        return data

    @model_serializer(mode="plain")
    def _flatten(self, info: SerializationInfo) -> Any:
        source = dump_model(self.source, info)
        if not self.transforms:
            return source
        return {**source, "transforms": [dump_model(t, info) for t in self.transforms]}

    def load(self) -> pl.LazyFrame:
        return apply_transforms(self.source.load(), self.transforms)


for _model in (Join, Concat, Loader):
    _model.model_rebuild()
