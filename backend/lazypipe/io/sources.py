"""
Sources: where the rows of a Loader come from.

File paths are resolved while the document is validated, against the directory of the
document being parsed (passed as ``context={"base_dir": ...}``), and must exist. A
``config`` source loads another whole document, whose own relative paths resolve
against that document's directory.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextvars import ContextVar
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

import polars as pl
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    ValidationInfo,
    field_validator,
    model_validator,
)

from lazypipe.common.dtypes import DataTypeName, parse_dtype, parse_schema
from lazypipe.common.errors import EngineError, OtherError
from lazypipe.common.fileio import base_dir_from, canonical_path, canonical_paths
from lazypipe.common.logger import get_logger

log = get_logger()

__all__ = [
    "Source",
    "SourceItem",
    "FileSource",
    "CsvSource",
    "JsonLineSource",
    "JsonSource",
    "ParquetSource",
    "InlineSource",
    "InlineColumn",
    "ConfigSource",
]

_PATH_ALIASES = AliasChoices("path", "paths")

# config documents being loaded by enclosing config sources, outermost first
_LOADING: ContextVar[Tuple[Path, ...]] = ContextVar("lazypipe_loading_configs", default=())


class Source(BaseModel, ABC):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @abstractmethod
    def scan(self) -> pl.LazyFrame:
        """Build the plan for this source."""

    def describe(self) -> str:
        return self.type

    def load(self) -> pl.LazyFrame:
        log.source_load(self.type, self.describe())
        try:
            return self.scan()
        except pl.exceptions.PolarsError as exc:
            raise EngineError(f"source '{self.type}' ({self.describe()})", str(exc)) from exc


class FileSource(Source):
    """A source backed by one or more files (glob patterns allowed)."""

    path: List[Path] = Field(
        ...,
        validation_alias=_PATH_ALIASES,
        description="File path or glob, or a list of them; relative to the document",
    )
    schema_: Optional[Dict[str, DataTypeName]] = Field(
        None,
        alias="schema",
        description="Column datatypes, e.g. {id = 'Int64', name = 'String'}",
    )

    @field_validator("path", mode="before")
    @classmethod
    def _canonicalize(cls, v: Any, info: ValidationInfo) -> List[Path]:
        return canonical_paths(v, base_dir_from(info))

    def describe(self) -> str:
        return ", ".join(str(p) for p in self.path)

    @property
    def dtypes(self) -> Optional[Dict[str, pl.DataType]]:
        return parse_schema(self.schema_)


class CsvSource(FileSource):
    type: Literal["csv"] = "csv"
    separator: str = Field(",", min_length=1, max_length=1)
    has_header: bool = True
    null_values: Optional[List[str]] = None

    def scan(self) -> pl.LazyFrame:
        return pl.scan_csv(
            self.path,
            separator=self.separator,
            has_header=self.has_header,
            schema_overrides=self.dtypes,
            null_values=self.null_values,
            truncate_ragged_lines=True,
        )


class JsonLineSource(FileSource):
    type: Literal["json_line"] = "json_line"

    def scan(self) -> pl.LazyFrame:
        return pl.scan_ndjson(self.path, schema_overrides=self.dtypes)


class ParquetSource(FileSource):
    type: Literal["parquet"] = "parquet"

    def scan(self) -> pl.LazyFrame:
        lf = pl.scan_parquet(self.path)
        dtypes = self.dtypes
        return lf.cast(dtypes) if dtypes else lf


class JsonSource(Source):
    """A single JSON document holding an array of row objects. Read eagerly."""

    type: Literal["json"] = "json"
    path: Path = Field(..., validation_alias=_PATH_ALIASES)
    schema_: Optional[Dict[str, DataTypeName]] = Field(None, alias="schema")

    @field_validator("path", mode="before")
    @classmethod
    def _canonicalize(cls, v: Any, info: ValidationInfo) -> Path:
        return canonical_path(v, base_dir_from(info))

    def describe(self) -> str:
        return str(self.path)

    def scan(self) -> pl.LazyFrame:
        return pl.read_json(self.path, schema_overrides=parse_schema(self.schema_)).lazy()


class InlineColumn(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    dtype: Optional[DataTypeName] = None
    values: List[Union[StrictBool, StrictInt, StrictFloat, str, None]]

    def series(self) -> pl.Series:
        dtype = parse_dtype(self.dtype) if self.dtype else None
        return pl.Series(self.name, self.values, dtype=dtype)


class InlineSource(Source):
    """A literal table written column by column inside the document."""

    type: Literal["inline"] = "inline"
    columns: List[InlineColumn] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_shape(self) -> "InlineSource":
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"inline column names must be unique, got {names}")
        lengths = {len(c.values) for c in self.columns}
        if len(lengths) > 1:
            raise ValueError(
                "inline columns must all have the same number of values, got "
                + ", ".join(f"{c.name}={len(c.values)}" for c in self.columns)
            )
        return self

    def describe(self) -> str:
        return f"{len(self.columns)} columns x {len(self.columns[0].values)} rows"

    def scan(self) -> pl.LazyFrame:
        return pl.DataFrame([c.series() for c in self.columns]).lazy()


class ConfigSource(Source):
    """Load another configuration document and use its result as rows."""

    type: Literal["config"] = "config"
    path: Path

    @field_validator("path", mode="before")
    @classmethod
    def _canonicalize(cls, v: Any, info: ValidationInfo) -> Path:
        return canonical_path(v, base_dir_from(info))

    def describe(self) -> str:
        return str(self.path)

    def scan(self) -> pl.LazyFrame:
        from lazypipe.config import Config

        loading = _LOADING.get()
        if self.path in loading:
            cycle = " -> ".join(str(p) for p in (*loading, self.path))
            raise OtherError(
                f"config cycle: {cycle}",
                hint="A config source must not load a document that is already being loaded.",
            )
        token = _LOADING.set((*loading, self.path))
        try:
            return Config.from_path(self.path).load()
        finally:
            _LOADING.reset(token)


SourceItem = Annotated[
    Union[CsvSource, JsonLineSource, JsonSource, ParquetSource, InlineSource, ConfigSource],
    Field(discriminator="type"),
]
