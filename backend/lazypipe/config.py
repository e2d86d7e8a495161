"""
Top-level configuration document.

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

Relative paths resolve against the directory of the document they are written in,
including inside nested ``config`` sources.
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, List, Union

import polars as pl
from pydantic import BaseModel, ConfigDict, Field

from lazypipe.common.dtypes import format_dtype
from lazypipe.common.errors import EngineError, NoExportsError, OtherError
from lazypipe.common.logger import LogLevel, get_logger
from lazypipe.common.utils import load_document, normalize_path
from lazypipe.io.exports import ExportItem
from lazypipe.io.sources import FileSource, JsonSource
from lazypipe.proc.transforms import Loader, TransformItem, apply_transforms

log = get_logger()

__all__ = ["Config"]


def _schema_names(schema: pl.Schema) -> Dict[str, str]:
    names: Dict[str, str] = {}
    for col, dtype in schema.items():
        name = format_dtype(dtype)
        if name is None:
            log.warning(f"Column '{col}' has datatype {dtype} which cannot be pinned; skipped")
            continue
        names[col] = name
    return names


def _collect_schema(lf: pl.LazyFrame, node: str) -> pl.Schema:
    try:
        return lf.collect_schema()
    except pl.exceptions.PolarsError as exc:
        raise EngineError(node, str(exc)) from exc


class Config(BaseModel):
    """A loader, the document-level transforms applied after it, and the exports."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: Loader = Field(..., description="Where rows come from, with its own transforms")
    transforms: List[TransformItem] = Field(
        default_factory=list, description="Applied after the source's own transforms"
    )
    exports: List[ExportItem] = Field(default_factory=list, description="Where the result is written")

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Config":
        """Parse a document; its directory becomes the base for every relative path in it."""
        fp = normalize_path(Path(path))
        log.config_start(str(fp))
        log.dev_detail("Base directory", fp.parent)
        data = load_document(fp)
        return cls.model_validate(data, context={"base_dir": fp.parent})

    def load(self) -> pl.LazyFrame:
        """Build the plan: the loader first, then the document-level transforms."""
        return apply_transforms(self.source.load(), self.transforms)

    def run(self) -> List[Path]:
        """Write the plan to every export, in order. Returns the paths written."""
        if not self.exports:
            raise NoExportsError()
        t0 = time.perf_counter()
        lf = self.load()
        if log.level is LogLevel.DEBUG:
            try:
                log.debug(f"Compiled plan:\n{lf.explain()}")
            except pl.exceptions.PolarsError as exc:
                raise EngineError("plan", str(exc)) from exc
        written = [export.export(lf.clone()) for export in self.exports]
        log.run_summary(len(written), time.perf_counter() - t0)
        return written

    def infer_schema(self) -> Dict[str, str]:
        """Output column datatypes, as datatype names."""
        return _schema_names(_collect_schema(self.load(), "infer schema"))

    def with_pinned_schema(self) -> "Config":
        """
        Copy of this document whose source has ``schema`` set to the datatypes the
        engine infers for it, so that later runs read the same types.
        """
        source = self.source.source
        if not isinstance(source, (FileSource, JsonSource)):
            raise OtherError(
                f"cannot pin a schema on a '{source.type}' source",
                hint="Only csv, json_line, json and parquet sources take a schema.",
            )
        schema = _schema_names(_collect_schema(source.load(), f"infer schema of '{source.type}' source"))
        pinned = source.model_copy(update={"schema_": schema})
        return self.model_copy(update={"source": self.source.model_copy(update={"source": pinned})})

    def to_document(self) -> Dict[str, Any]:
        """JSON-compatible dict that parses back to an equivalent Config."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def json_schema(cls) -> Dict[str, Any]:
        return cls.model_json_schema(by_alias=True)
