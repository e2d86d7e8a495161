"""
Exports: materialise the final plan to a file.

Expands ${ENV} / {ENV} in 'folder' and 'name'. The folder is resolved against the
document directory when the document is parsed and created on export; the file is
``<name><strftime(date_format)>.<ext>``.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

import polars as pl
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from lazypipe.common.errors import EngineError
from lazypipe.common.fileio import base_dir_from, expand_env, resolve_path
from lazypipe.common.logger import get_logger
from lazypipe.common.utils import safe_mkdir, timestamp_suffix

log = get_logger()

__all__ = ["Export", "ExportItem", "CsvExport", "NdJsonExport", "JsonExport"]


def _serialize_value(value: Any) -> Any:
    """
    Convert non-JSON-serializable types to JSON-compatible formats. Used as the
    ``default`` hook of json.dumps, so values nested in lists and structs go through it too.
    """
    if isinstance(value, (date, datetime, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return value.hex()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Export(BaseModel, ABC):
    model_config = ConfigDict(extra="forbid", frozen=True)

    folder: Path = Field(..., description="Output directory, relative to the document")
    name: str = Field(..., min_length=1, description="File name without extension")
    date_format: Optional[str] = Field(
        None, description="strftime format appended to the name, e.g. '_%Y%m%d'"
    )

    extension: ClassVar[str] = "csv"

    @field_validator("folder", mode="before")
    @classmethod
    def _resolve_folder(cls, v: Any, info: ValidationInfo) -> Path:
        return resolve_path(expand_env(str(v)), base_dir_from(info))

    @field_validator("name")
    @classmethod
    def _expand_name(cls, v: str) -> str:
        return expand_env(v)

    def target(self) -> Path:
        return self.folder / f"{self.name}{timestamp_suffix(self.date_format)}.{self.extension}"

    @abstractmethod
    def write(self, lf: pl.LazyFrame, path: Path) -> None:
        ...

    def export(self, lf: pl.LazyFrame) -> Path:
        """Write the plan and return the path written."""
        safe_mkdir(self.folder)
        path = self.target()
        log.export_start(self.type, str(path))
        try:
            self.write(lf, path)
        except pl.exceptions.PolarsError as exc:
            raise EngineError(f"export '{self.type}' to {path}", str(exc)) from exc
        log.export_success(self.type, str(path))
        return path


class CsvExport(Export):
    type: Literal["csv"] = "csv"
    lazy: bool = Field(True, description="Stream with sink_csv instead of collecting first")
    separator: str = Field(",", min_length=1, max_length=1)

    def write(self, lf: pl.LazyFrame, path: Path) -> None:
        if self.lazy:
            lf.sink_csv(path, separator=self.separator)
        else:
            lf.collect().write_csv(path, separator=self.separator)


class NdJsonExport(Export):
    type: Literal["ndjson"] = "ndjson"
    extension: ClassVar[str] = "ndjson"

    def write(self, lf: pl.LazyFrame, path: Path) -> None:
        lf.sink_ndjson(path)


class JsonExport(Export):
    """Collect everything into one JSON array of row objects. Prefer ndjson for big outputs."""
    type: Literal["json"] = "json"
    extension: ClassVar[str] = "json"

    def write(self, lf: pl.LazyFrame, path: Path) -> None:
        rows = lf.collect().rows(named=True)
        path.write_text(
            json.dumps(rows, ensure_ascii=False, indent=2, default=_serialize_value), encoding="utf-8"
        )


ExportItem = Annotated[
    Union[CsvExport, NdJsonExport, JsonExport],
    Field(discriminator="type"),
]
