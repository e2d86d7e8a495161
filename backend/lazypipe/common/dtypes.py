"""
Datatype names used in documents (casts, source schemas, inline columns).

Names are the polars class names (``String``, ``Int64``, ``Datetime(us, UTC)``,
``List(String)``) plus a handful of short aliases (``int``, ``str``, ``bool``...).
"""
from __future__ import annotations

import re
from typing import Annotated, Any, Dict, List, Optional

import polars as pl
from pydantic import AfterValidator

__all__ = ["DataTypeName", "parse_dtype", "format_dtype", "validate_dtype_name", "parse_schema"]


_SIMPLE_TYPES: Dict[str, Any] = {
    "int": pl.Int64, "int8": pl.Int8, "int16": pl.Int16, "int32": pl.Int32, "int64": pl.Int64,
    "uint8": pl.UInt8, "uint16": pl.UInt16, "uint32": pl.UInt32, "uint64": pl.UInt64,
    "float": pl.Float64, "float32": pl.Float32, "float64": pl.Float64,
    "str": pl.String, "string": pl.String, "utf8": pl.String,
    "bool": pl.Boolean, "boolean": pl.Boolean,
    "date": pl.Date, "time": pl.Time, "null": pl.Null,
    "binary": pl.Binary, "categorical": pl.Categorical,
}

_TIME_UNITS = ("ns", "us", "ms")

_DTYPE_RE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9_]*)\s*(?:[(\[](.*)[)\]])?\s*$", re.DOTALL)


def _split_args(args: str) -> List[str]:
    """Split on top-level commas, keeping nested parentheses intact."""
    parts: List[str] = []
    depth = 0
    current = ""
    for ch in args:
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += ch
    if current.strip():
        parts.append(current.strip())
    # accept keyword spellings such as time_unit='us'
    cleaned = []
    for p in parts:
        if "=" in p and "(" not in p.split("=", 1)[0]:
            p = p.split("=", 1)[1].strip()
        cleaned.append(p.strip().strip("'\""))
    return cleaned


def _time_unit(value: str) -> str:
    if value not in _TIME_UNITS:
        raise ValueError(f"unknown time unit '{value}', expected one of {', '.join(_TIME_UNITS)}")
    return value


def parse_dtype(name: str) -> pl.DataType:
    """Turn a datatype name into a polars datatype, raising ValueError if unknown."""
    if not isinstance(name, str):
        raise ValueError(f"datatype must be a string, got {type(name).__name__}")
    m = _DTYPE_RE.match(name)
    if not m:
        raise ValueError(f"invalid datatype '{name}'")
    head, raw_args = m.group(1), m.group(2)
    key = head.lower()
    args = _split_args(raw_args) if raw_args and raw_args.strip() else []

    if key == "list":
        if len(args) != 1:
            raise ValueError(f"List datatype needs exactly one inner type: '{name}'")
        return pl.List(parse_dtype(args[0]))
    if key == "array":
        if len(args) != 2:
            raise ValueError(f"Array datatype needs an inner type and a size: '{name}'")
        return pl.Array(parse_dtype(args[0]), int(args[1]))
    if key == "datetime":
        unit = _time_unit(args[0]) if args else "us"
        tz = args[1] if len(args) > 1 and args[1] not in ("None", "") else None
        return pl.Datetime(unit, tz)
    if key == "duration":
        return pl.Duration(_time_unit(args[0]) if args else "us")
    if key == "decimal":
        precision = int(args[0]) if args and args[0] != "None" else None
        scale = int(args[1]) if len(args) > 1 else 0
        return pl.Decimal(precision, scale)

    if args:
        raise ValueError(f"datatype '{head}' does not take parameters: '{name}'")
    if key not in _SIMPLE_TYPES:
        raise ValueError(f"unknown datatype '{name}'")
    return _SIMPLE_TYPES[key]


def validate_dtype_name(name: str) -> str:
    """Pydantic hook: keep the name as written once it is known to parse."""
    parse_dtype(name)
    return name


def format_dtype(dtype: Any) -> Optional[str]:
    """Name a polars datatype so that parse_dtype() reads it back, or None if it can't be named."""
    if isinstance(dtype, pl.List):
        inner = format_dtype(dtype.inner)
        return f"List({inner})" if inner else None
    if isinstance(dtype, pl.Array):
        inner = format_dtype(dtype.inner)
        return f"Array({inner}, {dtype.size})" if inner else None
    if isinstance(dtype, pl.Datetime):
        if dtype.time_zone:
            return f"Datetime({dtype.time_unit}, {dtype.time_zone})"
        return f"Datetime({dtype.time_unit})"
    if isinstance(dtype, pl.Duration):
        return f"Duration({dtype.time_unit})"
    if isinstance(dtype, pl.Decimal):
        return f"Decimal({dtype.precision}, {dtype.scale})"
    if isinstance(dtype, (pl.Struct, pl.Object)):
        return None

    name = dtype.__name__ if isinstance(dtype, type) else type(dtype).__name__
    if name.lower() in _SIMPLE_TYPES:
        return name
    return None


def parse_schema(schema: Optional[Dict[str, str]]) -> Optional[Dict[str, pl.DataType]]:
    if not schema:
        return None
    return {col: parse_dtype(name) for col, name in schema.items()}


# A datatype name as written in a document, checked at construction time.
DataTypeName = Annotated[str, AfterValidator(validate_dtype_name)]
