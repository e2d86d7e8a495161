from __future__ import annotations

import json
import tomllib
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, SerializationInfo

from lazypipe.common.errors import OtherError, PathError

__all__ = [
    "timestamp_suffix",
    "safe_mkdir",
    "load_yaml",
    "load_document",
    "dump_yaml",
    "normalize_path",
    "dump_model",
    "DOCUMENT_SUFFIXES",
]

DOCUMENT_SUFFIXES = (".toml", ".yaml", ".yml", ".json")


def timestamp_suffix(fmt: Optional[str]) -> str:
    """strftime of the current local time, or '' when no format is given."""
    if not fmt:
        return ""
    return datetime.now().strftime(fmt)


def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def load_yaml(fp: Path) -> Dict[str, Any]:
    return yaml.safe_load(fp.read_text(encoding="utf-8"))


def normalize_path(p: Path) -> Path:
    """Canonical absolute path; raises PathError if p does not exist."""
    pp = Path(str(p)).expanduser()
    if not pp.exists():
        raise PathError(pp)
    return pp.resolve(strict=True)


def load_document(fp: Path) -> Dict[str, Any]:
    """Read a configuration document, picking the parser from the file suffix."""
    suffix = fp.suffix.lower()
    if suffix == ".toml":
        data = tomllib.loads(fp.read_text(encoding="utf-8"))
    elif suffix in (".yaml", ".yml"):
        data = load_yaml(fp)
    elif suffix == ".json":
        data = json.loads(fp.read_text(encoding="utf-8"))
    else:
        raise OtherError(
            f"unsupported configuration format '{suffix}': {fp}",
            hint=f"Use one of: {', '.join(DOCUMENT_SUFFIXES)}",
        )
    if not data:
        raise OtherError(f"empty or invalid configuration: {fp}")
    if not isinstance(data, dict):
        raise OtherError(f"configuration must be a mapping at the top level: {fp}")
    return data


def dump_yaml(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def dump_model(model: BaseModel, info: SerializationInfo) -> Dict[str, Any]:
    """Dump a nested model with the options of the serialization in progress."""
    return model.model_dump(
        mode=info.mode,
        by_alias=bool(info.by_alias),
        exclude_none=info.exclude_none,
        exclude_unset=info.exclude_unset,
        exclude_defaults=info.exclude_defaults,
        round_trip=info.round_trip,
    )
