from __future__ import annotations
# Re-export common things for convenience
from .errors import (
    LazypipeError,
    PathError,
    ArityError,
    NoExportsError,
    EngineError,
    OtherError,
)
from .logger import get_logger, init_logger, LogLevel, LogFormat

__all__ = [
    "LazypipeError",
    "PathError",
    "ArityError",
    "NoExportsError",
    "EngineError",
    "OtherError",
    "get_logger",
    "init_logger",
    "LogLevel",
    "LogFormat",
]
