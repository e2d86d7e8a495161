"""
JSON-Lines formatter for structured logging output

Used when the CLI runs with ``--json`` so that wrapping tools can parse progress.

Output format: One JSON object per line (JSON-Lines / NDJSON)
{
    "timestamp": "2025-10-25T10:30:00.123Z",
    "level": "info",
    "category": "export",
    "message": "Writing csv export",
    "data": {...}  // Optional metadata
}
"""
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class JSONLogLevel(str, Enum):
    """JSON log levels matching standard severity"""
    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class JSONLogCategory(str, Enum):
    """Log categories for semantic grouping"""
    CONFIG = "config"
    SOURCE = "source"
    TRANSFORM = "transform"
    EXPORT = "export"
    SYSTEM = "system"


class JSONLogger:
    """
    Structured JSON logger that outputs one JSON object per line.

    Each log entry includes:
    - timestamp: ISO 8601 format with timezone
    - level: debug, info, success, warning, error
    - category: config, source, transform, export or system
    - message: Human-readable message
    - data: Optional structured metadata
    """

    def __init__(self, output_stream=None):
        self.output_stream = output_stream

    def _emit(
        self,
        level: JSONLogLevel,
        category: JSONLogCategory,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "category": category.value,
            "message": message,
        }
        if data:
            entry["data"] = data

        stream = self.output_stream or sys.stderr
        stream.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        stream.flush()

    # ========== STANDARD LOG LEVELS ==========

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.DEBUG, category, message, data)

    def info(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.INFO, category, message, data)

    def success(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.SUCCESS, category, message, data)

    def warning(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.WARNING, category, message, data)

    def error(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.ERROR, category, message, data)

    # ========== PIPELINE-SPECIFIC METHODS ==========

    def config_start(self, path: str) -> None:
        self._emit(JSONLogLevel.INFO, JSONLogCategory.CONFIG, f"Loading configuration: {path}", {"path": path})

    def source_load(self, kind: str, detail: str) -> None:
        self._emit(JSONLogLevel.DEBUG, JSONLogCategory.SOURCE, f"Source {kind}: {detail}", {"source": kind, "detail": detail})

    def transform_apply(self, kind: str, index: int) -> None:
        self._emit(JSONLogLevel.DEBUG, JSONLogCategory.TRANSFORM, f"Transform #{index}: {kind}", {"transform": kind, "index": index})

    def export_start(self, kind: str, path: str) -> None:
        self._emit(JSONLogLevel.INFO, JSONLogCategory.EXPORT, f"Writing {kind} export: {path}", {"export": kind, "path": path})

    def export_success(self, kind: str, path: str) -> None:
        self._emit(JSONLogLevel.SUCCESS, JSONLogCategory.EXPORT, f"[{kind}] {path}", {"export": kind, "path": path})

    def run_summary(self, exports: int, elapsed: float) -> None:
        self._emit(
            JSONLogLevel.INFO,
            JSONLogCategory.CONFIG,
            f"Run completed in {elapsed:.2f}s",
            {"exports": exports, "elapsed_seconds": round(elapsed, 2)},
        )
