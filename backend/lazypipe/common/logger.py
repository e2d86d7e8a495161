"""
Logging module with user/dev/debug modes

User mode: Clean, simple logging showing only important steps (files written)
Dev mode: Detailed logging (sources scanned, transforms applied, resolved paths)
Debug mode: Very verbose logging (compiled plans)
JSON mode: Structured JSON-Lines output for external integrations
"""
from __future__ import annotations

import sys
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class LogLevel(Enum):
    """Logging levels"""
    USER = "user"      # Simple, clean logging for end users
    DEV = "dev"        # Detailed logging for developers
    DEBUG = "debug"    # Very verbose logging


class LogFormat(Enum):
    """Log output formats"""
    TEXT = "text"      # Human-readable text with colors
    JSON = "json"      # Structured JSON-Lines format


class Logger:
    """Logger with configurable verbosity and output format; writes to stderr"""

    def __init__(self, level: LogLevel = LogLevel.USER, format: LogFormat = LogFormat.TEXT, stream=None):
        self._stream = stream
        self.level = level
        self.format = format
        self._json_logger = None
        self._configure()

    @property
    def stream(self):
        return self._stream or sys.stderr

    def _configure(self) -> None:
        isatty = getattr(self.stream, "isatty", None)
        self._colors_enabled = bool(isatty and isatty()) and self.format == LogFormat.TEXT
        if self.format == LogFormat.JSON:
            from lazypipe.common.json_formatter import JSONLogger
            self._json_logger = JSONLogger(self._stream)
        else:
            self._json_logger = None

    def reconfigure(self, level: LogLevel, format: LogFormat) -> None:
        self.level = level
        self.format = format
        self._configure()

    def _timestamp(self) -> str:
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def _format_message(self, msg: str, prefix: str = "", color: str = "") -> str:
        ts = self._timestamp()
        if self._colors_enabled and color:
            return f"{color}[{ts}]{prefix} {msg}\033[0m"
        return f"[{ts}]{prefix} {msg}"

    def _print(self, line: str) -> None:
        print(line, file=self.stream)

    # ========== USER-LEVEL LOGGING (Always shown) ==========

    def info(self, msg: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.info(msg)
        else:
            self._print(self._format_message(msg, color="\033[36m"))  # Cyan

    def success(self, msg: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.success(msg)
        else:
            self._print(self._format_message(msg, prefix=" [OK]", color="\033[32m"))  # Green

    def warning(self, msg: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.warning(msg)
        else:
            self._print(self._format_message(msg, prefix=" [WARN]", color="\033[33m"))  # Yellow

    def error(self, msg: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.error(msg)
        else:
            self._print(self._format_message(msg, prefix=" [ERROR]", color="\033[31m"))  # Red

    # ========== DEV-LEVEL LOGGING (Shown in dev/debug modes) ==========

    def dev(self, msg: str) -> None:
        if self.level in (LogLevel.DEV, LogLevel.DEBUG):
            if self.format == LogFormat.JSON:
                self._json_logger.debug(msg)
            else:
                self._print(self._format_message(msg, prefix=" [DEV]", color="\033[90m"))  # Gray

    def dev_detail(self, label: str, value: Any) -> None:
        if self.level in (LogLevel.DEV, LogLevel.DEBUG):
            if self.format == LogFormat.JSON:
                self._json_logger.debug(f"{label}: {value}", data={"label": label, "value": str(value)})
            else:
                self._print(self._format_message(f"{label}: {value}", prefix=" [DEV]", color="\033[90m"))

    # ========== DEBUG-LEVEL LOGGING (Shown only in debug mode) ==========

    def debug(self, msg: str) -> None:
        if self.level == LogLevel.DEBUG:
            if self.format == LogFormat.JSON:
                self._json_logger.debug(msg)
            else:
                self._print(self._format_message(msg, prefix=" [DEBUG]", color="\033[90m"))

    # ========== CONFIG / SOURCE / TRANSFORM / EXPORT LOGGING ==========

    def config_start(self, path: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.config_start(path)
        elif self.level != LogLevel.USER:
            self.info(f"Loading configuration: {path}")

    def source_load(self, kind: str, detail: str) -> None:
        if self.format == LogFormat.JSON:
            if self.level != LogLevel.USER:
                self._json_logger.source_load(kind, detail)
        else:
            self.dev(f"  Source [{kind}] {detail}")

    def transform_apply(self, kind: str, index: int) -> None:
        if self.format == LogFormat.JSON:
            if self.level == LogLevel.DEBUG:
                self._json_logger.transform_apply(kind, index)
        else:
            self.debug(f"    Transform #{index}: {kind}")

    def export_start(self, kind: str, path: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.export_start(kind, path)
        else:
            self.dev(f"Writing {kind} export: {path}")

    def export_success(self, kind: str, path: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.export_success(kind, path)
        else:
            self.success(f"[{kind}] {path}")

    def run_summary(self, exports: int, elapsed: float) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.run_summary(exports, elapsed)
        else:
            self.info(f"Run completed: {exports} export(s) in {elapsed:.2f}s")


# Global logger instance
_logger: Optional[Logger] = None


def get_logger() -> Logger:
    """Get the global logger instance"""
    global _logger
    if _logger is None:
        _logger = Logger(LogLevel.USER)
    return _logger


def init_logger(level: LogLevel | str = LogLevel.USER, format: LogFormat | str = LogFormat.TEXT) -> Logger:
    """Configure and return the global logger.

    The existing instance is updated in place so that modules holding a
    module-level ``log = get_logger()`` see the new settings.
    """
    if isinstance(level, str):
        level = LogLevel(level.lower())
    if isinstance(format, str):
        format = LogFormat(format.lower())

    logger = get_logger()
    logger.reconfigure(level, format)
    return logger
