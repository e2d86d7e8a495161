from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class LazypipeError(Exception):
    """Base error for everything raised while parsing, loading or exporting a document.

    Carries a short error code and an optional hint to guide the user towards the
    faulty configuration entry.
    """

    code = "E_LAZYPIPE"

    def __init__(self, message: str, *, hint: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint
        if code:
            self.code = code

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.hint:
            return base + f"\nHint: {self.hint}"
        return base


class PathError(LazypipeError, ValueError):
    """A referenced source/config path does not exist or cannot be canonicalized."""

    code = "E_PATH"

    def __init__(self, path: Union[str, Path], reason: str = "path does not exist", *, hint: Optional[str] = None):
        super().__init__(f"{reason}: {path}", hint=hint)
        self.path = Path(path)


class ArityError(LazypipeError, ValueError):
    """A logical combinator was given fewer operands than it needs."""

    code = "E_ARITY"

    def __init__(self, kind: str, count: int, minimum: int = 2):
        super().__init__(
            f"{kind} statement must have at least {minimum} conditions (got {count})",
            hint=f"Wrap a single condition without '{kind}', or add another condition.",
        )
        self.kind = kind
        self.count = count
        self.minimum = minimum


class NoExportsError(LazypipeError):
    code = "E_NO_EXPORTS"

    def __init__(self) -> None:
        super().__init__(
            "must define at least one export",
            hint="Add an [[exports]] entry, e.g. {type = 'csv', folder = './out', name = 'result'}.",
        )


class EngineError(LazypipeError):
    """A polars failure, annotated with the AST node that produced it."""

    code = "E_ENGINE"

    def __init__(self, node: str, detail: str):
        super().__init__(f"{node} failed: {detail}")
        self.node = node
        self.detail = detail


class OtherError(LazypipeError):
    code = "E_OTHER"
