from __future__ import annotations

import glob
import os
import re
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationInfo

from lazypipe.common.errors import PathError

__all__ = [
    "base_dir_from",
    "expand_env",
    "resolve_path",
    "canonical_path",
    "canonical_paths",
]

_GLOB_META = set("*?[]")

# ${VAR} and {VAR} expansion
_DOLLAR = re.compile(r"\$\{([^}]+)\}")
_BRACES = re.compile(r"\{([A-Za-z0-9_]+)\}")


def expand_env(s: str, env: Optional[Mapping[str, Any]] = None) -> str:
    if not s:
        return s
    env = os.environ if env is None else env
    s = _DOLLAR.sub(lambda m: str(env.get(m.group(1), "")), s)
    s = _BRACES.sub(lambda m: str(env.get(m.group(1), "")), s)
    return s


def _has_glob_meta(s: str) -> bool:
    return any(ch in s for ch in _GLOB_META)


def base_dir_from(info: Optional[ValidationInfo]) -> Path:
    """Directory that relative paths resolve against for the document being validated."""
    ctx = info.context if info is not None else None
    if isinstance(ctx, Mapping) and ctx.get("base_dir") is not None:
        return Path(ctx["base_dir"])
    return Path.cwd()


def resolve_path(p: Union[str, Path], base_dir: Path) -> Path:
    """Absolute path for p; relative paths are joined onto base_dir. Existence is not checked."""
    pp = Path(str(p)).expanduser()
    if not pp.is_absolute():
        pp = base_dir / pp
    return Path(os.path.normpath(pp))


def canonical_path(p: Union[str, Path], base_dir: Path) -> Path:
    """A single existing path, canonicalized (symlinks resolved)."""
    candidate = resolve_path(p, base_dir)
    if not candidate.exists():
        raise PathError(candidate, hint=f"Relative paths resolve against {base_dir}")
    return candidate.resolve(strict=True)


def canonical_paths(patterns: Union[str, Path, List[Union[str, Path]]], base_dir: Path) -> List[Path]:
    """
    Expand one or more paths/glob patterns into existing, canonical file paths.

    Rules:
      - Relative patterns are resolved against base_dir.
      - Literal paths (no glob metacharacters) must exist.
      - Glob patterns must match at least one path; matches are sorted.
      - Duplicates are dropped, first occurrence wins.
    """
    if isinstance(patterns, (str, Path)):
        patterns = [patterns]
    if not patterns:
        raise PathError("<empty>", reason="no paths given")

    out: List[Path] = []
    seen = set()
    for pat in patterns:
        full = resolve_path(pat, base_dir)
        if _has_glob_meta(str(pat)):
            matches = sorted(glob.glob(str(full), recursive=True))
            if not matches:
                raise PathError(full, reason="glob pattern matched no paths",
                                hint=f"Relative paths resolve against {base_dir}")
            found = [Path(m).resolve(strict=True) for m in matches]
        else:
            found = [canonical_path(full, base_dir)]
        for fp in found:
            if fp not in seen:
                seen.add(fp)
                out.append(fp)
    return out
