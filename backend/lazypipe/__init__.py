from __future__ import annotations

from lazypipe.config import Config

__all__ = ["Config"]
__version__ = "0.1.0"
