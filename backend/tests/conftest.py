from __future__ import annotations

from pathlib import Path

import pytest

from lazypipe.common.logger import init_logger


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    init_logger("user", "text")


@pytest.fixture
def write(tmp_path):
    """Write a text file under tmp_path (creating folders) and return its path."""

    def _write(rel: str, text: str) -> Path:
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
        return p

    return _write


@pytest.fixture
def xy_csv(write):
    return write("a.csv", "x,y\n1,foo\n2,bar\n3,baz\n")
