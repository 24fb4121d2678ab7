"""Shared helpers for integration tests."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixture_crates(tmp_path: Path) -> Path:
    """Copy every fixture crate into a scratch directory and return it."""
    if shutil.which("cargo") is None:
        pytest.skip("cargo is not installed")
    root = tmp_path.resolve() / "crates"
    shutil.copytree(FIXTURES, root)
    return root
