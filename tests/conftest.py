"""Shared test fixtures."""

from __future__ import annotations

import tempfile
import textwrap
from pathlib import Path

import pytest

from layerkit.core.resolver import ModuleResolver


def write_module(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content))
    return path


@pytest.fixture
def temp_dir() -> Path:
    """Temporary directory for filesystem-based tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def resolver(temp_dir) -> ModuleResolver:
    """Resolver over empty vendor/overrides/extensions trees in temp_dir."""
    for name in ("vendor", "overrides", "extensions"):
        (temp_dir / name).mkdir()
    return ModuleResolver(temp_dir)
