"""Shared fixtures for CLI tests.

Provides an isolated project directory and armkit home, exposed to the
commands through ``ARM_MANIFEST_PATH`` and ``ARM_HOME``.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project directory; arm.json is created by the commands."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def cli_env(tmp_path: Path, project: Path) -> dict[str, str]:
    """Environment pointing armkit at the temporary project and home."""
    return {
        "ARM_MANIFEST_PATH": str(project / "arm.json"),
        "ARM_HOME": str(tmp_path / "home"),
        "ARM_LOCK_TIMEOUT": "10",
    }
