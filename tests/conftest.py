"""Shared pytest fixtures for the appgen test suite.

Provides reusable fixtures for:
- Temporary application and host-application directories
- A deterministic ``Config`` (framework version, dev checkout path)
- Mocked command execution so no generator ever spawns ``bundle``,
  ``bin/rails`` or ``yarn``
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from appgen.config import CommandConfig, Config, FrameworkConfig


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def app_path(tmp_path: Path) -> Path:
    """Where ``appgen new`` should create the application (not created yet)."""
    return tmp_path / "blog"


@pytest.fixture
def host_app(tmp_path: Path) -> Path:
    """An existing application directory that install generators write into."""
    root = tmp_path / "host-app"
    root.mkdir()
    return root


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> Config:
    """Config pinned to a known framework version and fake executables."""
    return Config(
        framework=FrameworkConfig(version="7.0.0.alpha", dev_path=Path("/src/rails")),
        commands=CommandConfig(bundle="bundle", rails="bin/rails", yarn="yarn", timeout=60),
    )


# ---------------------------------------------------------------------------
# Mock command execution
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_run_command():
    """Patch the generators' command runner to succeed without spawning processes.

    Usage::

        async def test_bundle(mock_run_command):
            ...
            commands = [c.args[0] for c in mock_run_command.call_args_list]
    """
    with patch(
        "appgen.scaffolder.base.run_command",
        new=AsyncMock(return_value=(0, "", "")),
    ) as mocked:
        yield mocked

