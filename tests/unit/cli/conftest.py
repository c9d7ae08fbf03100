"""Shared fixtures for CLI command tests.

Common fixtures available from parent conftest.py:
- cli_runner: Click CLI test runner (from tests/conftest.py)
- temp_dir: Temporary directory for test files (from tests/conftest.py)
- clean_env: Clean environment without PROCWATCH_ vars (from tests/conftest.py)
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest


@pytest.fixture
def isolated_cwd(clean_env: None, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Run the command from an empty directory with no config files."""
    monkeypatch.chdir(temp_dir)
    yield temp_dir
