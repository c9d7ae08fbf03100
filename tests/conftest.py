from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Generator, Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

# Register fixture plugins from tests/fixtures/
pytest_plugins = [
    "tests.fixtures.http",
    "tests.fixtures.monitor",
]


@pytest.fixture(autouse=True)
def configure_test_logging() -> Generator[None, None, None]:
    """Configure structlog for tests: stderr only, WARNING and above."""
    from procwatch.logging import configure_logging

    configure_logging(level=logging.WARNING)
    yield


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory and restore the cwd afterwards."""
    original_cwd = os.getcwd()
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
    os.chdir(original_cwd)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove PROCWATCH_ environment variables and hide the user config."""
    for key in list(os.environ):
        if key.startswith("PROCWATCH_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def sample_config_yaml() -> str:
    """Return sample procwatch.yaml content for testing."""
    return """
api:
  base_url: "http://supervisor.test:8080/api/"
  request_timeout: 3

polling:
  interval_seconds: 2.5
  stats_window_days: 7

stream:
  auto_reconnect: true
  max_attempts: 3

buffers:
  max_records_per_task: 500

sentinels:
  completed: ["DONE"]

verbosity: "info"
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()
