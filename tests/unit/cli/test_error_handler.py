"""Unit tests for cli_error_handler context manager."""

from __future__ import annotations

import pytest

from procwatch.cli.common import cli_error_handler
from procwatch.cli.context import ExitCode
from procwatch.exceptions import ConfigError, ControlError, FetchError


def test_cli_error_handler_keyboard_interrupt(capfd):
    """Test cli_error_handler handles KeyboardInterrupt correctly."""
    with pytest.raises(SystemExit) as exc_info, cli_error_handler():
        raise KeyboardInterrupt()

    assert exc_info.value.code == ExitCode.INTERRUPTED

    captured = capfd.readouterr()
    assert "Interrupted by user" in captured.err


def test_cli_error_handler_fetch_error(capfd):
    """FetchError output names the endpoint, the status, and a suggestion."""
    with pytest.raises(SystemExit) as exc_info, cli_error_handler():
        raise FetchError("HTTP 503", endpoint="/ai/task/stats", status=503)

    assert exc_info.value.code == ExitCode.FAILURE

    captured = capfd.readouterr()
    assert "Error: HTTP 503" in captured.err
    assert "Endpoint: /ai/task/stats" in captured.err
    assert "Status: 503" in captured.err
    assert "Suggestion:" in captured.err


def test_cli_error_handler_control_error(capfd):
    with pytest.raises(SystemExit) as exc_info, cli_error_handler():
        raise ControlError("Kill request for t1 timed out", task_id="t1")

    assert exc_info.value.code == ExitCode.FAILURE

    captured = capfd.readouterr()
    assert "timed out" in captured.err
    assert "Task: t1" in captured.err


def test_cli_error_handler_procwatch_error(capfd):
    """Other procwatch errors print their message only."""
    with pytest.raises(SystemExit) as exc_info, cli_error_handler():
        raise ConfigError("Invalid configuration")

    assert exc_info.value.code == ExitCode.FAILURE
    assert "Invalid configuration" in capfd.readouterr().err


def test_cli_error_handler_generic_exception(capfd):
    """Test cli_error_handler handles generic exceptions correctly."""
    with pytest.raises(SystemExit) as exc_info, cli_error_handler():
        raise ValueError("Unexpected error")

    assert exc_info.value.code == ExitCode.FAILURE
    assert "Unexpected error" in capfd.readouterr().err


def test_cli_error_handler_success_case():
    """Test cli_error_handler allows successful execution."""
    result = None
    with cli_error_handler():
        result = "ok"

    assert result == "ok"
