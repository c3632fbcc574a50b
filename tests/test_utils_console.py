"""
Tests for utils.console module - dual-mode CLI output utilities.

This module tests:
- OutputMode format validation and JSON buffering
- success/error/warning/info in text and json modes
- print_status_table() rendering and JSON buffering
"""

import json
from unittest.mock import patch

import pytest

from txmigrate.utils.console import (
    OutputMode,
    error,
    info,
    output_mode,
    print_status_table,
    success,
    warning,
)

# ========================================================================
# Fixtures
# ========================================================================


@pytest.fixture
def reset_output_mode():
    """Reset global output_mode to default state after each test."""
    original_format = output_mode.format
    output_mode._json_buffer.clear()

    yield

    output_mode.format = original_format
    output_mode._json_buffer.clear()


@pytest.fixture
def sample_status():
    return {
        "database": "app.db",
        "current_version": 1,
        "max_version": 3,
        "pending": 2,
    }


# ========================================================================
# OutputMode
# ========================================================================


class TestOutputMode:
    def test_default_is_human(self):
        mode = OutputMode()
        assert mode.is_human()
        assert not mode.is_agent()

    def test_invalid_format_raises(self):
        with pytest.raises(ValueError, match="Invalid format: xml"):
            OutputMode("xml")

    def test_invalid_format_assignment_raises(self):
        mode = OutputMode()

        with pytest.raises(ValueError, match="Invalid format: yaml"):
            mode.format = "yaml"

        assert mode.format == "text"

    def test_flush_json_writes_and_clears(self, capsys):
        mode = OutputMode("json")
        mode.add_json("to_version", 3)

        mode.flush_json()

        assert json.loads(capsys.readouterr().out) == {"to_version": 3}
        assert mode._json_buffer == {}

    def test_flush_json_is_noop_in_text_mode(self, capsys):
        mode = OutputMode("text")
        mode.add_json("to_version", 3)

        mode.flush_json()

        assert capsys.readouterr().out == ""

    def test_flush_json_skips_empty_buffer(self, capsys):
        OutputMode("json").flush_json()

        assert capsys.readouterr().out == ""


# ========================================================================
# Messages
# ========================================================================


class TestMessagesAgentMode:
    def test_success_buffers_status(self, reset_output_mode):
        output_mode.format = "json"

        success("Migrated to version 3")

        assert output_mode._json_buffer == {
            "status": "success",
            "message": "Migrated to version 3",
        }

    def test_error_buffers_status(self, reset_output_mode):
        output_mode.format = "json"

        error("Migration failed")

        assert output_mode._json_buffer == {"status": "error", "error": "Migration failed"}

    def test_warning_buffers_message(self, reset_output_mode):
        output_mode.format = "json"

        warning("Database is ahead")

        assert output_mode._json_buffer == {"warning": "Database is ahead"}

    def test_info_is_silent(self, reset_output_mode):
        output_mode.format = "json"

        info("Migrations: 3")

        assert output_mode._json_buffer == {}


class TestMessagesHumanMode:
    @patch("txmigrate.utils.console.console")
    def test_success_prints_to_stdout_console(self, mock_console, reset_output_mode):
        output_mode.format = "text"

        success("Migrated")

        mock_console.print.assert_called_once()
        assert "Migrated" in mock_console.print.call_args[0][0]

    @patch("txmigrate.utils.console.console_err")
    def test_error_prints_to_stderr_console(self, mock_console_err, reset_output_mode):
        output_mode.format = "text"

        error("Boom")

        mock_console_err.print.assert_called_once()
        assert "Boom" in mock_console_err.print.call_args[0][0]
        assert output_mode._json_buffer == {}


# ========================================================================
# print_status_table()
# ========================================================================


def test_status_table_buffers_all_keys_in_agent_mode(reset_output_mode, sample_status):
    output_mode.format = "json"

    print_status_table(sample_status)

    assert output_mode._json_buffer == sample_status


@patch("txmigrate.utils.console.console")
def test_status_table_renders_rich_table_in_human_mode(
    mock_console, reset_output_mode, sample_status
):
    output_mode.format = "text"

    print_status_table(sample_status)

    table = mock_console.print.call_args[0][0]
    assert table.title == "Schema Status"
    assert table.row_count == 4
