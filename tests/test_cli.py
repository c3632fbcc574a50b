"""
Tests for CLI module - commands, output modes and exit codes.

Commands:
    - up / down / migrate: run the engine against a config-defined database
    - status: report current and latest versions
    - validate: check config and migration directory only

Exit Codes:
    - 0: Success
    - 1: Configuration or migration set error
    - 2: Database or migration failure
"""

import json
import logging
import sqlite3
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from txmigrate.cli import EXIT_CONFIG_ERROR, EXIT_DB_ERROR, EXIT_SUCCESS, app
from txmigrate.utils.console import output_mode

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def cli_runner():
    """Return CliRunner for testing Typer apps."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_global_state():
    """Restore output_mode and root logger handlers touched by commands."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    original_format = output_mode.format
    output_mode._json_buffer.clear()

    yield

    root_logger.handlers[:] = original_handlers
    root_logger.setLevel(original_level)
    output_mode.format = original_format
    output_mode._json_buffer.clear()


@pytest.fixture
def migrations_dir(tmp_path):
    directory = tmp_path / "migrations"
    directory.mkdir()
    files = {
        "01_users.up.sql": "CREATE TABLE users(id integer primary key, name text);",
        "01_users.down.sql": "DROP TABLE users;",
        "02_posts.up.sql": "CREATE TABLE posts(id integer primary key, body text);",
        "02_posts.down.sql": "DROP TABLE posts;",
        "03_tags.up.sql": "CREATE TABLE tags(name text);",
        "03_tags.down.sql": "DROP TABLE tags;",
    }
    for name, content in files.items():
        (directory / name).write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def config_path(tmp_path, migrations_dir):
    """Create a valid YAML config file pointing at migrations_dir."""
    path = tmp_path / "txmigrate.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "database": {"path": "data/app.db"},
                "migrations": {"directory": "migrations"},
            }
        ),
        encoding="utf-8",
    )
    return path


def db_version(tmp_path) -> int:
    with sqlite3.connect(tmp_path / "data" / "app.db") as conn:
        return conn.execute("SELECT version FROM schema_migrations").fetchone()[0]


def parse_json_output(output: str) -> dict:
    return json.loads(output[output.index("{") :])


# ============================================================================
# up / down / migrate
# ============================================================================


def test_up_applies_all_migrations(cli_runner, config_path, tmp_path):
    result = cli_runner.invoke(app, ["up", "--config", str(config_path)])

    assert result.exit_code == EXIT_SUCCESS
    assert "Migrated up from version 0 to 3" in result.output
    assert db_version(tmp_path) == 3


def test_up_is_idempotent(cli_runner, config_path):
    cli_runner.invoke(app, ["up", "-c", str(config_path)])

    result = cli_runner.invoke(app, ["up", "-c", str(config_path)])

    assert result.exit_code == EXIT_SUCCESS
    assert "Already at version 3" in result.output


def test_up_respects_configured_target_version(cli_runner, config_path, tmp_path):
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    data["target_version"] = 2
    config_path.write_text(yaml.safe_dump(data), encoding="utf-8")

    result = cli_runner.invoke(app, ["up", "-c", str(config_path)])

    assert result.exit_code == EXIT_SUCCESS
    assert db_version(tmp_path) == 2


def test_migrate_json_output(cli_runner, config_path, tmp_path):
    cli_runner.invoke(app, ["up", "-c", str(config_path)])

    result = cli_runner.invoke(
        app, ["migrate", "1", "-c", str(config_path), "--format", "json"]
    )

    assert result.exit_code == EXIT_SUCCESS
    payload = parse_json_output(result.output)
    assert payload["status"] == "success"
    assert payload["from_version"] == 3
    assert payload["to_version"] == 1
    assert payload["applied"] == [2, 1]
    assert db_version(tmp_path) == 1


def test_down_reverts_everything(cli_runner, config_path, tmp_path):
    cli_runner.invoke(app, ["up", "-c", str(config_path)])

    result = cli_runner.invoke(app, ["down", "-c", str(config_path)])

    assert result.exit_code == EXIT_SUCCESS
    assert db_version(tmp_path) == 0


def test_migrate_target_too_high_is_database_error(cli_runner, config_path):
    result = cli_runner.invoke(
        app, ["migrate", "9", "-c", str(config_path), "-f", "json"]
    )

    assert result.exit_code == EXIT_DB_ERROR
    payload = parse_json_output(result.output)
    assert payload["status"] == "error"
    assert payload["error_type"] == "TargetTooHighError"
    assert "target version 9 is higher than max migration version 3" in payload["error"]


def test_failing_script_reports_migration_and_keeps_version(
    cli_runner, config_path, migrations_dir, tmp_path
):
    cli_runner.invoke(app, ["migrate", "1", "-c", str(config_path)])
    (migrations_dir / "03_tags.up.sql").write_text("NOT VALID SQL;", encoding="utf-8")

    result = cli_runner.invoke(app, ["up", "-c", str(config_path), "-f", "json"])

    assert result.exit_code == EXIT_DB_ERROR
    payload = parse_json_output(result.output)
    assert payload["error_type"] == "MigrationExecutionError"
    assert "up migration 3 (index 2) failed" in payload["error"]
    assert db_version(tmp_path) == 1


# ============================================================================
# status / validate
# ============================================================================


def test_status_reports_pending(cli_runner, config_path):
    cli_runner.invoke(app, ["migrate", "1", "-c", str(config_path)])

    result = cli_runner.invoke(app, ["status", "-c", str(config_path), "-f", "json"])

    assert result.exit_code == EXIT_SUCCESS
    payload = parse_json_output(result.output)
    assert payload["current_version"] == 1
    assert payload["max_version"] == 3
    assert payload["pending"] == 2


def test_status_does_not_create_database(cli_runner, config_path, tmp_path):
    result = cli_runner.invoke(app, ["status", "-c", str(config_path), "-f", "json"])

    assert result.exit_code == EXIT_SUCCESS
    payload = parse_json_output(result.output)
    assert payload["current_version"] == 0
    assert payload["pending"] == 3
    assert not (tmp_path / "data").exists()


def test_status_does_not_write_to_existing_database(cli_runner, config_path, tmp_path):
    (tmp_path / "data").mkdir()
    sqlite3.connect(tmp_path / "data" / "app.db").close()

    result = cli_runner.invoke(app, ["status", "-c", str(config_path), "-f", "json"])

    assert result.exit_code == EXIT_SUCCESS
    assert parse_json_output(result.output)["current_version"] == 0
    with sqlite3.connect(tmp_path / "data" / "app.db") as conn:
        assert conn.execute("SELECT name FROM sqlite_master").fetchall() == []


def test_status_text_mode(cli_runner, config_path):
    result = cli_runner.invoke(app, ["status", "-c", str(config_path)])

    assert result.exit_code == EXIT_SUCCESS
    assert "Schema Status" in result.output


def test_validate_does_not_create_database(cli_runner, config_path, tmp_path):
    result = cli_runner.invoke(app, ["validate", "-c", str(config_path), "-f", "json"])

    assert result.exit_code == EXIT_SUCCESS
    payload = parse_json_output(result.output)
    assert payload["valid"] is True
    assert payload["max_version"] == 3
    assert not (tmp_path / "data" / "app.db").exists()


def test_validate_incomplete_migration_set(cli_runner, config_path, migrations_dir):
    (migrations_dir / "02_posts.down.sql").unlink()

    result = cli_runner.invoke(app, ["validate", "-c", str(config_path), "-f", "json"])

    assert result.exit_code == EXIT_CONFIG_ERROR
    payload = parse_json_output(result.output)
    assert payload["error_type"] == "migration_set_error"
    assert "down migration for migration 2 is missing" in payload["error"]


def test_invalid_config_exits_with_config_error(cli_runner, tmp_path):
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("database:\n  path: ''\n", encoding="utf-8")

    result = cli_runner.invoke(app, ["up", "-c", str(config_path), "-f", "json"])

    assert result.exit_code == EXIT_CONFIG_ERROR
    payload = parse_json_output(result.output)
    assert payload["error_type"] == "config_error"


def test_missing_config_file_is_rejected_by_typer(cli_runner, tmp_path):
    result = cli_runner.invoke(app, ["up", "-c", str(tmp_path / "nope.yaml")])

    assert result.exit_code != EXIT_SUCCESS


@patch("txmigrate.cli.setup_logging")
def test_verbose_config_enables_debug_logging(mock_setup_logging, cli_runner, config_path):
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    data["verbose"] = True
    config_path.write_text(yaml.safe_dump(data), encoding="utf-8")

    result = cli_runner.invoke(app, ["validate", "-c", str(config_path)])

    assert result.exit_code == EXIT_SUCCESS
    mock_setup_logging.assert_called_once_with(verbose=True)


def test_unknown_format_is_rejected(cli_runner, config_path):
    result = cli_runner.invoke(app, ["status", "-c", str(config_path), "-f", "xml"])

    assert result.exit_code == 2
    assert output_mode.format != "xml"
