"""
CLI entrypoint for txmigrate.

A thin caller of the library API: each command loads the YAML config, loads
the MigrationSet from the configured directory, opens the database and
invokes one engine operation.

Commands:
    up: Apply pending migrations (up to target_version if configured)
    down: Revert every applied migration
    migrate: Move to an explicit version
    status: Show current and latest versions
    validate: Check the config and migration directory without touching the database

Exit codes:
    0: Success
    1: Configuration or migration set error
    2: Database or migration failure

Examples:
    txmigrate up --config txmigrate.yaml
    txmigrate migrate 3 --config txmigrate.yaml --format json
    txmigrate status -c txmigrate.yaml
"""

import contextlib
import logging
from pathlib import Path

import typer
from rich.traceback import install as install_rich_traceback

from txmigrate.config.loader import load_config
from txmigrate.config.schema import MigratorConfig
from txmigrate.engine import MigrationResult, current_version, migrate
from txmigrate.exceptions import (
    ConfigurationError,
    MigrationSetError,
    TxMigrateError,
)
from txmigrate.loader import load
from txmigrate.migration_set import MigrationSet
from txmigrate.storage.sqlite import connect
from txmigrate.utils.console import (
    error,
    info,
    output_mode,
    print_status_table,
    success,
)
from txmigrate.utils.logging import get_logger, log_with_context, setup_logging

# Install Rich tracebacks for better error messages
install_rich_traceback(show_locals=False)

logger = get_logger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1  # Config or migration set invalid
EXIT_DB_ERROR = 2  # Database access or migration failed

app = typer.Typer(
    name="txmigrate",
    help="Transactional schema migrations for SQLite",
    add_completion=False,
)

CONFIG_OPTION = typer.Option(
    ...,
    "--config",
    "-c",
    help="Path to YAML configuration file",
    exists=True,
    file_okay=True,
    dir_okay=False,
)
FORMAT_OPTION = typer.Option(
    "text",
    "--format",
    "-f",
    help="Output format: 'text' (human-friendly) or 'json' (machine-readable)",
)


def _fail(message: str, exit_code: int, error_type: str) -> typer.Exit:
    error(message)
    if output_mode.is_agent():
        output_mode.add_json("error_type", error_type)
        output_mode.flush_json()
    return typer.Exit(exit_code)


def _prepare(config_path: Path, format: str) -> tuple[MigratorConfig, MigrationSet]:
    """Load config and migrations, mapping failures to exit code 1."""
    try:
        output_mode.format = format
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--format") from e

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        raise _fail(str(e), EXIT_CONFIG_ERROR, "config_error") from e

    setup_logging(verbose=config.verbose)

    try:
        migrations = load(config.migrations.directory, config.migrations.subpath)
    except MigrationSetError as e:
        raise _fail(
            f"Invalid migration set: {e}", EXIT_CONFIG_ERROR, "migration_set_error"
        ) from e

    return config, migrations


def _run_migration(
    config: MigratorConfig, migrations: MigrationSet, target_version: int
) -> None:
    try:
        with contextlib.closing(
            connect(
                config.database.path,
                busy_timeout=config.database.busy_timeout_seconds,
            )
        ) as conn:
            result = migrate(migrations, conn, target_version)
    except TxMigrateError as e:
        raise _fail(f"Migration failed: {e}", EXIT_DB_ERROR, type(e).__name__) from e
    except Exception as e:
        raise _fail(f"Database error: {e}", EXIT_DB_ERROR, "database_error") from e

    _report(result)


def _report(result: MigrationResult) -> None:
    log_with_context(
        logger,
        logging.INFO,
        "Migration command finished",
        context={
            "from_version": result.from_version,
            "to_version": result.to_version,
            "applied": list(result.applied),
        },
    )

    if result.changed:
        success(
            f"Migrated {result.direction} from version {result.from_version} "
            f"to {result.to_version} ({len(result.applied)} scripts)"
        )
    else:
        success(f"Already at version {result.to_version}, nothing to do")

    if output_mode.is_agent():
        output_mode.add_json("from_version", result.from_version)
        output_mode.add_json("to_version", result.to_version)
        output_mode.add_json("applied", list(result.applied))
        output_mode.flush_json()


@app.command()
def up(
    config: Path = CONFIG_OPTION,
    format: str = FORMAT_OPTION,
):
    """
    Apply pending migrations.

    Migrates to target_version from the config file if set, otherwise to
    the latest version.
    """
    settings, migrations = _prepare(config, format)
    target = (
        settings.target_version
        if settings.target_version is not None
        else migrations.max_version
    )
    _run_migration(settings, migrations, target)


@app.command()
def down(
    config: Path = CONFIG_OPTION,
    format: str = FORMAT_OPTION,
):
    """
    Revert every applied migration (migrate to version 0).
    """
    settings, migrations = _prepare(config, format)
    _run_migration(settings, migrations, 0)


@app.command(name="migrate")
def migrate_command(
    target_version: int = typer.Argument(..., min=0, help="Version to migrate to"),
    config: Path = CONFIG_OPTION,
    format: str = FORMAT_OPTION,
):
    """
    Migrate up or down to an explicit version.
    """
    settings, migrations = _prepare(config, format)
    _run_migration(settings, migrations, target_version)


@app.command()
def status(
    config: Path = CONFIG_OPTION,
    format: str = FORMAT_OPTION,
):
    """
    Show the database's schema version and pending migrations.

    Read-only: a database file that does not exist yet reports version 0
    and is not created.
    """
    settings, migrations = _prepare(config, format)
    db_path = settings.database.path

    try:
        if db_path != ":memory:" and not Path(db_path).exists():
            version = 0
        else:
            with contextlib.closing(
                connect(
                    db_path,
                    busy_timeout=settings.database.busy_timeout_seconds,
                    read_only=True,
                )
            ) as conn:
                version = current_version(migrations, conn)
    except TxMigrateError as e:
        raise _fail(
            f"Cannot read schema version: {e}", EXIT_DB_ERROR, type(e).__name__
        ) from e
    except Exception as e:
        raise _fail(f"Database error: {e}", EXIT_DB_ERROR, "database_error") from e

    print_status_table(
        {
            "database": settings.database.path,
            "current_version": version,
            "max_version": migrations.max_version,
            "pending": migrations.max_version - version,
        }
    )
    output_mode.flush_json()


@app.command()
def validate(
    config: Path = CONFIG_OPTION,
    format: str = FORMAT_OPTION,
):
    """
    Validate the config file and migration directory without opening the database.

    Exit codes:
      0: Configuration and migrations are valid
      1: Configuration or migrations are invalid
    """
    settings, migrations = _prepare(config, format)

    success("Configuration is valid")
    info(f"Migrations: {migrations.max_version}")
    info(f"Database: {settings.database.path}")

    if output_mode.is_agent():
        output_mode.add_json("valid", True)
        output_mode.add_json("max_version", migrations.max_version)
        output_mode.flush_json()
