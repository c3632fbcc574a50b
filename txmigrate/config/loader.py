"""
Configuration loader for the txmigrate CLI.

Loads a YAML configuration file, expands ${VAR} references in paths,
validates it with Pydantic models, and resolves relative paths against the
directory holding the configuration file.

Functions:
    load_config: Main entrypoint to load and validate txmigrate.yaml
"""

import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from txmigrate.exceptions import ConfigFileNotFoundError, ConfigValidationError

from .schema import MigratorConfig


def _resolve_path(value: str, base_dir: Path) -> str:
    expanded = os.path.expandvars(value)
    if expanded == ":memory:":
        return expanded
    path = Path(expanded).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)


def load_config(config_path: str | Path) -> MigratorConfig:
    """
    Load txmigrate.yaml and resolve its paths.

    This function:
    1. Loads YAML from the specified path
    2. Validates structure using the MigratorConfig Pydantic model
    3. Expands environment variables in database.path and migrations.directory
    4. Resolves relative paths against the config file's directory

    Args:
        config_path: Path to the YAML file (relative or absolute)

    Returns:
        MigratorConfig with absolute paths

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist at the specified path
        ConfigValidationError: If YAML is invalid or config validation fails

    Example:
        >>> config = load_config("deploy/txmigrate.yaml")
        >>> config.database.path
        '/srv/app/deploy/data/app.db'
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e

    if raw_config is None:
        raise ConfigValidationError(f"Configuration file is empty: {config_path}")

    try:
        config = MigratorConfig.model_validate(raw_config)
    except ValidationError as e:
        # Format validation errors in a user-friendly way
        error_messages = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            error_messages.append(f"  - {loc}: {msg}")

        raise ConfigValidationError(
            f"Configuration validation failed in {config_path}:\n"
            + "\n".join(error_messages)
        ) from e

    base_dir = config_path.resolve().parent
    config.database.path = _resolve_path(config.database.path, base_dir)
    config.migrations.directory = _resolve_path(config.migrations.directory, base_dir)
    return config
