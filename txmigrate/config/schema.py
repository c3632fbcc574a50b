"""
Configuration schema models for the txmigrate CLI.

Pydantic v2 models validating a txmigrate.yaml file:

    database:
      path: ./data/app.db
      busy_timeout_seconds: 5.0
    migrations:
      directory: ./migrations
      subpath: "."
    target_version: null
    verbose: false

Models:
    DatabaseSettings: Database file and lock wait settings
    MigrationSettings: Where the migration scripts live
    MigratorConfig: Root configuration model (validates entire YAML)
"""

from pydantic import BaseModel, ConfigDict, field_validator


class DatabaseSettings(BaseModel):
    """
    Database connection settings.

    Attributes:
        path: SQLite database file (":memory:" is accepted but rarely useful)
        busy_timeout_seconds: How long to wait for another writer's lock
    """

    model_config = ConfigDict(extra="forbid")

    path: str
    busy_timeout_seconds: float = 5.0

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate path is non-empty."""
        if not v or v.isspace():
            raise ValueError("path cannot be empty")
        return v

    @field_validator("busy_timeout_seconds")
    @classmethod
    def validate_busy_timeout(cls, v: float) -> float:
        """Validate timeout is not negative."""
        if v < 0:
            raise ValueError(f"busy_timeout_seconds must be >= 0, got: {v}")
        return v


class MigrationSettings(BaseModel):
    """
    Location of the migration scripts.

    Attributes:
        directory: Directory holding NN_name.up.sql / NN_name.down.sql files
        subpath: Optional subdirectory below directory
    """

    model_config = ConfigDict(extra="forbid")

    directory: str
    subpath: str = "."

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, v: str) -> str:
        """Validate directory is non-empty."""
        if not v or v.isspace():
            raise ValueError("directory cannot be empty")
        return v


class MigratorConfig(BaseModel):
    """
    Root configuration model.

    Attributes:
        database: Database settings
        migrations: Migration script location
        target_version: Version `up` should stop at (None = latest)
        verbose: Enable DEBUG logging
    """

    model_config = ConfigDict(extra="forbid")

    database: DatabaseSettings
    migrations: MigrationSettings
    target_version: int | None = None
    verbose: bool = False

    @field_validator("target_version")
    @classmethod
    def validate_target_version(cls, v: int | None) -> int | None:
        """Validate target_version is not negative."""
        if v is not None and v < 0:
            raise ValueError(f"target_version must be >= 0, got: {v}")
        return v
