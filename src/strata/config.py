"""Configuration loading and validation for Strata."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeclaredMigration(BaseModel):
    """A migration registered explicitly rather than discovered."""

    model_config = ConfigDict(extra="forbid")

    version: str
    handle: str

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> str:
        """Accept unquoted YAML versions, always storing a string."""
        return str(v)


class MigrationsConfig(BaseModel):
    """Where migrations live and how applied versions are recorded."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    directory: Path | None = None
    package: str | None = None
    table_name: str = "strata_migration_versions"
    column_name: str = "version"
    declared: list[DeclaredMigration] = Field(default_factory=list)

    @field_validator("table_name", "column_name")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Table and column names must be non-empty."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "strata.db"
    url: str | None = None  # Full SQLAlchemy URL, takes precedence over path


class Config(BaseModel):
    """Root configuration for Strata."""

    data_dir: Path = Path("./data")
    log_level: str = "INFO"
    log_json: bool = True

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    migrations: MigrationsConfig = Field(default_factory=MigrationsConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log_level is valid."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper

    @property
    def database_path(self) -> Path:
        """Get full path to the SQLite database file."""
        return self.data_dir / self.database.path

    @classmethod
    def load(cls, config_path: Path | str = Path("strata.yaml")) -> "Config":
        """Load configuration from YAML file with env var overlay.

        A relative migrations directory is resolved against the directory
        containing the configuration file.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Validated Config instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config is invalid.
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        # Environment variable overrides
        if "STRATA_DATA_DIR" in os.environ:
            yaml_config["data_dir"] = os.environ["STRATA_DATA_DIR"]
        if "STRATA_LOG_LEVEL" in os.environ:
            yaml_config["log_level"] = os.environ["STRATA_LOG_LEVEL"]
        if "STRATA_LOG_JSON" in os.environ:
            yaml_config["log_json"] = os.environ["STRATA_LOG_JSON"].lower() == "true"
        if "STRATA_DATABASE_URL" in os.environ:
            yaml_config.setdefault("database", {})
            yaml_config["database"]["url"] = os.environ["STRATA_DATABASE_URL"]

        config = cls.model_validate(yaml_config)

        directory = config.migrations.directory
        if directory is not None and not directory.is_absolute():
            config.migrations.directory = config_path.parent / directory

        return config

    @classmethod
    def load_or_default(cls, config_path: Path | str | None = None) -> "Config":
        """Load configuration, falling back to defaults if file not found.

        Args:
            config_path: Optional path to YAML configuration file.

        Returns:
            Config instance (from file or defaults).
        """
        if config_path is None:
            # Try default locations
            for path in [Path("strata.yaml"), Path("strata.yml")]:
                if path.exists():
                    return cls.load(path)
            # Return defaults
            return cls()

        try:
            return cls.load(config_path)
        except FileNotFoundError:
            return cls()
