"""
Configuration management for tusk.

Loads and validates the declarative ``tusk.yaml`` document with Pydantic and
exposes the on-disk project layout as environment-overridable settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from tusk.exceptions import ConfigurationError

CONFIG_FILENAME = "tusk.yaml"
DEFAULT_ROWS = 10


class SeedTableDirective(BaseModel):
    """How to populate one local table."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    table: str = Field(description="Table name, optionally schema-qualified")
    method: str = Field(description="Seeding method: dump, faker, query or csv")
    rows: Optional[int] = Field(default=None, ge=0, description="Rows for faker")
    faker_config_ref: Optional[str] = Field(
        default=None, description="Key into faker_configs"
    )

    @property
    def row_count(self) -> int:
        return DEFAULT_ROWS if self.rows is None else self.rows

    @property
    def schema_name(self) -> str:
        """Schema part of the table name (``public`` when unqualified)."""
        if "." in self.table:
            return self.table.split(".", 1)[0]
        return "public"

    @property
    def table_name(self) -> str:
        """Table part of the table name, without schema."""
        if "." in self.table:
            return self.table.split(".", 1)[1]
        return self.table

    def refers_to(self, table: str) -> bool:
        """Check if this directive targets ``table`` (qualified or not)."""
        return (
            self.table == table
            or self.table.endswith(f".{table}")
            or table.endswith(f".{self.table}")
        )


class DatabaseMapping(BaseModel):
    """One remote source mirrored into one local database."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    source_name: str = Field(description="Database name on the remote host")
    local_target_name: str = Field(description="Database name in the local mirror")
    host: str = Field(description="Remote host, optionally with :port")
    username: str = Field(description="Remote login role")
    sslmode: Optional[str] = Field(default="disable", description="libpq sslmode")
    target_schemas: list[str] = Field(
        default_factory=list, description="Schemas to extract (empty means all)"
    )
    seed_tables: list[SeedTableDirective] = Field(default_factory=list)

    def connection_uri(self) -> str:
        """
        Build the libpq connection URI for the remote source.

        The password is never part of the URI; it is resolved from the
        credentials store at invocation time.
        """
        user = quote(self.username, safe="")
        sslmode = self.sslmode or "disable"
        return f"postgresql://{user}@{self.host}/{self.source_name}?sslmode={sslmode}"

    def matches(self, name: str) -> bool:
        """Check if ``name`` is either the source or the local target name."""
        return name in (self.source_name, self.local_target_name)

    @property
    def schema_label(self) -> str:
        return "_".join(self.target_schemas) if self.target_schemas else "all"


class TuskConfig(BaseModel):
    """The declarative configuration document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    databases: list[DatabaseMapping] = Field(default_factory=list)
    faker_configs: dict[str, str] = Field(
        default_factory=dict, description="Generator definition name -> file path"
    )

    @classmethod
    def from_yaml(cls, path: Path | str) -> TuskConfig:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to tusk.yaml

        Returns:
            TuskConfig instance

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError("configuration file not found", str(config_path))

        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"YAML syntax error: {e}", str(config_path)) from e

        return cls.from_dict(data, source=str(config_path))

    @classmethod
    def from_dict(cls, data: object, source: str | None = None) -> TuskConfig:
        """Validate an already-parsed document."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError("top level must be a mapping", source)

        # YAML 'databases:' with no entries parses as None
        data = {key: value for key, value in data.items() if value is not None}

        try:
            return cls(**data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(problems, source) from e

    @classmethod
    def find_and_load(cls, start_dir: Optional[Path] = None) -> TuskConfig:
        """
        Find and load configuration from tusk.yaml.

        Searches for tusk.yaml starting from start_dir and walking up
        parent directories until found or reaching filesystem root.

        Raises:
            ConfigurationError: If no config file found
        """
        if start_dir is None:
            start_dir = Path.cwd()

        current = Path(start_dir).resolve()

        while True:
            config_path = current / CONFIG_FILENAME
            if config_path.exists():
                return cls.from_yaml(config_path)

            parent = current.parent
            if parent == current:
                break
            current = parent

        raise ConfigurationError(
            f"no {CONFIG_FILENAME} found in {start_dir} or parent directories"
        )

    def select(self, database: Optional[str] = None) -> list[DatabaseMapping]:
        """
        Return mappings to process, optionally filtered by name.

        Raises:
            ConfigurationError: If a name is given and nothing matches
        """
        if not database:
            return list(self.databases)
        selected = [db for db in self.databases if db.matches(database)]
        if not selected:
            raise ConfigurationError(f'no database matching "{database}"')
        return selected

    def find_database(self, name: str) -> Optional[DatabaseMapping]:
        """First mapping whose source or local target name equals ``name``."""
        for db in self.databases:
            if db.matches(name):
                return db
        return None


def _default_pgpass() -> str:
    return os.environ.get("PGPASSFILE") or str(Path.home() / ".pgpass")


class TuskSettings(BaseSettings):
    """
    Project layout and runtime locations.

    Every path is relative to ``root`` unless absolute. Each field can be
    overridden with a ``TUSK_``-prefixed environment variable.
    """

    model_config = SettingsConfigDict(env_prefix="TUSK_")

    root: Path = Field(default_factory=Path.cwd, description="Project root directory")
    config_file: str = Field(default=CONFIG_FILENAME, description="Configuration document")
    artifact_dir: str = Field(
        default="infrastructure/volume-mounts/ddl",
        description="Directory receiving generated SQL artifacts",
    )
    init_sql_path: str = Field(
        default="infrastructure/volume-mounts/000_init.sql",
        description="Database creation script",
    )
    build_context_dir: str = Field(
        default="infrastructure/build-context",
        description="Directory receiving requirements.txt and tusk.conf",
    )
    query_template_dir: str = Field(
        default="templates/queries", description="Query template store"
    )
    csv_dir: str = Field(default="templates/csv", description="Flat files for csv loads")
    faker_dir: str = Field(default="templates/faker", description="Generator definitions")
    pgpass_file: str = Field(
        default_factory=_default_pgpass, description="Credentials store file"
    )

    def resolve(self, relative: str | Path) -> Path:
        """Anchor a (possibly relative) path at the project root."""
        path = Path(relative).expanduser()
        return path if path.is_absolute() else self.root / path

    def get_artifact_dir(self) -> Path:
        return self.resolve(self.artifact_dir)

    def get_query_template_dir(self) -> Path:
        return self.resolve(self.query_template_dir)

    def get_build_context_dir(self) -> Path:
        return self.resolve(self.build_context_dir)

    def load_config(self) -> TuskConfig:
        """Load the configuration document this layout points at."""
        return TuskConfig.from_yaml(self.resolve(self.config_file))
