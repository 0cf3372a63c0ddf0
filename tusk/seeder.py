"""
Seed artifact generation.

Each seed-table directive in ``tusk.yaml`` is turned into one SQL artifact by
one of four strategies:

- dump:  copy rows from the remote source with ``pg_dump --inserts``
- faker: synthesize rows from a generator definition
- query: pass through a hand-written (or extracted) query template
- csv:   bulk-load a flat file with ``\\copy``

Directives are processed in configuration order, one at a time. A failing
directive is reported and the run moves on to the next one.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Optional

from tusk.config import DatabaseMapping, SeedTableDirective, TuskConfig, TuskSettings
from tusk.core.formatter import format_value, quote_literal
from tusk.core.models import Artifact, Bucket, DatabaseReport, ItemOutcome
from tusk.core.naming import sanitize_identifier
from tusk.exceptions import ArtifactSkipped, GeneratorConfigError, TuskError
from tusk.generators.definitions import (
    DefinitionStatus,
    GeneratorDefinition,
    get_or_create_definition,
)
from tusk.generators.faker_generator import build_default_registry
from tusk.generators.registry import MISSING, GeneratorRegistry
from tusk.ordering import OrderingAllocator
from tusk.process import ProcessRunner
from tusk.safe_write import safe_write

logger = logging.getLogger(__name__)

METHODS = ("dump", "faker", "query", "csv")

REPLICATION_ROLE_REPLICA = "SET session_replication_role = 'replica';"
REPLICATION_ROLE_ORIGIN = "SET session_replication_role = 'origin';"


def wrap_replication_role(body: str) -> str:
    """Disable triggers and FK checks around a block of INSERTs."""
    return f"{REPLICATION_ROLE_REPLICA}\n{body}\n{REPLICATION_ROLE_ORIGIN}\n"


def build_insert(table: str, columns: list[str], values: list[object]) -> str:
    rendered = ", ".join(format_value(value) for value in values)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({rendered});"


def generate_rows(
    definition: GeneratorDefinition, rows: int, registry: GeneratorRegistry
) -> list[str]:
    """
    Build ``rows`` INSERT statements for a definition.

    Every column of every row resolves its generator independently; an
    unknown generator path renders as NULL.
    """
    columns = list(definition.columns)
    statements = []
    for _ in range(rows):
        values = []
        for column in columns:
            value = registry.resolve(definition.columns[column])
            values.append(None if value is MISSING else value)
        statements.append(build_insert(definition.table, columns, values))
    return statements


class SeedDispatcher:
    """
    Turn seed-table directives into ordered, lock-aware SQL artifacts.

    The allocator is shared across all mappings of the run; pass the same
    instance to other generators of the same run to keep prefixes global.
    """

    def __init__(
        self,
        config: TuskConfig,
        settings: TuskSettings,
        allocator: Optional[OrderingAllocator] = None,
        runner: Optional[ProcessRunner] = None,
        registry: Optional[GeneratorRegistry] = None,
        force: bool = False,
        dry_run: bool = False,
    ):
        self.config = config
        self.settings = settings
        self.allocator = allocator or OrderingAllocator()
        self.runner = runner or ProcessRunner.from_settings(settings)
        self.registry = registry or build_default_registry()
        self.force = force
        self.dry_run = dry_run

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def build_dump(self, db: DatabaseMapping, directive: SeedTableDirective) -> str:
        """Copy remote rows as INSERT statements."""
        args = [
            "-a",
            "-t",
            directive.table,
            "--inserts",
            "--no-owner",
            "--no-privileges",
            "--dbname",
            db.connection_uri(),
        ]
        result = self.runner.run("pg_dump", args)
        return wrap_replication_role(result.stdout)

    def resolve_definition_path(self, directive: SeedTableDirective) -> Path:
        ref = directive.faker_config_ref
        if not ref:
            raise GeneratorConfigError(directive.table, "no faker_config_ref given")
        path = self.config.faker_configs.get(ref)
        if not path:
            raise GeneratorConfigError(
                directive.table, f"faker_configs has no entry named '{ref}'"
            )
        return self.settings.resolve(path)

    def build_faker(self, directive: SeedTableDirective) -> str:
        """Synthesize rows from the directive's generator definition."""
        path = self.resolve_definition_path(directive)
        lookup = get_or_create_definition(
            path, directive.table, force=self.force, dry_run=self.dry_run
        )
        if lookup.status is DefinitionStatus.WOULD_CREATE:
            raise ArtifactSkipped(directive.table, f"generator scaffold not yet at {path}")
        if lookup.created:
            logger.info(f"  Default generator definition created at {path}; edit it and re-run")

        count = directive.row_count
        statements = generate_rows(lookup.definition, count, self.registry)
        header = f"-- Seed data for {directive.table} via Faker ({count} rows)\n"
        return header + wrap_replication_role("\n".join(statements))

    def build_query(self, directive: SeedTableDirective) -> str:
        """Pass a query template through verbatim."""
        template_dir = self.settings.get_query_template_dir()
        path = template_dir / f"{sanitize_identifier(directive.table)}.sql"
        if not path.is_file():
            raise ArtifactSkipped(directive.table, f"query file not found at {path}")
        return path.read_text(encoding="utf-8", errors="replace")

    def build_csv(self, directive: SeedTableDirective) -> str:
        """Bulk-load a flat file named after the table."""
        schema, table = directive.schema_name, directive.table_name
        csv_path = PurePosixPath(Path(self.settings.csv_dir).as_posix()) / f"{table}.csv"
        return (
            f"\\copy {schema}.{table} FROM {quote_literal(str(csv_path))} "
            f"WITH (FORMAT csv, HEADER true);\n"
        )

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def build(self, db: DatabaseMapping, directive: SeedTableDirective) -> str:
        method = directive.method
        if method == "dump":
            if self.dry_run:
                return f"-- [DRY RUN] pg_dump -a -t {directive.table} --inserts ...\n"
            return self.build_dump(db, directive)
        if method == "faker":
            return self.build_faker(directive)
        if method == "query":
            return self.build_query(directive)
        return self.build_csv(directive)

    def process(
        self, db: DatabaseMapping, directive: SeedTableDirective, report: DatabaseReport
    ) -> Optional[Path]:
        """
        Generate and write the artifact for one directive.

        Never raises for per-directive problems; the outcome is recorded in
        ``report`` instead.

        Returns:
            Path written, or None
        """
        table = directive.table
        logger.info(f"Generating seed for {table} using {directive.method}...")

        if directive.method not in METHODS:
            logger.warning(f"Unknown seeding method: {directive.method}")
            report.skipped.append(ItemOutcome(table, f"unknown method {directive.method}"))
            return None

        prefix = self.allocator.next_prefix(Bucket.for_method(directive.method))

        try:
            body = self.build(db, directive)
        except ArtifactSkipped as e:
            logger.warning(f"Warning: {e}")
            report.skipped.append(ItemOutcome(table, e.reason))
            return None
        except (TuskError, OSError) as e:
            logger.error(f"Failed to generate seed for {table}: {e}")
            report.failed.append(ItemOutcome(table, str(e)))
            return None

        artifact = Artifact(
            prefix=prefix,
            host_tag=sanitize_identifier(db.host),
            target_tag=sanitize_identifier(db.local_target_name),
            table_tag=sanitize_identifier(table),
            body=body,
        )
        path = self.settings.get_artifact_dir() / artifact.filename

        if self.dry_run:
            logger.info(f"[DRY RUN] Would write seed file to {path}")
            report.skipped.append(ItemOutcome(table, "dry run"))
            return None

        try:
            wrote = safe_write(path, artifact.body, self.force)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            report.failed.append(ItemOutcome(table, str(e)))
            return None

        if not wrote:
            report.skipped.append(ItemOutcome(table, "locked"))
            return None

        logger.info(f"Successfully wrote seed to {path}")
        report.written.append(ItemOutcome(table, str(path)))
        return path

    def reserve(self, db: DatabaseMapping) -> None:
        """Consume the prefixes of a mapping that is not being generated."""
        for directive in db.seed_tables:
            if directive.method in METHODS:
                self.allocator.next_prefix(Bucket.for_method(directive.method))

    def run(self, database: Optional[str] = None) -> list[DatabaseReport]:
        """
        Process every seed-table directive of every (or one) mapping.

        Mappings left out by ``database`` still reserve their prefixes, so
        a filtered run names each artifact exactly as a full run does.

        Raises:
            ConfigurationError: If ``database`` matches no mapping
        """
        selected = {id(db) for db in self.config.select(database)}
        reports = []
        for db in self.config.databases:
            if id(db) not in selected:
                self.reserve(db)
                continue
            report = DatabaseReport(database=db.source_name)
            reports.append(report)
            for directive in db.seed_tables:
                self.process(db, directive, report)
            logger.info(report.summary())
        return reports
