"""
Schema extraction and sanitization.

Dumped schema from a managed platform references extensions and replication
objects that cannot exist in a single-node local mirror. ``sanitize_ddl``
comments those statements out and works out which OS packages and preload
libraries the local server needs for the extensions that remain.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from tusk.config import DatabaseMapping, TuskConfig, TuskSettings
from tusk.core.models import Artifact, Bucket, DatabaseReport, ItemOutcome, SanitizedDDL
from tusk.core.naming import sanitize_identifier
from tusk.exceptions import TuskError
from tusk.ordering import OrderingAllocator
from tusk.process import ProcessRunner
from tusk.safe_write import safe_write

logger = logging.getLogger(__name__)

# Managed-platform-only extensions
DISALLOWED_EXTENSIONS = (
    "aws_s3",
    "aws_lambda",
    "aws_ml",
    "pg_tle",
    "rds_tools",
    "apg_plan_mgmt",
)

EXTENSION_PACKAGE_MAP = {
    "plperl": "postgresql-plperl-16",
    "plpython3u": "postgresql-plpython3-16",
    "pltcl": "postgresql-pltcl-16",
    "postgis": "postgresql-16-postgis-3",
    "pg_repack": "postgresql-16-repack",
    "pg_cron": "postgresql-16-cron",
    "pg_partman": "postgresql-16-partman",
    "pgvector": "postgresql-16-pgvector",
}

EXTENSION_CONFIG_MAP = {
    "pg_stat_statements": "pg_stat_statements",
    "pg_cron": "pg_cron",
    "pg_partman_bgw": "pg_partman_bgw",
}

COMMENT_PREFIX = "-- "
REQUIREMENTS_FILENAME = "requirements.txt"
SERVER_CONF_FILENAME = "tusk.conf"
BUILD_CONTEXT_ITEM = "build context"

_FLAGS = re.MULTILINE | re.IGNORECASE

# Single-line statements only: the statement must start the line and its
# terminating semicolon must be on the same line.
_REPLICATION_RE = re.compile(
    r"^((?:CREATE|ALTER) (?:PUBLICATION|SUBSCRIPTION)\b.*;)[ \t\r]*$", _FLAGS
)
_ACTIVE_EXTENSION_RE = re.compile(r'^CREATE EXTENSION (?:IF NOT EXISTS )?"?(\w+)"?', _FLAGS)


def _extension_patterns(name: str) -> list[re.Pattern[str]]:
    ext = re.escape(name)
    return [
        re.compile(rf'^(CREATE EXTENSION (?:IF NOT EXISTS )?"?{ext}"?(?!\w).*;)[ \t\r]*$', _FLAGS),
        re.compile(rf'^(COMMENT ON EXTENSION "?{ext}"?(?!\w).*;)[ \t\r]*$', _FLAGS),
    ]


_DISALLOWED_RES = [
    pattern for name in DISALLOWED_EXTENSIONS for pattern in _extension_patterns(name)
]


def _comment_out(match: re.Match[str]) -> str:
    return COMMENT_PREFIX + match.group(1)


def sanitize_ddl(text: str) -> SanitizedDDL:
    """
    Make dumped schema safe to replay locally.

    - ``CREATE EXTENSION`` / ``COMMENT ON EXTENSION`` for disallowed
      extensions are commented out (not deleted).
    - Every ``CREATE``/``ALTER`` ``PUBLICATION``/``SUBSCRIPTION`` is
      commented out.
    - Remaining active ``CREATE EXTENSION`` statements are looked up in the
      package and preload-library tables; unknown extensions pass through.

    Statements spanning several lines are not recognized and stay as they are.
    """
    sanitized = text
    for pattern in _DISALLOWED_RES:
        sanitized = pattern.sub(_comment_out, sanitized)
    sanitized = _REPLICATION_RE.sub(_comment_out, sanitized)

    result = SanitizedDDL(text=sanitized)
    for match in _ACTIVE_EXTENSION_RE.finditer(sanitized):
        name = match.group(1).lower()
        if name in EXTENSION_PACKAGE_MAP:
            result.required_packages.add(EXTENSION_PACKAGE_MAP[name])
        if name in EXTENSION_CONFIG_MAP:
            result.required_configs.add(EXTENSION_CONFIG_MAP[name])
    return result


def write_build_context(
    directory: Path, packages: set[str], configs: set[str]
) -> list[Path]:
    """
    Write the package list and preload-library config for the local image.

    Each file is only written when there is something to put in it.

    Returns:
        Paths written
    """
    written = []
    if packages:
        path = directory / REQUIREMENTS_FILENAME
        if safe_write(path, "\n".join(sorted(packages)) + "\n"):
            written.append(path)
    if configs:
        path = directory / SERVER_CONF_FILENAME
        libraries = ",".join(sorted(configs))
        if safe_write(path, f"shared_preload_libraries = '{libraries}'\n"):
            written.append(path)
    for path in written:
        logger.info(f"Updated {path}")
    return written


class SchemaExtractor:
    """
    Extract, sanitize and write schema DDL for each database mapping.

    Each mapping takes the next prefix from the schema bucket, whether or not
    its extraction succeeds, so filenames stay stable across partial failures.
    """

    def __init__(
        self,
        config: TuskConfig,
        settings: TuskSettings,
        runner: Optional[ProcessRunner] = None,
        allocator: Optional[OrderingAllocator] = None,
        force: bool = False,
        dry_run: bool = False,
    ):
        self.config = config
        self.settings = settings
        self.runner = runner or ProcessRunner.from_settings(settings)
        self.allocator = allocator or OrderingAllocator()
        self.force = force
        self.dry_run = dry_run
        self.required_packages: set[str] = set()
        self.required_configs: set[str] = set()

    def dump_args(self, db: DatabaseMapping) -> list[str]:
        args = ["-s", "--no-owner", "--no-privileges", "--dbname", db.connection_uri()]
        for schema in db.target_schemas:
            args += ["-n", schema]
        return args

    def extract(self, db: DatabaseMapping, prefix: str) -> Artifact:
        """
        Dump and sanitize one mapping's schema.

        Raises:
            ProcessError, SpawnError: If pg_dump fails
        """
        result = self.runner.run("pg_dump", self.dump_args(db))
        sanitized = sanitize_ddl(result.stdout)
        self.required_packages |= sanitized.required_packages
        self.required_configs |= sanitized.required_configs
        return Artifact(
            prefix=prefix,
            host_tag=sanitize_identifier(db.host),
            target_tag=sanitize_identifier(db.local_target_name),
            table_tag=db.schema_label,
            body=sanitized.text,
        )

    def _process(
        self, db: DatabaseMapping, prefix: str, artifact_dir: Path, report: DatabaseReport
    ) -> None:
        logger.info(f"Extracting DDL from {db.source_name} ({db.host})...")
        if db.target_schemas:
            logger.info(f"  Target schemas: {', '.join(db.target_schemas)}")

        if self.dry_run:
            logger.info(f"[DRY RUN] Would run pg_dump for {db.host}")
            report.skipped.append(ItemOutcome(db.schema_label, "dry run"))
            return

        try:
            artifact = self.extract(db, prefix)
        except TuskError as e:
            logger.error(f"Failed to extract DDL for {db.source_name}: {e}")
            report.failed.append(ItemOutcome(db.schema_label, str(e)))
            return

        path = artifact_dir / artifact.filename
        try:
            wrote = safe_write(path, artifact.body, self.force)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            report.failed.append(ItemOutcome(db.schema_label, str(e)))
            return

        if wrote:
            logger.info(f"Successfully wrote DDL to {path}")
            report.written.append(ItemOutcome(db.schema_label, str(path)))
        else:
            report.skipped.append(ItemOutcome(db.schema_label, "locked"))

    def run(self, database: Optional[str] = None) -> list[DatabaseReport]:
        """
        Extract schema for all (or one) mappings.

        Mappings left out by ``database`` still take their schema prefix.
        A failure to write the build context is recorded on the last report.

        Raises:
            ConfigurationError: If ``database`` matches no mapping
        """
        selected = {id(db) for db in self.config.select(database)}
        artifact_dir = self.settings.get_artifact_dir()
        reports = []

        for db in self.config.databases:
            prefix = self.allocator.next_prefix(Bucket.SCHEMA)
            if id(db) not in selected:
                continue
            report = DatabaseReport(database=db.source_name)
            reports.append(report)
            self._process(db, prefix, artifact_dir, report)
            logger.info(report.summary())

        if not self.dry_run:
            try:
                write_build_context(
                    self.settings.get_build_context_dir(),
                    self.required_packages,
                    self.required_configs,
                )
            except OSError as e:
                logger.error(f"Failed to write build context: {e}")
                reports[-1].failed.append(ItemOutcome(BUILD_CONTEXT_ITEM, str(e)))
        return reports
