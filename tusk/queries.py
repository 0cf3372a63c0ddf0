"""
Remote query templates.

A template is a ``.sql`` file with metadata headers followed by one SELECT::

    -- @database local_db
    -- @schema bookstore_ops
    -- @table authors

    SELECT id, name FROM bookstore_ops.authors ORDER BY name;

The query runs on the remote source of the named database, each result row
comes back as one JSON object per line and is rewritten as an INSERT into
the local table.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tusk.config import TuskConfig, TuskSettings
from tusk.core.formatter import format_value, quote_identifier
from tusk.core.models import Artifact, DatabaseReport, ItemOutcome
from tusk.core.naming import sanitize_identifier
from tusk.exceptions import (
    ArtifactSkipped,
    ProcessError,
    QueryTemplateError,
    RowParseError,
    TuskError,
)
from tusk.ordering import query_prefix
from tusk.process import ProcessRunner
from tusk.safe_write import safe_write
from tusk.seeder import wrap_replication_role

logger = logging.getLogger(__name__)

_HEADER_RE = {
    name: re.compile(rf"^--\s*@{name}\s+(\S.*?)\s*$", re.MULTILINE)
    for name in ("database", "schema", "table")
}


def strip_sql_comments(text: str) -> str:
    """
    Flatten a template into a single statement.

    Drops ``--`` comments, joins lines and removes semicolons so the query
    can be embedded as a subquery.
    """
    lines = []
    for line in text.splitlines():
        index = line.find("--")
        lines.append(line[:index] if index != -1 else line)
    return " ".join(lines).replace(";", "").strip()


@dataclass
class QueryTemplate:
    """Parsed query template."""

    path: Path
    database: str
    schema: str
    table: str
    sql: str

    @classmethod
    def parse(cls, path: Path | str, text: Optional[str] = None) -> QueryTemplate:
        """
        Parse a template file.

        Raises:
            QueryTemplateError: If ``@database`` or ``@table`` is missing
        """
        path = Path(path)
        if text is None:
            text = path.read_text(encoding="utf-8", errors="replace")

        found = {}
        for name, pattern in _HEADER_RE.items():
            match = pattern.search(text)
            if match:
                found[name] = match.group(1)

        missing = [name for name in ("database", "table") if name not in found]
        if missing:
            raise QueryTemplateError(str(path), missing)

        return cls(
            path=path,
            database=found["database"],
            schema=found.get("schema", "public"),
            table=found["table"],
            sql=strip_sql_comments(text),
        )

    @property
    def json_command(self) -> str:
        """Wrap the query so each row comes back as one JSON object."""
        return f"SELECT row_to_json(t) FROM ({self.sql}) t"


def row_to_insert(line: str, schema: str, table: str) -> str:
    """
    Convert one JSON row to an INSERT statement.

    Raises:
        RowParseError: If the line is not a JSON object
    """
    try:
        row = json.loads(line)
    except json.JSONDecodeError as e:
        raise RowParseError(line, e.msg) from e
    if not isinstance(row, dict):
        raise RowParseError(line, "not a JSON object")

    columns = ", ".join(quote_identifier(column) for column in row)
    values = ", ".join(format_value(value) for value in row.values())
    target = f"{quote_identifier(schema)}.{quote_identifier(table)}"
    return f"INSERT INTO {target} ({columns}) VALUES ({values});"


def rows_to_inserts(lines: list[str], schema: str, table: str) -> list[str]:
    """
    Convert every JSON row; a malformed row becomes a comment and a warning.
    """
    statements = []
    for line in lines:
        try:
            statements.append(row_to_insert(line, schema, table))
        except RowParseError as e:
            logger.warning(str(e))
            statements.append(f"-- Failed to parse row: {line}")
    return statements


def render_query_artifact(template: QueryTemplate, statements: list[str]) -> str:
    header = (
        f"-- Generated from remote query: {template.path.name}\n"
        f"-- @table {template.table}\n\n"
    )
    return header + wrap_replication_role("\n".join(statements))


class QueryRunner:
    """Execute query templates remotely and write local seed artifacts."""

    def __init__(
        self,
        config: TuskConfig,
        settings: TuskSettings,
        runner: Optional[ProcessRunner] = None,
        force: bool = False,
        dry_run: bool = False,
    ):
        self.config = config
        self.settings = settings
        self.runner = runner or ProcessRunner.from_settings(settings)
        self.force = force
        self.dry_run = dry_run

    def template_files(self, file: Optional[str] = None) -> list[Path]:
        """
        Templates to process: one named file, or every ``.sql`` file.

        Raises:
            ArtifactSkipped: If the template directory does not exist
        """
        template_dir = self.settings.get_query_template_dir()
        if not template_dir.is_dir():
            raise ArtifactSkipped(str(template_dir), "queries directory not found")
        if file:
            return [template_dir / file]
        return sorted(template_dir.glob("*.sql"))

    def execute(self, template: QueryTemplate) -> Artifact:
        """
        Run one template remotely and build its artifact.

        Raises:
            ArtifactSkipped: Unknown database or empty result
            ProcessError, SpawnError: If psql fails
        """
        db = self.config.find_database(template.database)
        if db is None:
            raise ArtifactSkipped(
                template.path.name, f'no database configuration found for "{template.database}"'
            )

        logger.info(f"  Target host: {db.host}")
        logger.info(f"  Source DB:   {db.source_name}")
        logger.info(f"  Local DB:    {db.local_target_name}")
        logger.info(f"  Target tab:  {template.schema}.{template.table}")
        logger.debug(f"  SQL: {template.sql}")

        result = self.runner.run(
            "psql",
            [
                "--dbname",
                db.connection_uri(),
                "--tuples-only",
                "--no-align",
                "--command",
                template.json_command,
            ],
        )
        if result.stderr:
            logger.debug(f"  Stderr: {result.stderr}")

        lines = [line for line in result.stdout.splitlines() if line.strip()]
        if not lines:
            raise ArtifactSkipped(template.path.name, "query returned no data")

        statements = rows_to_inserts(lines, template.schema, template.table)
        return Artifact(
            prefix=query_prefix(self.config, template.table, template.database),
            host_tag=sanitize_identifier(db.host),
            target_tag=sanitize_identifier(db.local_target_name),
            table_tag=sanitize_identifier(template.table),
            body=render_query_artifact(template, statements),
        )

    def process(self, path: Path, report: DatabaseReport) -> Optional[Path]:
        logger.info(f"--- Processing query: {path.name} ---")
        try:
            template = QueryTemplate.parse(path)
            if self.dry_run:
                logger.info(f"  [DRY RUN] Would execute {path.name} for {template.database}")
                report.skipped.append(ItemOutcome(path.name, "dry run"))
                return None
            artifact = self.execute(template)
        except (QueryTemplateError, ArtifactSkipped) as e:
            logger.warning(f"  [SKIP] {e}")
            report.skipped.append(ItemOutcome(path.name, str(e)))
            return None
        except ProcessError as e:
            logger.error(f"  [ERROR] Remote query failed for {path.name}")
            if e.stderr:
                logger.debug(f"  psql stderr: {e.stderr}")
            report.failed.append(ItemOutcome(path.name, str(e)))
            return None
        except (TuskError, OSError) as e:
            logger.error(f"  [ERROR] Critical error processing {path.name}: {e}")
            report.failed.append(ItemOutcome(path.name, str(e)))
            return None

        target = self.settings.get_artifact_dir() / artifact.filename
        try:
            wrote = safe_write(target, artifact.body.strip() + "\n", self.force)
        except OSError as e:
            logger.error(f"  [ERROR] Failed to write {target}: {e}")
            report.failed.append(ItemOutcome(path.name, str(e)))
            return None

        if wrote:
            logger.info(f"  [SUCCESS] Artifact generated: {target}")
            report.written.append(ItemOutcome(path.name, str(target)))
            return target

        report.skipped.append(ItemOutcome(path.name, "locked"))
        return None

    def run(self, file: Optional[str] = None) -> DatabaseReport:
        """
        Process one or all query templates.

        Returns:
            A single report covering every template processed
        """
        report = DatabaseReport(database="queries")
        try:
            files = self.template_files(file)
        except ArtifactSkipped as e:
            logger.warning(str(e))
            report.skipped.append(ItemOutcome(e.target, e.reason))
            return report

        if not files:
            logger.info("No query files found to process.")
        for path in files:
            self.process(path, report)

        logger.info(report.summary())
        return report
