"""Starter files: generator definitions, query templates and the init script."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from tusk.config import TuskConfig, TuskSettings
from tusk.core.naming import sanitize_identifier
from tusk.generators.definitions import render_scaffold
from tusk.safe_write import LOCK_MARKER, safe_write

logger = logging.getLogger(__name__)


def write_faker_scaffold(
    path: Path | str, table: str, force: bool = False, dry_run: bool = False
) -> bool:
    """
    Write a default generator definition for ``table``.

    Returns:
        True if written (or would be, in dry run)
    """
    path = Path(path)
    if dry_run:
        logger.info(f"[DRY RUN] Would write Faker scaffold to {path}")
        return True
    if safe_write(path, render_scaffold(table), force):
        logger.info(f"Successfully generated Faker scaffold: {path}")
        return True
    return False


def render_query_scaffold(table: str, database: str, schema: str = "public") -> str:
    """
    Query template skeleton. Locked from the start so hand edits survive.
    """
    bare = table.split(".", 1)[1] if "." in table else table
    return (
        f"-- @database {database}\n"
        f"-- @schema {schema}\n"
        f"-- @table {sanitize_identifier(bare)}\n"
        f"-- {LOCK_MARKER} (Remove this tag to allow tusk to overwrite this file)\n"
        f"\n"
        f"SELECT * FROM {table} LIMIT 100;\n"
    )


def write_query_scaffold(
    settings: TuskSettings,
    config: Optional[TuskConfig],
    table: str = "example_table",
    force: bool = False,
    dry_run: bool = False,
) -> Optional[Path]:
    """
    Write a query template for ``table`` into the template store.

    The ``@database`` header is taken from the first mapping with a seed
    table matching ``table``; otherwise it defaults to ``local_db``.

    Returns:
        Path written, or None
    """
    database = "local_db"
    schema = "public"
    if config is not None:
        for db in config.databases:
            match = next((d for d in db.seed_tables if d.refers_to(table)), None)
            if match is not None:
                database = db.local_target_name
                schema = match.schema_name
                break

    bare = table.split(".", 1)[1] if "." in table else table
    path = settings.get_query_template_dir() / f"{sanitize_identifier(bare)}.sql"

    if dry_run:
        logger.info(f"[DRY RUN] Would write query scaffold to {path}")
        return None
    if safe_write(path, render_query_scaffold(table, database, schema), force):
        logger.info(f"Successfully generated query scaffold: {path}")
        return path
    return None


def render_init_sql(config: TuskConfig) -> str:
    """
    ``CREATE DATABASE`` for every distinct local target, in config order.

    Each statement is guarded so that replaying the script is harmless.
    """
    names = list(dict.fromkeys(db.local_target_name for db in config.databases))
    lines = [f"-- {LOCK_MARKER}", "-- Generated Database Initialization", ""]
    for name in names:
        literal = name.replace("'", "''")
        lines.append(
            f"SELECT 'CREATE DATABASE {literal}' "
            f"WHERE NOT EXISTS (SELECT FROM pg_database WHERE datname = '{literal}') \\gexec"
        )
    return "\n".join(lines) + "\n"


def write_init_sql(
    settings: TuskSettings, config: TuskConfig, force: bool = False, dry_run: bool = False
) -> Optional[Path]:
    path = settings.resolve(settings.init_sql_path)
    if dry_run:
        logger.info(f"[DRY RUN] Would write database initialization SQL to {path}")
        return None
    if safe_write(path, render_init_sql(config), force):
        logger.info(f"Successfully generated: {path}")
        return path
    return None
