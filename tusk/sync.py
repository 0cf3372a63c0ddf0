"""Applying sync artifacts locally and probing remote sources."""

from __future__ import annotations

import logging
import os
from typing import Optional

from tusk.config import TuskConfig, TuskSettings
from tusk.core.models import DatabaseReport, ItemOutcome
from tusk.exceptions import TuskError
from tusk.process import ProcessRunner

logger = logging.getLogger(__name__)

SYNC_PREFIX = "600__"
LOCAL_HOST = "127.0.0.1"

CONNECTIVITY_CHECKS = (
    ("Connection established", "SELECT 1"),
    ("Privileges verified for metadata extraction", "SELECT count(*) FROM pg_catalog.pg_class LIMIT 1"),
)


def sync_artifacts(
    settings: TuskSettings, runner: ProcessRunner, dry_run: bool = False
) -> DatabaseReport:
    """
    Run every ``600__*.sql`` artifact against its local target database.

    The target database is the third ``__``-separated filename segment.
    Files run in ascending name order; a failing file does not stop the rest.
    """
    report = DatabaseReport(database="local")
    artifact_dir = settings.get_artifact_dir()
    if not artifact_dir.is_dir():
        logger.warning("DDL directory not found. Nothing to sync.")
        return report

    files = sorted(artifact_dir.glob(f"{SYNC_PREFIX}*.sql"))
    if not files:
        logger.info(f"No sync templates ({SYNC_PREFIX}*) found in {artifact_dir}")
        return report

    user = os.environ.get("POSTGRES_USER", "postgres")
    for path in files:
        parts = path.stem.split("__")
        if len(parts) < 4:
            report.skipped.append(ItemOutcome(path.name, "unexpected filename"))
            continue
        target_db = parts[2]

        if dry_run:
            logger.info(f"[DRY RUN] Would execute {path.name} against database {target_db}")
            report.skipped.append(ItemOutcome(path.name, "dry run"))
            continue

        logger.info(f"Syncing {path.name} to {target_db}...")
        args = ["--host", LOCAL_HOST, "--username", user, "--dbname", target_db, "--file", str(path)]
        try:
            runner.run("psql", args)
        except TuskError as e:
            logger.error(f"Sync failed for {path.name}: {e}")
            report.failed.append(ItemOutcome(path.name, str(e)))
            continue
        report.written.append(ItemOutcome(path.name, target_db))

    logger.info(report.summary())
    return report


def check_connectivity(
    config: TuskConfig,
    runner: ProcessRunner,
    database: Optional[str] = None,
    dry_run: bool = False,
) -> list[DatabaseReport]:
    """
    Verify that every remote source accepts a connection and allows
    catalog reads (needed by pg_dump).
    """
    reports = []
    for db in config.select(database):
        report = DatabaseReport(database=db.source_name)
        reports.append(report)
        logger.info(f"Checking connectivity for {db.source_name} ({db.host})...")

        if dry_run:
            logger.info(f"[DRY RUN] Would verify connection and privileges for {db.host}")
            report.skipped.append(ItemOutcome(db.host, "dry run"))
            continue

        try:
            for label, sql in CONNECTIVITY_CHECKS:
                runner.run("psql", ["--dbname", db.connection_uri(), "--command", sql])
                logger.info(f"  [OK] {label}.")
        except TuskError as e:
            logger.error(f"  [FAIL] Connectivity/privilege check failed for {db.source_name}: {e}")
            report.failed.append(ItemOutcome(db.host, str(e)))
            continue
        report.written.append(ItemOutcome(db.host, "reachable"))

    return reports
