"""
Core data models for tusk.

Defines the records passed between the generation stages: generated
artifacts, sanitized schema output and the per-database run reports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Bucket(Enum):
    """
    Numeric range reserved for one kind of artifact.

    The value is the base prefix. A SQL runner that executes files in
    ascending filename order loads schema first, then bulk row copies,
    then query/flat-file loads, then synthetic rows.
    """

    SCHEMA = 200
    DUMP = 400
    QUERY = 600
    FAKER = 800

    @classmethod
    def for_method(cls, method: str) -> Bucket:
        """Map a seeding method name onto its bucket (csv shares with query)."""
        try:
            return _METHOD_BUCKETS[method]
        except KeyError:
            raise ValueError(f"Unknown seeding method: {method}") from None


_METHOD_BUCKETS = {
    "schema": Bucket.SCHEMA,
    "dump": Bucket.DUMP,
    "query": Bucket.QUERY,
    "csv": Bucket.QUERY,
    "faker": Bucket.FAKER,
}


@dataclass
class Artifact:
    """
    One generated SQL file.

    Filename layout: ``prefix__hostTag__targetTag__tableTag.sql``. Tags are
    expected to be sanitized already (see ``tusk.core.naming``).
    """

    prefix: str
    host_tag: str
    target_tag: str
    table_tag: str
    body: str

    @property
    def filename(self) -> str:
        return f"{self.prefix}__{self.host_tag}__{self.target_tag}__{self.table_tag}.sql"


@dataclass
class SanitizedDDL:
    """Result of sanitizing a schema dump."""

    text: str
    required_packages: set[str] = field(default_factory=set)
    required_configs: set[str] = field(default_factory=set)


@dataclass
class ItemOutcome:
    """What happened to a single directive, template or mapping."""

    name: str
    detail: str = ""


@dataclass
class DatabaseReport:
    """
    Per-database summary of one run.

    Every processed item lands in exactly one of the three lists so a run
    never reports a silent partial success.
    """

    database: str
    written: list[ItemOutcome] = field(default_factory=list)
    skipped: list[ItemOutcome] = field(default_factory=list)
    failed: list[ItemOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return (
            f"{self.database}: {len(self.written)} written, "
            f"{len(self.skipped)} skipped, {len(self.failed)} failed"
        )
