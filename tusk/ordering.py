"""
Filename prefix allocation.

Artifacts are named ``DDD__host__target__table.sql``; the three-digit prefix
encodes load order for a runner that executes files by ascending name.
"""

from __future__ import annotations

from typing import Union

from tusk.config import TuskConfig
from tusk.core.models import Bucket

BucketLike = Union[Bucket, str]

# Methods that share the 600 bucket
QUERY_BUCKET_METHODS = ("query", "csv")


class OrderingAllocator:
    """
    Per-run prefix counters, one per bucket.

    Owned by the orchestrating call and shared across every database mapping,
    so ordering is global to the run. Counters start at zero on every
    invocation and are never persisted: regeneration is stable exactly when
    the directive order in the configuration is stable.
    """

    def __init__(self) -> None:
        self._counters: dict[Bucket, int] = {bucket: 0 for bucket in Bucket}

    @staticmethod
    def _bucket(bucket: BucketLike) -> Bucket:
        if isinstance(bucket, Bucket):
            return bucket
        return Bucket.for_method(bucket)

    def next_prefix(self, bucket: BucketLike) -> str:
        """
        Allocate the next prefix in a bucket.

        Args:
            bucket: Bucket or method name ("dump", "faker", "query", "csv", "schema")

        Returns:
            Zero-padded prefix, e.g. "400"

        Example:
            >>> allocator = OrderingAllocator()
            >>> allocator.next_prefix("dump"), allocator.next_prefix("dump")
            ('400', '401')
            >>> allocator.next_prefix("faker")
            '800'
        """
        key = self._bucket(bucket)
        value = key.value + self._counters[key]
        self._counters[key] += 1
        return f"{value:03d}"

    def peek(self, bucket: BucketLike) -> str:
        """Prefix the next allocation would return, without consuming it."""
        key = self._bucket(bucket)
        return f"{key.value + self._counters[key]:03d}"

    def reset(self) -> None:
        for bucket in self._counters:
            self._counters[bucket] = 0


def query_prefix_index(config: TuskConfig, table: str, database: str | None = None) -> int:
    """
    Position of a query artifact inside the 600 bucket.

    Counts the query/csv directives that precede the first directive matching
    ``table``, scanning mappings in configuration order and directives in
    declaration order. When ``database`` is given only directives of a
    mapping with that source or local target name can match. Without any
    match the result is the total number of query/csv directives, so the
    artifact sorts after every configured one.
    """
    index = 0
    for db in config.databases:
        for directive in db.seed_tables:
            if directive.method not in QUERY_BUCKET_METHODS:
                continue
            if directive.refers_to(table) and (database is None or db.matches(database)):
                return index
            index += 1
    return index


def query_prefix(config: TuskConfig, table: str, database: str | None = None) -> str:
    return f"{Bucket.QUERY.value + query_prefix_index(config, table, database):03d}"
