"""Tests for filename-safe identifiers and artifact names."""

import pytest

from tusk.core.models import Artifact, Bucket, DatabaseReport, ItemOutcome
from tusk.core.naming import sanitize_identifier


class TestSanitizeIdentifier:
    """Tests for sanitize_identifier."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("HR Prod", "HR_Prod"),
            ("db.example.com:5432", "db_example_com_5432"),
            ("bookstore_ops.authors", "bookstore_ops_authors"),
            ("a..b", "a_b"),
            ("a - b", "a_b"),
            ("plain", "plain"),
        ],
    )
    def test_sanitize(self, raw: str, expected: str) -> None:
        assert sanitize_identifier(raw) == expected

    def test_empty_and_none(self) -> None:
        assert sanitize_identifier("") == ""
        assert sanitize_identifier(None) == ""

    def test_no_double_underscore_survives(self) -> None:
        """Artifact names use '__' as separator, so segments must not contain it."""
        assert "__" not in sanitize_identifier("weird__name...with  gaps")


class TestArtifact:
    """Tests for Artifact naming."""

    def test_filename_layout(self) -> None:
        artifact = Artifact(
            prefix="801",
            host_tag="db_example_com",
            target_tag="local_db",
            table_tag="public_users",
            body="",
        )
        assert artifact.filename == "801__db_example_com__local_db__public_users.sql"


class TestBucket:
    """Tests for method to bucket mapping."""

    @pytest.mark.parametrize(
        ("method", "bucket"),
        [
            ("schema", Bucket.SCHEMA),
            ("dump", Bucket.DUMP),
            ("query", Bucket.QUERY),
            ("csv", Bucket.QUERY),
            ("faker", Bucket.FAKER),
        ],
    )
    def test_for_method(self, method: str, bucket: Bucket) -> None:
        assert Bucket.for_method(method) is bucket

    def test_unknown_method(self) -> None:
        with pytest.raises(ValueError, match="Unknown seeding method"):
            Bucket.for_method("magic")


class TestDatabaseReport:
    """Tests for per-database reports."""

    def test_summary_and_ok(self) -> None:
        report = DatabaseReport(database="remote_example")
        report.written.append(ItemOutcome("a"))
        report.skipped.append(ItemOutcome("b", "locked"))
        assert report.ok
        assert report.summary() == "remote_example: 1 written, 1 skipped, 0 failed"

        report.failed.append(ItemOutcome("c", "boom"))
        assert not report.ok
