"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest
from faker import Faker

from tusk.config import TuskConfig, TuskSettings
from tusk.exceptions import ProcessError
from tusk.generators.faker_generator import build_default_registry
from tusk.process import ProcessResult

SAMPLE_CONFIG = """
dependency_versions:
  prisma: "5.13.0"

faker_configs:
  authors_faker_config: "./templates/faker/authors.yaml"

databases:
  - source_name: "remote_example"
    local_target_name: "local_db"
    host: "fake-remote-db.local:5433"
    username: "remote_user"
    sslmode: "disable"
    seed_tables:
      - table: "bookstore_ops.authors"
        method: "faker"
        faker_config_ref: "authors_faker_config"
        rows: 3
      - table: "bookstore_ops.books"
        method: "dump"
      - table: "bookstore_ops.reviews"
        method: "csv"
"""


class FakeRunner:
    """
    Stand-in for ProcessRunner that records invocations.

    ``responses`` maps a command name to either a stdout string or an
    exception instance to raise.
    """

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def run(self, command, args, env=None, cwd=None):
        self.calls.append((command, list(args)))
        response = self.responses.get(command, "")
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(list(args))
        return ProcessResult(stdout=response, stderr="")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root holding the sample tusk.yaml."""
    (tmp_path / "tusk.yaml").write_text(SAMPLE_CONFIG)
    return tmp_path


@pytest.fixture
def settings(project: Path) -> TuskSettings:
    return TuskSettings(root=project, pgpass_file=str(project / "pgpass"))


@pytest.fixture
def config(settings: TuskSettings) -> TuskConfig:
    return settings.load_config()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner():
    """Factory for FakeRunner instances with canned responses."""
    return FakeRunner


@pytest.fixture
def registry():
    fake = Faker()
    fake.seed_instance(1234)
    return build_default_registry(fake)


@pytest.fixture
def failing_process() -> ProcessError:
    return ProcessError("pg_dump", 1, "", "connection refused")
