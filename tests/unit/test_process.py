"""Tests for external tool invocation and credential injection."""

import os
import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest

from tusk.exceptions import ProcessError, SpawnError
from tusk.pgpass import PgPass
from tusk.process import (
    ConnectionTarget,
    ProcessRunner,
    connection_target,
    parse_dbname,
)

URI = "postgresql://alice@db.example.com:5432/app?sslmode=disable"


def _completed(returncode=0, stdout="", stderr=""):
    proc = MagicMock()
    proc.returncode = returncode
    proc.stdout = stdout
    proc.stderr = stderr
    return proc


class TestConnectionTarget:
    """Tests for deriving the connection target from argv."""

    def test_from_uri(self) -> None:
        assert connection_target(["--dbname", URI]) == ConnectionTarget(
            host="db.example.com", port="5432", database="app", user="alice"
        )

    def test_uri_without_port_uses_default(self) -> None:
        target = connection_target(["--dbname", "postgresql://alice@db.example.com/app"])
        assert target.port == "5432"

    def test_separate_flags(self) -> None:
        args = ["--host", "127.0.0.1", "--username", "postgres", "--dbname", "local_db"]
        assert connection_target(args) == ConnectionTarget(
            host="127.0.0.1", port="5432", database="local_db", user="postgres"
        )

    def test_equals_form(self) -> None:
        args = ["--host=h", "--port=6543", "--username=u", "--dbname=d"]
        assert connection_target(args) == ConnectionTarget("h", "6543", "d", "u")

    def test_needs_host_and_user(self) -> None:
        assert connection_target(["--dbname", "local_db"]) is None
        assert connection_target(["--command", "SELECT 1"]) is None

    def test_plain_dbname(self) -> None:
        assert parse_dbname("local_db") == {"dbname": "local_db"}


class TestBuildArgs:
    """Tests for the no-prompt flag."""

    def test_prepends_for_psql_and_pg_dump(self) -> None:
        assert ProcessRunner.build_args("psql", ["--command", "x"]) == ["-w", "--command", "x"]
        assert ProcessRunner.build_args("/usr/bin/pg_dump", ["-s"]) == ["-w", "-s"]

    def test_not_duplicated(self) -> None:
        assert ProcessRunner.build_args("psql", ["-w", "-c", "x"]) == ["-w", "-c", "x"]
        assert ProcessRunner.build_args("psql", ["--no-password"]) == ["--no-password"]

    def test_other_commands_untouched(self) -> None:
        assert ProcessRunner.build_args("docker", ["ps"]) == ["ps"]


class TestBuildEnv:
    """Tests for password injection."""

    def test_injects_matching_password(self) -> None:
        runner = ProcessRunner(PgPass.parse("db.example.com:5432:app:alice:s3cret\n"), base_env={})
        env = runner.build_env(["--dbname", URI])
        assert env["PGPASSWORD"] == "s3cret"

    def test_wrong_port_gets_nothing(self) -> None:
        runner = ProcessRunner(PgPass.parse("db.example.com:5433:app:alice:s3cret\n"), base_env={})
        env = runner.build_env(["--dbname", URI])
        assert "PGPASSWORD" not in env

    def test_no_target_leaves_env_alone(self) -> None:
        runner = ProcessRunner(PgPass.parse("*:*:*:*:pw\n"), base_env={"A": "1"})
        assert runner.build_env(["--version"]) == {"A": "1"}

    def test_caller_env_is_merged(self) -> None:
        runner = ProcessRunner(base_env={"A": "1"})
        assert runner.build_env([], {"B": "2"}) == {"A": "1", "B": "2"}


class TestRun:
    """Tests for ProcessRunner.run."""

    @patch("tusk.process.subprocess.run")
    def test_success_trims_output(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(stdout="line one\nline two\n\n", stderr="note\n")

        result = ProcessRunner(base_env={}).run("psql", ["--command", "SELECT 1"])

        assert result.stdout == "line one\nline two"
        assert result.stderr == "note"
        assert result.exit_code == 0

    @patch("tusk.process.subprocess.run")
    def test_password_never_in_argv(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed()
        runner = ProcessRunner(PgPass.parse("db.example.com:5432:app:alice:s3cret\n"), base_env={})

        runner.run("pg_dump", ["-s", "--dbname", URI])

        argv = mock_run.call_args.args[0]
        kwargs = mock_run.call_args.kwargs
        assert argv == ["pg_dump", "-w", "-s", "--dbname", URI]
        assert "s3cret" not in " ".join(argv)
        assert kwargs["env"]["PGPASSWORD"] == "s3cret"
        assert kwargs["stdin"] is subprocess.DEVNULL

    @patch("tusk.process.subprocess.run")
    def test_nonzero_exit_raises(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(returncode=2, stdout="partial\n", stderr="boom\n")

        with pytest.raises(ProcessError) as exc_info:
            ProcessRunner(base_env={}).run("psql", [])

        err = exc_info.value
        assert err.exit_code == 2
        assert err.stdout == "partial"
        assert err.stderr == "boom"
        assert str(err) == "Command 'psql' failed with code 2"

    @patch("tusk.process.subprocess.run")
    def test_missing_binary_raises_spawn_error(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory")

        with pytest.raises(SpawnError) as exc_info:
            ProcessRunner(base_env={}).run("pg_dump", [])

        assert exc_info.value.reason == "No such file or directory"
        assert "pg_dump" in str(exc_info.value)


class TestDecoding:
    """Output that is not valid UTF-8 is replaced, never raised."""

    def test_undecodable_stdout(self) -> None:
        script = "import sys; sys.stdout.buffer.write(b'INSERT VALUES (\\xe9);\\n')"

        result = ProcessRunner(base_env=dict(os.environ)).run(sys.executable, ["-c", script])

        assert result.stdout == "INSERT VALUES (\ufffd);"

    def test_undecodable_stderr_on_failure(self) -> None:
        script = "import sys; sys.stderr.buffer.write(b'erreur \\xe9'); sys.exit(3)"

        with pytest.raises(ProcessError) as exc_info:
            ProcessRunner(base_env=dict(os.environ)).run(sys.executable, ["-c", script])

        assert exc_info.value.exit_code == 3
        assert exc_info.value.stderr == "erreur \ufffd"

    @patch("tusk.process.subprocess.run")
    def test_decoding_options(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed()

        ProcessRunner(base_env={}).run("psql", [])

        assert mock_run.call_args.kwargs["encoding"] == "utf-8"
        assert mock_run.call_args.kwargs["errors"] == "replace"
