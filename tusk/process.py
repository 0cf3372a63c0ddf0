"""
External tool invocation.

Runs ``pg_dump``/``psql`` (or any other command) as a child process with
buffered output, resolving the connection password from the credentials store
and handing it over through ``PGPASSWORD`` so it never appears in argv.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from psycopg import ProgrammingError
from psycopg.conninfo import conninfo_to_dict

from tusk.exceptions import ProcessError, SpawnError
from tusk.pgpass import PgPass

if TYPE_CHECKING:
    from tusk.config import TuskSettings

logger = logging.getLogger(__name__)

DEFAULT_PORT = "5432"
DEFAULT_DATABASE = "postgres"
PASSWORD_ENV = "PGPASSWORD"

# Tools that would block on an interactive password prompt
NO_PROMPT_COMMANDS = frozenset({"psql", "pg_dump"})
NO_PROMPT_FLAGS = ("-w", "--no-password")

_FLAG_ALIASES = {
    "--dbname": "dbname",
    "-d": "dbname",
    "--host": "host",
    "-h": "host",
    "--port": "port",
    "-p": "port",
    "--username": "user",
    "-U": "user",
}


@dataclass(frozen=True)
class ProcessResult:
    """Buffered output of a successful invocation."""

    stdout: str
    stderr: str
    exit_code: int = 0


@dataclass(frozen=True)
class ConnectionTarget:
    """host/port/database/user a command will connect to."""

    host: str
    port: str
    database: str
    user: str


def _flag_values(args: Sequence[str]) -> dict[str, str]:
    """Collect connection flags from argv (``--flag value`` and ``--flag=value``)."""
    values: dict[str, str] = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in _FLAG_ALIASES and i + 1 < len(args):
            values.setdefault(_FLAG_ALIASES[arg], args[i + 1])
            i += 2
            continue
        if arg.startswith("--") and "=" in arg:
            flag, value = arg.split("=", 1)
            if flag in _FLAG_ALIASES:
                values.setdefault(_FLAG_ALIASES[flag], value)
        i += 1
    return values


def parse_dbname(value: str) -> dict[str, str]:
    """
    Interpret a ``--dbname`` value.

    URIs and ``key=value`` strings are parsed by libpq; anything else is a
    plain database name.
    """
    if value.startswith(("postgresql://", "postgres://")) or "=" in value:
        try:
            return {k: str(v) for k, v in conninfo_to_dict(value).items() if v is not None}
        except ProgrammingError as e:
            logger.debug(f"Unparseable connection string: {e}")
            return {}
    return {"dbname": value}


def connection_target(args: Sequence[str]) -> Optional[ConnectionTarget]:
    """
    Derive the connection target encoded in an argument list.

    Values from a ``--dbname`` connection string win over separate flags.
    Returns None unless at least a host and a user are known.
    """
    flags = _flag_values(args)
    params: dict[str, str] = {}
    if "dbname" in flags:
        params.update(parse_dbname(flags["dbname"]))
    for key in ("host", "port", "user"):
        if key in flags:
            params.setdefault(key, flags[key])

    host = params.get("host")
    user = params.get("user")
    if not host or not user:
        return None
    return ConnectionTarget(
        host=host,
        port=params.get("port") or DEFAULT_PORT,
        database=params.get("dbname") or DEFAULT_DATABASE,
        user=user,
    )


class ProcessRunner:
    """
    Invoke external tools with credential injection.

    Execution is synchronous: ``run`` returns once the child has exited.
    There is no timeout and no retry.
    """

    def __init__(
        self,
        pgpass: Optional[PgPass] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        self.pgpass = pgpass if pgpass is not None else PgPass()
        self.base_env = dict(os.environ if base_env is None else base_env)

    @classmethod
    def from_settings(cls, settings: TuskSettings) -> ProcessRunner:
        return cls(pgpass=PgPass.load(settings.pgpass_file))

    def build_env(
        self, args: Sequence[str], env: Optional[Mapping[str, str]] = None
    ) -> dict[str, str]:
        """
        Child environment: base env, caller overrides, then the stored
        password for the encoded connection target (if any).
        """
        child_env = {**self.base_env, **(env or {})}
        target = connection_target(args)
        if target is None:
            return child_env

        password = self.pgpass.lookup(target.host, target.port, target.database, target.user)
        if password is not None:
            logger.debug(
                f"Using stored credentials for {target.user}@{target.host}:{target.port}/"
                f"{target.database}"
            )
            child_env[PASSWORD_ENV] = password
        return child_env

    @staticmethod
    def build_args(command: str, args: Sequence[str]) -> list[str]:
        """Prepend ``-w`` for tools that would otherwise prompt."""
        final = list(args)
        name = Path(command).name
        if name in NO_PROMPT_COMMANDS and not any(flag in final for flag in NO_PROMPT_FLAGS):
            final.insert(0, "-w")
        return final

    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path | str] = None,
    ) -> ProcessResult:
        """
        Run a command and return its trimmed output.

        Output is decoded as UTF-8; undecodable bytes become U+FFFD so a
        LATIN1 or SQL_ASCII remote never aborts the run.

        Raises:
            ProcessError: Non-zero exit (carries exit code, stdout, stderr)
            SpawnError: The command could not be started
        """
        final_args = self.build_args(command, args)
        child_env = self.build_env(args, env)

        logger.debug(f"Running {command} with {len(final_args)} argument(s)")
        try:
            proc = subprocess.run(
                [command, *final_args],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=str(cwd) if cwd is not None else None,
                env=child_env,
                check=False,
            )
        except OSError as e:
            raise SpawnError(command, e.strerror or str(e)) from e

        stdout = (proc.stdout or "").rstrip()
        stderr = (proc.stderr or "").rstrip()

        if proc.returncode != 0:
            raise ProcessError(command, proc.returncode, stdout, stderr)

        return ProcessResult(stdout=stdout, stderr=stderr, exit_code=proc.returncode)
