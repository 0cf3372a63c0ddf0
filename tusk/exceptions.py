"""Custom exceptions with helpful error messages."""

from __future__ import annotations


class TuskError(Exception):
    """Base exception for tusk errors."""

    pass


class ConfigurationError(TuskError):
    """Configuration document is missing or malformed. Fatal for the run."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        location = f" ({path})" if path else ""
        super().__init__(
            f"Invalid configuration{location}: {message}\n\n"
            f"Suggestions:\n"
            f"1. Check that tusk.yaml exists in the project root\n"
            f"2. Every database needs source_name, local_target_name, host and username\n"
            f"3. Every seed table needs 'table' and 'method'"
        )


class GeneratorConfigError(TuskError):
    """Generator definition is missing, unreadable or has no columns."""

    def __init__(self, table: str, detail: str):
        self.table = table
        super().__init__(
            f"Cannot build synthetic rows for '{table}': {detail}\n\n"
            f"Suggestions:\n"
            f"1. Add faker_config_ref to the seed table entry\n"
            f"2. Map the ref under faker_configs in tusk.yaml\n"
            f"3. Make sure the definition file has a 'columns' mapping"
        )


class ProcessError(TuskError):
    """External tool exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stdout: str = "", stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"Command '{command}' failed with code {exit_code}")


class SpawnError(TuskError):
    """External tool could not be started at all (not found, not executable)."""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(
            f"Could not start '{command}': {reason}\n\n"
            f"Suggestions:\n"
            f"1. Install the PostgreSQL client tools (psql, pg_dump)\n"
            f"2. Make sure '{command}' is on PATH"
        )


class ArtifactSkipped(TuskError):
    """An artifact was intentionally not produced. Reported as a warning."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Skipped {target}: {reason}")


class QueryTemplateError(TuskError):
    """Query template is missing required metadata headers."""

    def __init__(self, path: str, missing: list[str]):
        self.path = path
        self.missing = missing
        headers = ", ".join(f"-- @{name}" for name in missing)
        super().__init__(f"Query template '{path}' is missing {headers}")


class RowParseError(TuskError):
    """A row returned by a remote query could not be decoded."""

    def __init__(self, line: str, reason: str):
        self.line = line
        super().__init__(f"Failed to parse row ({reason}): {line}")
