"""Credentials store lookup (libpq ``.pgpass`` format)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

WILDCARD = "*"
FIELD_COUNT = 5


@dataclass(frozen=True)
class PgPassEntry:
    """One ``host:port:database:user:password`` record."""

    host: str
    port: str
    database: str
    user: str
    password: str

    def matches(self, host: str, port: str, database: str, user: str) -> bool:
        return all(
            pattern == WILDCARD or pattern == value
            for pattern, value in (
                (self.host, host),
                (self.port, port),
                (self.database, database),
                (self.user, user),
            )
        )


def split_fields(line: str) -> list[str]:
    """
    Split a record on unescaped colons.

    ``\\:`` is a literal colon and ``\\\\`` a literal backslash inside a field.
    """
    fields: list[str] = []
    current: list[str] = []
    chars = iter(line)
    for char in chars:
        if char == "\\":
            escaped = next(chars, "")
            current.append(escaped)
        elif char == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


class PgPass:
    """
    Line-oriented credentials store.

    The first entry whose four key fields match (``*`` matching anything)
    supplies the password.
    """

    def __init__(self, entries: Optional[list[PgPassEntry]] = None):
        self.entries = entries or []

    @classmethod
    def parse(cls, text: str) -> PgPass:
        entries = []
        for number, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            fields = split_fields(line)
            if len(fields) < FIELD_COUNT:
                logger.debug(f"Ignoring malformed credentials line {number}")
                continue
            host, port, database, user = fields[:4]
            # Anything after the fourth separator belongs to the password
            password = ":".join(fields[4:]).strip()
            entries.append(PgPassEntry(host, port, database, user, password))
        return cls(entries)

    @classmethod
    def load(cls, path: Path | str) -> PgPass:
        """
        Load a credentials file. A missing file is an empty store.
        """
        path = Path(path).expanduser()
        if not path.is_file():
            return cls()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not read credentials file {path}: {e}")
            return cls()
        return cls.parse(text)

    def lookup(self, host: str, port: str | int, database: str, user: str) -> Optional[str]:
        """Return the password of the first matching entry, or None."""
        port = str(port)
        for entry in self.entries:
            if entry.matches(host, port, database, user):
                return entry.password
        return None

    def __len__(self) -> int:
        return len(self.entries)
