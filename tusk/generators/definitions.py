"""Generator definition files: column name -> generator path."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml

from tusk.exceptions import GeneratorConfigError
from tusk.safe_write import safe_write

logger = logging.getLogger(__name__)

DEFAULT_SCAFFOLD_COLUMNS = {
    "id": "number.int",
    "name": "person.fullName",
    "email": "internet.email",
    "created_at": "date.past",
}


@dataclass
class GeneratorDefinition:
    """Which generator fills each column of a table."""

    table: str
    columns: dict[str, str] = field(default_factory=dict)


class DefinitionStatus(Enum):
    EXISTING = "existing"
    CREATED_DEFAULT = "created_default"
    WOULD_CREATE = "would_create"  # dry run: nothing written


@dataclass
class DefinitionLookup:
    """
    Result of ``get_or_create_definition``.

    ``definition`` is None only for ``WOULD_CREATE``.
    """

    status: DefinitionStatus
    path: Path
    definition: Optional[GeneratorDefinition] = None

    @property
    def created(self) -> bool:
        return self.status is DefinitionStatus.CREATED_DEFAULT


def render_scaffold(table: str) -> str:
    """Default definition file content for a table."""
    lines = [
        "columns:",
        f"  # Auto-generated scaffold for {table}",
        "  # Edit these to match your schema!",
    ]
    lines += [f"  {column}: {path}" for column, path in DEFAULT_SCAFFOLD_COLUMNS.items()]
    return "\n".join(lines) + "\n"


def load_definition(path: Path | str, table: str) -> GeneratorDefinition:
    """
    Load a generator definition file.

    Raises:
        GeneratorConfigError: If the file is unreadable or has no columns
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise GeneratorConfigError(table, f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise GeneratorConfigError(table, f"invalid YAML in {path}: {e}") from e

    columns = data.get("columns") if isinstance(data, dict) else None
    if not columns or not isinstance(columns, dict):
        raise GeneratorConfigError(table, f"'columns' missing in {path}")

    return GeneratorDefinition(
        table=table,
        columns={str(column): str(gen_path) for column, gen_path in columns.items()},
    )


def get_or_create_definition(
    path: Path | str,
    table: str,
    force: bool = False,
    dry_run: bool = False,
) -> DefinitionLookup:
    """
    Load the definition at ``path``, writing the default scaffold first if
    the file does not exist yet.

    Args:
        path: Definition file location
        table: Table the definition is for (used in the scaffold comment)
        force: Passed through to the lock-aware writer
        dry_run: Report what would be created without writing

    Returns:
        DefinitionLookup telling the caller whether the file already existed

    Raises:
        GeneratorConfigError: If the scaffold cannot be written or the file is invalid
    """
    path = Path(path)
    if path.exists():
        return DefinitionLookup(DefinitionStatus.EXISTING, path, load_definition(path, table))

    if dry_run:
        logger.info(f"[DRY RUN] Would write generator scaffold to {path}")
        return DefinitionLookup(DefinitionStatus.WOULD_CREATE, path)

    logger.info(f"Generator definition missing for {table}. Writing scaffold to {path}")
    if not safe_write(path, render_scaffold(table), force):
        raise GeneratorConfigError(table, f"failed to write scaffold at {path}")

    return DefinitionLookup(
        DefinitionStatus.CREATED_DEFAULT, path, load_definition(path, table)
    )
