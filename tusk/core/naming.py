"""Filename-safe identifiers."""

import re

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")
_RUNS = re.compile(r"_+")


def sanitize_identifier(value: str | None) -> str:
    """
    Make a string segment safe for use in artifact filenames.

    Every non-alphanumeric character becomes an underscore and runs of
    underscores collapse into one.

    Examples:
        >>> sanitize_identifier("HR Prod")
        'HR_Prod'
        >>> sanitize_identifier("db.example.com:5432")
        'db_example_com_5432'
    """
    if not value:
        return ""
    return _RUNS.sub("_", _UNSAFE.sub("_", value))
