"""Rendering of Python values as SQL literals."""

from __future__ import annotations

import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


def quote_literal(text: str) -> str:
    """
    Single-quote a string, doubling embedded single quotes.

    No other escaping is performed: this is the minimal literal form that
    standard_conforming_strings PostgreSQL accepts.
    """
    return "'" + text.replace("'", "''") + "'"


def format_value(value: Any) -> str:
    """
    Format a value for SQL insertion.

    Never raises; every input maps to a literal.

    Examples:
        >>> format_value(None)
        'NULL'
        >>> format_value(True)
        'TRUE'
        >>> format_value("O'Brien")
        "'O''Brien'"
    """
    if value is None:
        return "NULL"

    # bool before numbers: bool is an int subclass
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"

    if isinstance(value, (int, float, Decimal)):
        return str(value)

    if isinstance(value, (datetime, date, time)):
        return quote_literal(value.isoformat())

    if isinstance(value, str):
        return quote_literal(value)

    if isinstance(value, (dict, list, tuple)):
        return quote_literal(json.dumps(value, separators=(",", ":"), default=str))

    try:
        text = str(value)
    except Exception:
        text = repr(value)
    return quote_literal(text)


def quote_identifier(name: str) -> str:
    '''
    Double-quote an identifier, doubling embedded double quotes.

    Example:
        >>> quote_identifier('say "hi"')
        '"say ""hi"""'
    '''
    return '"' + name.replace('"', '""') + '"'
