"""Core functionality for tusk."""

from tusk.core.formatter import format_value, quote_identifier, quote_literal
from tusk.core.models import Artifact, Bucket, DatabaseReport, ItemOutcome, SanitizedDDL
from tusk.core.naming import sanitize_identifier

__all__ = [
    "Artifact",
    "Bucket",
    "DatabaseReport",
    "ItemOutcome",
    "SanitizedDDL",
    "format_value",
    "quote_identifier",
    "quote_literal",
    "sanitize_identifier",
]
