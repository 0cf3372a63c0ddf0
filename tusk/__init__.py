"""
tusk - SQL artifact generation for local PostgreSQL mirrors.

This package provides tools for:
- Extracting remote schema and sanitizing it for local replay
- Generating ordered seed artifacts (row dumps, synthetic rows, query
  templates, flat-file loads)
- Protecting hand-edited artifacts from regeneration with an @lock marker
- Invoking pg_dump/psql with credentials from the .pgpass store
"""

__version__ = "0.1.0"

from tusk.config import DatabaseMapping, SeedTableDirective, TuskConfig, TuskSettings
from tusk.core.formatter import format_value
from tusk.ordering import OrderingAllocator
from tusk.safe_write import safe_write
from tusk.seeder import SeedDispatcher

__all__ = [
    "DatabaseMapping",
    "OrderingAllocator",
    "SeedDispatcher",
    "SeedTableDirective",
    "TuskConfig",
    "TuskSettings",
    "__version__",
    "format_value",
    "safe_write",
]
