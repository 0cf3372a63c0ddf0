"""Value generators for synthetic rows."""

from tusk.generators.definitions import (
    DEFAULT_SCAFFOLD_COLUMNS,
    DefinitionLookup,
    DefinitionStatus,
    GeneratorDefinition,
    get_or_create_definition,
    load_definition,
)
from tusk.generators.faker_generator import build_default_registry
from tusk.generators.registry import MISSING, GeneratorRegistry

__all__ = [
    "DEFAULT_SCAFFOLD_COLUMNS",
    "DefinitionLookup",
    "DefinitionStatus",
    "GeneratorDefinition",
    "GeneratorRegistry",
    "MISSING",
    "build_default_registry",
    "get_or_create_definition",
    "load_definition",
]
