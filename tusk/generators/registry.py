"""Generator registry: dotted ``category.name`` paths to value producers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Union

Generator = Union[Callable[[], Any], Any]


class _Missing:
    """Sentinel type for an unresolvable generator path."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class GeneratorRegistry:
    """
    Registry of named value generators, two levels deep (category, name).

    Only registered entries can be resolved; unknown or malformed paths
    short-circuit to ``MISSING`` instead of raising, and callers render that
    as NULL.
    """

    def __init__(self) -> None:
        self._generators: dict[str, dict[str, Generator]] = {}

    def register(self, category: str, name: str, generator: Generator) -> None:
        """
        Register a generator.

        Args:
            category: First path segment (e.g. "person")
            name: Second path segment (e.g. "fullName")
            generator: Zero-argument callable, or a plain value

        Raises:
            ValueError: If category or name is empty or contains a dot
        """
        for segment in (category, name):
            if not segment or "." in segment:
                raise ValueError(f"Invalid generator path segment: {segment!r}")
        self._generators.setdefault(category, {})[name] = generator

    def get(self, category: str, name: str) -> Generator | _Missing:
        return self._generators.get(category, {}).get(name, MISSING)

    def categories(self) -> list[str]:
        return sorted(self._generators)

    def list_generators(self) -> list[str]:
        """
        List all registered generator paths.

        Returns:
            Sorted list of "category.name" strings
        """
        return sorted(
            f"{category}.{name}"
            for category, names in self._generators.items()
            for name in names
        )

    def __contains__(self, path: str) -> bool:
        parts = path.split(".")
        return len(parts) == 2 and self.get(*parts) is not MISSING

    def resolve(self, path: str) -> Any:
        """
        Produce one value for a generator path.

        Callables are invoked on every call, so successive rows get fresh
        values; plain values are returned as-is.

        Example:
            >>> registry.resolve("person.fullName")
            'Ada Lovelace'
            >>> registry.resolve("person.nope")
            MISSING
        """
        if not isinstance(path, str):
            return MISSING
        parts = path.strip().split(".")
        if len(parts) != 2:
            return MISSING
        generator = self.get(*parts)
        if generator is MISSING:
            return MISSING
        if callable(generator):
            return generator()
        return generator

    def clear(self) -> None:
        """Clear all registered generators (for testing)."""
        self._generators.clear()
