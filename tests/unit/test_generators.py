"""Tests for the generator registry, built-in library and definition files."""

from datetime import datetime
from pathlib import Path

import pytest

from tusk.exceptions import GeneratorConfigError
from tusk.generators import (
    DEFAULT_SCAFFOLD_COLUMNS,
    MISSING,
    DefinitionStatus,
    GeneratorRegistry,
    get_or_create_definition,
    load_definition,
)


class TestGeneratorRegistry:
    """Tests for GeneratorRegistry."""

    def test_register_and_resolve(self) -> None:
        registry = GeneratorRegistry()
        registry.register("person", "fullName", lambda: "Ada Lovelace")

        assert registry.resolve("person.fullName") == "Ada Lovelace"
        assert "person.fullName" in registry
        assert registry.list_generators() == ["person.fullName"]
        assert registry.categories() == ["person"]

    def test_callable_invoked_per_resolve(self) -> None:
        registry = GeneratorRegistry()
        counter = iter(range(100))
        registry.register("number", "seq", lambda: next(counter))

        assert [registry.resolve("number.seq") for _ in range(3)] == [0, 1, 2]

    def test_plain_value(self) -> None:
        registry = GeneratorRegistry()
        registry.register("const", "answer", 42)
        assert registry.resolve("const.answer") == 42

    @pytest.mark.parametrize(
        "path",
        [
            "person.nope",
            "nope.fullName",
            "person",
            "person.fullName.extra",
            "",
            "__class__.__name__",
            "person.__init__",
            None,
            42,
        ],
    )
    def test_unresolvable_paths_are_missing(self, path) -> None:
        registry = GeneratorRegistry()
        registry.register("person", "fullName", lambda: "x")
        assert registry.resolve(path) is MISSING

    def test_invalid_segments_rejected(self) -> None:
        registry = GeneratorRegistry()
        with pytest.raises(ValueError):
            registry.register("", "x", 1)
        with pytest.raises(ValueError):
            registry.register("a.b", "x", 1)

    def test_missing_is_falsy(self) -> None:
        assert not MISSING
        assert repr(MISSING) == "MISSING"

    def test_clear(self) -> None:
        registry = GeneratorRegistry()
        registry.register("a", "b", 1)
        registry.clear()
        assert registry.list_generators() == []


class TestDefaultLibrary:
    """Tests for the Faker-backed built-in generators."""

    def test_scaffold_paths_are_registered(self, registry) -> None:
        for path in DEFAULT_SCAFFOLD_COLUMNS.values():
            assert path in registry

    def test_value_types(self, registry) -> None:
        assert isinstance(registry.resolve("person.fullName"), str)
        assert "@" in registry.resolve("internet.email")
        assert isinstance(registry.resolve("number.int"), int)
        assert isinstance(registry.resolve("date.past"), datetime)

    def test_unknown_is_missing(self, registry) -> None:
        assert registry.resolve("person.shoeSize") is MISSING


class TestDefinitions:
    """Tests for generator definition files."""

    def test_load_definition(self, tmp_path: Path) -> None:
        path = tmp_path / "users.yaml"
        path.write_text("columns:\n  name: person.fullName\n  email: internet.email\n")

        definition = load_definition(path, "users")

        assert definition.table == "users"
        assert definition.columns == {"name": "person.fullName", "email": "internet.email"}

    def test_missing_columns(self, tmp_path: Path) -> None:
        path = tmp_path / "users.yaml"
        path.write_text("rows: 3\n")
        with pytest.raises(GeneratorConfigError, match="columns"):
            load_definition(path, "users")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "users.yaml"
        path.write_text("columns: [oops\n")
        with pytest.raises(GeneratorConfigError, match="invalid YAML"):
            load_definition(path, "users")

    def test_creates_default_scaffold(self, tmp_path: Path) -> None:
        path = tmp_path / "faker" / "users.yaml"

        lookup = get_or_create_definition(path, "public.users")

        assert lookup.status is DefinitionStatus.CREATED_DEFAULT
        assert lookup.created
        assert path.exists()
        assert lookup.definition.columns == DEFAULT_SCAFFOLD_COLUMNS
        assert "public.users" in path.read_text()

    def test_existing_definition_is_reported(self, tmp_path: Path) -> None:
        path = tmp_path / "users.yaml"
        path.write_text("columns:\n  name: person.fullName\n")

        lookup = get_or_create_definition(path, "users")

        assert lookup.status is DefinitionStatus.EXISTING
        assert not lookup.created
        assert list(lookup.definition.columns) == ["name"]

    def test_dry_run_writes_nothing(self, tmp_path: Path) -> None:
        path = tmp_path / "users.yaml"

        lookup = get_or_create_definition(path, "users", dry_run=True)

        assert lookup.status is DefinitionStatus.WOULD_CREATE
        assert lookup.definition is None
        assert not path.exists()
