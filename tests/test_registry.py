"""Tests for the migration registry.

Covers ordering, duplicate detection, handle resolution and the
population lifecycle.
"""

from pathlib import Path
from types import SimpleNamespace

import pytest

from strata.errors import (
    DuplicateVersion,
    RegistrySealed,
    UnknownVersion,
    UnresolvableImplementation,
)
from strata.models import ZERO_VERSION
from strata.registry import MigrationRegistry


class CreateWidgets:
    """Class-based migration used to test class handles."""

    DESCRIPTION = "Create widgets"

    def upgrade(self, engine) -> None:
        pass


@pytest.fixture
def registry() -> MigrationRegistry:
    return MigrationRegistry()


# =============================================================================
# Ordering
# =============================================================================


class TestOrdering:
    """Registry iteration always reflects ascending string order."""

    @pytest.mark.parametrize(
        "insertion",
        [
            ["03", "01", "04", "02"],
            ["04", "03", "02", "01"],
            ["01", "02", "03", "04"],
            ["02", "04", "01", "03"],
        ],
    )
    def test_all_is_sorted_regardless_of_insertion_order(
        self, registry: MigrationRegistry, noop_migration, insertion: list[str]
    ) -> None:
        for version in insertion:
            registry.register(version, noop_migration)

        assert [u.version for u in registry.all()] == ["01", "02", "03", "04"]
        assert registry.versions() == ["01", "02", "03", "04"]

    def test_versions_compare_as_strings_not_numbers(
        self, registry: MigrationRegistry, noop_migration
    ) -> None:
        """A longer numeric-looking version is not treated as larger."""
        registry.register_many({"9": noop_migration, "10": noop_migration, "100": noop_migration})

        assert registry.versions() == ["10", "100", "9"]
        assert registry.latest() == "9"

    def test_iteration_and_len(self, registry: MigrationRegistry, noop_migration) -> None:
        registry.register("b", noop_migration)
        registry.register("a", noop_migration)

        assert [u.version for u in registry] == ["a", "b"]
        assert len(registry) == 2
        assert "a" in registry
        assert "z" not in registry


# =============================================================================
# Registration
# =============================================================================


class TestRegister:
    """Tests for single registrations."""

    def test_register_returns_unit(self, registry: MigrationRegistry, noop_migration) -> None:
        unit = registry.register("20240101000000", noop_migration)

        assert unit.version == "20240101000000"
        assert unit.migration is noop_migration
        assert unit.description == "noop"
        assert registry.has("20240101000000")
        assert registry.get("20240101000000") is unit
        assert registry.count() == 1

    def test_non_string_version_is_stringified(
        self, registry: MigrationRegistry, noop_migration
    ) -> None:
        unit = registry.register(20240101, noop_migration)

        assert unit.version == "20240101"
        assert registry.has("20240101")

    @pytest.mark.parametrize("version", ["", ZERO_VERSION])
    def test_reserved_versions_rejected(
        self, registry: MigrationRegistry, noop_migration, version: str
    ) -> None:
        with pytest.raises(ValueError):
            registry.register(version, noop_migration)

        assert registry.count() == 0

    def test_duplicate_version_fails(self, registry: MigrationRegistry, noop_migration) -> None:
        registry.register("01", noop_migration)

        with pytest.raises(DuplicateVersion) as exc_info:
            registry.register("01", noop_migration)

        assert exc_info.value.version == "01"
        assert exc_info.value.existing_handle == "types:SimpleNamespace"
        assert "01" in str(exc_info.value)
        assert "types:SimpleNamespace" in str(exc_info.value)

    def test_duplicate_with_different_handle_fails(
        self, registry: MigrationRegistry, noop_migration
    ) -> None:
        registry.register("01", noop_migration)
        other = SimpleNamespace(upgrade=lambda engine: None)

        with pytest.raises(DuplicateVersion):
            registry.register("01", other)

        # Original registration is untouched
        assert registry.get("01").migration is noop_migration
        assert registry.count() == 1

    def test_duplicate_detected_before_resolution(
        self, registry: MigrationRegistry, noop_migration
    ) -> None:
        """A repeated version is a duplicate even when the new handle is bogus."""
        registry.register("01", noop_migration)

        with pytest.raises(DuplicateVersion):
            registry.register("01", "strata_no_such_module.anywhere")

    def test_get_unknown_version(self, registry: MigrationRegistry) -> None:
        with pytest.raises(UnknownVersion) as exc_info:
            registry.get("missing")

        assert exc_info.value.version == "missing"
        assert not registry.has("missing")


# =============================================================================
# Handle Resolution
# =============================================================================


class TestHandleResolution:
    """Tests for turning handles into runnable migrations."""

    def test_missing_module(self, registry: MigrationRegistry) -> None:
        with pytest.raises(UnresolvableImplementation) as exc_info:
            registry.register("01", "strata_no_such_module")

        assert exc_info.value.handle == "strata_no_such_module"
        assert not registry.has("01")

    def test_module_without_upgrade(self, registry: MigrationRegistry) -> None:
        with pytest.raises(UnresolvableImplementation):
            registry.register("01", "json")

    def test_missing_attribute(self, registry: MigrationRegistry) -> None:
        with pytest.raises(UnresolvableImplementation):
            registry.register("01", "json:NoSuchMigration")

    def test_error_reports_package(self) -> None:
        registry = MigrationRegistry(package="app.migrations")

        with pytest.raises(UnresolvableImplementation) as exc_info:
            registry.register("01", "app.migrations.nothing_here")

        assert exc_info.value.package == "app.migrations"
        assert "app.migrations" in str(exc_info.value)

    def test_object_without_upgrade(self, registry: MigrationRegistry) -> None:
        with pytest.raises(UnresolvableImplementation):
            registry.register("01", SimpleNamespace(downgrade=lambda engine: None))

    def test_class_handle_is_instantiated(self, registry: MigrationRegistry) -> None:
        unit = registry.register("01", f"{__name__}:CreateWidgets")

        assert isinstance(unit.migration, CreateWidgets)
        assert unit.description == "Create widgets"
        assert unit.handle == f"{__name__}:CreateWidgets"
        assert not unit.reversible

    def test_class_object_handle(self, registry: MigrationRegistry) -> None:
        unit = registry.register("01", CreateWidgets)

        assert isinstance(unit.migration, CreateWidgets)
        assert unit.handle.endswith(":CreateWidgets")

    def test_file_handle(self, registry: MigrationRegistry, tmp_path: Path, write_migration) -> None:
        path = write_migration(tmp_path / "m", "20240101000000", "users")

        unit = registry.register("20240101000000", str(path))

        assert unit.handle == str(path)
        assert unit.description == "Create t_users"
        assert unit.reversible

    @pytest.mark.parametrize(
        "body",
        [
            "def upgrade(engine:\n",
            "raise RuntimeError('bad import')\n",
            "undefined_name\n",
        ],
    )
    def test_module_failing_on_import(
        self, registry: MigrationRegistry, tmp_path: Path, monkeypatch, body: str
    ) -> None:
        package = f"strata_broken_pkg_{abs(hash(body))}"
        package_dir = tmp_path / package
        package_dir.mkdir()
        (package_dir / "__init__.py").write_text("")
        (package_dir / "m1.py").write_text(body)
        monkeypatch.syspath_prepend(str(tmp_path))

        with pytest.raises(UnresolvableImplementation) as exc_info:
            registry.register("01", f"{package}.m1")

        assert exc_info.value.handle == f"{package}.m1"
        assert exc_info.value.__cause__ is not None
        assert not registry.has("01")

    def test_missing_file_handle(self, registry: MigrationRegistry, tmp_path: Path) -> None:
        with pytest.raises(UnresolvableImplementation):
            registry.register("01", str(tmp_path / "nope.py"))

    def test_broken_file_handle(self, registry: MigrationRegistry, tmp_path: Path) -> None:
        path = tmp_path / "01_broken.py"
        path.write_text("def upgrade(engine:\n")

        with pytest.raises(UnresolvableImplementation):
            registry.register("01", str(path))


# =============================================================================
# Bulk Registration & Lifecycle
# =============================================================================


class TestRegisterMany:
    """Tests for bulk registration."""

    def test_register_many_in_order(self, registry: MigrationRegistry, noop_migration) -> None:
        units = registry.register_many({"02": noop_migration, "01": noop_migration})

        assert [u.version for u in units] == ["02", "01"]
        assert registry.versions() == ["01", "02"]

    def test_no_rollback_on_failure(self, registry: MigrationRegistry, noop_migration) -> None:
        """Registrations before a failure stay committed; later ones never happen."""
        with pytest.raises(UnresolvableImplementation):
            registry.register_many(
                {
                    "01": noop_migration,
                    "02": "strata_no_such_module",
                    "03": noop_migration,
                }
            )

        assert registry.has("01")
        assert not registry.has("02")
        assert not registry.has("03")

    def test_register_from_directory(self, registry: MigrationRegistry, migrations_dir: Path) -> None:
        units = registry.register_from_directory(migrations_dir)

        assert [u.version for u in units] == [
            "20240101000000",
            "20240201000000",
            "20240301000000",
        ]
        assert registry.latest() == "20240301000000"


class TestLifecycle:
    """Tests for latest() and sealing."""

    def test_latest_empty_is_zero(self, registry: MigrationRegistry) -> None:
        assert registry.latest() == ZERO_VERSION

    def test_latest_is_max(self, registry: MigrationRegistry, noop_migration) -> None:
        registry.register_many({"02": noop_migration, "03": noop_migration, "01": noop_migration})

        assert registry.latest() == "03"

    def test_register_after_seal_fails(self, registry: MigrationRegistry, noop_migration) -> None:
        registry.register("01", noop_migration)
        registry.seal()

        assert registry.sealed
        with pytest.raises(RegistrySealed):
            registry.register("02", noop_migration)

        assert registry.versions() == ["01"]
