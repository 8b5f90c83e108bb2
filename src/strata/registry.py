"""In-memory registry of known migration units.

The registry maps version identifiers to migration units and keeps its
keys in ascending string order on every insert. It is populated once per
process (directory discovery and/or declared migrations) and then sealed.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from strata.errors import DuplicateVersion, RegistrySealed, UnknownVersion
from strata.logging import get_logger
from strata.models import ZERO_VERSION, MigrationUnit
from strata.resolver import describe_handle, resolve_implementation

if TYPE_CHECKING:
    from strata.discovery import MigrationFinder

log = get_logger("registry")


class MigrationRegistry:
    """Sorted, duplicate-free mapping of version to migration unit."""

    def __init__(self, package: str | None = None) -> None:
        """Initialize an empty registry.

        Args:
            package: Configured migrations package, reported in resolution errors.
        """
        self.package = package
        self._units: dict[str, MigrationUnit] = {}
        self._versions: list[str] = []
        self._sealed = False

    # -------------------------------------------------------------------------
    # Population
    # -------------------------------------------------------------------------

    def register(self, version: Any, handle: Any) -> MigrationUnit:
        """Register a single migration.

        Args:
            version: Version identifier. Non-strings are converted with str().
            handle: Implementation handle (see strata.resolver).

        Returns:
            The registered MigrationUnit.

        Raises:
            RegistrySealed: If population has already finished.
            ValueError: If version is empty or the zero sentinel.
            DuplicateVersion: If version is already registered.
            UnresolvableImplementation: If the handle cannot be loaded.
        """
        version = str(version)

        if self._sealed:
            raise RegistrySealed(version)
        if not version or version == ZERO_VERSION:
            raise ValueError(f"Invalid migration version: {version!r}")

        existing = self._units.get(version)
        if existing is not None:
            raise DuplicateVersion(version, existing.handle)

        migration = resolve_implementation(handle, self.package)
        unit = MigrationUnit(
            version=version,
            handle=describe_handle(handle),
            migration=migration,
        )

        self._units[version] = unit
        bisect.insort(self._versions, version)

        log.debug("migration_registered", version=version, handle=unit.handle)
        return unit

    def register_many(self, migrations: Mapping[Any, Any]) -> list[MigrationUnit]:
        """Register migrations in the mapping's iteration order.

        Registrations completed before a failure stay registered.

        Args:
            migrations: Mapping of version to handle.

        Returns:
            The registered units, in registration order.
        """
        return [self.register(version, handle) for version, handle in migrations.items()]

    def register_from_directory(
        self, directory: Path | str, finder: MigrationFinder | None = None
    ) -> list[MigrationUnit]:
        """Discover migrations in a directory and register them all."""
        if finder is None:
            from strata.discovery import MigrationFinder

            finder = MigrationFinder(package=self.package)
        return self.register_many(finder.find_migrations(directory))

    def seal(self) -> None:
        """End the population phase; further registration is an error."""
        self._sealed = True
        log.debug("registry_sealed", count=len(self._versions))

    @property
    def sealed(self) -> bool:
        """Whether the registry accepts new registrations."""
        return self._sealed

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, version: str) -> MigrationUnit:
        """Get the unit registered for a version.

        Raises:
            UnknownVersion: If the version is not registered.
        """
        unit = self._units.get(version)
        if unit is None:
            raise UnknownVersion(version)
        return unit

    def has(self, version: str) -> bool:
        """Check whether a version is registered."""
        return version in self._units

    def all(self) -> list[MigrationUnit]:
        """All units, ascending by version."""
        return [self._units[v] for v in self._versions]

    def versions(self) -> list[str]:
        """All registered versions, ascending."""
        return list(self._versions)

    def count(self) -> int:
        """Number of registered units."""
        return len(self._versions)

    def latest(self) -> str:
        """Greatest registered version, or the zero sentinel when empty."""
        return self._versions[-1] if self._versions else ZERO_VERSION

    def __contains__(self, version: object) -> bool:
        return version in self._units

    def __iter__(self) -> Iterator[MigrationUnit]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._versions)
