"""Read-only status derived from the registry and the applied set."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from strata.navigator import VersionNavigator
from strata.registry import MigrationRegistry
from strata.tracking import VersionStore


@dataclass
class MigrationStatus:
    """Snapshot of the ledger for human-readable reporting."""

    name: str | None
    database: str | None
    table_name: str | None
    column_name: str | None
    directory: Path | None
    package: str | None
    previous_version: str | None
    current_version: str
    next_version: str | None
    latest_version: str
    executed_count: int
    executed_available_count: int
    available_count: int
    new_count: int
    executed_unavailable: list[str] = field(default_factory=list)


@dataclass
class VersionRow:
    """One registered version and whether it has been applied."""

    version: str
    migrated: bool
    description: str


class StatusReporter:
    """Derives counts and listings; holds no state of its own."""

    def __init__(
        self,
        registry: MigrationRegistry,
        store: VersionStore,
        navigator: VersionNavigator,
        name: str | None = None,
        database: str | None = None,
        directory: Path | None = None,
        package: str | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.navigator = navigator
        self.name = name
        self.database = database
        self.directory = directory
        self.package = package

    def executed_unavailable(self) -> list[str]:
        """Applied versions with no registered unit, ascending."""
        return sorted(v for v in self.store.list() if not self.registry.has(v))

    def report(self) -> MigrationStatus:
        """Build a status snapshot from fresh reads."""
        current = self.navigator.current()
        available = self.registry.count()
        executed_available = self.store.count(self.registry.versions())

        return MigrationStatus(
            name=self.name,
            database=self.database,
            table_name=getattr(self.store, "table_name", None),
            column_name=getattr(self.store, "column_name", None),
            directory=self.directory,
            package=self.package,
            previous_version=self.navigator.previous(current),
            current_version=current,
            next_version=self.navigator.next(current),
            latest_version=self.registry.latest(),
            executed_count=self.store.count(),
            executed_available_count=executed_available,
            available_count=available,
            new_count=available - executed_available,
            executed_unavailable=self.executed_unavailable(),
        )

    def versions(self) -> list[VersionRow]:
        """One row per registered unit, ascending by version."""
        applied = self.store.list()
        return [
            VersionRow(
                version=unit.version,
                migrated=unit.version in applied,
                description=unit.description,
            )
            for unit in self.registry.all()
        ]
