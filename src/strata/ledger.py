"""Wiring of ledger components from configuration.

A Ledger is the explicit context each command works with: configuration,
engine, a populated and sealed registry, the applied-version store, and
the navigator, planner, status reporter and migrator built over them.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from strata.config import Config
from strata.database import display_url, get_engine
from strata.discovery import MigrationFinder
from strata.logging import get_logger
from strata.migrator import Migrator
from strata.navigator import VersionNavigator
from strata.planner import MigrationPlanCalculator
from strata.registry import MigrationRegistry
from strata.status import StatusReporter
from strata.tracking import SqlVersionStore

log = get_logger("ledger")


@dataclass
class Ledger:
    """All components needed to inspect and migrate one database."""

    config: Config
    engine: Engine
    registry: MigrationRegistry
    store: SqlVersionStore
    navigator: VersionNavigator
    planner: MigrationPlanCalculator
    reporter: StatusReporter
    migrator: Migrator

    @classmethod
    def from_config(
        cls,
        config: Config,
        engine: Engine | None = None,
        dry_run: bool = False,
    ) -> "Ledger":
        """Build a ledger from configuration.

        Discovered migrations are registered first, then declared ones; the
        registry is sealed afterwards.

        Args:
            config: Application configuration.
            engine: Engine to use; created from config when omitted.
            dry_run: Never create the version table.

        Returns:
            A ready Ledger.
        """
        migrations = config.migrations
        if engine is None:
            engine = get_engine(config)

        registry = MigrationRegistry(package=migrations.package)
        if migrations.directory is not None:
            finder = MigrationFinder(package=migrations.package)
            registry.register_from_directory(migrations.directory, finder)
        registry.register_many({m.version: m.handle for m in migrations.declared})
        registry.seal()

        store = SqlVersionStore(
            engine,
            table_name=migrations.table_name,
            column_name=migrations.column_name,
            dry_run=dry_run,
        )
        navigator = VersionNavigator(registry, store)
        planner = MigrationPlanCalculator(registry, store, navigator)
        reporter = StatusReporter(
            registry,
            store,
            navigator,
            name=migrations.name,
            database=display_url(config),
            directory=migrations.directory,
            package=migrations.package,
        )
        migrator = Migrator(registry, store, navigator, planner, engine=engine)

        log.debug("ledger_ready", migrations=registry.count(), dry_run=dry_run)
        return cls(
            config=config,
            engine=engine,
            registry=registry,
            store=store,
            navigator=navigator,
            planner=planner,
            reporter=reporter,
            migrator=migrator,
        )

    def close(self) -> None:
        """Release database connections."""
        self.engine.dispose()
