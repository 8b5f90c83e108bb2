"""Plan execution for Strata.

Runs plan steps one at a time and records each result in the applied set
as soon as that unit finishes. Plans are not atomic across units: if a
unit fails, everything before it stays recorded and nothing after it is
touched.
"""

from __future__ import annotations

import time
from typing import Any

import structlog
from ulid import ULID

from strata.errors import (
    IrreversibleMigration,
    MigrationFailed,
    NoMigrationsFound,
    UnknownVersion,
    VersionAlreadyMarked,
    VersionNotMarked,
)
from strata.logging import get_logger
from strata.models import Direction, PlanStep
from strata.navigator import ALIAS_LATEST, VersionNavigator
from strata.planner import MigrationPlanCalculator
from strata.registry import MigrationRegistry
from strata.tracking import VersionStore

log = get_logger("migrator")


class Migrator:
    """Executes migration plans against a database."""

    def __init__(
        self,
        registry: MigrationRegistry,
        store: VersionStore,
        navigator: VersionNavigator,
        planner: MigrationPlanCalculator,
        engine: Any = None,
    ) -> None:
        """Initialize the migrator.

        Args:
            registry: Registry of known units.
            store: Applied-version store to update.
            navigator: Navigator for current/latest lookups.
            planner: Plan calculator.
            engine: Handle passed to each unit's upgrade()/downgrade().
        """
        self.registry = registry
        self.store = store
        self.navigator = navigator
        self.planner = planner
        self.engine = engine

    def migrate(
        self,
        target: str | None = None,
        dry_run: bool = False,
        allow_empty: bool = False,
    ) -> list[str]:
        """Move the database to a target version.

        Args:
            target: Target version; None means the latest registered version.
            dry_run: Log the plan without running or recording anything.
            allow_empty: Return quietly instead of raising when no migrations
                are registered.

        Returns:
            Versions executed, in execution order.

        Raises:
            NoMigrationsFound: If nothing is registered and allow_empty is False.
            UnknownVersion: If target is not registered.
            MigrationFailed: If a unit raises during execution.
        """
        if self.registry.count() == 0:
            if allow_empty:
                log.info("no_migrations_found")
                return []
            raise NoMigrationsFound()

        if target is None:
            target = self.navigator.resolve_alias(ALIAS_LATEST)

        with structlog.contextvars.bound_contextvars(run_id=str(ULID())):
            current = self.navigator.current()
            plan = self.planner.plan_to(target)

            unavailable = sorted(
                v for v in self.store.list() if not self.registry.has(v)
            )
            if unavailable:
                log.warning("executed_unavailable_migrations", versions=unavailable)

            if not plan:
                log.info("no_pending_migrations", current=current, target=target)
                return []

            log.info(
                "migrating",
                current=current,
                target=target,
                direction=plan[0].direction.value,
                steps=len(plan),
                dry_run=dry_run,
            )
            executed = self.execute(plan, dry_run=dry_run)
            log.info("migrations_complete", count=len(executed), dry_run=dry_run)
            return executed

    def execute(self, plan: list[PlanStep], dry_run: bool = False) -> list[str]:
        """Run plan steps in order, recording each as it completes.

        Args:
            plan: Steps to run.
            dry_run: Log only.

        Returns:
            Versions executed (or that would be executed on a dry run).
        """
        executed: list[str] = []
        for step in plan:
            self._run_step(step, dry_run)
            executed.append(step.version)
        return executed

    def execute_version(
        self, version: str, direction: Direction | str, dry_run: bool = False
    ) -> None:
        """Run one unit in one direction, outside any plan.

        Raises:
            UnknownVersion: If the version is not registered.
            VersionAlreadyMarked: Running up a version that is already applied.
            VersionNotMarked: Running down a version that is not applied.
        """
        direction = Direction(direction)
        unit = self.registry.get(version)
        applied = self.store.contains(version)

        if direction == Direction.UP and applied:
            raise VersionAlreadyMarked(version)
        if direction == Direction.DOWN and not applied:
            raise VersionNotMarked(version)

        self._run_step(PlanStep(version, unit, direction), dry_run)

    def mark(self, version: str, applied: bool) -> None:
        """Add or remove a version in the applied set without running it."""
        if not self.registry.has(version):
            raise UnknownVersion(version)
        if applied:
            self.store.mark_applied(version)
        else:
            self.store.mark_reverted(version)
        log.info("version_marked", version=version, applied=applied)

    def mark_all(self, applied: bool) -> list[str]:
        """Mark every registered version as applied or not applied.

        Versions already in the requested state are left alone.

        Returns:
            Versions whose state changed.
        """
        changed: list[str] = []
        for version in self.registry.versions():
            if self.store.contains(version) == applied:
                continue
            self.mark(version, applied)
            changed.append(version)
        return changed

    def _run_step(self, step: PlanStep, dry_run: bool) -> None:
        if step.direction == Direction.DOWN and not step.unit.reversible:
            raise IrreversibleMigration(step.version)

        if dry_run:
            log.info(
                "migration_dry_run",
                version=step.version,
                direction=step.direction.value,
                description=step.unit.description,
            )
            return

        log.info(
            "migration_started",
            version=step.version,
            direction=step.direction.value,
            description=step.unit.description,
        )
        started = time.perf_counter()

        try:
            step.unit.run(step.direction, self.engine)
        except Exception as e:
            log.error(
                "migration_failed",
                version=step.version,
                direction=step.direction.value,
                error=str(e),
            )
            raise MigrationFailed(step.version, step.direction.value) from e

        if step.direction == Direction.UP:
            self.store.mark_applied(step.version)
        else:
            self.store.mark_reverted(step.version)

        log.info(
            "migration_finished",
            version=step.version,
            direction=step.direction.value,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
