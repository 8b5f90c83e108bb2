"""Migration plan calculation.

A plan is the ordered list of units to run to move the database from its
applied state to a target version:

- up: every registered, unapplied version at or before the target,
  oldest first.
- down: every registered, applied version after the target, newest first,
  so migrations are reverted in reverse of the order they were applied.

Applied versions with no registered unit never appear in a plan; the
status reporter surfaces them instead.
"""

from __future__ import annotations

from strata.errors import UnknownVersion
from strata.logging import get_logger
from strata.models import ZERO_VERSION, Direction, PlanStep, version_key, version_lte
from strata.navigator import VersionNavigator
from strata.registry import MigrationRegistry
from strata.tracking import VersionStore

log = get_logger("planner")


class MigrationPlanCalculator:
    """Computes execution plans from the registry and the applied set."""

    def __init__(
        self,
        registry: MigrationRegistry,
        store: VersionStore,
        navigator: VersionNavigator,
    ) -> None:
        self.registry = registry
        self.store = store
        self.navigator = navigator

    def compute_plan(self, direction: Direction | str, target: str) -> list[PlanStep]:
        """Compute the units to run in one direction towards a target.

        Args:
            direction: Direction.UP or Direction.DOWN.
            target: Target version or the zero sentinel.

        Returns:
            Ordered plan steps.

        Raises:
            UnknownVersion: If target is neither registered nor the zero sentinel.
        """
        direction = Direction(direction)
        self._validate_target(target)

        applied = self.store.list()
        known = self.registry.all()

        if direction == Direction.UP:
            units = [
                unit
                for unit in known
                if unit.version not in applied and version_lte(unit.version, target)
            ]
        else:
            units = [
                unit
                for unit in reversed(known)
                if unit.version in applied and not version_lte(unit.version, target)
            ]

        plan = [PlanStep(unit.version, unit, direction) for unit in units]
        log.debug(
            "plan_computed",
            direction=direction.value,
            target=target,
            steps=[step.version for step in plan],
        )
        return plan

    def plan_to(self, target: str) -> list[PlanStep]:
        """Compute the plan from the current version to a target.

        The direction is down when the current version is after the target,
        otherwise up. A target equal to the current version is a no-op.
        """
        self._validate_target(target)

        current = self.navigator.current()
        if current == target:
            return []

        if version_key(current) > version_key(target):
            direction = Direction.DOWN
        else:
            direction = Direction.UP
        return self.compute_plan(direction, target)

    def _validate_target(self, target: str) -> None:
        if target != ZERO_VERSION and not self.registry.has(target):
            raise UnknownVersion(target)
