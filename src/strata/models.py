"""Core value types for the migration ledger.

Version identifiers are plain strings compared byte-wise, never as numbers,
so "9" sorts after "10". The zero sentinel stands for "nothing applied"
and sorts below every registered version.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

ZERO_VERSION = "0"

_TIMESTAMP_PATTERN = re.compile(r"\d{14}")


# =============================================================================
# Enums
# =============================================================================


class Direction(str, Enum):
    """Direction a migration unit runs in."""

    UP = "up"
    DOWN = "down"


# =============================================================================
# Version Ordering
# =============================================================================


def version_key(version: str) -> tuple[int, str]:
    """Sort key placing the zero sentinel below every real version."""
    return (0, "") if version == ZERO_VERSION else (1, version)


def version_lte(version: str, target: str) -> bool:
    """Return True when version is at or before target."""
    return version_key(version) <= version_key(target)


def version_datetime(version: str) -> str:
    """Format the timestamp embedded in a version, if any.

    Args:
        version: Version identifier, e.g. "20240101120000" or "v20240101120000_users".

    Returns:
        "YYYY-MM-DD HH:MM:SS" when a valid 14-digit timestamp is found, else "".
    """
    match = _TIMESTAMP_PATTERN.search(version)
    if match is None:
        return ""
    try:
        parsed = datetime.strptime(match.group(0), "%Y%m%d%H%M%S")
    except ValueError:
        return ""
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


# =============================================================================
# Migration Units & Plans
# =============================================================================


@dataclass(frozen=True)
class MigrationUnit:
    """A registered migration: its version plus resolved implementation.

    Attributes:
        version: Version identifier.
        handle: The reference the implementation was resolved from.
        migration: Object exposing ``upgrade(engine)`` and optionally
            ``downgrade(engine)``.
    """

    version: str
    handle: str
    migration: Any

    @property
    def description(self) -> str:
        """Human-readable description declared by the implementation."""
        description = getattr(self.migration, "DESCRIPTION", None)
        if description is None:
            description = getattr(self.migration, "description", "")
        return description if isinstance(description, str) else ""

    @property
    def reversible(self) -> bool:
        """Whether the implementation provides downgrade logic."""
        return callable(getattr(self.migration, "downgrade", None))

    def run(self, direction: Direction, engine: Any) -> None:
        """Invoke the implementation in the given direction."""
        if direction == Direction.UP:
            self.migration.upgrade(engine)
        else:
            self.migration.downgrade(engine)


@dataclass(frozen=True)
class PlanStep:
    """One entry of an execution plan."""

    version: str
    unit: MigrationUnit
    direction: Direction
