"""Applied-version stores.

The applied set is the durable record of which versions have been
executed. It carries no ordering of its own; order is always derived
from the registry. Stores are read fresh on every call because plan
execution mutates them one unit at a time.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import MetaData, delete, func, inspect, insert, select
from sqlalchemy.engine import Engine

from strata.database import DEFAULT_COLUMN_NAME, DEFAULT_TABLE_NAME, version_table
from strata.errors import VersionAlreadyMarked, VersionNotMarked
from strata.logging import get_logger

log = get_logger("tracking")


class VersionStore(Protocol):
    """Persistence contract for the applied-version set."""

    def list(self) -> set[str]:
        """All applied versions."""
        ...

    def count(self, versions: Iterable[str] | None = None) -> int:
        """Number of applied versions, optionally restricted to ``versions``."""
        ...

    def contains(self, version: str) -> bool:
        """Whether a version is recorded as applied."""
        ...

    def mark_applied(self, version: str) -> None:
        """Record a version as applied."""
        ...

    def mark_reverted(self, version: str) -> None:
        """Remove a version from the applied set."""
        ...


# =============================================================================
# SQL-backed store
# =============================================================================


class SqlVersionStore:
    """Applied-version set stored in a database table.

    The table is created on first use. In dry-run mode a missing table is
    left alone and reads behave as if it were empty.
    """

    def __init__(
        self,
        engine: Engine,
        table_name: str = DEFAULT_TABLE_NAME,
        column_name: str = DEFAULT_COLUMN_NAME,
        dry_run: bool = False,
    ) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine for the tracked database.
            table_name: Name of the version table.
            column_name: Name of the version column.
            dry_run: Never create the table when True.
        """
        self.engine = engine
        self.dry_run = dry_run
        self.table = version_table(MetaData(), table_name, column_name)
        self.column = self.table.c[column_name]
        self._table_ready = False

    @property
    def table_name(self) -> str:
        return self.table.name

    @property
    def column_name(self) -> str:
        return self.column.name

    def table_exists(self) -> bool:
        """Check whether the version table exists in the database."""
        return inspect(self.engine).has_table(self.table.name)

    def ensure_table(self) -> bool:
        """Create the version table if needed.

        Returns:
            True if the table exists afterwards.
        """
        if self._table_ready:
            return True
        if self.table_exists():
            self._table_ready = True
            return True
        if self.dry_run:
            return False

        self.table.create(self.engine, checkfirst=True)
        self._table_ready = True
        log.info("version_table_created", table=self.table.name)
        return True

    def list(self) -> set[str]:
        if not self.ensure_table():
            return set()
        with self.engine.connect() as conn:
            rows = conn.execute(select(self.column)).scalars().all()
        return {str(v) for v in rows}

    def count(self, versions: Iterable[str] | None = None) -> int:
        if not self.ensure_table():
            return 0
        query = select(func.count()).select_from(self.table)
        if versions is not None:
            versions = list(versions)
            if not versions:
                return 0
            query = query.where(self.column.in_(versions))
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def contains(self, version: str) -> bool:
        if not self.ensure_table():
            return False
        with self.engine.connect() as conn:
            found = conn.execute(
                select(self.column).where(self.column == version)
            ).first()
        return found is not None

    def mark_applied(self, version: str) -> None:
        if self.contains(version):
            raise VersionAlreadyMarked(version)
        self.ensure_table()
        with self.engine.begin() as conn:
            conn.execute(
                insert(self.table).values(
                    {
                        self.column.name: version,
                        "executed_at": datetime.now(timezone.utc).replace(tzinfo=None),
                    }
                )
            )
        log.debug("version_marked_applied", version=version)

    def mark_reverted(self, version: str) -> None:
        if not self.contains(version):
            raise VersionNotMarked(version)
        with self.engine.begin() as conn:
            conn.execute(delete(self.table).where(self.column == version))
        log.debug("version_marked_reverted", version=version)


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryVersionStore:
    """Applied-version set held in memory, for dry runs and tests."""

    def __init__(self, applied: Iterable[str] = ()) -> None:
        self._applied: set[str] = {str(v) for v in applied}

    def list(self) -> set[str]:
        return set(self._applied)

    def count(self, versions: Iterable[str] | None = None) -> int:
        if versions is None:
            return len(self._applied)
        return len(self._applied.intersection(versions))

    def contains(self, version: str) -> bool:
        return version in self._applied

    def mark_applied(self, version: str) -> None:
        if version in self._applied:
            raise VersionAlreadyMarked(version)
        self._applied.add(version)

    def mark_reverted(self, version: str) -> None:
        if version not in self._applied:
            raise VersionNotMarked(version)
        self._applied.discard(version)
