"""Discover migration files in a directory.

Migration files follow the pattern ``<version>_<slug>.py``, where the
version is everything before the first underscore and starts with a
digit, e.g. ``20240101120000_create_users.py``. Sub-directories are
searched too, so migrations may be organized by year or month.
"""

from __future__ import annotations

import re
from pathlib import Path

from strata.errors import DuplicateVersion
from strata.logging import get_logger

log = get_logger("discovery")

MIGRATION_FILE_PATTERN = re.compile(r"^(?P<version>[0-9][^_]*)_\w+$")


class MigrationFinder:
    """Finds migration files and produces version -> handle mappings."""

    def __init__(self, package: str | None = None) -> None:
        """Initialize the finder.

        Args:
            package: Import package the directory corresponds to. When set,
                handles are dotted module paths inside it; otherwise handles
                are file paths.
        """
        self.package = package

    def find_migrations(self, directory: Path | str) -> dict[str, str]:
        """Scan a directory for migration files.

        Args:
            directory: Directory to scan recursively.

        Returns:
            Mapping of version to handle, ordered by version.

        Raises:
            FileNotFoundError: If the directory doesn't exist.
            DuplicateVersion: If two files declare the same version.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Migrations directory not found: {directory}")

        found: dict[str, str] = {}

        for path in sorted(directory.rglob("*.py")):
            if path.name.startswith("_"):
                continue

            match = MIGRATION_FILE_PATTERN.match(path.stem)
            if match is None:
                log.debug("migration_file_skipped", path=str(path))
                continue

            version = match.group("version")
            if version in found:
                raise DuplicateVersion(version, found[version])

            found[version] = self._handle_for(directory, path)

        log.info("migrations_discovered", count=len(found), directory=str(directory))
        return dict(sorted(found.items()))

    def _handle_for(self, directory: Path, path: Path) -> str:
        if self.package is None:
            return str(path)
        relative = path.relative_to(directory).with_suffix("")
        return ".".join([self.package, *relative.parts])
