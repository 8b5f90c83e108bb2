"""Exceptions raised by the migration ledger.

Every failure the ledger reports derives from MigrationError so callers
can catch the whole family in one place.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base class for all ledger errors."""


class DuplicateVersion(MigrationError):
    """A version is already registered."""

    def __init__(self, version: str, existing_handle: str) -> None:
        self.version = version
        self.existing_handle = existing_handle
        super().__init__(
            f"Migration version {version} already registered with handle "
            f"{existing_handle}"
        )


class UnknownVersion(MigrationError):
    """A version was requested that is not registered."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"Could not find migration version {version}")


class UnresolvableImplementation(MigrationError):
    """A migration handle could not be turned into runnable logic."""

    def __init__(self, handle: str, package: str | None = None, reason: str = "") -> None:
        self.handle = handle
        self.package = package
        message = f"Migration implementation {handle} could not be resolved"
        if package:
            message += f" (migrations package: {package})"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class RegistrySealed(MigrationError):
    """Registration attempted after the registry was populated."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(
            f"Cannot register migration version {version}: registry is sealed"
        )


class NoMigrationsFound(MigrationError):
    """No migrations are registered, so there is nothing to execute."""

    def __init__(self) -> None:
        super().__init__("Could not find any migrations to execute")


class MigrationFailed(MigrationError):
    """A single migration unit raised while executing."""

    def __init__(self, version: str, direction: str) -> None:
        self.version = version
        self.direction = direction
        super().__init__(f"Migration {version} failed while migrating {direction}")


class IrreversibleMigration(MigrationError):
    """A migration without downgrade logic was asked to run down."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"Migration {version} does not support downgrade")


class VersionAlreadyMarked(MigrationError):
    """The version is already present in the applied set."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"The version {version} already exists in the version table")


class VersionNotMarked(MigrationError):
    """The version is absent from the applied set."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"The version {version} does not exist in the version table")
