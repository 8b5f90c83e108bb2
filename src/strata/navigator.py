"""Relative version navigation.

Navigation works over the sequence ``["0", v1, v2, ..., vn]``: the
registry's ascending versions prefixed with the zero sentinel. Moving
past either end, or starting from a version not in that sequence, yields
None rather than an error, since "no next version" is a normal answer.
"""

from __future__ import annotations

import re

from strata.logging import get_logger
from strata.models import ZERO_VERSION
from strata.registry import MigrationRegistry
from strata.tracking import VersionStore

log = get_logger("navigator")

_LEADING_INT_PATTERN = re.compile(r"\s*[+-]?\d+")

ALIAS_FIRST = "first"
ALIAS_CURRENT = "current"
ALIAS_PREV = "prev"
ALIAS_NEXT = "next"
ALIAS_LATEST = "latest"


class VersionNavigator:
    """Resolves relative, delta and symbolic version references."""

    def __init__(self, registry: MigrationRegistry, store: VersionStore) -> None:
        """Initialize the navigator.

        Args:
            registry: Registry providing the ordered known versions.
            store: Applied-version store, used to find the current version.
        """
        self.registry = registry
        self.store = store

    def current(self) -> str:
        """Current version of the database.

        The greatest applied version that is also registered. When nothing is
        registered at all, the greatest applied version. Zero sentinel if
        nothing qualifies.
        """
        applied = self.store.list()
        if len(self.registry) > 0:
            applied = {v for v in applied if self.registry.has(v)}
        return max(applied) if applied else ZERO_VERSION

    def resolve_relative(self, version: str, delta: int) -> str | None:
        """Step ``delta`` positions away from ``version``.

        Args:
            version: Starting version or the zero sentinel.
            delta: Signed number of steps.

        Returns:
            The version reached, or None if the start is unknown or the step
            leaves the sequence.
        """
        sequence = [ZERO_VERSION, *self.registry.versions()]
        try:
            offset = sequence.index(version)
        except ValueError:
            return None

        position = offset + delta
        if position < 0 or position >= len(sequence):
            return None
        return sequence[position]

    def resolve_delta(self, version: str, delta: str) -> str | None:
        """Resolve a delta token such as ``"+3"`` or ``"-1"`` from ``version``.

        The token is a ``+`` or ``-`` followed by a magnitude read leniently:
        the leading integer is used and trailing text is ignored, so ``"+1.5"``
        moves one step. A magnitude with no leading integer counts as zero,
        and a magnitude that is not positive returns None.
        """
        sign, magnitude = delta[:1], delta[1:]
        if sign not in ("+", "-"):
            return None

        steps = _leading_int(magnitude)
        if steps <= 0:
            return None

        return self.resolve_relative(version, steps if sign == "+" else -steps)

    def previous(self, version: str) -> str | None:
        """Version one step before ``version``."""
        return self.resolve_relative(version, -1)

    def next(self, version: str) -> str | None:
        """Version one step after ``version``."""
        return self.resolve_relative(version, 1)

    def resolve_alias(self, alias: str) -> str | None:
        """Turn a user-supplied reference into a concrete version.

        Accepts ``first``, ``current``, ``prev``, ``next``, ``latest``, a
        delta token relative to the current version, or an exact registered
        version.

        Returns:
            The resolved version, or None if the reference cannot be resolved.
        """
        if alias in (ALIAS_FIRST, ZERO_VERSION):
            return ZERO_VERSION
        if alias == ALIAS_CURRENT:
            return self.current()
        if alias == ALIAS_PREV:
            return self.previous(self.current())
        if alias == ALIAS_NEXT:
            return self.next(self.current())
        if alias == ALIAS_LATEST:
            return self.registry.latest()
        if alias[:1] in ("+", "-"):
            return self.resolve_delta(self.current(), alias)
        if self.registry.has(alias):
            return alias

        log.debug("alias_unresolved", alias=alias)
        return None


def _leading_int(text: str) -> int:
    """Integer at the start of ``text``, or 0 when there is none."""
    match = _LEADING_INT_PATTERN.match(text)
    return int(match.group(0)) if match else 0
