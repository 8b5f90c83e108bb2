"""Strata - version ledger and migration planner for database schemas.

Tracks which migrations have been applied, computes ordered plans to move
between versions, and resolves relative version references.
"""

__version__ = "0.1.0"
