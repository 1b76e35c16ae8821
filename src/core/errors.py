"""minerledger exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for all minerledger failures."""


class LedgerConfigError(LedgerError):
    """Raised for invalid runtime configuration."""


class LedgerValidationError(LedgerError):
    """Raised when a record or upload batch fails required-field checks."""


class LedgerNotFoundError(LedgerError):
    """Raised when a rollback target or its snapshot does not exist."""


class LedgerStoreError(LedgerError):
    """Raised for key-value store read, write, and capacity failures."""


class LedgerParseError(LedgerError):
    """Raised for unsupported or unreadable upload files."""


class LedgerBusyError(LedgerError):
    """Raised when an operation overlaps another running operation."""


class LedgerDependencyError(LedgerError):
    """Raised when an optional runtime dependency is missing."""
