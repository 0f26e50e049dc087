"""
Ledger Errors

DESIGN DECISION: Only validation failures reach the caller as exceptions.
Decode and encode failures are raised by the persistence layer but the
store recovers from them (empty state on read, logged warning on write),
so the ledger keeps running with degraded state instead of crashing.

There is intentionally no error for dangling references: an identifier
that cannot be resolved simply becomes absent.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """
    A mutation was rejected before it touched any state.

    Carries the individual issues so a caller can show them per field.
    """

    def __init__(self, message: str, issues: Optional[list] = None):
        super().__init__(message)
        self.issues = issues or []

    @property
    def fields(self) -> list[str]:
        """Fields that caused the failure, in reporting order."""
        return [issue.field for issue in self.issues]


class DecodeError(LedgerError):
    """Persisted snapshot is missing, unreadable or malformed."""
    pass


class EncodeError(LedgerError):
    """Snapshot could not be written."""
    pass


class NotFoundError(LedgerError):
    """Referenced record doesn't exist."""
    pass


class LimitExceededError(ValidationError):
    """A configured capacity (for example the account cap) was reached."""
    pass
