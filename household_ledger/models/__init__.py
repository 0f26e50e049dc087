"""
Data Models Package

This package contains the Pydantic models used by the household ledger:
entities, the kind policy table, the persisted snapshot schema, and the
validation, event and query models around them.
"""

from household_ledger.models.kinds import (
    KIND_POLICIES,
    KindPolicy,
    TransactionKind,
    policy_for,
)
from household_ledger.models.entities import (
    Account,
    Category,
    Person,
    Transaction,
)
from household_ledger.models.state import LedgerState
from household_ledger.models.snapshot import (
    SNAPSHOT_VERSION,
    AccountRecord,
    CategoryRecord,
    Snapshot,
    TransactionRecord,
)
from household_ledger.models.validation import (
    TransactionDraft,
    ValidationIssue,
    ValidationResult,
    build_model,
)
from household_ledger.models.events import (
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Kinds
    "KIND_POLICIES",
    "KindPolicy",
    "TransactionKind",
    "policy_for",
    # Entities
    "Account",
    "Category",
    "Person",
    "Transaction",
    "LedgerState",
    # Snapshot
    "SNAPSHOT_VERSION",
    "AccountRecord",
    "CategoryRecord",
    "Snapshot",
    "TransactionRecord",
    # Validation
    "TransactionDraft",
    "build_model",
    "ValidationIssue",
    "ValidationResult",
    # Events
    "EventSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
