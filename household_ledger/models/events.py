"""
Ledger Event Models

Every mutation and every persistence outcome is described by a
LedgerEvent and written to the structured log.

DESIGN DECISION: Events are log records only. They are not persisted in
the snapshot and nothing reads them back; the ledger is not an audit
trail.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Types of events the ledger logs."""
    # Transactions
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSFER_CREATED = "transfer_created"
    TRANSFER_REPLACED = "transfer_replaced"
    TRANSFER_DELETED = "transfer_deleted"
    CARD_SETTLED = "card_settled"
    VALIDATION_FAILED = "validation_failed"

    # Master data
    MASTER_DATA_CHANGED = "master_data_changed"

    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_SAVED = "state_saved"
    LOAD_FAILED = "load_failed"
    SAVE_FAILED = "save_failed"


class EventSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single ledger event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: LedgerEventType
    severity: EventSeverity = EventSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'snapshot')"
    )
    entity_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.transfer_created(pair_id, amount, from_id, to_id)
        event = LedgerEventBuilder.save_failed(path, error)
    """

    @staticmethod
    def transaction_saved(transaction_id: UUID, kind: str, amount: float, created: bool) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {'created' if created else 'updated'}: {kind} {amount:,.0f}",
            details={"kind": kind, "amount": amount, "created": created},
        )

    @staticmethod
    def transactions_deleted(transaction_ids: list[UUID]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_ids[0] if len(transaction_ids) == 1 else None,
            description=f"Deleted {len(transaction_ids)} transaction(s)",
            details={"transaction_ids": [str(i) for i in transaction_ids]},
        )

    @staticmethod
    def transfer_created(
        pair_id: UUID,
        amount: float,
        from_account_id: UUID,
        to_account_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSFER_CREATED,
            entity_type="transfer",
            entity_id=pair_id,
            description=f"Transfer created: {amount:,.0f}",
            details={
                "amount": amount,
                "from_account_id": str(from_account_id),
                "to_account_id": str(to_account_id),
            },
        )

    @staticmethod
    def transfer_replaced(old_pair_id: UUID, new_pair_id: UUID, removed: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSFER_REPLACED,
            entity_type="transfer",
            entity_id=new_pair_id,
            description="Transfer replaced with a new pair",
            details={
                "old_pair_id": str(old_pair_id),
                "removed_records": removed,
            },
        )

    @staticmethod
    def transfer_deleted(pair_id: UUID, removed: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSFER_DELETED,
            entity_type="transfer",
            entity_id=pair_id,
            description=f"Transfer deleted ({removed} record(s))",
            details={"removed_records": removed},
        )

    @staticmethod
    def card_settled(card_id: UUID, account_id: UUID, amount: float) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CARD_SETTLED,
            entity_type="card",
            entity_id=card_id,
            description=f"Card settled: {amount:,.0f}",
            details={"account_id": str(account_id), "amount": amount},
        )

    @staticmethod
    def validation_failed(kind: Optional[str], issues: list[dict]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.VALIDATION_FAILED,
            severity=EventSeverity.WARNING,
            entity_type="transaction",
            description=f"Validation failed with {len(issues)} issues",
            details={"kind": kind, "issues": issues},
        )

    @staticmethod
    def master_data_changed(entity_type: str, entity_id: UUID, action: str, **details: Any) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.MASTER_DATA_CHANGED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} {action}",
            details={"action": action, **details},
        )

    @staticmethod
    def state_loaded(location: str, counts: dict[str, int], fresh: bool) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.STATE_LOADED,
            entity_type="snapshot",
            description="Started with an empty ledger" if fresh else "Snapshot loaded",
            details={"location": location, **counts},
        )

    @staticmethod
    def state_saved(location: str, transaction_count: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.STATE_SAVED,
            severity=EventSeverity.DEBUG,
            entity_type="snapshot",
            description="Snapshot written",
            details={"location": location, "transactions": transaction_count},
        )

    @staticmethod
    def load_failed(location: str, error: Exception) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LOAD_FAILED,
            severity=EventSeverity.WARNING,
            entity_type="snapshot",
            description="Snapshot unreadable, continuing with an empty ledger",
            details={"location": location, "error_type": type(error).__name__},
            error_message=str(error),
        )

    @staticmethod
    def save_failed(location: str, error: Exception) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SAVE_FAILED,
            severity=EventSeverity.ERROR,
            entity_type="snapshot",
            description="Snapshot write failed, in-memory state kept",
            details={"location": location, "error_type": type(error).__name__},
            error_message=str(error),
        )
