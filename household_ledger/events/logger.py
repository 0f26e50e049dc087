"""
Ledger Event Logger

DESIGN DECISION: Every mutation and every persistence outcome is logged
as a structured event. This provides:
1. Traceability of what changed and when
2. Debugging capability when a snapshot fails to load or save
3. A record of which writes were lost to a failed save

The event logger:
- Is synchronous, like the rest of the ledger core
- Never raises into the caller (a logging failure must not block a save)
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from household_ledger.models.events import EventSeverity, LedgerEvent, LedgerEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Attach a stdout handler to the stdlib root logger structlog writes through."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))


class EventLogger:
    """
    Central event logging service.

    Writes LedgerEvents to the structured log. Keeps the most recent
    events in memory so callers (and tests) can inspect what happened.
    """

    def __init__(self, name: str = "household_ledger", history_size: int = 100):
        self._logger = structlog.get_logger(name)
        self._history: list[LedgerEvent] = []
        self._history_size = history_size

    @property
    def recent_events(self) -> list[LedgerEvent]:
        """Most recent events, oldest first."""
        return list(self._history)

    def log(self, event: LedgerEvent) -> bool:
        """
        Log a ledger event.

        Returns False if the log write itself failed.
        """
        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[: len(self._history) - self._history_size]

        log_dict = event.to_log_dict()
        try:
            if event.severity == EventSeverity.ERROR:
                self._logger.error("ledger_event", **log_dict)
            elif event.severity == EventSeverity.WARNING:
                self._logger.warning("ledger_event", **log_dict)
            elif event.severity == EventSeverity.DEBUG:
                self._logger.debug("ledger_event", **log_dict)
            else:
                self._logger.info("ledger_event", **log_dict)
        except Exception as e:
            logging.getLogger(__name__).error("ledger event logging failed: %s", e)
            return False
        return True

    def log_transaction_saved(self, transaction_id: UUID, kind: str, amount: float, created: bool) -> None:
        self.log(LedgerEventBuilder.transaction_saved(transaction_id, kind, amount, created))

    def log_transactions_deleted(self, transaction_ids: list[UUID]) -> None:
        if transaction_ids:
            self.log(LedgerEventBuilder.transactions_deleted(transaction_ids))

    def log_transfer_created(
        self,
        pair_id: UUID,
        amount: float,
        from_account_id: UUID,
        to_account_id: UUID,
    ) -> None:
        """Log creation of a new transfer pair."""
        self.log(LedgerEventBuilder.transfer_created(pair_id, amount, from_account_id, to_account_id))

    def log_transfer_replaced(self, old_pair_id: UUID, new_pair_id: UUID, removed: int) -> None:
        self.log(LedgerEventBuilder.transfer_replaced(old_pair_id, new_pair_id, removed))

    def log_transfer_deleted(self, pair_id: UUID, removed: int) -> None:
        self.log(LedgerEventBuilder.transfer_deleted(pair_id, removed))

    def log_card_settled(self, card_id: UUID, account_id: UUID, amount: float) -> None:
        self.log(LedgerEventBuilder.card_settled(card_id, account_id, amount))

    def log_validation_failed(self, kind: Optional[str], issues: list[dict]) -> None:
        """Log a rejected mutation."""
        self.log(LedgerEventBuilder.validation_failed(kind, issues))

    def log_master_data_changed(self, entity_type: str, entity_id: UUID, action: str, **details) -> None:
        self.log(LedgerEventBuilder.master_data_changed(entity_type, entity_id, action, **details))

    def log_state_loaded(self, location: str, counts: dict[str, int], fresh: bool) -> None:
        self.log(LedgerEventBuilder.state_loaded(location, counts, fresh))

    def log_state_saved(self, location: str, transaction_count: int) -> None:
        self.log(LedgerEventBuilder.state_saved(location, transaction_count))

    def log_load_failed(self, location: str, error: Exception) -> None:
        """Log a snapshot that could not be read."""
        self.log(LedgerEventBuilder.load_failed(location, error))

    def log_save_failed(self, location: str, error: Exception) -> None:
        """Log a snapshot write that failed."""
        self.log(LedgerEventBuilder.save_failed(location, error))
