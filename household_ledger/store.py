"""
Ledger Store (Orchestrator)

This module owns the in-memory collections and defines the mutation
flows callers use:
1. Transactions (plain upsert, transfer create/replace/delete, card settlement)
2. Master data (accounts, categories, cards)
3. Load / save of the snapshot

DESIGN DECISION: The store is the ONLY component that mutates state.
The pairing engine, aggregation, codec and validator are handed the
current lists and return new data; the store applies the result, logs
the event, and schedules a debounced save. Every mutation follows the
same shape: validate, apply, log, schedule.

Delete rules are explicit pre-delete steps here rather than properties of
the data model:
- categories and cards: references in transactions are nulled
- accounts: deletion is blocked while any transaction references the
  account, unless the caller asks for plain account references to be
  nulled; transfer endpoints always block (reassign them first)

The autosave timer fires on its own thread, so all state access goes
through a re-entrant lock.
"""

import threading
from datetime import datetime
from typing import Any, Iterable, Optional
from uuid import UUID, uuid4

from household_ledger.config import AppSettings, Settings, get_settings
from household_ledger.errors import (
    DecodeError,
    EncodeError,
    LimitExceededError,
    NotFoundError,
    ValidationError,
)
from household_ledger.events import EventLogger, configure_logging
from household_ledger.ledger import transfers
from household_ledger.ledger.aggregation import (
    account_viewpoint_reduce,
    credit_usage_reduce,
)
from household_ledger.ledger.index import EntityDirectory, ReferenceIndex
from household_ledger.ledger.periods import DateScope, date_range_filter
from household_ledger.models.entities import Account, Category, Transaction
from household_ledger.models.kinds import TransactionKind
from household_ledger.models.queries import LedgerQuery, LedgerQueryResult
from household_ledger.models.state import LedgerState
from household_ledger.models.validation import TransactionDraft, ValidationIssue, build_model
from household_ledger.persistence import (
    DebouncedSaver,
    JsonFileStateStorage,
    StateStorageInterface,
    decode_state,
    encode_state,
)
from household_ledger.queries import LedgerQueryExecutor
from household_ledger.validation import TransactionValidator


class LedgerStore:
    """
    Owns the ledger state and applies every mutation to it.

    Read methods return copies; callers never hold the live lists.
    """

    def __init__(
        self,
        storage: StateStorageInterface,
        app_settings: Optional[AppSettings] = None,
        autosave_delay: Optional[float] = None,
        event_logger: Optional[EventLogger] = None,
        timer_factory=None,
    ):
        """
        Initialize the store with an empty state. Call load() to read the snapshot.

        Args:
            storage: Snapshot backend
            app_settings: Ledger settings; loaded from the environment if None
            autosave_delay: Seconds of quiet before an automatic save
            event_logger: Event sink; a local one is created if None
            timer_factory: threading.Timer replacement for the autosave
        """
        if app_settings is None or autosave_delay is None:
            settings = get_settings()
            app_settings = app_settings or settings.app
            if autosave_delay is None:
                autosave_delay = settings.storage.autosave_delay_seconds

        self._storage = storage
        self._settings = app_settings
        self._tz = app_settings.tzinfo
        self._events = event_logger or EventLogger()
        self._lock = threading.RLock()
        self._state = LedgerState.empty(
            app_title=app_settings.default_app_title,
            person_name=app_settings.default_person_name,
        )
        self._saver = DebouncedSaver(self.save, autosave_delay, timer_factory=timer_factory)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def load(self) -> LedgerState:
        """
        Replace the in-memory state with the stored snapshot.

        A missing snapshot gives an empty ledger; an unreadable one is
        logged and also gives an empty ledger. Never raises for bad data.
        """
        fresh = True
        state = self._empty_state()
        try:
            document = self._storage.read()
            if document is not None:
                state = decode_state(document)
                fresh = False
        except DecodeError as e:
            self._events.log_load_failed(self._storage.location, e)

        with self._lock:
            self._saver.cancel()
            self._state = state

        self._events.log_state_loaded(
            self._storage.location,
            {
                "accounts": len(state.accounts),
                "categories": len(state.categories),
                "credit_cards": len(state.credit_cards),
                "transactions": len(state.transactions),
            },
            fresh,
        )
        return state.copy_collections()

    def save(self) -> bool:
        """
        Write the snapshot now.

        Returns False if the write failed. The in-memory state is kept
        either way, so the caller can retry.
        """
        with self._lock:
            document = encode_state(self._state)
            count = len(self._state.transactions)
        try:
            self._storage.write(document)
        except EncodeError as e:
            self._events.log_save_failed(self._storage.location, e)
            return False
        self._events.log_state_saved(self._storage.location, count)
        return True

    def schedule_save(self) -> None:
        self._saver.schedule()

    @property
    def save_pending(self) -> bool:
        return self._saver.pending

    def flush(self) -> bool:
        """Run a pending autosave immediately."""
        return self._saver.flush()

    def close(self) -> None:
        self.flush()

    def _empty_state(self) -> LedgerState:
        return LedgerState.empty(
            app_title=self._settings.default_app_title,
            person_name=self._settings.default_person_name,
        )

    def _mutated(self) -> None:
        self.schedule_save()

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def state(self) -> LedgerState:
        """Snapshot of the current state (fresh lists)."""
        with self._lock:
            return self._state.copy_collections()

    @property
    def transactions(self) -> list[Transaction]:
        with self._lock:
            return list(self._state.transactions)

    @property
    def accounts(self) -> list[Account]:
        with self._lock:
            return list(self._state.accounts)

    @property
    def categories(self) -> list[Category]:
        with self._lock:
            return list(self._state.categories)

    @property
    def credit_cards(self) -> list[Category]:
        with self._lock:
            return list(self._state.credit_cards)

    @property
    def person_name(self) -> str:
        return self._state.person_name

    @property
    def app_title(self) -> str:
        return self._state.app_title

    def directory(self) -> EntityDirectory:
        with self._lock:
            return EntityDirectory.from_state(self._state)

    def account(self, account_id: Optional[UUID]) -> Optional[Account]:
        return self.directory().account(account_id)

    def category(self, category_id: Optional[UUID]) -> Optional[Category]:
        return self.directory().category(category_id)

    def card(self, card_id: Optional[UUID]) -> Optional[Category]:
        return self.directory().card(card_id)

    def transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        with self._lock:
            return next((t for t in self._state.transactions if t.id == transaction_id), None)

    def query(self, query: LedgerQuery, now: Optional[datetime] = None) -> LedgerQueryResult:
        """Run a read-side query over the current state."""
        return LedgerQueryExecutor(self.state, tz=self._tz, now=now).execute(query)

    def account_balance(
        self,
        account_id: UUID,
        scope: Optional[DateScope] = None,
        now: Optional[datetime] = None,
    ) -> float:
        """Viewpoint total for one account over a scope (all dates by default)."""
        rows = date_range_filter(self.transactions, scope or DateScope.all(), now=now, tz=self._tz)
        return account_viewpoint_reduce(rows, account_id)

    def credit_usage(
        self,
        card_id: Optional[UUID] = None,
        scope: Optional[DateScope] = None,
        now: Optional[datetime] = None,
    ) -> float:
        rows = date_range_filter(self.transactions, scope or DateScope.all(), now=now, tz=self._tz)
        return credit_usage_reduce(rows, card_id)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def upsert_transaction(self, record: Transaction) -> Transaction:
        """Replace the record with the same id, or append it."""
        with self._lock:
            items = self._state.transactions
            index = next((i for i, t in enumerate(items) if t.id == record.id), None)
            if index is None:
                items.append(record)
            else:
                items[index] = record
        self._events.log_transaction_saved(record.id, record.kind.value, record.amount, index is None)
        self._mutated()
        return record

    def save_draft(self, draft: TransactionDraft) -> list[Transaction]:
        """
        Validate a form draft and apply it.

        Transfers go through the pairing engine (create, or replace when
        editing a pair); other kinds are upserted. Changing an existing
        transfer into another kind replaces the whole pair. New records are
        built before anything is removed, so a rejected draft changes nothing.

        Returns:
            The records written (two for a transfer, one otherwise)

        Raises:
            ValidationError: If the draft has any error-severity issue
        """
        validator = TransactionValidator(
            self.directory(),
            large_amount_warning=self._settings.large_amount_warning,
        )
        try:
            result = validator.ensure_valid(draft)
        except ValidationError as e:
            self._events.log_validation_failed(
                draft.kind.value,
                [issue.model_dump() for issue in e.issues],
            )
            raise

        draft = draft.normalized_for_kind()
        amount = abs(result.amount)

        with self._lock:
            editing = self.transaction(draft.editing_id) if draft.editing_id else None
            pair_id = draft.editing_pair_id or (editing.pair_id if editing else None)

            if draft.kind == TransactionKind.TRANSFER:
                if pair_id is not None:
                    return list(self.replace_transfer(
                        pair_id,
                        draft.date,
                        amount,
                        draft.memo,
                        draft.from_account_id,
                        draft.to_account_id,
                    ))
                out_record, in_record = transfers.create_transfer(
                    draft.date,
                    amount,
                    draft.memo,
                    draft.from_account_id,
                    draft.to_account_id,
                )
                removed = {editing.id} if editing is not None else set()
                self._swap_records(removed, [out_record, in_record])
                if removed:
                    self._events.log_transactions_deleted(sorted(removed, key=str))
                self._events.log_transfer_created(
                    out_record.pair_id, out_record.amount, draft.from_account_id, draft.to_account_id
                )
                self._mutated()
                return [out_record, in_record]

            record = build_model(
                Transaction,
                id=draft.editing_id or uuid4(),
                date=draft.date,
                amount=amount,
                memo=draft.memo,
                kind=draft.kind,
                category_id=draft.category_id,
                card_id=draft.card_id,
                person_id=draft.person_id,
                account_id=draft.account_id,
            )
            removed = {t.id for t in transfers.find_pair(self._state.transactions, pair_id)}
            self._swap_records(removed, [record])
            if removed:
                self._events.log_transfer_deleted(pair_id, len(removed))
            self._events.log_transaction_saved(record.id, record.kind.value, record.amount, editing is None)
            self._mutated()
            return [record]

    def _swap_records(self, removed_ids: set[UUID], records: list[Transaction]) -> None:
        """
        Remove and insert in one step.

        A record whose id is already present replaces it in place; the
        rest are appended.
        """
        with self._lock:
            incoming = {r.id: r for r in records}
            updated = []
            for t in self._state.transactions:
                if t.id in incoming:
                    updated.append(incoming.pop(t.id))
                elif t.id not in removed_ids:
                    updated.append(t)
            updated.extend(r for r in records if r.id in incoming)
            self._state.transactions = updated

    def create_transfer(
        self,
        date: datetime,
        amount: float,
        memo: str,
        from_account_id: UUID,
        to_account_id: UUID,
    ) -> tuple[Transaction, Transaction]:
        """
        Record a new transfer pair.

        Raises:
            ValidationError: If the endpoints are equal or missing, or amount <= 0
        """
        out_record, in_record = transfers.create_transfer(
            date, amount, memo, from_account_id, to_account_id
        )
        with self._lock:
            self._state.transactions.extend([out_record, in_record])
        self._events.log_transfer_created(out_record.pair_id, out_record.amount, from_account_id, to_account_id)
        self._mutated()
        return out_record, in_record

    def replace_transfer(
        self,
        pair_id: UUID,
        date: datetime,
        amount: float,
        memo: str,
        from_account_id: UUID,
        to_account_id: UUID,
    ) -> tuple[Transaction, Transaction]:
        """
        Replace a transfer pair with a new one under a NEW pair id.

        Raises:
            ValidationError: Same conditions as create_transfer; nothing is removed
        """
        with self._lock:
            mutation = transfers.replace_transfer(
                self._state.transactions,
                pair_id,
                date,
                amount,
                memo,
                from_account_id,
                to_account_id,
            )
            self._state.transactions = mutation.apply(self._state.transactions)
        self._events.log_transfer_replaced(pair_id, mutation.pair_id, len(mutation.removed_ids))
        self._mutated()
        return mutation.records

    def delete_transfer_group(self, pair_id: UUID) -> int:
        """Delete every record of a pair. Returns how many were removed."""
        with self._lock:
            mutation = transfers.delete_transfer_group(self._state.transactions, pair_id)
            if mutation.is_noop:
                return 0
            self._state.transactions = mutation.apply(self._state.transactions)
        self._events.log_transfer_deleted(pair_id, len(mutation.removed_ids))
        self._mutated()
        return len(mutation.removed_ids)

    def delete_transaction(self, transaction_id: UUID) -> set[UUID]:
        """Delete one record; deleting either side of a transfer deletes both."""
        return self.delete_transactions([transaction_id])

    def delete_transactions(self, transaction_ids: Iterable[UUID]) -> set[UUID]:
        """
        Delete a selection, expanded to whole transfer pairs.

        Returns:
            The ids actually removed (unknown ids are ignored)
        """
        with self._lock:
            removed = transfers.deletion_closure(self._state.transactions, transaction_ids)
            if not removed:
                return set()
            self._state.transactions = [t for t in self._state.transactions if t.id not in removed]
        self._events.log_transactions_deleted(sorted(removed, key=str))
        self._mutated()
        return removed

    # =========================================================================
    # CARD SETTLEMENT
    # =========================================================================

    def default_settlement_account_id(self, card_id: UUID) -> Optional[UUID]:
        """Last account used to settle this card, if it still exists."""
        with self._lock:
            account_id = self._state.card_payment_accounts.get(card_id)
            if account_id is None or not any(a.id == account_id for a in self._state.accounts):
                return None
            return account_id

    def set_default_settlement_account_id(self, account_id: Optional[UUID], card_id: UUID) -> None:
        """Remember (or with None, forget) the settlement account for a card."""
        with self._lock:
            if account_id is None:
                self._state.card_payment_accounts.pop(card_id, None)
            else:
                self._state.card_payment_accounts[card_id] = account_id
        self._mutated()

    def settle_card(
        self,
        card_id: UUID,
        account_id: UUID,
        amount: float,
        date: Optional[datetime] = None,
        memo: str = "",
    ) -> Transaction:
        """
        Record a card payment from an account and remember the account.

        Raises:
            ValidationError: If the card or account is unknown, or amount <= 0
        """
        [record] = self.save_draft(TransactionDraft(
            kind=TransactionKind.CARD_PAYMENT,
            date=date or datetime.now(self._tz),
            amount=amount,
            memo=memo,
            card_id=card_id,
            account_id=account_id,
        ))
        self.set_default_settlement_account_id(account_id, card_id)
        self._events.log_card_settled(card_id, account_id, record.amount)
        return record

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(
        self,
        name: str,
        number: Optional[str] = None,
        branch_name: Optional[str] = None,
        branch_code: Optional[str] = None,
    ) -> Account:
        """
        Add an account.

        Raises:
            LimitExceededError: If the configured account cap is reached
            ValidationError: If the name is blank or a field is too long
        """
        account = build_model(Account, name=name, number=number, branch_name=branch_name, branch_code=branch_code)
        with self._lock:
            limit = self._settings.max_accounts
            if limit is not None and len(self._state.accounts) >= limit:
                raise LimitExceededError(
                    f"At most {limit} accounts can be registered",
                    [ValidationIssue(
                        field="accounts",
                        issue_type="limit_exceeded",
                        message=f"At most {limit} accounts can be registered",
                        severity="error",
                    )],
                )
            self._state.accounts.append(account)
        self._events.log_master_data_changed("account", account.id, "added", name=account.name)
        self._mutated()
        return account

    def update_account(self, account_id: UUID, **changes: Any) -> Account:
        """
        Replace an account's fields (name, number, branch_name, branch_code).

        Raises:
            NotFoundError: If the account doesn't exist
            ValidationError: If the new values are invalid
        """
        with self._lock:
            index = self._index_of(self._state.accounts, account_id, "account")
            current = self._state.accounts[index]
            fields = current.model_dump()
            fields.update((k, v) for k, v in changes.items() if k != "id")
            updated = build_model(Account, **fields)
            self._state.accounts[index] = updated
        self._events.log_master_data_changed("account", account_id, "updated")
        self._mutated()
        return updated

    def delete_account(self, account_id: UUID, nullify_references: bool = False) -> Account:
        """
        Delete an account.

        Blocked while any transaction references it. With
        nullify_references=True, plain account references are cleared
        first; transfer endpoints still block and must be reassigned.

        Raises:
            NotFoundError: If the account doesn't exist
            ValidationError: If references block the deletion
        """
        with self._lock:
            index = self._index_of(self._state.accounts, account_id, "account")
            referencing = ReferenceIndex(self._state.transactions).for_account(account_id)
            transfer_refs = [t for t in referencing if account_id in (t.from_account_id, t.to_account_id)]

            if transfer_refs or (referencing and not nullify_references):
                blocking = transfer_refs or referencing
                message = f"Account is referenced by {len(blocking)} transaction(s)"
                raise ValidationError(message, [ValidationIssue(
                    field="account_id",
                    issue_type="in_use",
                    message=message,
                    severity="error",
                    suggested_fix="Reassign those transactions to another account first",
                )])

            cleared = 0
            if referencing:
                self._state.transactions = [
                    t.model_copy(update={"account_id": None}) if t.account_id == account_id else t
                    for t in self._state.transactions
                ]
                cleared = len(referencing)

            removed = self._state.accounts.pop(index)
            self._state.card_payment_accounts = {
                card: acc for card, acc in self._state.card_payment_accounts.items() if acc != account_id
            }
        self._events.log_master_data_changed("account", account_id, "deleted", cleared_references=cleared)
        self._mutated()
        return removed

    def reassign_account(self, from_account_id: UUID, to_account_id: UUID) -> int:
        """
        Move every reference from one account to another.

        Raises:
            NotFoundError: If either account doesn't exist
            ValidationError: If a transfer would end up between one account and itself
        """
        if from_account_id == to_account_id:
            return 0
        with self._lock:
            self._index_of(self._state.accounts, from_account_id, "account")
            self._index_of(self._state.accounts, to_account_id, "account")

            def moved(t: Transaction) -> Transaction:
                update = {
                    field: to_account_id
                    for field in ("account_id", "from_account_id", "to_account_id")
                    if getattr(t, field) == from_account_id
                }
                return t.model_copy(update=update) if update else t

            updated = [moved(t) for t in self._state.transactions]
            if any(t.is_transfer and t.from_account_id == t.to_account_id for t in updated):
                raise ValidationError(
                    "Reassignment would create a transfer to the same account",
                    [ValidationIssue(
                        field="to_account_id",
                        issue_type="invalid_value",
                        message="Reassignment would create a transfer to the same account",
                        severity="error",
                    )],
                )
            count = sum(1 for old, new in zip(self._state.transactions, updated) if old is not new)
            self._state.transactions = updated
        self._events.log_master_data_changed(
            "account", from_account_id, "reassigned", to_account_id=str(to_account_id), moved=count
        )
        self._mutated()
        return count

    # =========================================================================
    # CATEGORIES AND CARDS
    # =========================================================================

    def add_category(self, name: str) -> Category:
        return self._add_named("categories", "category", name)

    def rename_category(self, category_id: UUID, name: str) -> Category:
        return self._rename("categories", "category", category_id, name)

    def delete_category(self, category_id: UUID) -> int:
        """Delete a category and null its references. Returns how many were cleared."""
        return self._delete_named("categories", "category", "category_id", category_id)

    def add_card(self, name: str) -> Category:
        return self._add_named("credit_cards", "card", name)

    def rename_card(self, card_id: UUID, name: str) -> Category:
        return self._rename("credit_cards", "card", card_id, name)

    def delete_card(self, card_id: UUID) -> int:
        """Delete a card, null its references and forget its settlement account."""
        with self._lock:
            cleared = self._delete_named("credit_cards", "card", "card_id", card_id)
            self._state.card_payment_accounts.pop(card_id, None)
        return cleared

    def _add_named(self, collection: str, entity_type: str, name: str) -> Category:
        item = build_model(Category, name=name)
        with self._lock:
            getattr(self._state, collection).append(item)
        self._events.log_master_data_changed(entity_type, item.id, "added", name=item.name)
        self._mutated()
        return item

    def _rename(self, collection: str, entity_type: str, item_id: UUID, name: str) -> Category:
        with self._lock:
            items = getattr(self._state, collection)
            index = self._index_of(items, item_id, entity_type)
            renamed = build_model(Category, id=item_id, name=name)
            items[index] = renamed
        self._events.log_master_data_changed(entity_type, item_id, "renamed", name=renamed.name)
        self._mutated()
        return renamed

    def _delete_named(self, collection: str, entity_type: str, ref_field: str, item_id: UUID) -> int:
        with self._lock:
            items = getattr(self._state, collection)
            index = self._index_of(items, item_id, entity_type)
            items.pop(index)
            cleared = 0
            updated = []
            for t in self._state.transactions:
                if getattr(t, ref_field) == item_id:
                    t = t.model_copy(update={ref_field: None})
                    cleared += 1
                updated.append(t)
            self._state.transactions = updated
        self._events.log_master_data_changed(entity_type, item_id, "deleted", cleared_references=cleared)
        self._mutated()
        return cleared

    @staticmethod
    def _index_of(items: list, item_id: UUID, entity_type: str) -> int:
        for i, item in enumerate(items):
            if item.id == item_id:
                return i
        raise NotFoundError(f"Unknown {entity_type}: {item_id}")

    # =========================================================================
    # PROFILE
    # =========================================================================

    def set_person_name(self, name: str) -> None:
        with self._lock:
            self._state.person_name = name.strip()
        self._mutated()

    def set_app_title(self, title: str) -> None:
        """Set the ledger title; a blank title falls back to the default."""
        with self._lock:
            self._state.app_title = title.strip() or self._settings.default_app_title
        self._mutated()


def create_ledger_store(settings: Optional[Settings] = None, load: bool = True) -> LedgerStore:
    """
    Factory function to create a store backed by the configured JSON file.

    Args:
        settings: Root settings; loaded from the environment if None
        load: Read the snapshot immediately

    Returns:
        A ready LedgerStore
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage

    configure_logging(app_settings.log_level)

    store = LedgerStore(
        storage=JsonFileStateStorage(settings=storage_settings),
        app_settings=app_settings,
        autosave_delay=storage_settings.autosave_delay_seconds,
        event_logger=EventLogger(),
    )
    if load:
        store.load()
    return store
