"""
Tests for the ledger store

The store is driven the way a UI would drive it: drafts in, records out,
with in-memory storage and a fake autosave timer.
"""

import pytest
from datetime import datetime
from uuid import uuid4

from household_ledger.errors import EncodeError, LimitExceededError, NotFoundError, ValidationError
from household_ledger.events import EventLogger
from household_ledger.ledger.periods import DateScope
from household_ledger.models.events import LedgerEventType
from household_ledger.models.kinds import TransactionKind
from household_ledger.models.validation import TransactionDraft
from household_ledger.persistence import InMemoryStateStorage, encode_state
from household_ledger.models.state import LedgerState
from household_ledger.store import LedgerStore

from conftest import FakeTimerFactory, make_transaction


DATE = datetime(2025, 1, 10, 12, 0)


@pytest.fixture
def accounts(store):
    return store.add_account("Main Bank", number="1234567"), store.add_account("Savings")


@pytest.fixture
def card(store):
    return store.add_card("VISA")


def _event_types(store):
    return [e.event_type for e in store._events.recent_events]


class TestLifecycle:
    """Load, save and autosave."""

    def test_load_empty_storage_gives_default_state(self, store):
        """Test the first-run state."""
        state = store.load()
        assert state.is_empty()
        assert state.app_title == "Bank Management"
        assert LedgerEventType.STATE_LOADED in _event_types(store)

    def test_load_malformed_snapshot_recovers(self, app_settings, timer_factory):
        """Test that an unreadable snapshot yields an empty ledger, not a crash."""
        store = LedgerStore(
            InMemoryStateStorage({"accounts": "not a list"}),
            app_settings=app_settings,
            autosave_delay=0.5,
            timer_factory=timer_factory,
        )
        assert store.load().is_empty()
        assert LedgerEventType.LOAD_FAILED in _event_types(store)

    def test_load_restores_snapshot(self, app_settings, timer_factory, account_a):
        """Test loading a stored graph."""
        document = encode_state(LedgerState(accounts=[account_a], app_title="Home"))
        store = LedgerStore(
            InMemoryStateStorage(document),
            app_settings=app_settings,
            autosave_delay=0.5,
            timer_factory=timer_factory,
        )
        store.load()
        assert store.account(account_a.id) == account_a
        assert store.app_title == "Home"

    def test_mutation_schedules_debounced_save(self, store, storage, timer_factory):
        """Test that mutations write once after the quiet period."""
        store.add_account("Main")
        store.add_category("Food")
        assert storage.write_count == 0
        assert store.save_pending
        timer_factory.last.fire()
        assert storage.write_count == 1
        assert storage.document["accounts"][0]["name"] == "Main"

    def test_flush_writes_immediately(self, store, storage):
        """Test a clean shutdown path."""
        store.add_account("Main")
        assert store.flush() is True
        assert storage.write_count == 1
        assert not store.save_pending

    def test_save_failure_keeps_state(self, store, app_settings):
        """Test that a failed write is logged and the in-memory state survives."""
        class BrokenStorage(InMemoryStateStorage):
            def write(self, document):
                raise EncodeError("disk full")

        broken = LedgerStore(BrokenStorage(), app_settings=app_settings, autosave_delay=0.5,
                             timer_factory=FakeTimerFactory())
        broken.add_account("Main")
        assert broken.save() is False
        assert len(broken.accounts) == 1
        assert LedgerEventType.SAVE_FAILED in _event_types(broken)

    def test_round_trip_through_storage(self, store, storage, accounts, card, app_settings, timer_factory):
        """Test that a saved store reloads to the same graph."""
        a, b = accounts
        store.create_transfer(DATE, 500, "貯金", a.id, b.id)
        store.settle_card(card.id, a.id, 1200, date=DATE)
        assert store.save()

        reloaded = LedgerStore(storage, app_settings=app_settings, autosave_delay=0.5, timer_factory=timer_factory)
        reloaded.load()
        assert sorted(t.id for t in reloaded.transactions) == sorted(t.id for t in store.transactions)
        assert reloaded.default_settlement_account_id(card.id) == a.id


class TestTransactions:
    """Transaction mutations."""

    def test_upsert_appends_then_replaces(self, store):
        """Test replace-by-id or append."""
        record = make_transaction(TransactionKind.INCOME, 100, account_id=uuid4())
        store.upsert_transaction(record)
        store.upsert_transaction(record.model_copy(update={"amount": 200}))
        assert len(store.transactions) == 1
        assert store.transaction(record.id).amount == 200

    def test_save_draft_plain_kind(self, store, accounts):
        """Test saving an expense draft."""
        a, _ = accounts
        [record] = store.save_draft(TransactionDraft(
            kind=TransactionKind.EXPENSE, date=DATE, amount_text="1,200円", account_id=a.id
        ))
        assert record.amount == 1200
        assert store.account_balance(a.id) == -1200

    def test_save_draft_invalid_blocks_mutation(self, store, accounts):
        """Test that a ValidationError leaves the ledger unchanged."""
        with pytest.raises(ValidationError):
            store.save_draft(TransactionDraft(kind=TransactionKind.EXPENSE, date=DATE, amount=100))
        assert store.transactions == []
        assert LedgerEventType.VALIDATION_FAILED in _event_types(store)

    def test_save_draft_unknown_account_rejected(self, store, accounts):
        """Test that references must exist in the store."""
        with pytest.raises(ValidationError):
            store.save_draft(TransactionDraft(
                kind=TransactionKind.INCOME, date=DATE, amount=100, account_id=uuid4()
            ))

    def test_save_draft_transfer_creates_pair(self, store, accounts):
        """Test the transfer scenario through the store."""
        a, b = accounts
        records = store.save_draft(TransactionDraft(
            kind=TransactionKind.TRANSFER, date=DATE, amount=500, from_account_id=a.id, to_account_id=b.id
        ))
        assert len(records) == 2
        assert store.account_balance(a.id) == -500
        assert store.account_balance(b.id) == 500

    def test_save_draft_edits_transfer_with_new_pair_id(self, store, accounts):
        """Test that editing a pair leaves no record with the old pair id."""
        a, b = accounts
        out_record, _ = store.create_transfer(DATE, 500, "", a.id, b.id)
        old_pair_id = out_record.pair_id

        records = store.save_draft(TransactionDraft(
            kind=TransactionKind.TRANSFER,
            date=DATE,
            amount=800,
            memo="資金移動 貯金",
            from_account_id=b.id,
            to_account_id=a.id,
            editing_id=out_record.id,
        ))
        assert not any(t.pair_id == old_pair_id for t in store.transactions)
        new_pair_id = records[0].pair_id
        assert len([t for t in store.transactions if t.pair_id == new_pair_id]) == 2
        assert records[0].memo == "貯金"
        assert store.account_balance(a.id) == 800

    def test_save_draft_transfer_to_expense_removes_pair(self, store, accounts):
        """Test changing a transfer into another kind."""
        a, b = accounts
        out_record, _ = store.create_transfer(DATE, 500, "", a.id, b.id)
        [record] = store.save_draft(TransactionDraft(
            kind=TransactionKind.EXPENSE,
            date=DATE,
            amount=500,
            account_id=a.id,
            from_account_id=a.id,
            editing_id=out_record.id,
        ))
        assert [t.id for t in store.transactions] == [out_record.id]
        assert record.from_account_id is None
        assert record.pair_id is None

    def test_save_draft_edit_keeps_id(self, store, accounts):
        """Test editing a plain record replaces it in place."""
        a, _ = accounts
        [record] = store.save_draft(TransactionDraft(kind=TransactionKind.INCOME, date=DATE, amount=1, account_id=a.id))
        store.save_draft(TransactionDraft(
            kind=TransactionKind.INCOME, date=DATE, amount=2, account_id=a.id, editing_id=record.id
        ))
        assert len(store.transactions) == 1
        assert store.transaction(record.id).amount == 2

    @pytest.mark.parametrize("side", [0, 1])
    def test_deleting_either_side_deletes_pair(self, store, accounts, side):
        """Test pair-aware single delete."""
        a, b = accounts
        pair = store.create_transfer(DATE, 500, "", a.id, b.id)
        removed = store.delete_transaction(pair[side].id)
        assert removed == {pair[0].id, pair[1].id}
        assert store.transactions == []

    def test_delete_selection_expands_pairs(self, store, accounts):
        """Test multi-select delete."""
        a, b = accounts
        pair = store.create_transfer(DATE, 500, "", a.id, b.id)
        [expense] = store.save_draft(TransactionDraft(kind=TransactionKind.EXPENSE, date=DATE, amount=1, account_id=a.id))
        [keep] = store.save_draft(TransactionDraft(kind=TransactionKind.INCOME, date=DATE, amount=1, account_id=a.id))

        removed = store.delete_transactions([pair[1].id, expense.id, uuid4()])
        assert removed == {pair[0].id, pair[1].id, expense.id}
        assert [t.id for t in store.transactions] == [keep.id]

    def test_delete_transfer_group_noop(self, store):
        """Test deleting an unknown pair."""
        assert store.delete_transfer_group(uuid4()) == 0

    def test_replace_transfer_invalid_keeps_old_pair(self, store, accounts):
        """Test that a failed edit removes nothing."""
        a, b = accounts
        pair = store.create_transfer(DATE, 500, "", a.id, b.id)
        with pytest.raises(ValidationError):
            store.replace_transfer(pair[0].pair_id, DATE, 0, "", a.id, b.id)
        assert len(store.transactions) == 2

    def test_rejected_kind_change_keeps_pair(self, store, accounts):
        """Test that a rejected transfer-to-expense edit leaves both sides in place."""
        a, b = accounts
        pair = store.create_transfer(DATE, 500, "", a.id, b.id)
        with pytest.raises(ValidationError) as exc_info:
            store.save_draft(TransactionDraft(
                kind=TransactionKind.EXPENSE,
                date=DATE,
                amount=100,
                memo="m" * 1001,
                account_id=a.id,
                editing_id=pair[0].id,
            ))
        assert exc_info.value.fields == ["memo"]
        assert sorted(t.id for t in store.transactions) == sorted(t.id for t in pair)

    def test_long_transfer_memo_rejected(self, store, accounts):
        """Test that an oversized transfer memo raises the ledger ValidationError."""
        a, b = accounts
        with pytest.raises(ValidationError):
            store.save_draft(TransactionDraft(
                kind=TransactionKind.TRANSFER,
                date=DATE,
                amount=100,
                memo="m" * 1001,
                from_account_id=a.id,
                to_account_id=b.id,
            ))
        assert store.transactions == []

    def test_save_draft_plain_to_transfer_swaps_record(self, store, accounts):
        """Test changing a plain record into a transfer."""
        a, b = accounts
        [expense] = store.save_draft(TransactionDraft(
            kind=TransactionKind.EXPENSE, date=DATE, amount=500, account_id=a.id
        ))
        records = store.save_draft(TransactionDraft(
            kind=TransactionKind.TRANSFER,
            date=DATE,
            amount=500,
            from_account_id=a.id,
            to_account_id=b.id,
            editing_id=expense.id,
        ))
        assert store.transaction(expense.id) is None
        assert sorted(t.id for t in store.transactions) == sorted(t.id for t in records)
        assert store.account_balance(b.id) == 500


class TestCardSettlement:
    """Card usage and settlement."""

    def test_card_usage_scenario(self, store, accounts, card):
        """Test that card usage affects usage and no balance."""
        a, _ = accounts
        store.save_draft(TransactionDraft(kind=TransactionKind.CARD_USAGE, date=DATE, amount=1200, card_id=card.id))
        assert store.account_balance(a.id) == 0
        assert store.credit_usage(card.id, DateScope.all()) == 1200

    def test_settle_card(self, store, accounts, card):
        """Test that settlement lowers the account, not the usage, and is remembered."""
        a, _ = accounts
        store.save_draft(TransactionDraft(kind=TransactionKind.CARD_USAGE, date=DATE, amount=1200, card_id=card.id))
        record = store.settle_card(card.id, a.id, 1200, date=DATE)

        assert record.kind == TransactionKind.CARD_PAYMENT
        assert store.account_balance(a.id) == -1200
        assert store.credit_usage(card.id) == 1200
        assert store.default_settlement_account_id(card.id) == a.id
        assert LedgerEventType.CARD_SETTLED in _event_types(store)

    def test_settle_card_invalid(self, store, accounts, card):
        """Test that a zero settlement is rejected."""
        a, _ = accounts
        with pytest.raises(ValidationError):
            store.settle_card(card.id, a.id, 0, date=DATE)
        assert store.default_settlement_account_id(card.id) is None

    def test_default_settlement_account(self, store, accounts, card):
        """Test remembering and forgetting the settlement account."""
        a, b = accounts
        store.set_default_settlement_account_id(b.id, card.id)
        assert store.default_settlement_account_id(card.id) == b.id
        store.set_default_settlement_account_id(None, card.id)
        assert store.default_settlement_account_id(card.id) is None


class TestAccounts:
    """Account master data."""

    def test_account_cap(self, store):
        """Test the configured maximum number of accounts."""
        for i in range(4):
            store.add_account(f"Account {i}")
        with pytest.raises(LimitExceededError):
            store.add_account("One too many")

    def test_add_account_normalizes_fields(self, store):
        """Test stripping and blank-to-None."""
        account = store.add_account("  Main  ", number="", branch_name=" Shibuya ")
        assert account.name == "Main"
        assert account.number is None
        assert account.branch_name == "Shibuya"

    def test_add_account_blank_name(self, store):
        """Test that a blank name is a ValidationError."""
        with pytest.raises(ValidationError):
            store.add_account("   ")

    def test_update_account(self, store, accounts):
        """Test replacing account fields."""
        a, _ = accounts
        updated = store.update_account(a.id, name="Main Bank 2", branch_code="202")
        assert updated.id == a.id
        assert store.account(a.id).name == "Main Bank 2"
        assert store.account(a.id).number == "1234567"

    def test_update_unknown_account(self, store):
        """Test NotFoundError for an unknown id."""
        with pytest.raises(NotFoundError):
            store.update_account(uuid4(), name="x")

    def test_delete_unreferenced_account(self, store, accounts, card):
        """Test deleting an unused account also drops its settlement mapping."""
        _, b = accounts
        store.set_default_settlement_account_id(b.id, card.id)
        store.delete_account(b.id)
        assert store.account(b.id) is None
        assert store.default_settlement_account_id(card.id) is None

    def test_delete_referenced_account_blocked(self, store, accounts):
        """Test deny-delete while references exist."""
        a, _ = accounts
        store.save_draft(TransactionDraft(kind=TransactionKind.INCOME, date=DATE, amount=1, account_id=a.id))
        with pytest.raises(ValidationError, match="referenced"):
            store.delete_account(a.id)
        assert store.account(a.id) is not None

    def test_delete_account_with_nullify(self, store, accounts):
        """Test clearing plain account references on request."""
        a, _ = accounts
        [record] = store.save_draft(TransactionDraft(kind=TransactionKind.INCOME, date=DATE, amount=1, account_id=a.id))
        store.delete_account(a.id, nullify_references=True)
        assert store.transaction(record.id).account_id is None

    def test_transfer_endpoint_always_blocks(self, store, accounts):
        """Test that transfer references block even with nullify."""
        a, b = accounts
        store.create_transfer(DATE, 500, "", a.id, b.id)
        with pytest.raises(ValidationError):
            store.delete_account(a.id, nullify_references=True)

    def test_reassign_then_delete(self, store, accounts):
        """Test the reassign-first path for a referenced account."""
        a, b = accounts
        c = store.add_account("Wallet")
        store.create_transfer(DATE, 500, "", a.id, b.id)
        store.save_draft(TransactionDraft(kind=TransactionKind.INCOME, date=DATE, amount=1, account_id=a.id))

        moved = store.reassign_account(a.id, c.id)
        assert moved == 3
        store.delete_account(a.id)
        assert store.account_balance(c.id) == -500 + 1

    def test_reassign_into_self_transfer_rejected(self, store, accounts):
        """Test that reassignment may not create a transfer to itself."""
        a, b = accounts
        store.create_transfer(DATE, 500, "", a.id, b.id)
        with pytest.raises(ValidationError):
            store.reassign_account(a.id, b.id)
        assert all(t.from_account_id == a.id for t in store.transactions)


class TestCategoriesAndCards:
    """Category and card master data."""

    def test_delete_category_nullifies(self, store, accounts):
        """Test nullify-on-delete for categories."""
        a, _ = accounts
        food = store.add_category("Food")
        [record] = store.save_draft(TransactionDraft(
            kind=TransactionKind.EXPENSE, date=DATE, amount=1, account_id=a.id, category_id=food.id
        ))
        assert store.delete_category(food.id) == 1
        assert store.transaction(record.id).category_id is None
        assert store.transactions[0].amount == 1

    def test_delete_card_nullifies_and_forgets_settlement(self, store, accounts, card):
        """Test nullify-on-delete for cards."""
        a, _ = accounts
        store.settle_card(card.id, a.id, 100, date=DATE)
        assert store.delete_card(card.id) == 1
        assert store.card(card.id) is None
        assert store.transactions[0].card_id is None
        assert store.state.card_payment_accounts == {}

    def test_rename(self, store, card):
        """Test renaming keeps the id."""
        renamed = store.rename_card(card.id, "Master")
        assert renamed.id == card.id
        assert store.card(card.id).name == "Master"
        with pytest.raises(NotFoundError):
            store.rename_category(card.id, "x")


class TestProfile:
    """Profile fields."""

    def test_person_name_and_title(self, store):
        """Test setting name and title, with blank title falling back."""
        store.set_person_name("  kochi ")
        store.set_app_title("   ")
        assert store.person_name == "kochi"
        assert store.app_title == "Bank Management"


class TestEventLog:
    """Events emitted by the store."""

    def test_transfer_events(self, store, accounts):
        """Test create, replace and delete events."""
        a, b = accounts
        pair = store.create_transfer(DATE, 500, "", a.id, b.id)
        store.replace_transfer(pair[0].pair_id, DATE, 600, "", a.id, b.id)
        types = _event_types(store)
        assert LedgerEventType.TRANSFER_CREATED in types
        assert LedgerEventType.TRANSFER_REPLACED in types

    def test_history_is_bounded(self):
        """Test that the in-memory history keeps only the newest events."""
        from household_ledger.models.events import LedgerEventBuilder

        logger = EventLogger(history_size=3)
        for _ in range(5):
            logger.log(LedgerEventBuilder.state_saved("memory", 0))
        assert len(logger.recent_events) == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
