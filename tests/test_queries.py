"""Tests for the read-side query executor."""

import pytest
from datetime import datetime
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from household_ledger.ledger.periods import DateScope
from household_ledger.models.kinds import TransactionKind
from household_ledger.models.validation import TransactionDraft
from household_ledger.queries import LedgerQuery, LedgerQueryExecutor


JAN = DateScope.for_month(2025, 1)


@pytest.fixture
def populated(store):
    """A month of activity across two accounts and two cards."""
    main = store.add_account("Main Bank", number="1234567", branch_name="Shibuya")
    savings = store.add_account("Savings")
    visa = store.add_card("VISA")
    amex = store.add_card("AMEX")
    food = store.add_category("Food")

    def draft(kind, amount, day, **refs):
        return store.save_draft(TransactionDraft(kind=kind, date=datetime(2025, 1, day, 12), amount=amount, **refs))

    draft(TransactionKind.INCOME, 300_000, 1, account_id=main.id, memo="給料")
    draft(TransactionKind.EXPENSE, 1_200, 3, account_id=main.id, category_id=food.id, memo="lunch")
    draft(TransactionKind.CARD_USAGE, 8_000, 5, card_id=visa.id, category_id=food.id)
    draft(TransactionKind.CARD_USAGE, 2_000, 6, card_id=amex.id)
    store.create_transfer(datetime(2025, 1, 7, 12), 50_000, "貯金", main.id, savings.id)
    store.settle_card(visa.id, main.id, 8_000, date=datetime(2025, 1, 27, 12))
    draft(TransactionKind.EXPENSE, 999, 2, account_id=main.id)
    store.save_draft(TransactionDraft(
        kind=TransactionKind.EXPENSE, date=datetime(2025, 2, 1, 0, 0), amount=5_000, account_id=main.id
    ))
    return {"store": store, "main": main, "savings": savings, "visa": visa, "amex": amex}


class TestTransactionsView:
    """Whole-ledger list."""

    def test_month_scope_and_total(self, populated):
        """Test the half-open month and the signed total."""
        result = populated["store"].query(LedgerQuery(scope=JAN))
        assert result.success
        assert result.count == 8
        # 300000 - 1200 + 8000 + 2000 - 8000 - 999; transfers contribute 0
        assert result.total == 299_801
        assert "All transactions" in result.query_description
        assert "2025-01-01 to 2025-02-01" in result.query_description

    def test_newest_first(self, populated):
        """Test ordering by timestamp descending."""
        result = populated["store"].query(LedgerQuery(scope=JAN))
        dates = [t.date for t in result.transactions]
        assert dates == sorted(dates, reverse=True)

    def test_search_narrows_rows(self, populated):
        """Test that the search text filters before reduction."""
        result = populated["store"].query(LedgerQuery(scope=JAN, search="food"))
        assert result.count == 2
        assert result.total == -1_200 + 8_000
        assert "search: food" in result.query_description

    def test_no_match(self, populated):
        """Test an empty result."""
        result = populated["store"].query(LedgerQuery(search="zzzz"))
        assert result.success
        assert not result.data_found
        assert result.total == 0


class TestAccountView:
    """One account's ledger."""

    def test_account_viewpoint(self, populated):
        """Test the account total with the transfer shown once."""
        main = populated["main"]
        result = populated["store"].query(LedgerQuery(view="account", account_id=main.id, scope=JAN))
        assert result.success
        assert result.total == 300_000 - 1_200 - 999 - 50_000 - 8_000
        pair_ids = [t.pair_id for t in result.transactions if t.pair_id]
        assert len(pair_ids) == len(set(pair_ids)) == 1
        assert result.query_description.startswith("Account: Main Bank")

    def test_receiving_side(self, populated):
        """Test that the receiving account sees a positive transfer."""
        result = populated["store"].query(
            LedgerQuery(view="account", account_id=populated["savings"].id)
        )
        assert result.count == 1
        assert result.total == 50_000

    def test_unknown_account_is_unsuccessful(self, populated):
        """Test that a failure becomes an unsuccessful result."""
        result = populated["store"].query(LedgerQuery(view="account", account_id=uuid4()))
        assert not result.success
        assert "Unknown account" in result.error_message

    def test_account_view_requires_account(self):
        """Test the query model rule."""
        with pytest.raises(PydanticValidationError):
            LedgerQuery(view="account")


class TestCreditUsageView:
    """Card usage with a per-card breakdown."""

    def test_all_cards(self, populated):
        """Test usage total excludes the settlement."""
        result = populated["store"].query(LedgerQuery(view="credit_usage", scope=JAN))
        assert result.total == 10_000
        assert all(t.kind == TransactionKind.CARD_USAGE for t in result.transactions)
        assert result.breakdown == {
            str(populated["visa"].id): {"name": "VISA", "total": 8_000},
            str(populated["amex"].id): {"name": "AMEX", "total": 2_000},
        }
        assert "total: 10,000円" in result.query_description

    def test_single_card(self, populated):
        """Test filtering to one card."""
        visa = populated["visa"]
        result = populated["store"].query(LedgerQuery(view="credit_usage", card_id=visa.id))
        assert result.total == 8_000
        assert result.count == 1
        assert "card: VISA" in result.query_description


class TestExecutorDirect:
    """The executor works on any state snapshot."""

    def test_does_not_mutate_state(self, populated):
        """Test that executing leaves the snapshot untouched."""
        state = populated["store"].state
        before = list(state.transactions)
        LedgerQueryExecutor(state).execute(LedgerQuery(search="VISA"))
        assert state.transactions == before


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
