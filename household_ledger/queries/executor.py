"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC and recomputed on
every call. Nothing is cached; a query runs over a snapshot of the
store's collections and returns new lists.

Pipeline per view:
1. Scope: half-open date range filter
2. Search: free-text token filter
3. View-specific selection and reduction
"""

from datetime import datetime, tzinfo
from typing import Optional

from household_ledger.ledger.aggregation import (
    account_ledger,
    account_viewpoint_reduce,
    counts_as_credit_usage,
    credit_usage_by_card,
    credit_usage_reduce,
    global_ledger_reduce,
    sort_newest_first,
)
from household_ledger.ledger.index import EntityDirectory
from household_ledger.ledger.periods import date_range_filter
from household_ledger.ledger.search import search_transactions
from household_ledger.models.entities import Transaction
from household_ledger.models.queries import LedgerQuery, LedgerQueryResult
from household_ledger.models.state import LedgerState
from household_ledger.validation.amounts import format_money


class QueryExecutionError(Exception):
    """Error during query execution."""
    pass


class LedgerQueryExecutor:
    """
    Executes ledger queries against a state snapshot.

    GUARANTEES:
    - Never mutates the state it was given
    - Transfers never double count
    - A failure becomes an unsuccessful result, not an exception
    """

    def __init__(
        self,
        state: LedgerState,
        tz: Optional[tzinfo] = None,
        now: Optional[datetime] = None,
    ):
        self._state = state
        self._tz = tz
        self._now = now
        self._directory = EntityDirectory.from_state(state)

    def execute(self, query: LedgerQuery) -> LedgerQueryResult:
        """Execute a query and return the rows and total."""
        try:
            if query.view == "account":
                return self._execute_account(query)
            elif query.view == "credit_usage":
                return self._execute_credit_usage(query)
            else:
                return self._execute_transactions(query)

        except Exception as e:
            return LedgerQueryResult(
                query_id=query.query_id,
                success=False,
                error_message=str(e),
                query_description=f"Query failed: {str(e)}",
            )

    def _scoped(self, query: LedgerQuery) -> list[Transaction]:
        rows = date_range_filter(self._state.transactions, query.scope, now=self._now, tz=self._tz)
        return search_transactions(rows, query.search, self._directory)

    def _execute_transactions(self, query: LedgerQuery) -> LedgerQueryResult:
        """Whole-ledger list."""
        rows = sort_newest_first(self._scoped(query))
        total = global_ledger_reduce(rows)

        desc_parts = ["All transactions", self._scope_str(query)]
        if query.search:
            desc_parts.append(f"search: {query.search}")

        return LedgerQueryResult(
            query_id=query.query_id,
            success=True,
            count=len(rows),
            total=total,
            transactions=rows,
            query_description=" | ".join(desc_parts),
        )

    def _execute_account(self, query: LedgerQuery) -> LedgerQueryResult:
        """One account's ledger, each transfer pair shown once."""
        account = self._directory.account(query.account_id)
        if account is None:
            raise QueryExecutionError(f"Unknown account: {query.account_id}")

        rows = account_ledger(self._scoped(query), account.id)
        total = account_viewpoint_reduce(rows, account.id)

        desc_parts = [f"Account: {account.name}", self._scope_str(query)]
        if query.search:
            desc_parts.append(f"search: {query.search}")

        return LedgerQueryResult(
            query_id=query.query_id,
            success=True,
            count=len(rows),
            total=total,
            transactions=rows,
            query_description=" | ".join(desc_parts),
        )

    def _execute_credit_usage(self, query: LedgerQuery) -> LedgerQueryResult:
        """Card usage, with a per-card breakdown."""
        scoped = self._scoped(query)
        rows = sort_newest_first(t for t in scoped if counts_as_credit_usage(t, query.card_id))
        total = credit_usage_reduce(rows, query.card_id)

        breakdown = {
            str(card_id): {"name": self._directory.card_name(card_id), "total": amount}
            for card_id, amount in credit_usage_by_card(rows).items()
        }

        desc_parts = ["Credit usage"]
        if query.card_id:
            desc_parts.append(f"card: {self._directory.card_name(query.card_id)}")
        desc_parts.append(self._scope_str(query))
        desc_parts.append(f"total: {format_money(total)}")

        return LedgerQueryResult(
            query_id=query.query_id,
            success=True,
            count=len(rows),
            total=total,
            transactions=rows,
            breakdown=breakdown,
            query_description=" | ".join(desc_parts),
        )

    def _scope_str(self, query: LedgerQuery) -> str:
        """Format the date scope for descriptions."""
        bounds = query.scope.resolve(now=self._now, tz=self._tz)
        if bounds is None:
            return "all dates"
        return f"{bounds.start.date().isoformat()} to {bounds.end.date().isoformat()} (excl.)"
