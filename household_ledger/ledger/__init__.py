"""
Ledger computation package.

Pure functions over transaction lists: transfer pairing, aggregation,
date scopes, search and reverse lookups. Nothing here holds state.
"""

from household_ledger.ledger.aggregation import (
    LedgerSummary,
    account_ledger,
    account_viewpoint_reduce,
    credit_usage_by_card,
    credit_usage_reduce,
    dedupe_transfer_pairs,
    global_ledger_reduce,
    sort_newest_first,
    summarize,
    transactions_for_account,
)
from household_ledger.ledger.index import EntityDirectory, ReferenceIndex
from household_ledger.ledger.periods import (
    DateRange,
    DateScope,
    ScopeKind,
    date_range_filter,
    resolve_timezone,
)
from household_ledger.ledger.search import search_transactions
from household_ledger.ledger.transfers import (
    TransferMutation,
    clean_transfer_memo,
    create_transfer,
    delete_transfer_group,
    deletion_closure,
    replace_transfer,
)

__all__ = [
    # Aggregation
    "LedgerSummary",
    "account_ledger",
    "account_viewpoint_reduce",
    "credit_usage_by_card",
    "credit_usage_reduce",
    "dedupe_transfer_pairs",
    "global_ledger_reduce",
    "sort_newest_first",
    "summarize",
    "transactions_for_account",
    # Lookups
    "EntityDirectory",
    "ReferenceIndex",
    # Periods
    "DateRange",
    "DateScope",
    "ScopeKind",
    "date_range_filter",
    "resolve_timezone",
    # Search
    "search_transactions",
    # Transfers
    "TransferMutation",
    "clean_transfer_memo",
    "create_transfer",
    "delete_transfer_group",
    "deletion_closure",
    "replace_transfer",
]
