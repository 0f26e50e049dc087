"""
Ledger Aggregation Engine

Totals over any subset of transactions, from the whole-ledger viewpoint
or from one account's viewpoint.

DESIGN DECISION: Every reducer is a pure function over the records it is
given, reads signs from the kind policy table only, and reads the stored
amount as a magnitude. A NaN or infinite amount contributes zero instead
of poisoning the total.

Transfers are the special case. Globally they move no money and
contribute nothing. From an account's viewpoint a pair counts once: plus
for the destination, minus for the source, nothing for anyone else.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional
from uuid import UUID

from household_ledger.models.entities import Transaction
from household_ledger.models.kinds import policy_for


Reducer = Callable[[list[Transaction]], float]


# =============================================================================
# REDUCERS
# =============================================================================

def transfer_contribution(transaction: Transaction, account_id: UUID) -> float:
    """Signed amount a transfer record moves for one account."""
    if transaction.to_account_id == account_id:
        return transaction.magnitude
    if transaction.from_account_id == account_id:
        return -transaction.magnitude
    return 0.0


def account_contribution(transaction: Transaction, account_id: UUID) -> float:
    """Signed amount a single record moves for one account (transfers not deduped)."""
    if transaction.is_transfer:
        return transfer_contribution(transaction, account_id)
    if transaction.account_id != account_id:
        return 0.0
    return policy_for(transaction.kind).cashflow_sign * transaction.magnitude


def account_viewpoint_reduce(transactions: Iterable[Transaction], account_id: UUID) -> float:
    """
    Balance movement of one account.

    Non-transfer records count only when they belong to the account.
    Each transfer pair counts once, so passing both siblings is safe.
    """
    total = 0.0
    seen_pairs: set[UUID] = set()
    for t in transactions:
        if t.is_transfer and t.pair_id is not None:
            if t.pair_id in seen_pairs:
                continue
            seen_pairs.add(t.pair_id)
        total += account_contribution(t, account_id)
    return total


def ledger_contribution(transaction: Transaction) -> float:
    """Signed amount a record adds to the whole-ledger total."""
    return policy_for(transaction.kind).ledger_sign * transaction.magnitude


def global_ledger_reduce(transactions: Iterable[Transaction]) -> float:
    """
    Whole-list total.

    Card payments subtract, transfers, balances and carry-overs are
    excluded, other kinds add with their ledger sign.
    """
    return sum((ledger_contribution(t) for t in transactions), 0.0)


def counts_as_credit_usage(transaction: Transaction, card_id: Optional[UUID] = None) -> bool:
    if transaction.card_id is None:
        return False
    if not policy_for(transaction.kind).affects_credit_usage:
        return False
    return card_id is None or transaction.card_id == card_id


def credit_usage_reduce(transactions: Iterable[Transaction], card_id: Optional[UUID] = None) -> float:
    """Card-tagged usage, optionally restricted to one card."""
    return sum((t.magnitude for t in transactions if counts_as_credit_usage(t, card_id)), 0.0)


def credit_usage_by_card(transactions: Iterable[Transaction]) -> dict[UUID, float]:
    """Usage per card, in first-seen order."""
    totals: dict[UUID, float] = {}
    for t in transactions:
        if counts_as_credit_usage(t):
            totals[t.card_id] = totals.get(t.card_id, 0.0) + t.magnitude
    return totals


# =============================================================================
# ACCOUNT VIEWS
# =============================================================================

def transactions_for_account(transactions: Iterable[Transaction], account_id: UUID) -> list[Transaction]:
    """Records that reference the account as plain account or transfer endpoint."""
    return [t for t in transactions if t.touches_account(account_id)]


def dedupe_transfer_pairs(transactions: Iterable[Transaction], account_id: UUID) -> list[Transaction]:
    """
    One representative per transfer pair, as seen from account_id.

    Preference: the incoming sibling (to == account), then the outgoing
    sibling (from == account), then the first sibling seen. Non-transfer
    records and transfers without a pair_id pass through. The
    representative takes the position of the pair's first sibling.
    """
    records = list(transactions)
    chosen: dict[UUID, Transaction] = {}
    for t in records:
        if not t.is_transfer or t.pair_id is None:
            continue
        current = chosen.get(t.pair_id)
        if current is None or _role_rank(t, account_id) < _role_rank(current, account_id):
            chosen[t.pair_id] = t

    result = []
    emitted: set[UUID] = set()
    for t in records:
        if not t.is_transfer or t.pair_id is None:
            result.append(t)
        elif t.pair_id not in emitted:
            emitted.add(t.pair_id)
            result.append(chosen[t.pair_id])
    return result


def _role_rank(transaction: Transaction, account_id: UUID) -> int:
    if transaction.to_account_id == account_id:
        return 0
    if transaction.from_account_id == account_id:
        return 1
    return 2


def sort_newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: t.date.timestamp(), reverse=True)


def account_ledger(transactions: Iterable[Transaction], account_id: UUID) -> list[Transaction]:
    """Rows of one account's ledger: related, pairs shown once, newest first."""
    related = transactions_for_account(transactions, account_id)
    return sort_newest_first(dedupe_transfer_pairs(related, account_id))


# =============================================================================
# SUMMARY
# =============================================================================

@dataclass(frozen=True)
class LedgerSummary:
    count: int
    total: float

    def summary_line(self, currency: str = "円") -> str:
        """Count and total as one line of text."""
        return f"件数: {self.count}  合計: {self.total:,.0f}{currency}"


def summarize(transactions: Iterable[Transaction], reducer: Reducer = global_ledger_reduce) -> LedgerSummary:
    records = list(transactions)
    return LedgerSummary(count=len(records), total=reducer(records))
