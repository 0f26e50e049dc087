"""
Transfer Pairing Engine

A transfer between two accounts is stored as TWO transaction records that
share one pair_id. Both records carry the same from/to accounts, date,
amount and memo; which side a record "is" depends only on the account it
is viewed from (see aggregation.dedupe_transfer_pairs).

DESIGN DECISION: Every function here is pure. It takes the caller's
transaction list, never mutates it, and returns new records or a
TransferMutation describing what to remove and insert. The store applies
the mutation under its own lock and schedules the save.

Editing a transfer always retires the old pair_id and creates a new pair.
Anything that remembered the old pair_id across an edit will no longer
find it.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID, uuid4

from household_ledger.errors import ValidationError
from household_ledger.models.entities import Transaction
from household_ledger.models.kinds import TransactionKind
from household_ledger.models.validation import ValidationIssue, build_model


# Annotations older versions appended to transfer memos. Matched as plain
# substrings, so a memo that legitimately contains one loses it on edit.
LEGACY_MEMO_TOKENS = (
    "(入金)",
    "(出金)",
    "（入金）",
    "（出金）",
    "資金移動",
    "(deposit)",
    "(withdrawal)",
    "transfer",
)


@dataclass
class TransferMutation:
    """Records to remove (by id) and records to insert."""
    removed_ids: set[UUID] = field(default_factory=set)
    inserted: list[Transaction] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.removed_ids and not self.inserted

    @property
    def pair_id(self) -> Optional[UUID]:
        """Pair id of the inserted records, if any were inserted."""
        return self.inserted[0].pair_id if self.inserted else None

    @property
    def records(self) -> tuple[Transaction, Transaction]:
        """The inserted (out, in) pair."""
        if len(self.inserted) != 2:
            raise ValueError("Mutation does not insert a transfer pair")
        return self.inserted[0], self.inserted[1]

    def apply(self, transactions: Iterable[Transaction]) -> list[Transaction]:
        """New list with the removals applied and the insertions appended."""
        kept = [t for t in transactions if t.id not in self.removed_ids]
        return kept + list(self.inserted)


def check_transfer(
    amount: Optional[float],
    from_account_id: Optional[UUID],
    to_account_id: Optional[UUID],
) -> list[ValidationIssue]:
    """Issues that block a transfer; empty when the transfer is valid."""
    issues = []
    if amount is None or not math.isfinite(amount) or amount <= 0:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Transfer amount must be greater than zero",
            severity="error",
        ))
    if from_account_id is None:
        issues.append(ValidationIssue(
            field="from_account_id",
            issue_type="missing",
            message="Transfer needs a source account",
            severity="error",
        ))
    if to_account_id is None:
        issues.append(ValidationIssue(
            field="to_account_id",
            issue_type="missing",
            message="Transfer needs a destination account",
            severity="error",
        ))
    if from_account_id is not None and from_account_id == to_account_id:
        issues.append(ValidationIssue(
            field="to_account_id",
            issue_type="invalid_value",
            message="Source and destination accounts must differ",
            severity="error",
            suggested_fix="Pick a different destination account",
        ))
    return issues


def create_transfer(
    date: datetime,
    amount: float,
    memo: str,
    from_account_id: UUID,
    to_account_id: UUID,
) -> tuple[Transaction, Transaction]:
    """
    Build the two records of a new transfer.

    Returns:
        (out_record, in_record) sharing a freshly generated pair_id

    Raises:
        ValidationError: If from == to, an endpoint is missing, amount <= 0
            or the memo is too long
    """
    issues = check_transfer(amount, from_account_id, to_account_id)
    if issues:
        raise ValidationError(issues[0].message, issues)

    pair_id = uuid4()
    shared = dict(
        date=date,
        amount=abs(amount),
        memo=memo or "",
        kind=TransactionKind.TRANSFER,
        from_account_id=from_account_id,
        to_account_id=to_account_id,
        pair_id=pair_id,
    )
    return build_model(Transaction, **shared), build_model(Transaction, **shared)


def replace_transfer(
    transactions: Iterable[Transaction],
    pair_id: UUID,
    date: datetime,
    amount: float,
    memo: str,
    from_account_id: UUID,
    to_account_id: UUID,
) -> TransferMutation:
    """
    Replace an existing pair with a new one.

    The new values are validated before anything is marked for removal,
    so an invalid edit leaves the old pair untouched. The memo is cleaned
    of legacy annotations and the new pair gets a NEW pair_id.

    Raises:
        ValidationError: Same conditions as create_transfer
    """
    removed = {t.id for t in find_pair(transactions, pair_id)}
    out_record, in_record = create_transfer(
        date=date,
        amount=amount,
        memo=clean_transfer_memo(memo),
        from_account_id=from_account_id,
        to_account_id=to_account_id,
    )
    return TransferMutation(removed_ids=removed, inserted=[out_record, in_record])


def delete_transfer_group(transactions: Iterable[Transaction], pair_id: UUID) -> TransferMutation:
    """Remove every record sharing pair_id. No-op mutation when there are none."""
    return TransferMutation(removed_ids={t.id for t in find_pair(transactions, pair_id)})


def deletion_closure(transactions: Iterable[Transaction], ids: Iterable[UUID]) -> set[UUID]:
    """
    Expand a selection so that picking one side of a pair deletes both.

    Unknown ids are dropped from the result.
    """
    records = list(transactions)
    wanted = set(ids)
    by_id = {t.id: t for t in records}
    pair_ids = {by_id[i].pair_id for i in wanted if i in by_id and by_id[i].pair_id is not None}

    closure = {i for i in wanted if i in by_id}
    closure.update(t.id for t in records if t.pair_id is not None and t.pair_id in pair_ids)
    return closure


def find_pair(transactions: Iterable[Transaction], pair_id: Optional[UUID]) -> list[Transaction]:
    if pair_id is None:
        return []
    return [t for t in transactions if t.pair_id == pair_id]


def clean_transfer_memo(memo: Optional[str]) -> str:
    """Trim and strip legacy transfer annotations."""
    text = (memo or "").strip()
    for token in LEGACY_MEMO_TOKENS:
        text = text.replace(token, "")
    return text.strip()


def has_legacy_memo_tokens(memo: Optional[str]) -> bool:
    return any(token in (memo or "") for token in LEGACY_MEMO_TOKENS)
