"""
Persistence Codec

Converts the in-memory LedgerState to the flat snapshot document and back.

DESIGN DECISION: Decoding builds identifier maps FIRST, then rebuilds
each transaction by resolving its reference fields through them.
Categories and credit cards share one map because they are the same
entity type; accounts have their own. A reference that resolves to
nothing becomes None; it is never an error.

Person references are not restored on load (always None afterwards).
This is a known gap kept on purpose until there is a person list to
resolve them against.
"""

from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError

from household_ledger.errors import DecodeError
from household_ledger.models.entities import Account, Category, Transaction
from household_ledger.models.snapshot import (
    SNAPSHOT_VERSION,
    AccountRecord,
    CategoryRecord,
    Snapshot,
    TransactionRecord,
)
from household_ledger.models.state import LedgerState


logger = structlog.get_logger(__name__)


# =============================================================================
# ENCODE
# =============================================================================

def _id(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


def encode_state(state: LedgerState) -> dict:
    """Flatten the state into a JSON-ready snapshot document."""
    snapshot = Snapshot(
        version=SNAPSHOT_VERSION,
        categories=[CategoryRecord(id=str(c.id), name=c.name) for c in state.categories],
        accounts=[
            AccountRecord(
                id=str(a.id),
                name=a.name,
                number=a.number,
                branch_name=a.branch_name,
                branch_code=a.branch_code,
            )
            for a in state.accounts
        ],
        credit_cards=[CategoryRecord(id=str(c.id), name=c.name) for c in state.credit_cards],
        card_payment_account={
            str(card_id): str(account_id)
            for card_id, account_id in state.card_payment_accounts.items()
        },
        transactions=[
            TransactionRecord(
                id=str(t.id),
                date=t.date,
                amount=t.amount,
                memo=t.memo,
                kind=t.kind,
                category_id=_id(t.category_id),
                card_id=_id(t.card_id),
                person_id=_id(t.person_id),
                account_id=_id(t.account_id),
                from_account_id=_id(t.from_account_id),
                to_account_id=_id(t.to_account_id),
                pair_id=_id(t.pair_id),
            )
            for t in state.transactions
        ],
        person_name=state.person_name,
        app_title=state.app_title,
        avatar_filename=state.avatar_filename,
    )
    return snapshot.to_document()


# =============================================================================
# DECODE
# =============================================================================

def _parse_uuid(value: Any) -> Optional[UUID]:
    if value is None:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _resolve(value: Optional[str], known: dict[UUID, Any]) -> Optional[UUID]:
    ref = _parse_uuid(value)
    return ref if ref in known else None


def decode_state(payload: Any) -> LedgerState:
    """
    Rebuild LedgerState from a snapshot document.

    Raises:
        DecodeError: If the document is not a snapshot at all (wrong type,
                     missing ids, unparseable dates or kinds)
    """
    if not isinstance(payload, dict):
        raise DecodeError(f"Snapshot must be an object, got {type(payload).__name__}")

    try:
        snapshot = Snapshot.model_validate(payload)
        categories = [Category(id=c.id, name=c.name) for c in snapshot.categories]
        credit_cards = [Category(id=c.id, name=c.name) for c in snapshot.credit_cards]
        accounts = [
            Account(
                id=a.id,
                name=a.name,
                number=a.number,
                branch_name=a.branch_name,
                branch_code=a.branch_code,
            )
            for a in snapshot.accounts
        ]
    except PydanticValidationError as e:
        raise DecodeError(f"Malformed snapshot: {e.error_count()} error(s)") from e

    if snapshot.version > SNAPSHOT_VERSION:
        logger.warning(
            "snapshot_version_newer",
            version=snapshot.version,
            supported=SNAPSHOT_VERSION,
        )

    cat_by_id: dict[UUID, Category] = {c.id: c for c in categories}
    cat_by_id.update((c.id, c) for c in credit_cards)
    acc_by_id: dict[UUID, Account] = {a.id: a for a in accounts}

    transactions = []
    dropped_refs = 0
    for record in snapshot.transactions:
        try:
            transaction = Transaction(
                id=record.id,
                date=record.date,
                amount=record.amount,
                memo=record.memo,
                kind=record.kind,
                category_id=_resolve(record.category_id, cat_by_id),
                card_id=_resolve(record.card_id, cat_by_id),
                person_id=None,
                account_id=_resolve(record.account_id, acc_by_id),
                from_account_id=_resolve(record.from_account_id, acc_by_id),
                to_account_id=_resolve(record.to_account_id, acc_by_id),
                pair_id=_parse_uuid(record.pair_id),
            )
        except PydanticValidationError as e:
            raise DecodeError(f"Malformed transaction {record.id}") from e

        for field in ("category_id", "card_id", "account_id", "from_account_id", "to_account_id"):
            if getattr(record, field) is not None and getattr(transaction, field) is None:
                dropped_refs += 1
        transactions.append(transaction)

    card_payment_accounts = {}
    for card_key, account_value in snapshot.card_payment_account.items():
        card_id = _resolve(card_key, cat_by_id)
        account_id = _resolve(account_value, acc_by_id)
        if card_id is not None and account_id is not None:
            card_payment_accounts[card_id] = account_id

    if dropped_refs:
        logger.info("snapshot_dangling_references_cleared", count=dropped_refs)

    return LedgerState(
        accounts=accounts,
        categories=categories,
        credit_cards=credit_cards,
        transactions=transactions,
        card_payment_accounts=card_payment_accounts,
        person_name=snapshot.person_name,
        app_title=snapshot.app_title,
        avatar_filename=snapshot.avatar_filename,
    )


def load_state_or_default(payload: Any, default: Optional[LedgerState] = None) -> LedgerState:
    """
    Decode, falling back to an empty state when the payload is unusable.

    None (nothing stored yet) also yields the default.
    """
    fallback = default if default is not None else LedgerState.empty()
    if payload is None:
        return fallback
    try:
        return decode_state(payload)
    except DecodeError as e:
        logger.warning("snapshot_decode_failed", error=str(e))
        return fallback
