"""
Core Entity Models for Household Ledger

Accounts, categories (also used as credit cards), people and transactions.

DESIGN DECISION: Entities are frozen Pydantic models that reference each
other only by identifier. A transaction knows its account, category and
card IDs; nothing knows its transactions. Reverse lookups are built on
demand from the transaction list (see ledger.index), so there are no
back-pointers to keep in sync.

Mutation is whole-record replacement: model_copy(update=...) produces a
new record with the same id, and the store swaps it in.
"""

import math
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from household_ledger.models.kinds import KindPolicy, TransactionKind, policy_for


MEMO_MAX_LENGTH = 1000


# =============================================================================
# MASTER DATA
# =============================================================================

class Account(BaseModel):
    """
    A bank account (or wallet) that money moves in and out of.

    Optional text fields are stored as None rather than "" so that an
    empty form field and a missing value look the same after a round trip.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique account ID (immutable)"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    number: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Account number"
    )
    branch_name: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Branch name"
    )
    branch_code: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Branch code"
    )

    @field_validator('number', 'branch_name', 'branch_code', mode='before')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Empty optional fields become None."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def display_name(self) -> str:
        """Name with the branch appended when known."""
        if self.branch_name:
            return f"{self.name} ({self.branch_name})"
        return self.name


class Category(BaseModel):
    """
    A spending category.

    Credit cards have exactly the same shape and are stored as Category
    records in a separate collection.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category or card name"
    )


class Person(BaseModel):
    """A household member. Present in the model, not used by the ledger rules."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    note: str = ""


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    One ledger entry.

    The amount is a magnitude; its sign comes from the kind at
    aggregation time. Older snapshots may contain negative amounts, so
    readers always take abs() before signing.

    Transfer records carry from/to accounts and a pair id and never an
    account id. The shape is enforced by the transfer pairing engine and
    the validator rather than here, so legacy data with a broken shape
    still loads.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    date: datetime = Field(
        ...,
        description="When the transaction happened (instant, not calendar day)"
    )
    amount: float = Field(
        ...,
        description="Amount as a magnitude"
    )
    memo: str = Field(
        default="",
        max_length=MEMO_MAX_LENGTH,
    )
    kind: TransactionKind = Field(
        ...,
        description="Transaction kind"
    )

    # References by identifier
    category_id: Optional[UUID] = None
    card_id: Optional[UUID] = None
    person_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    from_account_id: Optional[UUID] = None
    to_account_id: Optional[UUID] = None
    pair_id: Optional[UUID] = Field(
        default=None,
        description="Shared by the two sides of one transfer"
    )

    @field_validator('memo', mode='before')
    @classmethod
    def none_memo_to_empty(cls, v: Optional[str]) -> str:
        return "" if v is None else v

    @property
    def policy(self) -> KindPolicy:
        return policy_for(self.kind)

    @property
    def is_transfer(self) -> bool:
        return self.kind == TransactionKind.TRANSFER

    @property
    def magnitude(self) -> float:
        """abs(amount), or 0.0 when the stored amount is NaN or infinite."""
        if not math.isfinite(self.amount):
            return 0.0
        return abs(self.amount)

    def touches_account(self, account_id: UUID) -> bool:
        """True when the account appears in any account reference."""
        return account_id in (self.account_id, self.from_account_id, self.to_account_id)

    def references(self) -> set[UUID]:
        """All identifiers this record points at."""
        refs = {
            self.category_id,
            self.card_id,
            self.person_id,
            self.account_id,
            self.from_account_id,
            self.to_account_id,
        }
        refs.discard(None)
        return refs
