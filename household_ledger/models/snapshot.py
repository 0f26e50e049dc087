"""
Persisted Snapshot Schema

The flat, reference-by-identifier document written to disk.

DESIGN DECISION: The wire shape is described by its own models, separate
from the in-memory entities. Field aliases pin the persisted camelCase
names, unknown fields are ignored, and every field that older versions
did not write has a default, so an old snapshot never fails the load
just because a field is missing.

Reference fields stay plain strings here. Resolving them (and dropping
the ones that point nowhere) is the codec's job, not the schema's.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from household_ledger.models.kinds import TransactionKind


SNAPSHOT_VERSION = 1


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


class CategoryRecord(_SnapshotModel):
    """Persisted category or credit card."""

    id: str
    name: str


class AccountRecord(_SnapshotModel):
    """Persisted account."""

    id: str
    name: str
    number: Optional[str] = None
    branch_name: Optional[str] = Field(default=None, alias="branchName")
    branch_code: Optional[str] = Field(default=None, alias="branchCode")


class TransactionRecord(_SnapshotModel):
    """Persisted transaction with identifier references."""

    id: str
    date: datetime
    amount: float
    memo: str = ""
    kind: TransactionKind
    category_id: Optional[str] = Field(default=None, alias="categoryID")
    card_id: Optional[str] = Field(default=None, alias="cardID")
    person_id: Optional[str] = Field(default=None, alias="personID")
    account_id: Optional[str] = Field(default=None, alias="accountID")
    from_account_id: Optional[str] = Field(default=None, alias="fromAccountID")
    to_account_id: Optional[str] = Field(default=None, alias="toAccountID")
    pair_id: Optional[str] = Field(default=None, alias="pairID")

    @field_validator('kind', mode='before')
    @classmethod
    def accept_legacy_kind(cls, v: Any) -> TransactionKind:
        """Older snapshots stored the display label instead of the value."""
        return TransactionKind.parse(v)

    @field_validator('memo', mode='before')
    @classmethod
    def none_memo(cls, v: Any) -> Any:
        return "" if v is None else v


class Snapshot(_SnapshotModel):
    """
    Top-level persisted document.

    cardPaymentAccount is kept as raw values so one malformed entry can
    be dropped by the codec without failing the whole snapshot.
    """

    version: int = SNAPSHOT_VERSION
    categories: list[CategoryRecord] = Field(default_factory=list)
    accounts: list[AccountRecord] = Field(default_factory=list)
    credit_cards: list[CategoryRecord] = Field(default_factory=list, alias="creditCards")
    card_payment_account: dict[str, Any] = Field(
        default_factory=dict,
        alias="cardPaymentAccount"
    )
    transactions: list[TransactionRecord] = Field(default_factory=list)
    person_name: str = Field(default="", alias="personName")
    app_title: str = Field(default="Bank Management", alias="appTitle")
    avatar_filename: Optional[str] = Field(default=None, alias="avatarFilename")

    @field_validator('card_payment_account', mode='before')
    @classmethod
    def null_mapping_to_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    def to_document(self) -> dict:
        """JSON-ready dict using the persisted field names."""
        return self.model_dump(mode="json", by_alias=True)
