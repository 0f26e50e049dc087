"""
In-memory ledger state.

The collections the store owns. This is a plain mutable container;
only LedgerStore mutates it.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from household_ledger.models.entities import Account, Category, Transaction


class LedgerState(BaseModel):
    """Everything that is persisted in one snapshot."""

    accounts: list[Account] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    credit_cards: list[Category] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    card_payment_accounts: dict[UUID, UUID] = Field(
        default_factory=dict,
        description="Card ID -> last used settlement account ID"
    )
    person_name: str = ""
    app_title: str = "Bank Management"
    avatar_filename: Optional[str] = None

    @classmethod
    def empty(cls, app_title: str = "Bank Management", person_name: str = "") -> "LedgerState":
        """Default state used for a first run or after an unreadable snapshot."""
        return cls(app_title=app_title, person_name=person_name)

    def is_empty(self) -> bool:
        return not (self.accounts or self.categories or self.credit_cards or self.transactions)

    def copy_collections(self) -> "LedgerState":
        """Shallow copy with fresh lists so readers never see later mutations."""
        return self.model_copy(update={
            "accounts": list(self.accounts),
            "categories": list(self.categories),
            "credit_cards": list(self.credit_cards),
            "transactions": list(self.transactions),
            "card_payment_accounts": dict(self.card_payment_accounts),
        })
