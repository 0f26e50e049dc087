"""
Query Models

A LedgerQuery describes one read-side view; the executor answers it with
a LedgerQueryResult. Totals are always recomputed from the transaction
list at query time.
"""

from typing import Any, Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from household_ledger.ledger.periods import DateScope
from household_ledger.models.entities import Transaction


class LedgerQuery(BaseModel):
    """
    Read-side request.

    view:
    - transactions: whole-ledger list, transfers excluded from the total
    - account: one account's ledger, transfer pairs shown once
    - credit_usage: card-tagged usage, optionally one card
    """

    query_id: UUID = Field(default_factory=uuid4)
    view: Literal["transactions", "account", "credit_usage"] = "transactions"
    scope: DateScope = Field(default_factory=DateScope.all)
    account_id: Optional[UUID] = None
    card_id: Optional[UUID] = None
    search: str = Field(
        default="",
        description="Free-text filter, whitespace separated tokens are ANDed"
    )

    @model_validator(mode='after')
    def validate_view_requirements(self) -> 'LedgerQuery':
        if self.view == "account" and self.account_id is None:
            raise ValueError("Account view requires account_id")
        return self


class LedgerQueryResult(BaseModel):
    """Result of executing a LedgerQuery."""

    query_id: UUID
    success: bool
    count: int = 0
    total: float = 0.0
    transactions: list[Transaction] = Field(default_factory=list)
    breakdown: dict[str, Any] = Field(
        default_factory=dict,
        description="Per-card totals for the credit usage view"
    )
    query_description: str = ""
    error_message: Optional[str] = None

    @property
    def data_found(self) -> bool:
        return self.count > 0
