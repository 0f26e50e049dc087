"""
Identifier lookups built on demand.

Entities reference each other only by id. EntityDirectory turns the
master-data lists into id maps, and ReferenceIndex answers the reverse
question ("which transactions point at this account?") from the
transaction list. Both are rebuilt whenever they are needed and never
kept in sync by hand.
"""

from collections import defaultdict
from typing import Iterable, Optional
from uuid import UUID

from household_ledger.models.entities import Account, Category, Transaction


class EntityDirectory:
    """Read-only id lookups over accounts, categories and cards."""

    def __init__(
        self,
        accounts: Iterable[Account] = (),
        categories: Iterable[Category] = (),
        credit_cards: Iterable[Category] = (),
    ):
        self._accounts = {a.id: a for a in accounts}
        self._categories = {c.id: c for c in categories}
        self._cards = {c.id: c for c in credit_cards}

    @classmethod
    def from_state(cls, state) -> "EntityDirectory":
        return cls(state.accounts, state.categories, state.credit_cards)

    def account(self, account_id: Optional[UUID]) -> Optional[Account]:
        return self._accounts.get(account_id) if account_id else None

    def category(self, category_id: Optional[UUID]) -> Optional[Category]:
        return self._categories.get(category_id) if category_id else None

    def card(self, card_id: Optional[UUID]) -> Optional[Category]:
        return self._cards.get(card_id) if card_id else None

    def has_account(self, account_id: Optional[UUID]) -> bool:
        return account_id in self._accounts

    def has_category(self, category_id: Optional[UUID]) -> bool:
        return category_id in self._categories

    def has_card(self, card_id: Optional[UUID]) -> bool:
        return card_id in self._cards

    def card_name(self, card_id: Optional[UUID], unknown: str = "不明のカード") -> str:
        card = self.card(card_id)
        return card.name if card else unknown


class ReferenceIndex:
    """
    Reverse references from the transaction list.

    Built in one pass; answers which transactions use a given account,
    as plain account or as a transfer endpoint.
    """

    def __init__(self, transactions: Iterable[Transaction]):
        self._by_account: dict[UUID, list[Transaction]] = defaultdict(list)

        for t in transactions:
            for account_id in {t.account_id, t.from_account_id, t.to_account_id}:
                if account_id is not None:
                    self._by_account[account_id].append(t)

    def for_account(self, account_id: UUID) -> list[Transaction]:
        return list(self._by_account.get(account_id, ()))
