"""
Free-text transaction search.

The query is normalized (NFKC folds full-width letters and digits to
half-width, then lower-cased) and split on whitespace, including the
ideographic space. Every token must match the transaction somewhere:
a kind keyword, the memo, the category or card name, or the name,
number, branch name or branch code of any account the record touches.
"""

import unicodedata
from typing import Iterable, Optional

from household_ledger.ledger.index import EntityDirectory
from household_ledger.models.entities import Account, Transaction
from household_ledger.models.kinds import policy_for


# Tokens that mean "anything paid with a card"
CARD_KEYWORDS = ("card", "カード", "クレジット", "credit", "デビット", "debit")


def normalize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return unicodedata.normalize("NFKC", text).lower()


def tokenize(query: Optional[str]) -> list[str]:
    # NFKC maps U+3000 to a plain space, split() handles the rest
    return normalize_text(query).split()


def matches_token(transaction: Transaction, token: str, directory: EntityDirectory) -> bool:
    if policy_for(transaction.kind).matches_keyword(token):
        return True

    card = directory.card(transaction.card_id)
    if card is not None and any(token in kw or kw in token for kw in CARD_KEYWORDS):
        return True

    if token in normalize_text(transaction.memo):
        return True

    category = directory.category(transaction.category_id)
    if category is not None and token in normalize_text(category.name):
        return True
    if card is not None and token in normalize_text(card.name):
        return True

    for account_id in (transaction.account_id, transaction.from_account_id, transaction.to_account_id):
        account = directory.account(account_id)
        if account is not None and _account_matches(account, token):
            return True
    return False


def _account_matches(account: Account, token: str) -> bool:
    fields = (account.name, account.number, account.branch_name, account.branch_code)
    return any(token in normalize_text(value) for value in fields if value)


def search_transactions(
    transactions: Iterable[Transaction],
    query: Optional[str],
    directory: EntityDirectory,
) -> list[Transaction]:
    """Records matching every token of the query; all records for a blank query."""
    tokens = tokenize(query)
    records = list(transactions)
    if not tokens:
        return records
    return [t for t in records if all(matches_token(t, tok, directory) for tok in tokens)]
