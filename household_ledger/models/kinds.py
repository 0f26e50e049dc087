"""
Transaction Kind Policy

The seven transaction kinds and the metadata attached to each.

DESIGN DECISION: Every sign and exclusion rule lives in ONE table.
Aggregation, validation and search read KIND_POLICIES instead of
branching on the kind themselves, so the rules can be tested in
isolation and changed in one place.
"""

from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


class TransactionKind(str, Enum):
    """
    Closed set of transaction kinds.

    Values are the persisted strings. Earlier versions persisted the
    Japanese display labels instead; parse() accepts both.
    """
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"
    CARD_USAGE = "cardUsage"
    CARD_PAYMENT = "cardPayment"
    CARRY_OVER = "carryOver"
    BALANCE = "balance"

    @classmethod
    def parse(cls, value: Union[str, "TransactionKind"]) -> "TransactionKind":
        """
        Resolve a persisted kind string.

        Raises:
            ValueError: If the value is neither a kind value nor a legacy label
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        try:
            return cls(text)
        except ValueError:
            pass
        kind = _LEGACY_LABELS.get(text)
        if kind is None:
            raise ValueError(f"Unknown transaction kind: {value!r}")
        return kind


_LEGACY_LABELS = {
    "支出": TransactionKind.EXPENSE,
    "収入": TransactionKind.INCOME,
    "資金移動": TransactionKind.TRANSFER,
    "クレジット利用": TransactionKind.CARD_USAGE,
    "クレジット決済": TransactionKind.CARD_PAYMENT,
    "繰越": TransactionKind.CARRY_OVER,
    "口座残高": TransactionKind.BALANCE,
}


class KindPolicy(BaseModel):
    """
    Semantic metadata for one transaction kind.

    cashflow_sign drives the per-account balance; ledger_sign drives
    the whole-list total where transfers are not account scoped.
    """
    model_config = ConfigDict(frozen=True)

    kind: TransactionKind
    label: str = Field(..., description="Display label")
    cashflow_sign: int = Field(
        ...,
        ge=-1,
        le=1,
        description="Sign applied from an account viewpoint (transfer is resolved per viewpoint)"
    )
    ledger_sign: int = Field(
        ...,
        ge=-1,
        le=1,
        description="Sign applied in the whole-ledger total"
    )
    affects_credit_usage: bool = Field(
        default=False,
        description="Counts toward credit-card usage aggregation"
    )

    # Which references a record of this kind must carry
    requires_account: bool = False
    requires_card: bool = False
    uses_transfer_accounts: bool = False

    # Presentation hints
    symbol_name: str = ""
    color_name: str = ""

    search_keywords: tuple[str, ...] = Field(
        default=(),
        description="Lower-case keywords that select this kind in free-text search"
    )

    def matches_keyword(self, token: str) -> bool:
        """
        Loose keyword match used by search.

        A token matches when it equals a keyword, is contained in one, or
        contains one.
        """
        if not token:
            return False
        return any(
            kw == token or token in kw or kw in token
            for kw in self.search_keywords
        )


KIND_POLICIES: dict[TransactionKind, KindPolicy] = {
    TransactionKind.EXPENSE: KindPolicy(
        kind=TransactionKind.EXPENSE,
        label="支出",
        cashflow_sign=-1,
        ledger_sign=-1,
        requires_account=True,
        symbol_name="arrow.up.circle",
        color_name="red",
        search_keywords=("支出", "出金", "expense", "-", "マイナス"),
    ),
    TransactionKind.INCOME: KindPolicy(
        kind=TransactionKind.INCOME,
        label="収入",
        cashflow_sign=1,
        ledger_sign=1,
        requires_account=True,
        symbol_name="arrow.down.circle",
        color_name="green",
        search_keywords=("収入", "入金", "income", "+", "プラス"),
    ),
    TransactionKind.TRANSFER: KindPolicy(
        kind=TransactionKind.TRANSFER,
        label="資金移動",
        cashflow_sign=0,
        ledger_sign=0,
        uses_transfer_accounts=True,
        symbol_name="arrow.left.arrow.right",
        color_name="blue",
        search_keywords=("資金移動", "振替", "transfer", "移動"),
    ),
    TransactionKind.CARD_USAGE: KindPolicy(
        kind=TransactionKind.CARD_USAGE,
        label="クレジット利用",
        cashflow_sign=0,
        ledger_sign=1,
        affects_credit_usage=True,
        requires_card=True,
        symbol_name="creditcard",
        color_name="orange",
        search_keywords=("クレジット利用", "クレジット", "カード", "card", "credit"),
    ),
    TransactionKind.CARD_PAYMENT: KindPolicy(
        kind=TransactionKind.CARD_PAYMENT,
        label="クレジット決済",
        cashflow_sign=-1,
        ledger_sign=-1,
        requires_account=True,
        requires_card=True,
        symbol_name="creditcard.and.123",
        color_name="purple",
        search_keywords=("クレジット決済", "クレジット", "カード", "credit"),
    ),
    TransactionKind.CARRY_OVER: KindPolicy(
        kind=TransactionKind.CARRY_OVER,
        label="繰越",
        cashflow_sign=1,
        ledger_sign=0,
        requires_account=True,
        symbol_name="arrow.uturn.forward",
        color_name="gray",
        search_keywords=("繰越", "繰り越し", "carryover", "前月繰越", "翌月繰越"),
    ),
    TransactionKind.BALANCE: KindPolicy(
        kind=TransactionKind.BALANCE,
        label="口座残高",
        cashflow_sign=1,
        ledger_sign=0,
        requires_account=True,
        symbol_name="banknote",
        color_name="teal",
        search_keywords=("口座残高", "残高", "balance", "bank", "口座"),
    ),
}


def policy_for(kind: Union[TransactionKind, str]) -> KindPolicy:
    """Look up the policy for a kind (accepts persisted strings too)."""
    return KIND_POLICIES[TransactionKind.parse(kind)]
