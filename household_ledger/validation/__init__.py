"""Input validation package."""

from household_ledger.validation.amounts import (
    format_amount,
    format_money,
    normalize_amount_text,
    parse_amount,
)
from household_ledger.validation.validator import TransactionValidator

__all__ = [
    "TransactionValidator",
    "format_amount",
    "format_money",
    "normalize_amount_text",
    "parse_amount",
]
