"""
Amount input parsing.

Accepts what people actually type into an amount field: grouped digits
("12,345"), full-width digits, a trailing 円, and the 億/万 shorthand where
the markers stack left to right ("1億2345万6789" = 123,456,789).

This is an input convenience for one field, not a general number parser.
"""

import math
import unicodedata
from typing import Optional


OKU = 100_000_000
MAN = 10_000

# Characters people type for a minus sign, after NFKC
_MINUS_VARIANTS = ("−", "ー", "‐", "–", "—")
_REMOVED = ("円", ",", " ", "\t")


def normalize_amount_text(text: Optional[str]) -> str:
    """Half-width, no currency suffix, no separators, plain ASCII signs."""
    if not text:
        return ""
    x = unicodedata.normalize("NFKC", text)
    for ch in _REMOVED:
        x = x.replace(ch, "")
    for ch in _MINUS_VARIANTS:
        x = x.replace(ch, "-")
    return x.strip()


def _to_float(text: str) -> Optional[float]:
    if not text or "_" in text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_amount(text: Optional[str]) -> Optional[float]:
    """
    Parse an amount field.

    Returns None when nothing numeric could be read. The sign is returned
    as typed; rejecting amounts <= 0 is the validator's job.
    """
    x = normalize_amount_text(text)
    if not x:
        return None

    simple = _to_float(x)
    if simple is not None:
        return simple

    rest = x
    total = 0.0
    parsed_any = False
    for marker, multiplier in (("億", OKU), ("万", MAN)):
        if marker in rest:
            head, rest = rest.split(marker, 1)
            value = _to_float(head)
            if value is not None:
                total += value * multiplier
                parsed_any = True
    tail = _to_float(rest)
    if tail is not None:
        total += tail
        parsed_any = True

    if not parsed_any or not math.isfinite(total):
        return None
    return total


def format_amount(amount: float, max_fraction_digits: int = 2) -> str:
    """Grouped digits with up to two decimals, trailing zeros dropped."""
    if not math.isfinite(amount):
        return "0"
    text = f"{amount:,.{max_fraction_digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_money(amount: float, currency: str = "円") -> str:
    return f"{format_amount(amount, 0)}{currency}"
