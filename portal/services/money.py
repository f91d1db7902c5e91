# portal/services/money.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# Invoice.amount is a 32-bit integer column
MAX_MINOR_UNITS = 2_147_483_647

CURRENCY_SYMBOLS = {
    "usd": "$",
    "eur": "€",
    "gbp": "£",
}


def to_minor_units(value) -> int:
    """
    Convert a major-unit amount ("19.99", 19.99, 20) to integer cents.

    Rounds half up at the cent. Raises ValueError for blanks, non-numbers,
    negative amounts and amounts too large to store.
    """
    if value is None or isinstance(value, bool):
        raise ValueError("Amount is required.")

    raw = str(value).strip().replace(",", "")
    if not raw:
        raise ValueError("Amount is required.")

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}") from None

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    if amount < 0:
        raise ValueError("Amount cannot be negative.")

    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents > MAX_MINOR_UNITS:
        raise ValueError("Amount is too large.")
    return cents


def format_currency(cents: int | None, currency: str | None = "usd") -> str:
    """1999 -> '$19.99'. Unknown currencies fall back to an upper-case code prefix."""
    code = (currency or "usd").strip().lower()
    amount = Decimal(int(cents or 0)) / Decimal(100)

    sign = "-" if amount < 0 else ""
    body = f"{abs(amount):,.2f}"

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{code.upper()} {body}"
