"""Conversion between major-unit Decimal prices and processor minor units."""
from decimal import ROUND_HALF_UP, Decimal

# Currencies without a fractional unit (Stripe "zero-decimal" list, common subset)
ZERO_DECIMAL_CURRENCIES = frozenset({"jpy", "krw", "vnd", "clp", "isk", "ugx", "xaf", "xof"})


def _exponent(currency: str) -> int:
    return 0 if currency.lower() in ZERO_DECIMAL_CURRENCIES else 2


def to_minor_units(amount: Decimal | str | float, currency: str) -> int:
    """10.005 usd -> 1001 (rounded to nearest unit, halves up)."""
    scale = Decimal(10) ** _exponent(currency)
    return int((Decimal(str(amount)) * scale).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int, currency: str) -> Decimal:
    exp = _exponent(currency)
    return (Decimal(amount) / (Decimal(10) ** exp)).quantize(Decimal(1).scaleb(-exp))
