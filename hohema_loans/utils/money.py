"""Currency arithmetic helpers (fixed-point Decimal, rand and cents)"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Average periods per month used to normalise declared amounts
_MONTHLY_FACTORS = {
    "weekly": Decimal("4.33"),
    "bi-weekly": Decimal("2.17"),
}


def to_decimal(value) -> Decimal:
    """Convert ints, floats and strings to Decimal without binary float drift"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_currency(amount: Decimal) -> Decimal:
    """Round to cents, ties away from zero"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_monthly(amount: Decimal, frequency: str | None) -> Decimal:
    """Normalise a declared amount to its monthly equivalent"""
    freq = (frequency or "").lower()
    if freq == "annual":
        return amount / 12
    return amount * _MONTHLY_FACTORS.get(freq, Decimal("1"))
