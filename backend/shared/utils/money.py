"""
Fixed-point money helpers.

All monetary values are Decimals with two fraction digits. Percentages are
applied at full precision and rounded half-up once, at the end.
"""

from decimal import ROUND_HALF_UP, Decimal

from shared.config.constants import CENT, HUNDRED


def to_money(value: Decimal | int | float | str | None) -> Decimal | None:
    """Convert a stored or user-supplied amount to a 2-place Decimal (None passes through)."""
    if value is None:
        return None
    if isinstance(value, float):
        # repr-based conversion keeps 45.1 as 45.1, not 45.0999...
        value = repr(value)
    return quantize(Decimal(value))


def quantize(amount: Decimal) -> Decimal:
    """Round half-up to cents."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def apply_percentage_discount(price: Decimal, percentage: Decimal) -> Decimal:
    """
    price * (1 - percentage / 100), rounded half-up to cents.

    >>> apply_percentage_discount(Decimal("50.00"), Decimal("10"))
    Decimal('45.00')
    """
    factor = Decimal(1) - (Decimal(percentage) / HUNDRED)
    return quantize(Decimal(price) * factor)
