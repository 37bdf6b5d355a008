"""
Cart-level helpers on top of per-line prices.

Lines arrive already priced (price_for / resolve_combo_price); nothing here
looks at promotions or the clock.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from shared.config.constants import Limits
from shared.utils.exceptions import ValidationError
from shared.utils.money import quantize

from .schemas import CartTotals

ZERO = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One priced cart line.

    unit_price is the promoted product price (daily special or promotion
    applied); list_unit_price is the price before promotions and defaults
    to unit_price. extras_unit_price holds the chosen options, which are
    charged in full on every unit and never discounted.
    """

    line_id: int | str
    unit_price: Decimal
    quantity: int = 1
    list_unit_price: Decimal | None = None
    extras_unit_price: Decimal = ZERO

    def __post_init__(self) -> None:
        if not Limits.MIN_QUANTITY <= self.quantity <= Limits.MAX_QUANTITY:
            raise ValidationError(
                f"quantity must be between {Limits.MIN_QUANTITY} and {Limits.MAX_QUANTITY}",
                line_id=self.line_id,
                quantity=self.quantity,
            )

    @property
    def list_price(self) -> Decimal:
        return self.list_unit_price if self.list_unit_price is not None else self.unit_price

    @property
    def unit_savings(self) -> Decimal:
        return max(self.list_price - self.unit_price, ZERO)

    @property
    def original_total(self) -> Decimal:
        return (self.list_price + self.extras_unit_price) * self.quantity

    @property
    def total(self) -> Decimal:
        return (self.unit_price + self.extras_unit_price) * self.quantity

    @property
    def savings(self) -> Decimal:
        return self.unit_savings * self.quantity


def apply_two_for_one(lines: Iterable[CartLine]) -> dict[int | str, Decimal]:
    """
    2x1 across the qualifying lines: every two units make one unit free.

    Units are ranked by list price, cheapest first. The first
    2 * floor(total_quantity / 2) of them are paired; paired units are
    charged at list price and the cheapest floor(total_quantity / 2) of
    them are free. Units left over keep the line's own promoted price.
    Extras are never discounted.

    Returns the full discount of every line holding a paired unit; it
    replaces that line's own promotion savings. Lines without a paired
    unit are omitted and keep their own savings.

    >>> lines = [CartLine(1, Decimal("30.00"), 1), CartLine(2, Decimal("45.00"), 2)]
    >>> apply_two_for_one(lines)
    {1: Decimal('30.00'), 2: Decimal('0.00')}
    """
    lines = list(lines)
    free_units = sum(line.quantity for line in lines) // 2
    paired_units = free_units * 2

    discounts: dict[int | str, Decimal] = {}
    for line in sorted(lines, key=lambda l: l.list_price):
        if paired_units <= 0:
            break
        paired = min(line.quantity, paired_units)
        free = min(paired, free_units)
        leftover = line.quantity - paired

        discounts[line.line_id] = quantize(line.list_price * free + line.unit_savings * leftover)
        paired_units -= paired
        free_units -= free
    return discounts


def calculate_cart_total(
    lines: Iterable[CartLine],
    line_discounts: Mapping[int | str, Decimal] | None = None,
) -> CartTotals:
    """
    Cart totals.

    subtotal is the sum at list prices (options included). Each line's
    discount is its own promotion savings unless line_discounts (e.g. from
    apply_two_for_one) gives one for its line id, which replaces it. The
    total never goes below zero.
    """
    lines = list(lines)
    line_discounts = line_discounts or {}

    subtotal = quantize(sum((line.original_total for line in lines), ZERO))
    discount = sum(
        (
            Decimal(line_discounts[line.line_id]) if line.line_id in line_discounts else line.savings
            for line in lines
        ),
        ZERO,
    )

    total_discount = quantize(min(max(discount, ZERO), subtotal))
    return CartTotals(
        subtotal=subtotal,
        total_discount=total_discount,
        total=quantize(subtotal - total_discount),
        items_count=sum(line.quantity for line in lines),
    )
