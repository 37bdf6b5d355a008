"""
Customization option pricing.

A line may carry section options (vegetables, sauces, paid extras). Each
option adds its price_modifier to the line's unit price. Options are
priced per section: when the section has bundle_discount_enabled, extras
of the same price form bundles of bundle_size and every full bundle costs
bundle_discount_amount less. Non-extra options never bundle.

Option prices sit outside promotions: daily specials, promotion items and
2x1 discount the product price only.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from shared.config.logging import get_logger
from shared.utils.exceptions import NotFoundError, PricingError, ValidationError
from shared.utils.money import quantize

from .records import CatalogSnapshot, SectionOptionRecord, SectionRecord

logger = get_logger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class OptionsPrice:
    """Per-unit price of the chosen options; savings is the bundle discount already taken off."""

    total: Decimal = ZERO
    savings: Decimal = ZERO


NO_OPTIONS = OptionsPrice()


def section_options_price(section: SectionRecord, options: list[SectionOptionRecord]) -> OptionsPrice:
    """
    Price of the options chosen from one section (duplicates count once each).

    >>> section = SectionRecord(1, bundle_discount_enabled=True, bundle_size=2, bundle_discount_amount=Decimal("3.00"))
    >>> cheese = SectionOptionRecord(10, 1, is_extra=True, price_modifier=Decimal("5.00"))
    >>> section_options_price(section, [cheese, cheese, cheese])
    OptionsPrice(total=Decimal('12.00'), savings=Decimal('3.00'))
    """
    plain = sum((option.price_modifier for option in options if not option.is_extra), ZERO)
    extras = [option.price_modifier for option in options if option.is_extra]

    bundle_size = section.bundle_size
    if not section.bundle_discount_enabled or bundle_size < 2 or len(extras) < bundle_size:
        return OptionsPrice(total=quantize(plain + sum(extras, ZERO)))

    amount = section.bundle_discount_amount or ZERO
    total = plain
    savings = ZERO
    for price, count in Counter(extras).items():
        group_total = price * count
        group_savings = min(amount * (count // bundle_size), group_total)
        total += group_total - group_savings
        savings += group_savings

    return OptionsPrice(total=quantize(total), savings=quantize(savings))


def price_options(
    snapshot: CatalogSnapshot,
    option_ids: Iterable[int],
    product_ids: Iterable[int],
) -> OptionsPrice:
    """
    Price the options chosen for one line unit.

    product_ids are the products the line is made of (one for a product
    line, every resolved item for a combo); each option must come from a
    section offered on one of them.

    Raises:
        NotFoundError: Unknown option id.
        ValidationError: The option's section is not offered on the line.
        PricingError: The option or its section is inactive.
    """
    option_ids = list(option_ids)
    if not option_ids:
        return NO_OPTIONS

    offered: set[int] = set()
    for product_id in product_ids:
        product = snapshot.product(product_id)
        if product is not None:
            offered |= product.section_ids

    by_section: dict[int, list[SectionOptionRecord]] = {}
    for option_id in option_ids:
        option = snapshot.section_option(option_id)
        if option is None:
            raise NotFoundError("SectionOption", option_id)
        if option.section_id not in offered:
            raise ValidationError(
                f"Option {option.id} is not offered on this line",
                option_id=option.id,
                section_id=option.section_id,
            )
        section = snapshot.sections.get(option.section_id)
        if section is None or not section.is_active or not option.is_active:
            raise PricingError(f"Option {option.id} is not available", option_id=option.id)
        by_section.setdefault(section.id, []).append(option)

    total = ZERO
    savings = ZERO
    for section_id, options in by_section.items():
        priced = section_options_price(snapshot.sections[section_id], options)
        total += priced.total
        savings += priced.savings

    if savings:
        logger.debug("Section bundle applied", options=len(option_ids), savings=savings)
    return OptionsPrice(total=quantize(total), savings=quantize(savings))
