"""
Pricing aggregator: the effective price of a product or variant line.

Precedence, in this fixed order:

1. A variant's daily special on one of its configured weekdays replaces
   the list price. Each override falls back to the list price for that
   (zone, service type) only.
2. Otherwise the list price for (zone, service type).
3. The highest-priority applicable promotion item is applied on top: a
   special price replaces the result of steps 1-2 outright; a discount
   percentage multiplies it and is rounded half-up to cents once.
4. Chosen section options are added last and are never discounted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from shared.config.constants import ServiceType, Zone, price_field
from shared.config.logging import get_logger
from shared.infrastructure.clock import Clock, local_time, system_clock
from shared.utils.exceptions import (
    NotFoundError,
    PriceNotDefinedError,
    PricingError,
    ValidationError,
    VariantRequiredError,
)
from shared.utils.money import apply_percentage_discount

from .applicability import PromotionTarget, find_applicable_items, select_highest_priority
from .options import price_options
from .records import CatalogSnapshot, VariantRecord
from .schemas import AppliedPromotion, PriceBreakdown

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PricingTarget:
    """A product, optionally narrowed to one of its variants."""

    product_id: int
    variant_id: int | None = None


def is_daily_special_on(variant: VariantRecord, at: datetime) -> bool:
    return variant.is_daily_special and at.isoweekday() in variant.daily_special_days


def daily_special_price(
    variant: VariantRecord, zone: Zone | str, service_type: ServiceType | str
) -> Decimal | None:
    """Override for (zone, service type), falling back to that field's list price."""
    override = variant.daily_special_prices.get(zone, service_type)
    if override is not None:
        return override
    return variant.prices.get(zone, service_type)


def _list_price(
    snapshot: CatalogSnapshot, target: PricingTarget, zone: Zone, service_type: ServiceType
) -> tuple[Decimal, VariantRecord | None, PromotionTarget]:
    """
    Validate the target and read its list price.

    Raises:
        NotFoundError: Unknown product or variant.
        ValidationError: The variant belongs to another product.
        PricingError: Product or variant inactive.
        VariantRequiredError: Variant-based product priced without a variant.
        PriceNotDefinedError: No price for (zone, service type).
    """
    product = snapshot.product(target.product_id)
    if product is None:
        raise NotFoundError("Product", target.product_id)
    if not product.is_active:
        raise PricingError(f"Product {product.id} is not available", product_id=product.id)

    field = price_field(zone, service_type)

    if target.variant_id is None:
        if product.has_variants:
            raise VariantRequiredError(product.id)
        base = product.prices.get(zone, service_type)
        if base is None:
            raise PriceNotDefinedError("Product", product.id, field)
        return base, None, PromotionTarget.for_product(snapshot, product.id)

    variant = snapshot.variant(target.variant_id)
    if variant is None:
        raise NotFoundError("ProductVariant", target.variant_id)
    if variant.product_id != product.id:
        raise ValidationError(
            f"Variant {variant.id} does not belong to product {product.id}",
            variant_id=variant.id,
            product_id=product.id,
        )
    if not variant.is_active:
        raise PricingError(f"Variant {variant.id} is not available", variant_id=variant.id)

    base = variant.prices.get(zone, service_type)
    if base is None:
        raise PriceNotDefinedError("ProductVariant", variant.id, field)
    return base, variant, PromotionTarget.for_variant(snapshot, variant.id)


def price_for(
    snapshot: CatalogSnapshot,
    target: PricingTarget,
    zone: Zone | str,
    service_type: ServiceType | str,
    at: datetime | None = None,
    *,
    option_ids: Iterable[int] = (),
    clock: Clock = system_clock,
) -> PriceBreakdown:
    """
    Effective price of a product or variant at `at` (default: the clock's now).

    Pure: identical inputs, including `at`, give identical output.

    Raises:
        NotFoundError, ValidationError, PricingError and its subclasses:
            the line cannot be priced (including an unknown, foreign or
            inactive option in option_ids).
    """
    zone = Zone(zone)
    service_type = ServiceType(service_type)
    moment = local_time(at if at is not None else clock())

    base, variant, promotion_target = _list_price(snapshot, target, zone, service_type)
    options = price_options(snapshot, option_ids, [target.product_id])

    current = base
    daily_price: Decimal | None = None
    special_day = variant is not None and is_daily_special_on(variant, moment)
    if special_day:
        daily_price = daily_special_price(variant, zone, service_type)
        current = daily_price

    applicable = find_applicable_items(snapshot, promotion_target, service_type, moment)
    chosen = select_highest_priority(applicable, zone, service_type)

    special_price: Decimal | None = None
    discounted_price: Decimal | None = None
    applied: AppliedPromotion | None = None
    if chosen is not None:
        item_special = chosen.item.special_prices.get(zone, service_type)
        if item_special is not None:
            special_price = item_special
            current = item_special
        else:
            discounted_price = apply_percentage_discount(current, chosen.item.discount_percentage)
            current = discounted_price
        applied = AppliedPromotion(
            promotion_id=chosen.promotion.id,
            promotion_item_id=chosen.item.id,
            promotion_name=chosen.promotion.name,
            promotion_type=chosen.promotion.type,
            match_level=chosen.level.name.lower(),
            special_price=item_special,
            discount_percentage=None if item_special is not None else chosen.item.discount_percentage,
        )

    breakdown = PriceBreakdown(
        product_id=target.product_id,
        variant_id=target.variant_id,
        zone=zone.value,
        service_type=service_type.value,
        evaluated_at=moment,
        base_price=base,
        is_daily_special=special_day,
        daily_special_price=daily_price,
        special_price=special_price,
        discounted_price=discounted_price,
        promoted_price=current,
        options_price=options.total,
        options_savings=options.savings,
        final_price=current + options.total,
        applied_promotion=applied,
        applicable_promotion_ids=sorted({a.promotion.id for a in applicable}),
        applicable_item_ids=sorted(a.item.id for a in applicable),
    )

    logger.debug(
        "Line priced",
        product_id=target.product_id,
        variant_id=target.variant_id,
        zone=zone.value,
        service_type=service_type.value,
        final_price=breakdown.final_price,
        promotion_item_id=applied.promotion_item_id if applied else None,
    )
    return breakdown
