"""
Output schemas returned by the pricing engine to checkout and admin previews.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class AppliedPromotion(BaseModel):
    """The single promotion item the aggregator applied."""

    model_config = {"frozen": True}

    promotion_id: int
    promotion_item_id: int
    promotion_name: str
    promotion_type: str
    match_level: str
    special_price: Decimal | None = None
    discount_percentage: Decimal | None = None


class PriceBreakdown(BaseModel):
    """
    Effective price of one line item.

    base_price is the list price for (zone, service type).
    daily_special_price is set when a variant's daily special is in effect.
    special_price / discounted_price are set when the applied promotion
    replaced the price or discounted it. promoted_price is the product price
    after all of that; options_price (net of options_savings, the section
    bundle discount) is added on top to give final_price, what checkout
    charges per unit.
    """

    model_config = {"frozen": True}

    product_id: int
    variant_id: int | None = None
    zone: str
    service_type: str
    evaluated_at: datetime

    base_price: Decimal
    is_daily_special: bool = False
    daily_special_price: Decimal | None = None
    special_price: Decimal | None = None
    discounted_price: Decimal | None = None
    promoted_price: Decimal
    options_price: Decimal = Decimal("0.00")
    options_savings: Decimal = Decimal("0.00")
    final_price: Decimal

    applied_promotion: AppliedPromotion | None = None
    # Every applicable item, so callers can apply their own stacking policy
    applicable_promotion_ids: list[int] = []
    applicable_item_ids: list[int] = []


class ComboAvailability(BaseModel):
    model_config = {"frozen": True}

    combo_id: int
    name: str
    is_available: bool
    inactive_options_count: int


class CartTotals(BaseModel):
    subtotal: Decimal
    total_discount: Decimal
    total: Decimal
    items_count: int
