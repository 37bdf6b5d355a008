"""
Pricing engine: pure functions over a CatalogSnapshot.

- validity: promotion item validity windows and the promotion-level window
- applicability: which promotion items apply to a target
- combos: combo composition, availability and flat pricing
- options: section option prices and section bundles
- aggregator: effective price of a product/variant line
- cart: 2x1 and cart totals over priced lines

Usage:
    from menu_pricing.services.pricing import PricingTarget, price_for

    breakdown = price_for(snapshot, PricingTarget(product_id=3, variant_id=7), "capital", "pickup", at)
"""

from .records import (
    PriceMatrix,
    CategoryRecord,
    ProductRecord,
    VariantRecord,
    ComboOptionRecord,
    ComboItemRecord,
    ComboRecord,
    SectionRecord,
    SectionOptionRecord,
    PromotionRecord,
    PromotionItemRecord,
    CatalogSnapshot,
)
from .validity import (
    Validity,
    Unconditional,
    Permanent,
    Weekdays,
    DateRange,
    TimeRange,
    DateTimeRange,
    UnknownValidity,
    validity_from_fields,
    as_validity,
    evaluate_validity,
    check_rule,
    promotion_window_allows,
    bundle_price_for_zone,
)
from .applicability import (
    PromotionTarget,
    ApplicableItem,
    find_applicable_items,
    find_applicable_promotions,
    select_highest_priority,
    service_type_allows,
)
from .combos import (
    ResolvedComboItem,
    combo_list_price,
    expand_choice_groups,
    resolve_combo_price,
    is_available,
    inactive_options_count,
)
from .options import OptionsPrice, price_options, section_options_price
from .aggregator import PricingTarget, price_for
from .cart import CartLine, apply_two_for_one, calculate_cart_total
from .schemas import AppliedPromotion, PriceBreakdown, ComboAvailability, CartTotals

__all__ = [
    # Records
    "PriceMatrix",
    "CategoryRecord",
    "ProductRecord",
    "VariantRecord",
    "ComboOptionRecord",
    "ComboItemRecord",
    "ComboRecord",
    "SectionRecord",
    "SectionOptionRecord",
    "PromotionRecord",
    "PromotionItemRecord",
    "CatalogSnapshot",
    # Validity
    "Validity",
    "Unconditional",
    "Permanent",
    "Weekdays",
    "DateRange",
    "TimeRange",
    "DateTimeRange",
    "UnknownValidity",
    "validity_from_fields",
    "as_validity",
    "evaluate_validity",
    "check_rule",
    "promotion_window_allows",
    "bundle_price_for_zone",
    # Applicability
    "PromotionTarget",
    "ApplicableItem",
    "find_applicable_items",
    "find_applicable_promotions",
    "select_highest_priority",
    "service_type_allows",
    # Combos
    "ResolvedComboItem",
    "combo_list_price",
    "expand_choice_groups",
    "resolve_combo_price",
    "is_available",
    "inactive_options_count",
    # Options
    "OptionsPrice",
    "price_options",
    "section_options_price",
    # Aggregator
    "PricingTarget",
    "price_for",
    # Cart
    "CartLine",
    "apply_two_for_one",
    "calculate_cart_total",
    # Schemas
    "AppliedPromotion",
    "PriceBreakdown",
    "ComboAvailability",
    "CartTotals",
]
