"""
Promotion applicability engine.

Given a target (a product, one of its variants, or a combo), a service type
and a moment, finds every promotion item that applies. An item applies when
it matches the target and passes all of:

1. Entity-active gate: the entity the item references, and the target
   itself, are active (missing or soft-deleted counts as inactive).
2. Promotion gate: the parent promotion and the item row are active and
   the promotion-level window is open.
3. Time-validity gate: the item's own validity window holds.
4. Service-type gate: the item's service_type filter admits the request.

The promotion window and the item validity are two independent windows;
both must pass.

Result order carries no meaning and no stacking policy is applied here.
select_highest_priority is a separate, opt-in tie-break used by the
pricing aggregator.

Bulk scans never raise for a bad row: an item whose rule cannot be read
is logged and left out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from shared.config.constants import (
    MatchLevel,
    ServiceType,
    ServiceTypeFilter,
    TargetKind,
    Zone,
)
from shared.config.logging import get_logger
from shared.infrastructure.clock import Clock, local_time, system_clock
from shared.utils.exceptions import InvalidRuleError

from .records import CatalogSnapshot, PromotionItemRecord, PromotionRecord
from .validity import as_validity, promotion_window_allows

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PromotionTarget:
    """
    What is being priced.

    entity_id is the product id (kind=product) or the combo id (kind=combo).
    category_ids is the resolved category set used for category items.
    """

    kind: TargetKind
    entity_id: int | None
    variant_id: int | None = None
    category_ids: frozenset[int] = frozenset()

    @classmethod
    def for_variant(cls, snapshot: CatalogSnapshot, variant_id: int) -> "PromotionTarget":
        variant = snapshot.variant(variant_id)
        if variant is None:
            return cls(TargetKind.PRODUCT, None, variant_id)
        product = snapshot.product(variant.product_id)
        categories = product.category_ids if product is not None else frozenset()
        return cls(TargetKind.PRODUCT, variant.product_id, variant_id, categories)

    @classmethod
    def for_product(cls, snapshot: CatalogSnapshot, product_id: int) -> "PromotionTarget":
        product = snapshot.product(product_id)
        categories = product.category_ids if product is not None else frozenset()
        return cls(TargetKind.PRODUCT, product_id, None, categories)

    @classmethod
    def for_combo(cls, snapshot: CatalogSnapshot, combo_id: int) -> "PromotionTarget":
        combo = snapshot.combo(combo_id)
        if combo is None or combo.category_id is None:
            return cls(TargetKind.COMBO, combo_id)
        return cls(TargetKind.COMBO, combo_id, None, frozenset({combo.category_id}))


@dataclass(frozen=True, slots=True)
class ApplicableItem:
    """An applicable promotion item with its parent and how it matched."""

    item: PromotionItemRecord
    promotion: PromotionRecord
    level: MatchLevel

    def has_effect_for(self, zone: Zone | str, service_type: ServiceType | str) -> bool:
        """Carries a special price for (zone, service type) or a discount."""
        if self.item.special_prices.get(zone, service_type) is not None:
            return True
        return self.item.discount_percentage is not None and self.item.discount_percentage > 0


# =============================================================================
# Matching
# =============================================================================


def item_target_kind(item: PromotionItemRecord, snapshot: CatalogSnapshot) -> TargetKind:
    """
    Explicit target_kind when stored; otherwise fall back to the category
    flag, which is how older rows told combos from products.
    """
    if item.target_kind is not None:
        return TargetKind(item.target_kind)
    category = snapshot.category(item.category_id)
    if category is not None and category.is_combo_category:
        return TargetKind.COMBO
    return TargetKind.PRODUCT


def match_level(
    item: PromotionItemRecord, target: PromotionTarget, snapshot: CatalogSnapshot
) -> MatchLevel | None:
    """
    How the item matches the target, or None.

    The item's most specific reference decides: a variant item matches only
    that variant, even when it also stores the variant's product_id.
    """
    if item.variant_id is not None:
        if target.variant_id is not None and item.variant_id == target.variant_id:
            return MatchLevel.VARIANT
        return None
    if item.product_id is not None:
        if item.product_id == target.entity_id and item_target_kind(item, snapshot) is target.kind:
            return MatchLevel.ENTITY
        return None
    if item.category_id is not None and item.category_id in target.category_ids:
        return MatchLevel.CATEGORY
    return None


# =============================================================================
# Gates
# =============================================================================


def referenced_entity_active(item: PromotionItemRecord, snapshot: CatalogSnapshot) -> bool:
    """Is the entity the item points at active? Missing entities are not."""
    if item.variant_id is not None:
        return snapshot.variant_is_active(item.variant_id)
    if item.product_id is not None:
        if item_target_kind(item, snapshot) is TargetKind.COMBO:
            combo = snapshot.combo(item.product_id)
            return combo is not None and combo.is_active
        return snapshot.product_is_active(item.product_id)
    if item.category_id is not None:
        category = snapshot.category(item.category_id)
        return category is not None and category.is_active
    return False


def target_is_active(target: PromotionTarget, snapshot: CatalogSnapshot) -> bool:
    if target.variant_id is not None:
        return snapshot.variant_is_active(target.variant_id)
    if target.kind is TargetKind.COMBO:
        combo = snapshot.combo(target.entity_id)
        return combo is not None and combo.is_active
    return snapshot.product_is_active(target.entity_id)


def service_type_allows(service_filter: str | None, service_type: ServiceType | str) -> bool:
    """
    Raises:
        InvalidRuleError: If the stored filter is not a known value.
    """
    if isinstance(service_filter, ServiceTypeFilter):
        service_filter = service_filter.value
    if service_filter is None or not service_filter.strip():
        return True
    try:
        allowed = ServiceTypeFilter(service_filter.strip().lower())
    except ValueError:
        raise InvalidRuleError(f"unknown service_type filter '{service_filter}'")

    requested = ServiceType(service_type)
    if allowed is ServiceTypeFilter.BOTH:
        return True
    if allowed is ServiceTypeFilter.DELIVERY_ONLY:
        return requested is ServiceType.DELIVERY
    return requested is ServiceType.PICKUP


def _exclusion_reason(
    item: PromotionItemRecord,
    target: PromotionTarget,
    snapshot: CatalogSnapshot,
    service_type: ServiceType,
    moment: datetime,
) -> str | None:
    """
    First failing gate for a matching item, or None when it applies.

    Raises:
        InvalidRuleError: If the item's rule cannot be read.
    """
    if not referenced_entity_active(item, snapshot):
        return "referenced entity inactive"
    if not target_is_active(target, snapshot):
        return "target inactive"

    promotion = snapshot.promotion(item.promotion_id)
    if promotion is None or not promotion.is_active or not item.is_active:
        return "promotion inactive"
    if not promotion_window_allows(promotion, moment):
        return "promotion window closed"

    if not as_validity(item).is_valid_at(moment):
        return "outside item validity"

    if not service_type_allows(item.service_type, service_type):
        return "service type excluded"
    return None


# =============================================================================
# Public API
# =============================================================================


def find_applicable_items(
    snapshot: CatalogSnapshot,
    target: PromotionTarget,
    service_type: ServiceType | str,
    at: datetime | None = None,
    *,
    clock: Clock = system_clock,
) -> list[ApplicableItem]:
    """
    Every promotion item applicable to the target, with its parent promotion
    and match level. Returns [] for targets with no catalog match.
    """
    requested = ServiceType(service_type)
    moment = local_time(at if at is not None else clock())

    applicable: list[ApplicableItem] = []
    for item in snapshot.promotion_items:
        level = match_level(item, target, snapshot)
        if level is None:
            continue

        try:
            reason = _exclusion_reason(item, target, snapshot, requested, moment)
        except InvalidRuleError as exc:
            logger.warning(
                "Promotion item excluded: invalid rule",
                item_id=item.id,
                promotion_id=item.promotion_id,
                reason=exc.reason,
            )
            continue

        if reason is not None:
            logger.debug(
                "Promotion item excluded",
                item_id=item.id,
                promotion_id=item.promotion_id,
                reason=reason,
            )
            continue

        applicable.append(ApplicableItem(item, snapshot.promotions[item.promotion_id], level))

    return applicable


def find_applicable_promotions(
    snapshot: CatalogSnapshot,
    target: PromotionTarget,
    service_type: ServiceType | str,
    at: datetime | None = None,
    *,
    clock: Clock = system_clock,
) -> list[PromotionItemRecord]:
    """Applicable promotion items for the target (order carries no meaning)."""
    return [
        applicable.item
        for applicable in find_applicable_items(snapshot, target, service_type, at, clock=clock)
    ]


def select_highest_priority(
    applicable: list[ApplicableItem],
    zone: Zone | str,
    service_type: ServiceType | str,
) -> ApplicableItem | None:
    """
    The single item the aggregator applies.

    Only items with a price effect for (zone, service type) are candidates.
    A variant match beats a product/combo match, which beats a category
    match; ties go to the lowest promotion sort_order, then the newest
    promotion, then the newest item.
    """
    candidates = [a for a in applicable if a.has_effect_for(zone, service_type)]
    if not candidates:
        return None
    return min(candidates, key=lambda a: (a.level, a.promotion.sort_order, -a.promotion.id, -a.item.id))

