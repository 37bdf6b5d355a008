"""
Pricing Service - entry point used by checkout and admin previews.

Loads one catalog snapshot per call and runs the pure pricing engine on it,
so every line of a cart is priced against the same catalog state. Each
call runs inside a correlation scope so its log records can be traced
together.

Usage:
    from menu_pricing.services.domain import PricingService

    service = PricingService(db)
    breakdown = service.price_for(product_id=3, variant_id=7, zone="capital", service_type="pickup")
    totals = service.price_cart([{"variant_id": 7, "product_id": 3, "quantity": 2}])
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from menu_pricing.repositories import CatalogRepository
from menu_pricing.services.pricing import (
    CartLine,
    CartTotals,
    CatalogSnapshot,
    ComboAvailability,
    PriceBreakdown,
    PricingTarget,
    PromotionItemRecord,
    PromotionTarget,
    apply_two_for_one,
    calculate_cart_total,
    check_rule,
    expand_choice_groups,
    find_applicable_promotions,
    inactive_options_count,
    is_available,
    price_for,
    price_options,
    resolve_combo_price,
    service_type_allows,
)
from menu_pricing.services.pricing.combos import get_combo
from shared.config.constants import Limits, PromotionType, ServiceType, Zone
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.clock import Clock, local_time, system_clock
from shared.infrastructure.correlation import correlation_scope
from shared.utils.exceptions import InvalidRuleError, ValidationError

logger = get_logger(__name__)


# =============================================================================
# Input / Output Schemas
# =============================================================================


class CartLineInput(BaseModel):
    """A cart line: a product/variant, or a combo with its choice selections."""

    product_id: int | None = None
    variant_id: int | None = None
    combo_id: int | None = None
    # combo_item_id -> chosen option id
    selections: dict[int, int] = {}
    # Section option ids for one unit; repeat an id to take it twice
    option_ids: list[int] = []
    quantity: int = Field(1, ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)


class RuleProblem(BaseModel):
    item_id: int
    promotion_id: int
    reason: str


class PricingService:
    """
    Service for effective prices.

    Business rules:
    - One snapshot per call; the engine never re-reads mid-evaluation
    - Zone and service type default to the configured defaults
    - Pricing errors propagate; checkout cannot continue with an unpriced line
    """

    def __init__(self, db: Session, clock: Clock = system_clock):
        self._db = db
        self._clock = clock
        self._repository = CatalogRepository(db)

    def load_snapshot(self) -> CatalogSnapshot:
        return self._repository.load_snapshot()

    # =========================================================================
    # Line pricing
    # =========================================================================

    def price_for(
        self,
        product_id: int,
        variant_id: int | None = None,
        zone: Zone | str | None = None,
        service_type: ServiceType | str | None = None,
        at: datetime | None = None,
        option_ids: Iterable[int] = (),
    ) -> PriceBreakdown:
        """Effective price of a product or variant, with its chosen section options."""
        with correlation_scope():
            snapshot = self.load_snapshot()
            return price_for(
                snapshot,
                PricingTarget(product_id, variant_id),
                zone or settings.default_zone,
                service_type or settings.default_service_type,
                self._moment(at),
                option_ids=option_ids,
            )

    def combo_price(
        self,
        combo_id: int,
        selections: Mapping[int, int] | None = None,
        zone: Zone | str | None = None,
        service_type: ServiceType | str | None = None,
    ) -> Decimal:
        """Flat combo price for a concrete selection."""
        with correlation_scope():
            snapshot = self.load_snapshot()
            return resolve_combo_price(
                snapshot,
                combo_id,
                zone or settings.default_zone,
                service_type or settings.default_service_type,
                selections,
            )

    def combo_availability(self, combo_id: int) -> ComboAvailability:
        with correlation_scope():
            snapshot = self.load_snapshot()
            combo = get_combo(snapshot, combo_id)
            return ComboAvailability(
                combo_id=combo.id,
                name=combo.name,
                is_available=is_available(snapshot, combo),
                inactive_options_count=inactive_options_count(snapshot, combo),
            )

    # =========================================================================
    # Applicability preview
    # =========================================================================

    def applicable_promotions(
        self,
        *,
        product_id: int | None = None,
        variant_id: int | None = None,
        combo_id: int | None = None,
        service_type: ServiceType | str | None = None,
        at: datetime | None = None,
    ) -> list[PromotionItemRecord]:
        """
        Promotion items applicable to one target. Exactly one of variant_id,
        product_id or combo_id selects the target (variant wins over product).
        """
        with correlation_scope():
            snapshot = self.load_snapshot()
            target = self._promotion_target(snapshot, product_id, variant_id, combo_id)
            return find_applicable_promotions(
                snapshot,
                target,
                service_type or settings.default_service_type,
                self._moment(at),
            )

    # =========================================================================
    # Cart
    # =========================================================================

    def price_cart(
        self,
        lines: Iterable[CartLineInput | dict[str, Any]],
        zone: Zone | str | None = None,
        service_type: ServiceType | str | None = None,
        at: datetime | None = None,
    ) -> CartTotals:
        """
        Price every line against one snapshot and total the cart.

        Lines whose applicable promotions include an active two_for_one
        promotion are grouped per promotion and priced by apply_two_for_one;
        the 2x1 replaces their own promotion savings. Options are charged
        in full on every unit.
        """
        zone = zone or settings.default_zone
        service_type = service_type or settings.default_service_type
        inputs = [CartLineInput.model_validate(line) for line in lines]

        with correlation_scope():
            snapshot = self.load_snapshot()
            moment = self._moment(at)

            cart_lines: list[CartLine] = []
            two_for_one_groups: dict[int, list[CartLine]] = {}

            for index, line in enumerate(inputs):
                if line.combo_id is not None:
                    price = resolve_combo_price(snapshot, line.combo_id, zone, service_type, line.selections)
                    options = price_options(
                        snapshot,
                        line.option_ids,
                        [r.product_id for r in expand_choice_groups(snapshot, line.combo_id, line.selections)],
                    )
                    cart_line = CartLine(index, price, line.quantity, extras_unit_price=options.total)
                    promotion_ids = {
                        item.promotion_id
                        for item in find_applicable_promotions(
                            snapshot, PromotionTarget.for_combo(snapshot, line.combo_id), service_type, moment
                        )
                    }
                else:
                    if line.product_id is None:
                        raise ValidationError("Cart line needs a product_id or a combo_id", line=index)
                    breakdown = price_for(
                        snapshot,
                        PricingTarget(line.product_id, line.variant_id),
                        zone,
                        service_type,
                        moment,
                        option_ids=line.option_ids,
                    )
                    cart_line = CartLine(
                        index,
                        breakdown.promoted_price,
                        line.quantity,
                        list_unit_price=breakdown.base_price,
                        extras_unit_price=breakdown.options_price,
                    )
                    promotion_ids = set(breakdown.applicable_promotion_ids)

                cart_lines.append(cart_line)

                two_for_one = sorted(
                    pid
                    for pid in promotion_ids
                    if snapshot.promotions[pid].type == PromotionType.TWO_FOR_ONE.value
                )
                if two_for_one:
                    # Newest 2x1 promotion wins when several apply
                    two_for_one_groups.setdefault(two_for_one[-1], []).append(cart_line)

            line_discounts: dict[int | str, Decimal] = {}
            for group in two_for_one_groups.values():
                line_discounts.update(apply_two_for_one(group))

            totals = calculate_cart_total(cart_lines, line_discounts)
            logger.info(
                "Cart priced",
                lines=len(cart_lines),
                subtotal=totals.subtotal,
                total_discount=totals.total_discount,
                total=totals.total,
            )
            return totals

    # =========================================================================
    # Rule audit
    # =========================================================================

    def scan_rules(self) -> list[RuleProblem]:
        """
        Run save-time validation over every stored promotion item.

        Finds rows the evaluator silently excludes (unknown validity types,
        missing bounds, inverted windows, unknown service type filters).
        """
        with correlation_scope():
            snapshot = self.load_snapshot()
            problems: list[RuleProblem] = []
            for item in snapshot.promotion_items:
                try:
                    check_rule(item)
                    service_type_allows(item.service_type, ServiceType.PICKUP)
                except InvalidRuleError as exc:
                    problems.append(
                        RuleProblem(item_id=item.id, promotion_id=item.promotion_id, reason=exc.reason)
                    )
            logger.info("Promotion rules scanned", items=len(snapshot.promotion_items), problems=len(problems))
            return problems

    # =========================================================================
    # Private Helpers
    # =========================================================================

    def _moment(self, at: datetime | None) -> datetime:
        return local_time(at if at is not None else self._clock())

    @staticmethod
    def _promotion_target(
        snapshot: CatalogSnapshot,
        product_id: int | None,
        variant_id: int | None,
        combo_id: int | None,
    ) -> PromotionTarget:
        if variant_id is not None:
            return PromotionTarget.for_variant(snapshot, variant_id)
        if product_id is not None:
            return PromotionTarget.for_product(snapshot, product_id)
        if combo_id is not None:
            return PromotionTarget.for_combo(snapshot, combo_id)
        raise ValidationError("A product_id, variant_id or combo_id is required")
