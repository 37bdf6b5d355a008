"""
Promotion Service - admin writes and save-time validation.

Handles:
- Promotion creation with its items
- Reference validation (variant / product or combo / category)
- target_kind derivation from the category flag
- Validity rule checks (unknown types and impossible windows are rejected
  here, never at evaluation time)
- Soft delete

Usage:
    from menu_pricing.services.domain import PromotionService

    service = PromotionService(db)
    promotion = service.create_full({"name": "Sub del día", "type": "daily_special", "items": [...]})
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from menu_pricing.models import Category, Combo, Product, ProductVariant, Promotion, PromotionItem
from menu_pricing.services.pricing.validity import (
    check_rule,
    normalize_date,
    normalize_time,
    normalize_weekdays,
)
from shared.config.constants import (
    ISO_WEEKDAYS,
    Limits,
    PromotionType,
    ServiceTypeFilter,
    TargetKind,
)
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    AmbiguousReferenceError,
    InvalidRuleError,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


# =============================================================================
# Input Schemas
# =============================================================================


class PromotionItemInput(BaseModel):
    product_id: int | None = None
    variant_id: int | None = None
    category_id: int | None = None
    target_kind: TargetKind | None = None

    special_price_pickup_capital: Decimal | None = None
    special_price_delivery_capital: Decimal | None = None
    special_price_pickup_interior: Decimal | None = None
    special_price_delivery_interior: Decimal | None = None
    discount_percentage: Decimal | None = None

    service_type: str | None = None
    validity_type: str | None = None
    valid_from: date | None = None
    valid_until: date | None = None
    time_from: str | None = None
    time_until: str | None = None
    weekdays: list[int] | None = None


class PromotionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = None
    type: str
    is_active: bool = True
    sort_order: int = 0

    is_permanent: bool = False
    valid_from: date | None = None
    valid_until: date | None = None
    time_from: str | None = None
    time_until: str | None = None
    weekdays: list[int] | None = None

    special_bundle_price_capital: Decimal | None = None
    special_bundle_price_interior: Decimal | None = None

    items: list[PromotionItemInput] = []


# =============================================================================
# Output Schemas
# =============================================================================


class PromotionItemOutput(BaseModel):
    id: int
    product_id: int | None = None
    variant_id: int | None = None
    category_id: int | None = None
    target_kind: str | None = None
    discount_percentage: Decimal | None = None
    service_type: str | None = None
    validity_type: str | None = None

    class Config:
        from_attributes = True


class PromotionOutput(BaseModel):
    id: int
    name: str
    description: str | None = None
    type: str
    is_active: bool
    is_permanent: bool
    valid_from: date | None = None
    valid_until: date | None = None
    time_from: str | None = None
    time_until: str | None = None
    weekdays: list[int] | None = None
    items: list[PromotionItemOutput] = []
    created_at: datetime | None = None

    class Config:
        from_attributes = True


_SPECIAL_PRICE_FIELDS = (
    "special_price_pickup_capital",
    "special_price_delivery_capital",
    "special_price_pickup_interior",
    "special_price_delivery_interior",
)


class PromotionService:
    """
    Service for promotion management.

    Business rules:
    - An item references a variant (optionally with its product), a product
      or combo, or a whole category
    - target_kind is stored explicitly; when omitted it is derived from the
      category flag and must agree with where the id actually resolves
    - Validity rules must be readable and satisfiable when saved
    - Soft delete preserves history
    """

    def __init__(self, db: Session):
        self._db = db
        self._entity_name = "Promotion"

    # =========================================================================
    # Query Methods
    # =========================================================================

    def list_all(self, *, include_inactive: bool = False) -> list[PromotionOutput]:
        query = (
            select(Promotion)
            .options(selectinload(Promotion.items))
            .where(Promotion.deleted_at.is_(None))
        )
        if not include_inactive:
            query = query.where(Promotion.is_active.is_(True))
        promotions = self._db.execute(query.order_by(Promotion.id)).scalars().all()
        return [self._to_output(p) for p in promotions]

    def get_by_id(self, promotion_id: int) -> PromotionOutput:
        """
        Raises:
            NotFoundError: If the promotion does not exist or was deleted.
        """
        promotion = self._get_entity(promotion_id)
        if not promotion:
            raise NotFoundError(self._entity_name, promotion_id)
        return self._to_output(promotion)

    # =========================================================================
    # Write Methods
    # =========================================================================

    def create_full(self, data: PromotionCreate | dict[str, Any]) -> PromotionOutput:
        """
        Create a promotion with its items.

        Raises:
            ValidationError: Bad header fields or item references.
            InvalidRuleError: An item's validity rule or service filter is unusable.
            AmbiguousReferenceError: An item's category flag disagrees with
                where its product_id resolves.
        """
        payload = PromotionCreate.model_validate(data)
        header = self._validate_header(payload)
        items = [self.validate_item(item_data) for item_data in payload.items]

        promotion = Promotion(**header)
        self._db.add(promotion)
        self._db.flush()

        for fields in items:
            self._db.add(PromotionItem(promotion_id=promotion.id, **fields))

        safe_commit(self._db)
        self._db.refresh(promotion)

        logger.info(
            "Promotion created",
            promotion_id=promotion.id,
            name=promotion.name,
            type=promotion.type,
            items=len(payload.items),
        )
        return self._to_output(promotion)

    def delete_promotion(self, promotion_id: int) -> None:
        """
        Soft delete a promotion and its items.

        Raises:
            NotFoundError: If the promotion does not exist or was already deleted.
        """
        promotion = self._get_entity(promotion_id)
        if not promotion:
            raise NotFoundError(self._entity_name, promotion_id)

        promotion.soft_delete()
        for item in promotion.items:
            item.soft_delete()
        safe_commit(self._db)

        logger.info("Promotion deleted", promotion_id=promotion_id)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_item(self, item: PromotionItemInput | dict[str, Any]) -> dict[str, Any]:
        """
        Validate one promotion item and return the column values to store,
        with target_kind resolved and times normalized to HH:MM:SS.
        """
        item = PromotionItemInput.model_validate(item)
        if item.validity_type:
            item = item.model_copy(update={"validity_type": item.validity_type.strip().lower()})

        target_kind = self._resolve_reference(item)

        if item.service_type is not None:
            try:
                ServiceTypeFilter(item.service_type.strip().lower())
            except ValueError:
                raise InvalidRuleError(f"unknown service_type filter '{item.service_type}'")

        if item.discount_percentage is not None and not (
            Limits.MIN_DISCOUNT_PERCENTAGE < item.discount_percentage <= Limits.MAX_DISCOUNT_PERCENTAGE
        ):
            raise ValidationError(
                "discount_percentage must be greater than 0 and at most 100",
                field="discount_percentage",
                value=str(item.discount_percentage),
            )

        for field_name in _SPECIAL_PRICE_FIELDS:
            value = getattr(item, field_name)
            if value is not None and not (Limits.MIN_PRICE <= value <= Limits.MAX_PRICE):
                raise ValidationError(
                    f"{field_name} must be between {Limits.MIN_PRICE} and {Limits.MAX_PRICE}",
                    field=field_name,
                    value=str(value),
                )

        check_rule(item)

        fields = item.model_dump()
        fields["target_kind"] = target_kind.value if target_kind else None
        fields["service_type"] = item.service_type.strip().lower() if item.service_type else None
        fields["validity_type"] = item.validity_type or None
        fields["time_from"] = normalize_time(item.time_from, "time_from")
        fields["time_until"] = normalize_time(item.time_until, "time_until")
        return fields

    def _resolve_reference(self, item: PromotionItemInput) -> TargetKind | None:
        """
        Check what the item points at and return its target kind
        (None for category-wide items).
        """
        if item.variant_id is None and item.product_id is None and item.category_id is None:
            raise ValidationError("Promotion item must reference a variant, a product/combo or a category")

        category = None
        if item.category_id is not None:
            category = self._db.get(Category, item.category_id)
            if category is None or category.is_deleted:
                raise ValidationError(
                    f"Category {item.category_id} not found", field="category_id", value=item.category_id
                )

        if item.variant_id is not None:
            variant = self._db.get(ProductVariant, item.variant_id)
            if variant is None or variant.is_deleted:
                raise ValidationError(
                    f"Variant {item.variant_id} not found", field="variant_id", value=item.variant_id
                )
            if item.product_id is not None and item.product_id != variant.product_id:
                raise ValidationError(
                    f"Variant {item.variant_id} does not belong to product {item.product_id}",
                    field="variant_id",
                    value=item.variant_id,
                )
            if item.target_kind is TargetKind.COMBO:
                raise ValidationError("A variant reference cannot target a combo", field="target_kind")
            return TargetKind.PRODUCT

        if item.product_id is None:
            return None

        if category is not None:
            expected = TargetKind.COMBO if category.is_combo_category else TargetKind.PRODUCT
            if item.target_kind is not None and item.target_kind is not expected:
                raise AmbiguousReferenceError(
                    item.product_id, category.id, expected.value, item.target_kind.value
                )
        else:
            expected = item.target_kind or TargetKind.PRODUCT

        if self._exists(expected, item.product_id):
            return expected

        other = TargetKind.PRODUCT if expected is TargetKind.COMBO else TargetKind.COMBO
        if self._exists(other, item.product_id):
            raise AmbiguousReferenceError(
                item.product_id, item.category_id, expected.value, other.value
            )
        raise ValidationError(
            f"{expected.value.capitalize()} {item.product_id} not found",
            field="product_id",
            value=item.product_id,
        )

    def _exists(self, kind: TargetKind, entity_id: int) -> bool:
        model = Combo if kind is TargetKind.COMBO else Product
        entity = self._db.get(model, entity_id)
        return entity is not None and not entity.is_deleted

    def _validate_header(self, payload: PromotionCreate) -> dict[str, Any]:
        try:
            promotion_type = PromotionType(payload.type.strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown promotion type '{payload.type}'", field="type")

        header = payload.model_dump(exclude={"items"})
        header["type"] = promotion_type.value

        try:
            valid_from = normalize_date(payload.valid_from, "valid_from")
            valid_until = normalize_date(payload.valid_until, "valid_until")
            header["time_from"] = normalize_time(payload.time_from, "time_from")
            header["time_until"] = normalize_time(payload.time_until, "time_until")
            weekdays = normalize_weekdays(payload.weekdays)
        except InvalidRuleError as exc:
            raise ValidationError(exc.reason)

        if valid_from and valid_until and valid_from > valid_until:
            raise ValidationError("valid_from is after valid_until", field="valid_from")
        if header["time_from"] and header["time_until"] and header["time_from"] > header["time_until"]:
            raise ValidationError(
                "time_from is after time_until; windows crossing midnight are not supported",
                field="time_from",
            )
        if weekdays - ISO_WEEKDAYS:
            raise ValidationError("weekdays must be ISO numbers 1-7", field="weekdays")
        header["weekdays"] = sorted(weekdays) if weekdays else None

        if promotion_type is PromotionType.BUNDLE_SPECIAL:
            if payload.special_bundle_price_capital is None and payload.special_bundle_price_interior is None:
                raise ValidationError("bundle_special promotions need at least one bundle price")
        return header

    # =========================================================================
    # Private Helpers
    # =========================================================================

    def _get_entity(self, promotion_id: int) -> Promotion | None:
        return self._db.scalar(
            select(Promotion)
            .options(selectinload(Promotion.items))
            .where(
                Promotion.id == promotion_id,
                Promotion.deleted_at.is_(None),
            )
        )

    def _to_output(self, promotion: Promotion) -> PromotionOutput:
        output = PromotionOutput.model_validate(promotion)
        output.items = [
            PromotionItemOutput.model_validate(item)
            for item in promotion.items
            if not item.is_deleted
        ]
        return output