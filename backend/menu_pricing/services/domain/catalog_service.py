"""
Catalog Service - admin writes for categories, products, variants, combos
and customization sections.

Keeps the category kind invariant: a combo category holds only combos and
a product category holds only products. The pricing engine relies on it
when it reads legacy promotion rows without a target_kind.

Usage:
    from menu_pricing.services.domain import CatalogService

    service = CatalogService(db)
    category = service.create_category("Combos", is_combo_category=True)
    combo = service.create_combo({"category_id": category.id, "name": "Combo 1", "items": [...]})
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from menu_pricing.models import (
    Category,
    Combo,
    ComboItem,
    ComboItemOption,
    Product,
    ProductVariant,
    Section,
    SectionOption,
    product_category,
)
from shared.config.constants import ISO_WEEKDAYS, Limits
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    CategoryKindConflictError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


# =============================================================================
# Input Schemas
# =============================================================================


class PricesInput(BaseModel):
    price_pickup_capital: Decimal | None = None
    price_delivery_capital: Decimal | None = None
    price_pickup_interior: Decimal | None = None
    price_delivery_interior: Decimal | None = None


class ProductCreate(PricesInput):
    category_id: int
    name: str = Field(..., min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    slug: str = Field(..., min_length=1)
    description: str | None = None
    has_variants: bool = False
    # Extra listings through the legacy many-to-many table
    extra_category_ids: list[int] = []


class VariantCreate(PricesInput):
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    size: str | None = None
    sort_order: int = 0
    is_daily_special: bool = False
    daily_special_days: list[int] | None = None
    daily_special_price_pickup_capital: Decimal | None = None
    daily_special_price_delivery_capital: Decimal | None = None
    daily_special_price_pickup_interior: Decimal | None = None
    daily_special_price_delivery_interior: Decimal | None = None


class ComboOptionInput(BaseModel):
    product_id: int
    variant_id: int | None = None


class ComboItemInput(BaseModel):
    product_id: int | None = None
    variant_id: int | None = None
    quantity: int = Field(1, ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)
    is_choice_group: bool = False
    choice_label: str | None = None
    options: list[ComboOptionInput] = []


class ComboCreate(PricesInput):
    category_id: int
    name: str = Field(..., min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = None
    items: list[ComboItemInput] = Field(..., min_length=1)


class SectionOptionInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    is_extra: bool = False
    price_modifier: Decimal = Decimal("0.00")


class SectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = None
    is_required: bool = False
    allow_multiple: bool = False
    min_selections: int = Field(0, ge=0)
    max_selections: int | None = Field(None, ge=1)
    sort_order: int = 0
    bundle_discount_enabled: bool = False
    bundle_size: int = 2
    bundle_discount_amount: Decimal | None = None
    # Products offering this section
    product_ids: list[int] = []
    options: list[SectionOptionInput] = Field(..., min_length=1)


_PRICE_FIELDS = tuple(PricesInput.model_fields)
_DAILY_SPECIAL_FIELDS = tuple(f"daily_special_{name}" for name in _PRICE_FIELDS)


class CatalogService:
    """
    Service for catalog writes.

    Business rules:
    - Combo categories hold combos only, product categories products only
    - A category's kind cannot change while it holds entities of the old kind
    - Fixed combo items reference one product and carry no options
    - Choice groups carry a label and at least one option
    - A section bundle groups at least two extras and takes a positive amount off
    - Prices are non-negative and within Limits
    """

    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Categories
    # =========================================================================

    def create_category(self, name: str, *, is_combo_category: bool = False, sort_order: int = 0) -> Category:
        category = Category(name=name, is_combo_category=is_combo_category, sort_order=sort_order)
        self._db.add(category)
        safe_commit(self._db)
        self._db.refresh(category)
        logger.info("Category created", category_id=category.id, is_combo_category=is_combo_category)
        return category

    def set_category_kind(self, category_id: int, is_combo_category: bool) -> Category:
        """
        Flip a category between combo and product kind.

        Raises:
            NotFoundError: Unknown category.
            ConflictError: The category still holds entities of its current kind.
        """
        category = self._get_category(category_id)
        if category.is_combo_category == is_combo_category:
            return category

        if category.is_combo_category:
            holds = self._db.scalar(
                select(func.count()).select_from(Combo).where(
                    Combo.category_id == category_id, Combo.deleted_at.is_(None)
                )
            )
        else:
            holds = self._count_products_in(category_id)
        if holds:
            raise ConflictError(
                f"Category {category_id} still holds {holds} entities of its current kind",
                category_id=category_id,
            )

        category.is_combo_category = is_combo_category
        safe_commit(self._db)
        logger.info("Category kind changed", category_id=category_id, is_combo_category=is_combo_category)
        return category

    # =========================================================================
    # Products and variants
    # =========================================================================

    def create_product(self, data: ProductCreate | dict[str, Any]) -> Product:
        """
        Raises:
            NotFoundError: Unknown category.
            CategoryKindConflictError: A category is a combo category.
        """
        payload = ProductCreate.model_validate(data)
        self._require_kind(payload.category_id, combo=False, attempted="product")
        extra_categories = [
            self._require_kind(category_id, combo=False, attempted="product")
            for category_id in payload.extra_category_ids
        ]
        self._validate_prices(payload, _PRICE_FIELDS)

        product = Product(**payload.model_dump(exclude={"extra_category_ids"}))
        product.categories = extra_categories
        self._db.add(product)
        safe_commit(self._db)
        self._db.refresh(product)
        logger.info("Product created", product_id=product.id, category_id=product.category_id)
        return product

    def add_variant(self, product_id: int, data: VariantCreate | dict[str, Any]) -> ProductVariant:
        """
        Add a variant; the product becomes variant-based.

        Raises:
            NotFoundError: Unknown product.
            ValidationError: Bad prices or daily special days.
        """
        payload = VariantCreate.model_validate(data)
        product = self._db.get(Product, product_id)
        if product is None or product.is_deleted:
            raise NotFoundError("Product", product_id)

        self._validate_prices(payload, _PRICE_FIELDS + _DAILY_SPECIAL_FIELDS)
        days = set(payload.daily_special_days or [])
        if days - ISO_WEEKDAYS:
            raise ValidationError("daily_special_days must be ISO weekdays 1-7", field="daily_special_days")
        if payload.is_daily_special and not days:
            raise ValidationError("A daily special needs at least one weekday", field="daily_special_days")

        fields = payload.model_dump()
        fields["daily_special_days"] = sorted(days) if days else None
        variant = ProductVariant(product_id=product_id, **fields)
        product.has_variants = True
        self._db.add(variant)
        safe_commit(self._db)
        self._db.refresh(variant)
        logger.info("Variant created", variant_id=variant.id, product_id=product_id)
        return variant

    def set_product_active(self, product_id: int, is_active: bool) -> Product:
        product = self._db.get(Product, product_id)
        if product is None or product.is_deleted:
            raise NotFoundError("Product", product_id)
        product.is_active = is_active
        safe_commit(self._db)
        logger.info("Product availability changed", product_id=product_id, is_active=is_active)
        return product

    # =========================================================================
    # Combos
    # =========================================================================

    def create_combo(self, data: ComboCreate | dict[str, Any]) -> Combo:
        """
        Raises:
            NotFoundError: Unknown category.
            CategoryKindConflictError: The category is not a combo category.
            ValidationError: Malformed combo structure or prices.
        """
        payload = ComboCreate.model_validate(data)
        self._require_kind(payload.category_id, combo=True, attempted="combo")
        self._validate_prices(payload, _PRICE_FIELDS)

        combo = Combo(**payload.model_dump(exclude={"items"}))
        for position, item in enumerate(payload.items):
            combo.items.append(self._build_combo_item(item, position))

        self._db.add(combo)
        safe_commit(self._db)
        self._db.refresh(combo)
        logger.info("Combo created", combo_id=combo.id, items=len(payload.items))
        return combo

    def soft_delete_combo(self, combo_id: int) -> None:
        combo = self._db.get(Combo, combo_id)
        if combo is None or combo.is_deleted:
            raise NotFoundError("Combo", combo_id)
        combo.soft_delete()
        safe_commit(self._db)
        logger.info("Combo deleted", combo_id=combo_id)

    def _build_combo_item(self, item: ComboItemInput, position: int) -> ComboItem:
        if item.is_choice_group:
            if not item.choice_label:
                raise ValidationError("Choice groups need a choice_label", field="choice_label")
            if not item.options:
                raise ValidationError(
                    f"Choice group '{item.choice_label}' needs at least one option", field="options"
                )
            combo_item = ComboItem(
                is_choice_group=True,
                choice_label=item.choice_label,
                quantity=item.quantity,
                sort_order=position,
            )
            for option_position, option in enumerate(item.options):
                self._require_product(option.product_id, option.variant_id)
                combo_item.options.append(
                    ComboItemOption(
                        product_id=option.product_id,
                        variant_id=option.variant_id,
                        sort_order=option_position,
                    )
                )
            return combo_item

        if item.product_id is None:
            raise ValidationError("Fixed combo items need a product_id", field="product_id")
        if item.options:
            raise ValidationError("Fixed combo items cannot carry options", field="options")
        self._require_product(item.product_id, item.variant_id)
        return ComboItem(
            product_id=item.product_id,
            variant_id=item.variant_id,
            quantity=item.quantity,
            sort_order=position,
        )

    # =========================================================================
    # Sections
    # =========================================================================

    def create_section(self, data: SectionCreate | dict[str, Any]) -> Section:
        """
        Create a section with its options and attach it to products.

        Raises:
            ValidationError: Unknown product, bad option price or bundle settings.
        """
        payload = SectionCreate.model_validate(data)

        if payload.bundle_size < 2:
            raise ValidationError("bundle_size must be at least 2", field="bundle_size")
        if payload.bundle_discount_enabled and not (payload.bundle_discount_amount or 0) > 0:
            raise ValidationError(
                "A section bundle needs a positive bundle_discount_amount", field="bundle_discount_amount"
            )
        if payload.max_selections is not None and payload.max_selections < payload.min_selections:
            raise ValidationError("max_selections is below min_selections", field="max_selections")

        for option in payload.options:
            self._validate_prices(option, ("price_modifier",))

        products = []
        for product_id in payload.product_ids:
            self._require_product(product_id, None)
            products.append(self._db.get(Product, product_id))

        section = Section(**payload.model_dump(exclude={"product_ids", "options"}))
        section.products = products
        for position, option in enumerate(payload.options):
            section.options.append(SectionOption(**option.model_dump(), sort_order=position))

        self._db.add(section)
        safe_commit(self._db)
        self._db.refresh(section)
        logger.info("Section created", section_id=section.id, options=len(payload.options), products=len(products))
        return section

    def set_section_option_active(self, option_id: int, is_active: bool) -> SectionOption:
        option = self._db.get(SectionOption, option_id)
        if option is None or option.is_deleted:
            raise NotFoundError("SectionOption", option_id)
        option.is_active = is_active
        safe_commit(self._db)
        logger.info("Section option availability changed", option_id=option_id, is_active=is_active)
        return option

    # =========================================================================
    # Private Helpers
    # =========================================================================

    def _get_category(self, category_id: int) -> Category:
        category = self._db.get(Category, category_id)
        if category is None or category.is_deleted:
            raise NotFoundError("Category", category_id)
        return category

    def _require_kind(self, category_id: int, *, combo: bool, attempted: str) -> Category:
        category = self._get_category(category_id)
        if category.is_combo_category != combo:
            raise CategoryKindConflictError(category.id, category.is_combo_category, attempted)
        return category

    def _require_product(self, product_id: int, variant_id: int | None) -> None:
        product = self._db.get(Product, product_id)
        if product is None or product.is_deleted:
            raise ValidationError(f"Product {product_id} not found", field="product_id", value=product_id)
        if variant_id is None:
            return
        variant = self._db.get(ProductVariant, variant_id)
        if variant is None or variant.is_deleted or variant.product_id != product_id:
            raise ValidationError(
                f"Variant {variant_id} does not belong to product {product_id}",
                field="variant_id",
                value=variant_id,
            )

    def _count_products_in(self, category_id: int) -> int:
        primary = self._db.scalar(
            select(func.count()).select_from(Product).where(
                Product.category_id == category_id, Product.deleted_at.is_(None)
            )
        )
        linked = self._db.scalar(
            select(func.count()).select_from(product_category).where(
                product_category.c.category_id == category_id
            )
        )
        return (primary or 0) + (linked or 0)

    @staticmethod
    def _validate_prices(payload: BaseModel, fields: tuple[str, ...]) -> None:
        for field_name in fields:
            value = getattr(payload, field_name)
            if value is not None and not (Limits.MIN_PRICE <= value <= Limits.MAX_PRICE):
                raise ValidationError(
                    f"{field_name} must be between {Limits.MIN_PRICE} and {Limits.MAX_PRICE}",
                    field=field_name,
                    value=str(value),
                )
