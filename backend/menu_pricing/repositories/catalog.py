"""
Catalog repository: materializes the pricing engine's CatalogSnapshot.

One load_snapshot() call reads the whole priced catalog with eager loading
and converts it into frozen records, so every evaluation that uses the
snapshot sees the same data even if an admin edits rows meanwhile.

Soft-deleted catalog rows (section options included) are kept in the
snapshot as inactive. Deleted combo items, combo options and promotion
items are dropped.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from menu_pricing.models import (
    Category,
    Combo,
    ComboItem,
    Product,
    ProductVariant,
    Promotion,
    PromotionItem,
    Section,
    SectionOption,
)
from menu_pricing.services.pricing.records import (
    CatalogSnapshot,
    CategoryRecord,
    ComboItemRecord,
    ComboOptionRecord,
    ComboRecord,
    PriceMatrix,
    ProductRecord,
    PromotionItemRecord,
    PromotionRecord,
    SectionOptionRecord,
    SectionRecord,
    VariantRecord,
)
from shared.config.constants import TargetKind
from shared.config.logging import get_logger
from shared.utils.money import to_money

logger = get_logger(__name__)


class CatalogRepository:
    """
    Read side of the catalog for the pricing engine.

    Usage:
        with get_db_context() as db:
            snapshot = CatalogRepository(db).load_snapshot()
    """

    def __init__(self, db: Session):
        self._db = db

    def load_snapshot(self) -> CatalogSnapshot:
        categories = self._db.execute(select(Category)).scalars().all()
        combo_category_ids = {c.id for c in categories if c.is_combo_category}

        products = self._db.execute(
            select(Product).options(selectinload(Product.categories), selectinload(Product.sections))
        ).scalars().all()

        variants = self._db.execute(select(ProductVariant)).scalars().all()

        combos = self._db.execute(
            select(Combo).options(
                selectinload(Combo.items).selectinload(ComboItem.options)
            )
        ).scalars().all()

        sections = self._db.execute(select(Section)).scalars().all()
        section_options = self._db.execute(select(SectionOption)).scalars().all()

        promotions = self._db.execute(select(Promotion)).scalars().all()

        promotion_items = self._db.execute(
            select(PromotionItem)
            .where(PromotionItem.deleted_at.is_(None))
            .order_by(PromotionItem.id)
        ).scalars().all()

        snapshot = CatalogSnapshot.build(
            categories=[self._to_category(c) for c in categories],
            products=[self._to_product(p) for p in products],
            variants=[self._to_variant(v) for v in variants],
            combos=[self._to_combo(c) for c in combos],
            sections=[self._to_section(s) for s in sections],
            section_options=[self._to_section_option(o) for o in section_options],
            promotions=[self._to_promotion(p) for p in promotions],
            promotion_items=[self._to_promotion_item(i, combo_category_ids) for i in promotion_items],
        )

        logger.debug(
            "Catalog snapshot loaded",
            products=len(snapshot.products),
            variants=len(snapshot.variants),
            combos=len(snapshot.combos),
            section_options=len(snapshot.section_options),
            promotion_items=len(snapshot.promotion_items),
        )
        return snapshot

    # =========================================================================
    # Row -> record conversion
    # =========================================================================

    @staticmethod
    def _to_category(category: Category) -> CategoryRecord:
        return CategoryRecord(
            id=category.id,
            name=category.name,
            is_combo_category=category.is_combo_category,
            is_active=category.is_usable,
        )

    @staticmethod
    def _to_product(product: Product) -> ProductRecord:
        category_ids = {c.id for c in product.categories}
        if product.category_id is not None:
            category_ids.add(product.category_id)
        return ProductRecord(
            id=product.id,
            name=product.name,
            category_id=product.category_id,
            category_ids=frozenset(category_ids),
            has_variants=product.has_variants,
            is_active=product.is_usable,
            prices=PriceMatrix.from_columns(product),
            section_ids=frozenset(s.id for s in product.sections),
        )

    @staticmethod
    def _to_variant(variant: ProductVariant) -> VariantRecord:
        return VariantRecord(
            id=variant.id,
            product_id=variant.product_id,
            name=variant.name,
            sku=variant.sku,
            size=variant.size,
            is_active=variant.is_usable,
            prices=PriceMatrix.from_columns(variant),
            is_daily_special=variant.is_daily_special,
            daily_special_days=frozenset(int(d) for d in (variant.daily_special_days or [])),
            daily_special_prices=PriceMatrix.from_columns(variant, "daily_special_price_"),
        )

    @staticmethod
    def _to_combo(combo: Combo) -> ComboRecord:
        items = tuple(
            ComboItemRecord(
                id=item.id,
                combo_id=combo.id,
                product_id=item.product_id,
                variant_id=item.variant_id,
                quantity=item.quantity,
                is_choice_group=item.is_choice_group,
                choice_label=item.choice_label,
                options=tuple(
                    ComboOptionRecord(
                        id=option.id,
                        combo_item_id=item.id,
                        product_id=option.product_id,
                        variant_id=option.variant_id,
                    )
                    for option in item.options
                    if not option.is_deleted
                ),
            )
            for item in combo.items
            if not item.is_deleted
        )
        return ComboRecord(
            id=combo.id,
            name=combo.name,
            category_id=combo.category_id,
            is_active=combo.is_usable,
            prices=PriceMatrix.from_columns(combo),
            items=items,
        )

    @staticmethod
    def _to_section(section: Section) -> SectionRecord:
        return SectionRecord(
            id=section.id,
            title=section.title,
            is_active=section.is_usable,
            bundle_discount_enabled=section.bundle_discount_enabled,
            bundle_size=section.bundle_size or 2,
            bundle_discount_amount=to_money(section.bundle_discount_amount),
        )

    @staticmethod
    def _to_section_option(option: SectionOption) -> SectionOptionRecord:
        return SectionOptionRecord(
            id=option.id,
            section_id=option.section_id,
            name=option.name,
            is_extra=option.is_extra,
            price_modifier=to_money(option.price_modifier) or Decimal("0.00"),
            is_active=option.is_usable,
        )

    @staticmethod
    def _to_promotion(promotion: Promotion) -> PromotionRecord:
        return PromotionRecord(
            id=promotion.id,
            name=promotion.name,
            type=promotion.type,
            is_active=promotion.is_usable,
            sort_order=promotion.sort_order or 0,
            is_permanent=promotion.is_permanent,
            valid_from=promotion.valid_from,
            valid_until=promotion.valid_until,
            time_from=promotion.time_from,
            time_until=promotion.time_until,
            weekdays=tuple(promotion.weekdays) if promotion.weekdays else None,
            special_bundle_price_capital=to_money(promotion.special_bundle_price_capital),
            special_bundle_price_interior=to_money(promotion.special_bundle_price_interior),
        )

    @staticmethod
    def _to_promotion_item(item: PromotionItem, combo_category_ids: set[int]) -> PromotionItemRecord:
        target_kind: TargetKind | None = None
        if item.target_kind:
            try:
                target_kind = TargetKind(item.target_kind)
            except ValueError:
                logger.warning(
                    "Unknown target_kind, deriving from category",
                    item_id=item.id,
                    target_kind=item.target_kind,
                )

        if target_kind is None and item.product_id is not None:
            # Rows saved before target_kind existed: the category flag decides
            if item.category_id in combo_category_ids:
                target_kind = TargetKind.COMBO
            else:
                target_kind = TargetKind.PRODUCT

        return PromotionItemRecord(
            id=item.id,
            promotion_id=item.promotion_id,
            product_id=item.product_id,
            variant_id=item.variant_id,
            category_id=item.category_id,
            target_kind=target_kind,
            special_prices=PriceMatrix.from_columns(item, "special_price_"),
            discount_percentage=item.discount_percentage,
            service_type=item.service_type,
            validity_type=item.validity_type,
            valid_from=item.valid_from,
            valid_until=item.valid_until,
            time_from=item.time_from,
            time_until=item.time_until,
            weekdays=tuple(item.weekdays) if item.weekdays is not None else None,
            is_active=item.is_active,
        )
