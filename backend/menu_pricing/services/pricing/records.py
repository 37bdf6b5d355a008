"""
Immutable catalog records consumed by the pricing engine.

The engine never touches ORM instances: CatalogRepository materializes one
CatalogSnapshot per evaluation and every pricing function reads from it.
A snapshot is a plain value, so the same snapshot can be shared across
threads pricing different cart lines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from shared.config.constants import ServiceType, TargetKind, Zone
from shared.utils.money import to_money


@dataclass(frozen=True, slots=True)
class PriceMatrix:
    """Four prices indexed by (zone, service type). Missing prices are None."""

    pickup_capital: Decimal | None = None
    delivery_capital: Decimal | None = None
    pickup_interior: Decimal | None = None
    delivery_interior: Decimal | None = None

    def get(self, zone: Zone | str, service_type: ServiceType | str) -> Decimal | None:
        return getattr(self, f"{ServiceType(service_type).value}_{Zone(zone).value}")

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.pickup_capital,
                self.delivery_capital,
                self.pickup_interior,
                self.delivery_interior,
            )
        )

    @classmethod
    def from_columns(cls, row: Any, prefix: str = "price_") -> "PriceMatrix":
        """
        Read `{prefix}{service}_{zone}` attributes off a row.

        Usage:
            PriceMatrix.from_columns(variant)                          # price_*
            PriceMatrix.from_columns(variant, "daily_special_price_")  # overrides
            PriceMatrix.from_columns(item, "special_price_")           # promotion item
        """
        return cls(
            pickup_capital=to_money(getattr(row, f"{prefix}pickup_capital", None)),
            delivery_capital=to_money(getattr(row, f"{prefix}delivery_capital", None)),
            pickup_interior=to_money(getattr(row, f"{prefix}pickup_interior", None)),
            delivery_interior=to_money(getattr(row, f"{prefix}delivery_interior", None)),
        )


EMPTY_PRICES = PriceMatrix()


@dataclass(frozen=True, slots=True)
class CategoryRecord:
    id: int
    name: str = ""
    is_combo_category: bool = False
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class ProductRecord:
    """
    A product. category_ids holds the primary category plus every category
    linked through the legacy many-to-many table.
    section_ids lists the customization sections offered on it.
    """

    id: int
    name: str = ""
    category_id: int | None = None
    category_ids: frozenset[int] = frozenset()
    has_variants: bool = False
    is_active: bool = True
    prices: PriceMatrix = EMPTY_PRICES
    section_ids: frozenset[int] = frozenset()


@dataclass(frozen=True, slots=True)
class VariantRecord:
    id: int
    product_id: int
    name: str = ""
    sku: str = ""
    size: str | None = None
    is_active: bool = True
    prices: PriceMatrix = EMPTY_PRICES
    is_daily_special: bool = False
    daily_special_days: frozenset[int] = frozenset()
    daily_special_prices: PriceMatrix = EMPTY_PRICES


@dataclass(frozen=True, slots=True)
class SectionRecord:
    id: int
    title: str = ""
    is_active: bool = True
    bundle_discount_enabled: bool = False
    bundle_size: int = 2
    bundle_discount_amount: Decimal | None = None


@dataclass(frozen=True, slots=True)
class SectionOptionRecord:
    id: int
    section_id: int
    name: str = ""
    is_extra: bool = False
    price_modifier: Decimal = Decimal("0.00")
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class ComboOptionRecord:
    id: int
    combo_item_id: int
    product_id: int
    variant_id: int | None = None


@dataclass(frozen=True, slots=True)
class ComboItemRecord:
    """Fixed product reference, or a choice group carrying options."""

    id: int
    combo_id: int
    product_id: int | None = None
    variant_id: int | None = None
    quantity: int = 1
    is_choice_group: bool = False
    choice_label: str | None = None
    options: tuple[ComboOptionRecord, ...] = ()

    def option(self, option_id: int) -> ComboOptionRecord | None:
        for candidate in self.options:
            if candidate.id == option_id:
                return candidate
        return None


@dataclass(frozen=True, slots=True)
class ComboRecord:
    id: int
    name: str = ""
    category_id: int | None = None
    is_active: bool = True
    prices: PriceMatrix = EMPTY_PRICES
    items: tuple[ComboItemRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class PromotionRecord:
    """Promotion header and its promotion-level window (each empty bound is open)."""

    id: int
    name: str = ""
    type: str = ""
    is_active: bool = True
    sort_order: int = 0
    is_permanent: bool = False
    valid_from: date | None = None
    valid_until: date | None = None
    time_from: str | None = None
    time_until: str | None = None
    weekdays: tuple[int, ...] | None = None
    special_bundle_price_capital: Decimal | None = None
    special_bundle_price_interior: Decimal | None = None


@dataclass(frozen=True, slots=True)
class PromotionItemRecord:
    """
    One promotion rule. The validity fields are kept raw here; they are
    parsed into a Validity variant when evaluated, so a malformed row only
    fails at the moment it is looked at.
    """

    id: int
    promotion_id: int
    product_id: int | None = None
    variant_id: int | None = None
    category_id: int | None = None
    target_kind: TargetKind | None = None
    special_prices: PriceMatrix = EMPTY_PRICES
    discount_percentage: Decimal | None = None
    service_type: str | None = None
    validity_type: str | None = None
    valid_from: date | str | None = None
    valid_until: date | str | None = None
    time_from: str | None = None
    time_until: str | None = None
    weekdays: tuple[Any, ...] | None = None
    is_active: bool = True


def _index(records: Iterable[Any]) -> Mapping[int, Any]:
    return MappingProxyType({record.id: record for record in records})


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    A consistent, read-only view of the catalog for one evaluation.

    Usage:
        snapshot = CatalogSnapshot.build(products=[...], variants=[...])
        product = snapshot.product(12)
    """

    categories: Mapping[int, CategoryRecord] = field(default_factory=lambda: MappingProxyType({}))
    products: Mapping[int, ProductRecord] = field(default_factory=lambda: MappingProxyType({}))
    variants: Mapping[int, VariantRecord] = field(default_factory=lambda: MappingProxyType({}))
    combos: Mapping[int, ComboRecord] = field(default_factory=lambda: MappingProxyType({}))
    sections: Mapping[int, SectionRecord] = field(default_factory=lambda: MappingProxyType({}))
    section_options: Mapping[int, SectionOptionRecord] = field(default_factory=lambda: MappingProxyType({}))
    promotions: Mapping[int, PromotionRecord] = field(default_factory=lambda: MappingProxyType({}))
    promotion_items: tuple[PromotionItemRecord, ...] = ()

    @classmethod
    def build(
        cls,
        *,
        categories: Iterable[CategoryRecord] = (),
        products: Iterable[ProductRecord] = (),
        variants: Iterable[VariantRecord] = (),
        combos: Iterable[ComboRecord] = (),
        sections: Iterable[SectionRecord] = (),
        section_options: Iterable[SectionOptionRecord] = (),
        promotions: Iterable[PromotionRecord] = (),
        promotion_items: Iterable[PromotionItemRecord] = (),
    ) -> "CatalogSnapshot":
        return cls(
            categories=_index(categories),
            products=_index(products),
            variants=_index(variants),
            combos=_index(combos),
            sections=_index(sections),
            section_options=_index(section_options),
            promotions=_index(promotions),
            promotion_items=tuple(promotion_items),
        )

    def category(self, category_id: int | None) -> CategoryRecord | None:
        return self.categories.get(category_id) if category_id is not None else None

    def product(self, product_id: int | None) -> ProductRecord | None:
        return self.products.get(product_id) if product_id is not None else None

    def variant(self, variant_id: int | None) -> VariantRecord | None:
        return self.variants.get(variant_id) if variant_id is not None else None

    def combo(self, combo_id: int | None) -> ComboRecord | None:
        return self.combos.get(combo_id) if combo_id is not None else None

    def promotion(self, promotion_id: int | None) -> PromotionRecord | None:
        return self.promotions.get(promotion_id) if promotion_id is not None else None

    def section_option(self, option_id: int) -> SectionOptionRecord | None:
        return self.section_options.get(option_id)

    def product_is_active(self, product_id: int | None) -> bool:
        """Missing products count as inactive."""
        product = self.product(product_id)
        return product is not None and product.is_active

    def variant_is_active(self, variant_id: int | None) -> bool:
        """A variant is usable only when it and its product are both active."""
        variant = self.variant(variant_id)
        return (
            variant is not None
            and variant.is_active
            and self.product_is_active(variant.product_id)
        )
