"""
Tests for CatalogService - category kind invariant and combo structure.
"""

from decimal import Decimal

import pytest

from menu_pricing.models import Product
from menu_pricing.services.domain import CatalogService
from shared.utils.exceptions import (
    CategoryKindConflictError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def catalog_service(db_session):
    return CatalogService(db_session)


@pytest.fixture
def subs(catalog_service):
    return catalog_service.create_category("Subs")


@pytest.fixture
def combos(catalog_service):
    return catalog_service.create_category("Combos", is_combo_category=True)


@pytest.fixture
def galleta(catalog_service, subs):
    return catalog_service.create_product(
        {"category_id": subs.id, "name": "Galleta", "slug": "galleta", "price_pickup_capital": Decimal("8.00")}
    )


@pytest.fixture
def cola(catalog_service, subs):
    return catalog_service.create_product(
        {"category_id": subs.id, "name": "Cola", "slug": "cola", "price_pickup_capital": Decimal("10.00")}
    )


def combo_payload(category_id, *items):
    return {"category_id": category_id, "name": "Combo", "price_pickup_capital": Decimal("20.00"), "items": list(items)}


class TestCategoryKind:
    def test_product_in_combo_category(self, catalog_service, combos):
        with pytest.raises(CategoryKindConflictError):
            catalog_service.create_product({"category_id": combos.id, "name": "Pollo", "slug": "pollo"})

    def test_extra_combo_category_is_rejected(self, catalog_service, subs, combos):
        with pytest.raises(CategoryKindConflictError):
            catalog_service.create_product(
                {"category_id": subs.id, "name": "Pollo", "slug": "pollo", "extra_category_ids": [combos.id]}
            )

    def test_combo_in_product_category(self, catalog_service, subs, galleta):
        with pytest.raises(CategoryKindConflictError):
            catalog_service.create_combo(combo_payload(subs.id, {"product_id": galleta.id}))

    def test_unknown_category(self, catalog_service):
        with pytest.raises(NotFoundError):
            catalog_service.create_product({"category_id": 99999, "name": "Pollo", "slug": "pollo"})

    def test_kind_cannot_flip_while_holding_products(self, catalog_service, subs, galleta):
        with pytest.raises(ConflictError):
            catalog_service.set_category_kind(subs.id, True)

    def test_empty_category_can_flip(self, catalog_service, combos):
        assert catalog_service.set_category_kind(combos.id, False).is_combo_category is False

    def test_legacy_links_count_as_holding(self, catalog_service, subs, galleta):
        lunch = catalog_service.create_category("Almuerzo")
        catalog_service.create_product(
            {"category_id": subs.id, "name": "Pollo", "slug": "pollo", "extra_category_ids": [lunch.id]}
        )

        with pytest.raises(ConflictError):
            catalog_service.set_category_kind(lunch.id, True)


class TestProductsAndVariants:
    def test_extra_categories_are_linked(self, catalog_service, subs):
        lunch = catalog_service.create_category("Almuerzo")
        product = catalog_service.create_product(
            {"category_id": subs.id, "name": "Pollo", "slug": "pollo", "extra_category_ids": [lunch.id]}
        )

        assert [c.id for c in product.categories] == [lunch.id]

    def test_add_variant_makes_product_variant_based(self, db_session, catalog_service, galleta):
        variant = catalog_service.add_variant(
            galleta.id,
            {"sku": "GALLETA-XL", "name": "Galleta XL", "price_pickup_capital": Decimal("12.00")},
        )

        assert variant.product_id == galleta.id
        assert db_session.get(Product, galleta.id).has_variants is True

    def test_daily_special_needs_days(self, catalog_service, galleta):
        with pytest.raises(ValidationError, match="at least one weekday"):
            catalog_service.add_variant(galleta.id, {"sku": "G-1", "name": "G", "is_daily_special": True})

    def test_daily_special_days_are_iso(self, catalog_service, galleta):
        with pytest.raises(ValidationError, match="1-7"):
            catalog_service.add_variant(
                galleta.id, {"sku": "G-1", "name": "G", "is_daily_special": True, "daily_special_days": [0]}
            )

    def test_negative_price(self, catalog_service, subs):
        with pytest.raises(ValidationError, match="price_pickup_capital"):
            catalog_service.create_product(
                {"category_id": subs.id, "name": "Pollo", "slug": "pollo", "price_pickup_capital": Decimal("-1")}
            )

    def test_unknown_product(self, catalog_service):
        with pytest.raises(NotFoundError):
            catalog_service.add_variant(99999, {"sku": "X", "name": "X"})
        with pytest.raises(NotFoundError):
            catalog_service.set_product_active(99999, False)


class TestCombos:
    def test_create_combo(self, catalog_service, combos, galleta, cola):
        combo = catalog_service.create_combo(
            combo_payload(
                combos.id,
                {"product_id": galleta.id, "quantity": 2},
                {"is_choice_group": True, "choice_label": "Bebida", "options": [{"product_id": cola.id}]},
            )
        )

        assert [item.quantity for item in combo.items] == [2, 1]
        assert combo.items[1].options[0].product_id == cola.id

    def test_choice_group_needs_options(self, catalog_service, combos):
        with pytest.raises(ValidationError, match="at least one option"):
            catalog_service.create_combo(combo_payload(combos.id, {"is_choice_group": True, "choice_label": "Bebida"}))

    def test_choice_group_needs_label(self, catalog_service, combos, cola):
        with pytest.raises(ValidationError, match="choice_label"):
            catalog_service.create_combo(
                combo_payload(combos.id, {"is_choice_group": True, "options": [{"product_id": cola.id}]})
            )

    def test_fixed_item_needs_product(self, catalog_service, combos):
        with pytest.raises(ValidationError, match="product_id"):
            catalog_service.create_combo(combo_payload(combos.id, {"quantity": 1}))

    def test_fixed_item_cannot_carry_options(self, catalog_service, combos, galleta, cola):
        with pytest.raises(ValidationError, match="cannot carry options"):
            catalog_service.create_combo(
                combo_payload(combos.id, {"product_id": galleta.id, "options": [{"product_id": cola.id}]})
            )

    def test_option_variant_must_belong_to_product(self, catalog_service, combos, galleta, cola):
        variant = catalog_service.add_variant(galleta.id, {"sku": "G-XL", "name": "Galleta XL"})

        with pytest.raises(ValidationError, match="does not belong"):
            catalog_service.create_combo(
                combo_payload(
                    combos.id,
                    {
                        "is_choice_group": True,
                        "choice_label": "Bebida",
                        "options": [{"product_id": cola.id, "variant_id": variant.id}],
                    },
                )
            )

    def test_soft_delete(self, catalog_service, combos, galleta):
        combo = catalog_service.create_combo(combo_payload(combos.id, {"product_id": galleta.id}))

        catalog_service.soft_delete_combo(combo.id)

        assert combo.is_deleted
        with pytest.raises(NotFoundError):
            catalog_service.soft_delete_combo(combo.id)


def section_payload(*product_ids, **fields):
    fields.setdefault("title", "Extras")
    fields.setdefault("options", [{"name": "Queso extra", "is_extra": True, "price_modifier": Decimal("5.00")}])
    return {**fields, "product_ids": list(product_ids)}


class TestSections:
    def test_create_section(self, catalog_service, galleta, cola):
        section = catalog_service.create_section(
            section_payload(
                galleta.id,
                cola.id,
                bundle_discount_enabled=True,
                bundle_discount_amount=Decimal("3.00"),
                options=[
                    {"name": "Queso extra", "is_extra": True, "price_modifier": Decimal("5.00")},
                    {"name": "Sin cebolla"},
                ],
            )
        )

        assert [option.name for option in section.options] == ["Queso extra", "Sin cebolla"]
        assert [option.sort_order for option in section.options] == [0, 1]
        assert {product.id for product in section.products} == {galleta.id, cola.id}
        assert galleta.sections == [section]

    def test_bundle_needs_an_amount(self, catalog_service, galleta):
        with pytest.raises(ValidationError, match="bundle_discount_amount"):
            catalog_service.create_section(section_payload(galleta.id, bundle_discount_enabled=True))

    def test_bundle_size_at_least_two(self, catalog_service, galleta):
        with pytest.raises(ValidationError, match="bundle_size"):
            catalog_service.create_section(section_payload(galleta.id, bundle_size=1))

    def test_negative_option_price(self, catalog_service, galleta):
        with pytest.raises(ValidationError, match="price_modifier"):
            catalog_service.create_section(
                section_payload(galleta.id, options=[{"name": "Descuento", "price_modifier": Decimal("-1.00")}])
            )

    def test_unknown_product(self, catalog_service):
        with pytest.raises(ValidationError, match="not found"):
            catalog_service.create_section(section_payload(99999))

    def test_option_availability(self, catalog_service, galleta):
        section = catalog_service.create_section(section_payload(galleta.id))

        option = catalog_service.set_section_option_active(section.options[0].id, False)

        assert option.is_active is False
        with pytest.raises(NotFoundError):
            catalog_service.set_section_option_active(99999, True)
