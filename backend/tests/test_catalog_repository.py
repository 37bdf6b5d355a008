"""
Tests for CatalogRepository.load_snapshot().

Tests cover:
- Row to record conversion (prices, categories, daily specials)
- Soft-deleted rows: inactive catalog entities, dropped child rows
- target_kind for rows written before the column existed
"""

from datetime import date
from decimal import Decimal

import pytest

from menu_pricing.models import (
    Category,
    Combo,
    ComboItem,
    ComboItemOption,
    Product,
    ProductVariant,
    Promotion,
    PromotionItem,
    Section,
    SectionOption,
)
from menu_pricing.repositories import CatalogRepository
from shared.config.constants import TargetKind
from tests.conftest import next_id


@pytest.fixture
def catalog_rows(db_session):
    """Categories, a variant product, a drink and a combo, stored directly."""
    subs = Category(id=next_id(), name="Subs")
    lunch = Category(id=next_id(), name="Almuerzo")
    combos = Category(id=next_id(), name="Combos", is_combo_category=True)

    pollo = Product(id=next_id(), category_id=subs.id, name="Pollo", slug="pollo", has_variants=True)
    pollo.categories = [lunch]
    cola = Product(
        id=next_id(),
        category_id=subs.id,
        name="Cola",
        slug="cola",
        price_pickup_capital=Decimal("10"),
        price_delivery_capital=Decimal("11.5"),
    )
    pollo_30 = ProductVariant(
        id=next_id(),
        product_id=pollo.id,
        sku="POLLO-30",
        name="Pollo 30cm",
        price_pickup_capital=Decimal("45.00"),
        is_daily_special=True,
        daily_special_days=[2, 4],
        daily_special_price_pickup_capital=Decimal("35.00"),
    )
    combo = Combo(id=next_id(), category_id=combos.id, name="Combo Pollo", price_pickup_capital=Decimal("60.00"))
    fixed = ComboItem(id=next_id(), product_id=pollo.id, variant_id=pollo_30.id, sort_order=0)
    group = ComboItem(id=next_id(), is_choice_group=True, choice_label="Bebida", sort_order=1)
    kept = ComboItemOption(id=next_id(), product_id=cola.id, sort_order=0)
    group.options = [kept]
    combo.items = [fixed, group]

    db_session.add_all([subs, lunch, combos, pollo, cola, pollo_30, combo])
    db_session.commit()
    return {
        "subs": subs.id,
        "lunch": lunch.id,
        "combos": combos.id,
        "pollo": pollo.id,
        "cola": cola.id,
        "pollo_30": pollo_30.id,
        "combo": combo.id,
        "group": group.id,
    }


@pytest.fixture
def repository(db_session):
    return CatalogRepository(db_session)


class TestCatalogConversion:
    def test_product_categories_include_legacy_links(self, repository, catalog_rows):
        snapshot = repository.load_snapshot()

        product = snapshot.product(catalog_rows["pollo"])
        assert product.category_ids == frozenset({catalog_rows["subs"], catalog_rows["lunch"]})
        assert product.has_variants is True

    def test_prices_are_two_place_decimals(self, repository, catalog_rows):
        product = repository.load_snapshot().product(catalog_rows["cola"])

        assert product.prices.pickup_capital == Decimal("10.00")
        assert str(product.prices.delivery_capital) == "11.50"
        assert product.prices.pickup_interior is None

    def test_daily_special_fields(self, repository, catalog_rows):
        variant = repository.load_snapshot().variant(catalog_rows["pollo_30"])

        assert variant.product_id == catalog_rows["pollo"]
        assert variant.daily_special_days == frozenset({2, 4})
        assert variant.daily_special_prices.pickup_capital == Decimal("35.00")
        assert variant.daily_special_prices.delivery_capital is None

    def test_combo_structure(self, repository, catalog_rows):
        combo = repository.load_snapshot().combo(catalog_rows["combo"])

        assert combo.prices.pickup_capital == Decimal("60.00")
        assert [item.is_choice_group for item in combo.items] == [False, True]
        assert [option.product_id for option in combo.items[1].options] == [catalog_rows["cola"]]

    def test_soft_deleted_product_is_inactive(self, db_session, repository, catalog_rows):
        db_session.get(Product, catalog_rows["cola"]).soft_delete()
        db_session.commit()

        snapshot = repository.load_snapshot()

        assert snapshot.product(catalog_rows["cola"]) is not None
        assert snapshot.product_is_active(catalog_rows["cola"]) is False

    def test_inactive_flag(self, db_session, repository, catalog_rows):
        db_session.get(ProductVariant, catalog_rows["pollo_30"]).is_active = False
        db_session.commit()

        assert repository.load_snapshot().variant_is_active(catalog_rows["pollo_30"]) is False

    def test_soft_deleted_option_is_dropped(self, db_session, repository, catalog_rows):
        group = db_session.get(ComboItem, catalog_rows["group"])
        group.options[0].soft_delete()
        db_session.commit()

        combo = repository.load_snapshot().combo(catalog_rows["combo"])

        assert combo.items[1].options == ()


class TestPromotionConversion:
    @pytest.fixture
    def promo(self, db_session):
        promo = Promotion(
            id=next_id(),
            name="Semana del pollo",
            type="percentage_discount",
            valid_from=date(2024, 5, 1),
            weekdays=[2, 4],
            sort_order=3,
        )
        db_session.add(promo)
        db_session.commit()
        return promo

    def _add_item(self, db_session, promo, **fields):
        item = PromotionItem(id=next_id(), promotion_id=promo.id, **fields)
        db_session.add(item)
        db_session.commit()
        return item.id

    def test_promotion_header(self, repository, catalog_rows, promo):
        record = repository.load_snapshot().promotion(promo.id)

        assert record.valid_from == date(2024, 5, 1)
        assert record.valid_until is None
        assert record.weekdays == (2, 4)
        assert record.sort_order == 3

    def test_item_fields(self, db_session, repository, catalog_rows, promo):
        item_id = self._add_item(
            db_session,
            promo,
            category_id=catalog_rows["subs"],
            discount_percentage=Decimal("12.5"),
            validity_type="time_range",
            time_from="18:00:00",
            time_until="22:00:00",
        )

        (item,) = repository.load_snapshot().promotion_items

        assert item.id == item_id
        assert item.discount_percentage == Decimal("12.50")
        assert item.target_kind is None
        assert (item.time_from, item.time_until) == ("18:00:00", "22:00:00")

    def test_legacy_row_in_combo_category_targets_combo(self, db_session, repository, catalog_rows, promo):
        self._add_item(
            db_session, promo, product_id=catalog_rows["combo"], category_id=catalog_rows["combos"],
            discount_percentage=Decimal("5"),
        )

        (item,) = repository.load_snapshot().promotion_items
        assert item.target_kind is TargetKind.COMBO

    def test_legacy_row_elsewhere_targets_product(self, db_session, repository, catalog_rows, promo):
        self._add_item(db_session, promo, product_id=catalog_rows["cola"], discount_percentage=Decimal("5"))

        (item,) = repository.load_snapshot().promotion_items
        assert item.target_kind is TargetKind.PRODUCT

    def test_unknown_target_kind_is_derived(self, db_session, repository, catalog_rows, promo):
        self._add_item(
            db_session, promo, product_id=catalog_rows["combo"], category_id=catalog_rows["combos"],
            target_kind="bundle", discount_percentage=Decimal("5"),
        )

        (item,) = repository.load_snapshot().promotion_items
        assert item.target_kind is TargetKind.COMBO

    def test_soft_deleted_items_are_dropped(self, db_session, repository, catalog_rows, promo):
        item_id = self._add_item(db_session, promo, category_id=catalog_rows["subs"], discount_percentage=Decimal("5"))
        db_session.get(PromotionItem, item_id).soft_delete()
        db_session.commit()

        assert repository.load_snapshot().promotion_items == ()

    def test_soft_deleted_promotion_is_inactive(self, db_session, repository, catalog_rows, promo):
        promo.soft_delete()
        db_session.commit()

        assert repository.load_snapshot().promotion(promo.id).is_active is False


class TestSectionConversion:
    @pytest.fixture
    def section(self, db_session, catalog_rows):
        section = Section(
            id=next_id(),
            title="Extras",
            bundle_discount_enabled=True,
            bundle_size=3,
            bundle_discount_amount=Decimal("2.5"),
        )
        section.options = [
            SectionOption(id=next_id(), name="Queso extra", is_extra=True, price_modifier=Decimal("5")),
            SectionOption(id=next_id(), name="Sin cebolla"),
        ]
        section.products = [db_session.get(Product, catalog_rows["pollo"])]
        db_session.add(section)
        db_session.commit()
        return section

    def test_section_and_options(self, repository, catalog_rows, section):
        snapshot = repository.load_snapshot()
        queso, sin_cebolla = section.options

        record = snapshot.sections[section.id]
        assert (record.bundle_size, record.bundle_discount_amount) == (3, Decimal("2.50"))
        assert snapshot.section_option(queso.id).price_modifier == Decimal("5.00")
        assert snapshot.section_option(sin_cebolla.id).price_modifier == Decimal("0.00")
        assert snapshot.product(catalog_rows["pollo"]).section_ids == frozenset({section.id})
        assert snapshot.product(catalog_rows["cola"]).section_ids == frozenset()

    def test_soft_deleted_option_is_inactive(self, db_session, repository, catalog_rows, section):
        section.options[0].soft_delete()
        db_session.commit()

        assert repository.load_snapshot().section_option(section.options[0].id).is_active is False
