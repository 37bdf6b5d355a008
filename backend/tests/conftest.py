"""
Pytest configuration and fixtures for backend tests.

Two kinds of fixtures live here:
- db_session and the seeded catalogs, for services and the repository
- build_menu_snapshot(), an in-memory catalog for the pure pricing engine
"""

import itertools
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from menu_pricing.models import Base
from menu_pricing.seed import seed_demo
from menu_pricing.services.pricing import (
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
from shared.infrastructure.clock import fixed_clock


# ID counter for records created directly in tests
_id_counter = itertools.count(1000)


def next_id() -> int:
    return next(_id_counter)


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def demo_ids(db_session):
    """The demo catalog (see menu_pricing.seed), returning its ids."""
    return seed_demo(db_session)


# =============================================================================
# Moments
# =============================================================================

# 2024-05-06 is a Monday
MONDAY = datetime(2024, 5, 6, 12, 0)
TUESDAY = datetime(2024, 5, 7, 12, 0)
WEDNESDAY = datetime(2024, 5, 8, 12, 0)
SATURDAY = datetime(2024, 5, 11, 12, 0)


@pytest.fixture
def tuesday_clock():
    return fixed_clock(TUESDAY)


# =============================================================================
# In-memory catalog
# =============================================================================

SUBS = 1
COMBOS = 2
DRINKS = 3
LUNCH = 4  # linked to Pollo only through the legacy many-to-many table

POLLO = 10
GALLETA = 11
COLA = 12
LIMON = 13
HORCHATA = 14
ENSALADA = 15

POLLO_15 = 20
POLLO_30 = 21

COMBO_POLLO = 30
COMBO_POLLO_SUB = 31
COMBO_POLLO_GALLETA = 32
COMBO_POLLO_DRINKS = 33
OPTION_COLA = 34
OPTION_LIMON = 35
OPTION_HORCHATA = 36

EXTRAS = 40  # bundle: every 2 extras of one price take 3.00 off
ADEREZOS = 41
QUESO = 50
TOCINO = 51
SIN_CEBOLLA = 52
AGUACATE = 53  # inactive
RANCH = 54


def prices(pickup_capital=None, delivery_capital=None, pickup_interior=None, delivery_interior=None) -> PriceMatrix:
    def money(value):
        return Decimal(value) if value is not None else None

    return PriceMatrix(
        pickup_capital=money(pickup_capital),
        delivery_capital=money(delivery_capital),
        pickup_interior=money(pickup_interior),
        delivery_interior=money(delivery_interior),
    )


def build_menu_snapshot(horchata_active: bool = False) -> CatalogSnapshot:
    """
    A small menu without promotions:

    - Pollo (variants 15cm / 30cm); 30cm is a Tue/Thu daily special with a
      pickup-capital override only
    - Galleta, Ensalada and three drinks (Horchata inactive by default)
    - Combo Pollo: 30cm sub + galleta + a drink choice group
    - Extras section on Pollo (queso 5.00, tocino 7.00, sin cebolla, an
      inactive aguacate) and an Aderezos section on Ensalada
    """
    return CatalogSnapshot.build(
        categories=[
            CategoryRecord(SUBS, "Subs"),
            CategoryRecord(COMBOS, "Combos", is_combo_category=True),
            CategoryRecord(DRINKS, "Bebidas"),
            CategoryRecord(LUNCH, "Almuerzo"),
        ],
        products=[
            ProductRecord(POLLO, "Pollo", SUBS, frozenset({SUBS, LUNCH}), has_variants=True, section_ids=frozenset({EXTRAS})),
            ProductRecord(GALLETA, "Galleta", SUBS, frozenset({SUBS}), prices=prices("8.00", "9.00", "8.00", "9.00")),
            ProductRecord(
                ENSALADA, "Ensalada", SUBS, frozenset({SUBS}), prices=prices("50.00", "55.00"), section_ids=frozenset({ADEREZOS})
            ),
            ProductRecord(COLA, "Cola", DRINKS, frozenset({DRINKS}), prices=prices("10.00", "11.00", "10.00", "11.00")),
            ProductRecord(LIMON, "Limón", DRINKS, frozenset({DRINKS}), prices=prices("10.00", "11.00", "10.00", "11.00")),
            ProductRecord(
                HORCHATA,
                "Horchata",
                DRINKS,
                frozenset({DRINKS}),
                is_active=horchata_active,
                prices=prices("12.00", "13.00", "12.00", "13.00"),
            ),
        ],
        variants=[
            VariantRecord(POLLO_15, POLLO, "Pollo 15cm", "POLLO-15", "15cm", prices=prices("30.00", "33.00", "28.00", "31.00")),
            VariantRecord(
                POLLO_30,
                POLLO,
                "Pollo 30cm",
                "POLLO-30",
                "30cm",
                prices=prices("45.00", "48.00", "42.00", "46.00"),
                is_daily_special=True,
                daily_special_days=frozenset({2, 4}),
                daily_special_prices=prices(pickup_capital="35.00"),
            ),
        ],
        combos=[
            ComboRecord(
                COMBO_POLLO,
                "Combo Pollo",
                COMBOS,
                prices=prices("60.00", "65.00", "58.00", None),
                items=(
                    ComboItemRecord(COMBO_POLLO_SUB, COMBO_POLLO, POLLO, POLLO_30),
                    ComboItemRecord(COMBO_POLLO_GALLETA, COMBO_POLLO, GALLETA),
                    ComboItemRecord(
                        COMBO_POLLO_DRINKS,
                        COMBO_POLLO,
                        is_choice_group=True,
                        choice_label="Bebida",
                        options=(
                            ComboOptionRecord(OPTION_COLA, COMBO_POLLO_DRINKS, COLA),
                            ComboOptionRecord(OPTION_LIMON, COMBO_POLLO_DRINKS, LIMON),
                            ComboOptionRecord(OPTION_HORCHATA, COMBO_POLLO_DRINKS, HORCHATA),
                        ),
                    ),
                ),
            ),
        ],
        sections=[
            SectionRecord(EXTRAS, "Extras", bundle_discount_enabled=True, bundle_size=2, bundle_discount_amount=Decimal("3.00")),
            SectionRecord(ADEREZOS, "Aderezos"),
        ],
        section_options=[
            SectionOptionRecord(QUESO, EXTRAS, "Queso extra", is_extra=True, price_modifier=Decimal("5.00")),
            SectionOptionRecord(TOCINO, EXTRAS, "Tocino", is_extra=True, price_modifier=Decimal("7.00")),
            SectionOptionRecord(SIN_CEBOLLA, EXTRAS, "Sin cebolla"),
            SectionOptionRecord(AGUACATE, EXTRAS, "Aguacate", is_extra=True, price_modifier=Decimal("6.00"), is_active=False),
            SectionOptionRecord(RANCH, ADEREZOS, "Ranch", is_extra=True, price_modifier=Decimal("2.00")),
        ],
    )


def with_promotions(snapshot: CatalogSnapshot, promotions=(), items=()) -> CatalogSnapshot:
    return replace(
        snapshot,
        promotions=MappingProxyType({p.id: p for p in promotions}),
        promotion_items=tuple(items),
    )


def with_product(snapshot: CatalogSnapshot, product_id: int, **changes) -> CatalogSnapshot:
    products = dict(snapshot.products)
    products[product_id] = replace(products[product_id], **changes)
    return replace(snapshot, products=MappingProxyType(products))


def with_variant(snapshot: CatalogSnapshot, variant_id: int, **changes) -> CatalogSnapshot:
    variants = dict(snapshot.variants)
    variants[variant_id] = replace(variants[variant_id], **changes)
    return replace(snapshot, variants=MappingProxyType(variants))


def with_combo(snapshot: CatalogSnapshot, combo_id: int, **changes) -> CatalogSnapshot:
    combos = dict(snapshot.combos)
    combos[combo_id] = replace(combos[combo_id], **changes)
    return replace(snapshot, combos=MappingProxyType(combos))


def promotion(promotion_id: int, **fields) -> PromotionRecord:
    fields.setdefault("name", f"Promo {promotion_id}")
    fields.setdefault("type", "percentage_discount")
    return PromotionRecord(promotion_id, **fields)


def promotion_item(item_id: int, promotion_id: int, **fields) -> PromotionItemRecord:
    if "discount_percentage" in fields and fields["discount_percentage"] is not None:
        fields["discount_percentage"] = Decimal(str(fields["discount_percentage"]))
    return PromotionItemRecord(item_id, promotion_id, **fields)


@pytest.fixture
def menu_snapshot():
    return build_menu_snapshot()


# Promotion fixture dates
PROMO_START = date(2024, 5, 1)
PROMO_END = date(2024, 5, 31)
