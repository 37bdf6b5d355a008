"""
Demo catalog for local development and the CLI's `init-db --demo`:
- 2 Categories (Subs, Combos)
- Pollo with 15cm / 30cm variants (30cm has a Tue/Thu daily special)
- Galleta and two drinks as simple products
- Combo Pollo: 30cm sub + galleta + a drink choice group
- Extras section on Pollo: queso 5.00 and tocino 7.00 (two of the same
  extra take 3.00 off), plus a free "sin cebolla"
- Happy hour: 10% off galletas from 18:00 to 22:00
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from menu_pricing.models import Category
from menu_pricing.services.domain.catalog_service import CatalogService
from menu_pricing.services.domain.promotion_service import PromotionService
from shared.config.logging import get_logger

logger = get_logger(__name__)


def _prices(pickup_capital: str, delivery_capital: str, pickup_interior: str, delivery_interior: str) -> dict:
    return {
        "price_pickup_capital": Decimal(pickup_capital),
        "price_delivery_capital": Decimal(delivery_capital),
        "price_pickup_interior": Decimal(pickup_interior),
        "price_delivery_interior": Decimal(delivery_interior),
    }


def seed_demo(db: Session) -> dict[str, int]:
    """
    Create the demo catalog. Returns the ids the CLI examples refer to;
    an already seeded database is left untouched and returns {}.
    """
    if db.scalar(select(Category.id).limit(1)):
        logger.info("Database already has data. Skipping seed.")
        return {}

    catalog = CatalogService(db)
    promotions = PromotionService(db)

    subs = catalog.create_category("Subs")
    combos = catalog.create_category("Combos", is_combo_category=True)

    pollo = catalog.create_product(
        {"category_id": subs.id, "name": "Pollo", "slug": "pollo", "has_variants": True}
    )
    pollo_15 = catalog.add_variant(
        pollo.id,
        {"sku": "POLLO-15", "name": "Pollo 15cm", "size": "15cm", "sort_order": 1, **_prices("30.00", "33.00", "28.00", "31.00")},
    )
    pollo_30 = catalog.add_variant(
        pollo.id,
        {
            "sku": "POLLO-30",
            "name": "Pollo 30cm",
            "size": "30cm",
            "sort_order": 2,
            **_prices("45.00", "48.00", "42.00", "46.00"),
            "is_daily_special": True,
            "daily_special_days": [2, 4],
            "daily_special_price_pickup_capital": Decimal("35.00"),
            "daily_special_price_delivery_capital": Decimal("38.00"),
        },
    )

    galleta = catalog.create_product(
        {"category_id": subs.id, "name": "Galleta", "slug": "galleta", **_prices("8.00", "9.00", "8.00", "9.00")}
    )
    cola = catalog.create_product(
        {"category_id": subs.id, "name": "Bebida Cola", "slug": "bebida-cola", **_prices("10.00", "11.00", "10.00", "11.00")}
    )
    limon = catalog.create_product(
        {"category_id": subs.id, "name": "Bebida Limón", "slug": "bebida-limon", **_prices("10.00", "11.00", "10.00", "11.00")}
    )

    combo = catalog.create_combo(
        {
            "category_id": combos.id,
            "name": "Combo Pollo",
            **_prices("60.00", "65.00", "58.00", "63.00"),
            "items": [
                {"product_id": pollo.id, "variant_id": pollo_30.id},
                {"product_id": galleta.id},
                {
                    "is_choice_group": True,
                    "choice_label": "Bebida",
                    "options": [{"product_id": cola.id}, {"product_id": limon.id}],
                },
            ],
        }
    )

    extras = catalog.create_section(
        {
            "title": "Extras",
            "allow_multiple": True,
            "bundle_discount_enabled": True,
            "bundle_size": 2,
            "bundle_discount_amount": Decimal("3.00"),
            "product_ids": [pollo.id],
            "options": [
                {"name": "Queso extra", "is_extra": True, "price_modifier": Decimal("5.00")},
                {"name": "Tocino", "is_extra": True, "price_modifier": Decimal("7.00")},
                {"name": "Sin cebolla"},
            ],
        }
    )

    happy_hour = promotions.create_full(
        {
            "name": "Happy hour galletas",
            "type": "percentage_discount",
            "items": [
                {
                    "product_id": galleta.id,
                    "category_id": subs.id,
                    "discount_percentage": Decimal("10"),
                    "service_type": "both",
                    "validity_type": "time_range",
                    "time_from": "18:00",
                    "time_until": "22:00",
                }
            ],
        }
    )

    ids = {
        "product_pollo": pollo.id,
        "variant_pollo_15": pollo_15.id,
        "variant_pollo_30": pollo_30.id,
        "product_galleta": galleta.id,
        "combo_pollo": combo.id,
        "combo_drink_group": combo.items[2].id,
        "combo_option_cola": combo.items[2].options[0].id,
        "section_extras": extras.id,
        "option_queso": extras.options[0].id,
        "option_tocino": extras.options[1].id,
        "option_sin_cebolla": extras.options[2].id,
        "promotion_happy_hour": happy_hour.id,
    }
    logger.info("Demo catalog seeded", **ids)
    return ids
