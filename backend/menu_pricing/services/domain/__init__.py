"""
Domain Services - application layer over the pricing engine.

Structure:
    CLI / web layer (thin caller)
        ↓
    Service (business rules, transactions, correlation scope)  ← YOU ARE HERE
        ↓
    Repository (snapshot loading) / pricing engine (pure functions)
        ↓
    Model (entity)

Usage:
    from menu_pricing.services.domain import PricingService

    service = PricingService(db)
    breakdown = service.price_for(product_id, variant_id, "capital", "pickup")
"""

from .pricing_service import PricingService, CartLineInput, RuleProblem
from .promotion_service import PromotionService, PromotionCreate, PromotionItemInput, PromotionOutput
from .catalog_service import (
    CatalogService,
    ProductCreate,
    VariantCreate,
    ComboCreate,
    ComboItemInput,
    ComboOptionInput,
    SectionCreate,
    SectionOptionInput,
)

__all__ = [
    "PricingService",
    "CartLineInput",
    "RuleProblem",
    "PromotionService",
    "PromotionCreate",
    "PromotionItemInput",
    "PromotionOutput",
    "CatalogService",
    "ProductCreate",
    "VariantCreate",
    "ComboCreate",
    "ComboItemInput",
    "ComboOptionInput",
    "SectionCreate",
    "SectionOptionInput",
]
